"""
Notification webhook registrations.

Each member can register HTTPS endpoints that receive signed JSON payloads
for schedule notifications (push/email gateways sit behind these URLs).
"""

from datetime import datetime
from typing import Optional

from sqlalchemy import Boolean, DateTime, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel, utcnow

NOTIFICATION_TYPES = (
    "proposal.created",
    "proposal.approved",
    "proposal.applied",
    "event.created",
    "event.updated",
    "events.imported",
    "blocked_day.attempt",
    "reminder.evening",
)

MAX_CONSECUTIVE_FAILURES = 10


class Webhook(BaseModel):
    """
    A member's notification endpoint.

    Attributes:
        user_id: Member who owns this webhook
        url: HTTPS URL to send notifications to
        secret: Shared secret for HMAC signature verification
        event_types: Comma-separated notification types to receive
        active: Whether webhook is currently active
        failure_count: Consecutive failures (reset on success)
    """

    __tablename__ = "webhooks"

    user_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        doc="Member id who owns this webhook"
    )

    url: Mapped[str] = mapped_column(
        Text,
        nullable=False,
    )

    secret: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        doc="Shared secret for HMAC-SHA256 signature"
    )

    event_types: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        default=",".join(NOTIFICATION_TYPES),
    )

    description: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
    )

    active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
    )

    last_triggered: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    failure_count: Mapped[int] = mapped_column(
        nullable=False,
        default=0,
    )

    __table_args__ = (
        Index("ix_webhooks_user_active", "user_id", "active"),
    )

    @property
    def event_type_list(self) -> list[str]:
        return [t.strip() for t in self.event_types.split(",") if t.strip()]

    def should_trigger(self, notification_type: str) -> bool:
        return self.active and notification_type in self.event_type_list

    def record_success(self) -> None:
        self.last_triggered = utcnow()
        self.failure_count = 0

    def record_failure(self) -> None:
        self.failure_count += 1
        if self.failure_count >= MAX_CONSECUTIVE_FAILURES:
            self.active = False

    def __repr__(self) -> str:
        return f"<Webhook(user_id={self.user_id}, url={self.url[:50]}..., active={self.active})>"
