"""
Family activity history.

Append-only audit trail of what members did in the shared calendar.
"""

import uuid
from typing import Optional

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel, get_json_type

ACTIVITY_ACTIONS = (
    "event_created",
    "event_updated",
    "event_deleted",
    "blocked_period_added",
    "blocked_period_deleted",
    "proposal_approved",
    "proposal_applied",
)


class FamilyActivity(BaseModel):
    """One entry in a family's activity history."""

    __tablename__ = "family_activity"

    family_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("families.id"),
        nullable=False,
    )

    user_id: Mapped[Optional[str]] = mapped_column(
        String(64),
        nullable=True,
        doc="Acting member id (NULL for system actions)"
    )

    user_label: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Display label of the actor at the time of the action"
    )

    action: Mapped[str] = mapped_column(
        String(50),
        nullable=False,
    )

    payload: Mapped[dict] = mapped_column(
        get_json_type(),
        nullable=False,
        default=dict,
    )

    __table_args__ = (
        Index("idx_activity_family_created", "family_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<FamilyActivity(action='{self.action}', user='{self.user_label}')>"
