"""
BlockedPeriod model.

A parent-declared, inclusive date range during which they cannot take
custody. Rows are created and deleted by their owner, never edited.
"""

import uuid
from typing import Optional

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel, IsoDate


class BlockedPeriod(BaseModel):
    """
    One parent's unavailability window.

    start_date and end_date are inclusive YYYY-MM-DD strings.
    """

    __tablename__ = "blocked_periods"

    family_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("families.id"),
        nullable=False,
        doc="Family the block belongs to"
    )

    user_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("family_members.id"),
        nullable=False,
        doc="Owning parent"
    )

    parent_role: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="Owner's parent role when the block was created"
    )

    start_date: Mapped[str] = mapped_column(
        IsoDate,
        nullable=False,
        doc="First blocked day (inclusive)"
    )

    end_date: Mapped[str] = mapped_column(
        IsoDate,
        nullable=False,
        doc="Last blocked day (inclusive)"
    )

    note: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
        doc="Optional free-text note"
    )

    __table_args__ = (
        CheckConstraint("start_date <= end_date", name="ck_blocked_period_range"),
        Index("idx_blocked_family", "family_id"),
        Index("idx_blocked_user", "user_id"),
        Index("idx_blocked_range", "family_id", "start_date", "end_date"),
    )

    def contains(self, date: str) -> bool:
        return self.start_date <= date <= self.end_date

    def __repr__(self) -> str:
        return (
            f"<BlockedPeriod(role='{self.parent_role}', "
            f"{self.start_date}..{self.end_date})>"
        )
