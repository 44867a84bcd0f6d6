"""
WeekProposal model.

A candidate 7-day custody assignment awaiting approval from every family
member. Lifecycle: pending -> approved (terminal).
"""

import uuid

from sqlalchemy import ForeignKey, Index, String, text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel, IsoDate, get_json_type

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"


class WeekProposal(BaseModel):
    """
    Candidate week assignment.

    days holds seven {date, parent, location} dicts in date order.
    approved_by maps member id strings to ISO approval timestamps.

    At most one pending proposal exists per (family_id, week_start); the
    partial unique index enforces it at the storage level.
    """

    __tablename__ = "week_proposals"

    family_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("families.id"),
        nullable=False,
        doc="Owning family"
    )

    week_start: Mapped[str] = mapped_column(
        IsoDate,
        nullable=False,
        doc="Monday of the proposed week (YYYY-MM-DD)"
    )

    days: Mapped[list] = mapped_column(
        get_json_type(),
        nullable=False,
        default=list,
        doc="Ordered day assignments"
    )

    approved_by: Mapped[dict] = mapped_column(
        get_json_type(),
        nullable=False,
        default=dict,
        doc="Member id -> approval timestamp"
    )

    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=STATUS_PENDING,
        doc="Status: 'pending', 'approved'"
    )

    __table_args__ = (
        Index(
            "uq_week_proposal_pending",
            "family_id",
            "week_start",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
        Index("idx_week_proposal_family_status", "family_id", "status"),
    )

    @property
    def week_end(self) -> str:
        return self.days[-1]["date"] if self.days else self.week_start

    def is_approved_by(self, user_id) -> bool:
        return str(user_id) in (self.approved_by or {})

    def __repr__(self) -> str:
        return f"<WeekProposal(week_start='{self.week_start}', status='{self.status}')>"
