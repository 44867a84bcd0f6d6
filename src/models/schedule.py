"""
ScheduleEvent model.

The canonical custody calendar. Rows come from direct user edits or from
committing an approved WeekProposal; both kinds are indistinguishable once
stored.
"""

import uuid
from typing import Optional

from sqlalchemy import ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import BaseModel, IsoDate
from src.models.family import PARENT_A, PARENT_B

TOGETHER = "together"
PARTIES = (PARENT_A, PARENT_B, TOGETHER)

HOME_A = "home_a"
HOME_B = "home_b"
OTHER_LOCATION = "other"
LOCATIONS = (HOME_A, HOME_B, OTHER_LOCATION)

# Where the child stays by default with each parent
DEFAULT_LOCATIONS = {
    PARENT_A: HOME_A,
    PARENT_B: HOME_B,
    TOGETHER: OTHER_LOCATION,
}

LOCATION_LABELS = {
    HOME_A: "Home A",
    HOME_B: "Home B",
    OTHER_LOCATION: "Other location",
}


class ScheduleEvent(BaseModel):
    """
    One day's (or one time slot's) custody and location assignment.
    """

    __tablename__ = "schedule_events"

    family_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("families.id"),
        nullable=False,
        doc="Owning family"
    )

    date: Mapped[str] = mapped_column(
        IsoDate,
        nullable=False,
        doc="Event date (YYYY-MM-DD)"
    )

    parent: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="Assigned party: 'parent_a', 'parent_b', 'together'"
    )

    location: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        doc="Location: 'home_a', 'home_b', 'other'"
    )

    location_label: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
        doc="Free-text location when location is 'other'"
    )

    title: Mapped[Optional[str]] = mapped_column(
        String(200),
        nullable=True,
    )

    notes: Mapped[Optional[str]] = mapped_column(
        Text,
        nullable=True,
    )

    start_time: Mapped[Optional[str]] = mapped_column(
        String(5),
        nullable=True,
        doc="Optional HH:MM start"
    )

    end_time: Mapped[Optional[str]] = mapped_column(
        String(5),
        nullable=True,
        doc="Optional HH:MM end"
    )

    created_by: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("family_members.id"),
        nullable=False,
        doc="Member who created the event"
    )

    __table_args__ = (
        Index("idx_schedule_event_family_date", "family_id", "date"),
    )

    @property
    def display_location(self) -> str:
        if self.location == OTHER_LOCATION and (self.location_label or "").strip():
            return self.location_label.strip()
        return LOCATION_LABELS.get(self.location, self.location)

    @property
    def time_range(self) -> Optional[str]:
        parts = [t for t in (self.start_time, self.end_time) if t]
        return " - ".join(parts) if parts else None

    def __repr__(self) -> str:
        return f"<ScheduleEvent(date='{self.date}', parent='{self.parent}', location='{self.location}')>"
