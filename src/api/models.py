"""
Pydantic request and response models for the Co-Parent Scheduler API.
"""

import re
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from src.models.activity import FamilyActivity
from src.models.availability import BlockedPeriod
from src.models.proposals import WeekProposal
from src.models.schedule import ScheduleEvent

Party = Literal["parent_a", "parent_b", "together"]
Location = Literal["home_a", "home_b", "other"]

TIME_PATTERN = re.compile(r"^\d{2}:\d{2}$")


def _validate_time(v: Optional[str]) -> Optional[str]:
    if v is None or v == "":
        return None
    if not TIME_PATTERN.match(v):
        raise ValueError("Time must be HH:MM")
    return v


# =============================================================================
# Request Models
# =============================================================================


class CreateBlockedPeriodRequest(BaseModel):
    """Block a date range for the calling parent."""

    start_date: str = Field(..., description="First blocked day (YYYY-MM-DD)", examples=["2026-02-03"])
    end_date: str = Field(..., description="Last blocked day, inclusive", examples=["2026-02-05"])
    note: Optional[str] = Field(None, max_length=500)


class CreateEventRequest(BaseModel):
    """Create a custody event."""

    date: str = Field(..., description="Event date (YYYY-MM-DD)", examples=["2026-02-03"])
    parent: Party
    location: Location
    location_label: Optional[str] = Field(None, max_length=200)
    title: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=2000)
    start_time: Optional[str] = Field(None, description="HH:MM")
    end_time: Optional[str] = Field(None, description="HH:MM")

    _check_times = field_validator("start_time", "end_time")(classmethod(lambda cls, v: _validate_time(v)))


class UpdateEventRequest(BaseModel):
    """
    Partial event update.

    Only fields present in the request body are changed; optional text
    fields can be cleared with null.
    """

    date: Optional[str] = None
    parent: Optional[Party] = None
    location: Optional[Location] = None
    location_label: Optional[str] = Field(None, max_length=200)
    title: Optional[str] = Field(None, max_length=200)
    notes: Optional[str] = Field(None, max_length=2000)
    start_time: Optional[str] = None
    end_time: Optional[str] = None

    _check_times = field_validator("start_time", "end_time")(classmethod(lambda cls, v: _validate_time(v)))


# =============================================================================
# Response Models
# =============================================================================


class BlockedPeriodResponse(BaseModel):
    id: str
    user_id: str
    parent_role: str
    start_date: str
    end_date: str
    note: Optional[str] = None
    created_at: str

    @classmethod
    def from_model(cls, block: BlockedPeriod) -> "BlockedPeriodResponse":
        return cls(
            id=str(block.id),
            user_id=str(block.user_id),
            parent_role=block.parent_role,
            start_date=block.start_date,
            end_date=block.end_date,
            note=block.note,
            created_at=block.created_at.isoformat() if block.created_at else "",
        )


class EventResponse(BaseModel):
    id: str
    date: str
    parent: str
    location: str
    location_label: Optional[str] = None
    title: Optional[str] = None
    notes: Optional[str] = None
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    created_by: str
    created_at: str

    @classmethod
    def from_model(cls, event: ScheduleEvent) -> "EventResponse":
        return cls(
            id=str(event.id),
            date=event.date,
            parent=event.parent,
            location=event.location,
            location_label=event.location_label,
            title=event.title,
            notes=event.notes,
            start_time=event.start_time,
            end_time=event.end_time,
            created_by=str(event.created_by),
            created_at=event.created_at.isoformat() if event.created_at else "",
        )


class EventListResponse(BaseModel):
    events: list[EventResponse]
    total: int


class ImportEventsResponse(BaseModel):
    imported: int
    message: str


class ProposalDayResponse(BaseModel):
    date: str
    parent: str
    location: str


class ProposalResponse(BaseModel):
    id: str
    family_id: str
    week_start: str
    week_label: str
    days: list[ProposalDayResponse]
    approved_by: dict[str, str]
    status: str
    created_at: str
    my_approved: bool = Field(..., description="Caller has approved")
    other_approved: bool = Field(..., description="Another member has approved")
    parent_labels: dict[str, str]


class CurrentProposalResponse(BaseModel):
    proposal: Optional[ProposalResponse] = None
    plan: str
    upgrade_message: Optional[str] = None


class ApproveProposalResponse(BaseModel):
    ok: bool = True
    applied: bool
    proposal_id: str
    status: str


class WeeklyTriggerResponse(BaseModel):
    ok: bool = True
    week_start: str
    week_label: str
    families_processed: int
    proposals_created: int


class ReminderTriggerResponse(BaseModel):
    ok: bool = True
    date: str
    families_processed: int
    reminders_sent: int


class ActivityEntryResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    user_label: str
    action: str
    payload: dict
    created_at: str

    @classmethod
    def from_model(cls, entry: FamilyActivity) -> "ActivityEntryResponse":
        return cls(
            id=str(entry.id),
            user_id=entry.user_id,
            user_label=entry.user_label,
            action=entry.action,
            payload=entry.payload or {},
            created_at=entry.created_at.isoformat() if entry.created_at else "",
        )


class OkResponse(BaseModel):
    ok: bool = True


class HealthResponse(BaseModel):
    status: Literal["healthy", "unhealthy"]
    version: str
    database_connected: bool


class ErrorResponse(BaseModel):
    """Error envelope returned by the exception handlers."""

    error_type: str
    message: str
    retryable: bool = False


def proposal_to_response(proposal: WeekProposal, family, user_id: str, week_label: str) -> ProposalResponse:
    approved_by = dict(proposal.approved_by or {})
    return ProposalResponse(
        id=str(proposal.id),
        family_id=str(proposal.family_id),
        week_start=proposal.week_start,
        week_label=week_label,
        days=[ProposalDayResponse(**d) for d in proposal.days],
        approved_by=approved_by,
        status=proposal.status,
        created_at=proposal.created_at.isoformat() if proposal.created_at else "",
        my_approved=proposal.is_approved_by(user_id),
        other_approved=any(proposal.is_approved_by(m) for m in family.other_member_ids(user_id)),
        parent_labels={
            "parent_a": family.parent_label("parent_a"),
            "parent_b": family.parent_label("parent_b"),
            "together": family.parent_label("together"),
        },
    )
