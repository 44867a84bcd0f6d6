"""
Schedule event routes.

Direct event writes are checked against the family's blocked periods; a
write that lands on a blocked day is rejected with 409 and the blocking
parent is notified.
"""

import logging
import re
from typing import Any, Optional, Union
from uuid import UUID

from fastapi import APIRouter, Body, Depends, Query
from pydantic import ValidationError
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_family, get_current_member, get_notifier
from src.api.models import (
    CreateEventRequest,
    EventListResponse,
    EventResponse,
    ImportEventsResponse,
    OkResponse,
    UpdateEventRequest,
)
from src.database import get_db
from src.models.family import Family, FamilyMember
from src.services.notifications import Notifier
from src.services.schedule import (
    create_event,
    delete_event,
    import_events,
    list_events,
    update_event,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/events", tags=["Events"])

DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


@router.get("", response_model=EventListResponse)
def get_events(
    start_date: Optional[str] = Query(None, description="First date (YYYY-MM-DD), inclusive"),
    end_date: Optional[str] = Query(None, description="Last date (YYYY-MM-DD), inclusive"),
    family: Family = Depends(get_current_family),
    db: Session = Depends(get_db),
) -> EventListResponse:
    events = list_events(db, family.id, start_date, end_date)
    return EventListResponse(
        events=[EventResponse.from_model(e) for e in events],
        total=len(events),
    )


@router.post(
    "",
    response_model=EventResponse,
    status_code=201,
    responses={409: {"description": "The date is blocked for the assigned parent"}},
)
def add_event(
    request: CreateEventRequest,
    member: FamilyMember = Depends(get_current_member),
    family: Family = Depends(get_current_family),
    notifier: Notifier = Depends(get_notifier),
    db: Session = Depends(get_db),
) -> EventResponse:
    """
    Create an event.

    An event for 'together' needs both parents, so a block by either parent
    rejects it.
    """
    fields = request.model_dump(exclude={"date", "parent", "location"})
    event = create_event(
        db, family, member, request.date, request.parent, request.location,
        notifier=notifier, **fields,
    )
    return EventResponse.from_model(event)


def _parse_import_entry(raw: Any) -> Optional[dict[str, Any]]:
    """One importable event, or None when the entry is unusable."""
    if not isinstance(raw, dict):
        return None
    if isinstance(raw.get("date"), str):
        raw = {**raw, "date": raw["date"][:10]}
    try:
        entry = CreateEventRequest.model_validate(raw)
    except ValidationError:
        return None
    if not DATE_PATTERN.match(entry.date):
        return None
    return entry.model_dump()


@router.post(
    "/import",
    response_model=ImportEventsResponse,
    responses={409: {"description": "An imported event lands on a blocked day"}},
)
def import_event_list(
    payload: Union[list[Any], dict[str, Any]] = Body(..., description="One event or a list of events"),
    member: FamilyMember = Depends(get_current_member),
    family: Family = Depends(get_current_family),
    notifier: Notifier = Depends(get_notifier),
    db: Session = Depends(get_db),
) -> ImportEventsResponse:
    """
    Import events from a JSON export.

    Entries missing a valid date, parent or location are skipped. A conflict
    on any remaining entry rejects the whole import.
    """
    raw_entries = payload if isinstance(payload, list) else [payload]
    entries = [e for e in (_parse_import_entry(r) for r in raw_entries) if e is not None]
    if len(entries) < len(raw_entries):
        logger.info(f"Skipped {len(raw_entries) - len(entries)} invalid import entries")

    events = import_events(db, family, member, entries, notifier=notifier)
    return ImportEventsResponse(
        imported=len(events),
        message=f"Imported {len(events)} events.",
    )


@router.patch(
    "/{event_id}",
    response_model=EventResponse,
    responses={409: {"description": "The new date is blocked for the assigned parent"}},
)
def patch_event(
    event_id: UUID,
    request: UpdateEventRequest,
    member: FamilyMember = Depends(get_current_member),
    family: Family = Depends(get_current_family),
    notifier: Notifier = Depends(get_notifier),
    db: Session = Depends(get_db),
) -> EventResponse:
    """Update only the fields present in the request body."""
    changes = request.model_dump(exclude_unset=True)
    event = update_event(db, family, member, event_id, changes, notifier=notifier)
    return EventResponse.from_model(event)


@router.delete("/{event_id}", response_model=OkResponse)
def remove_event(
    event_id: UUID,
    member: FamilyMember = Depends(get_current_member),
    family: Family = Depends(get_current_family),
    db: Session = Depends(get_db),
) -> OkResponse:
    delete_event(db, family, member, event_id)
    return OkResponse()
