"""
Schedule event store.

The canonical custody calendar. Direct writes go through the availability
conflict check; committing an approved proposal goes through
replace_events_for_date and deliberately bypasses it.
"""

import logging
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import and_, delete, select
from sqlalchemy.orm import Session

from src.models.family import Family, FamilyMember
from src.models.schedule import LOCATIONS, PARTIES, ScheduleEvent
from src.services.activity import log_family_activity
from src.services.availability import ensure_date_available
from src.services.dates import format_day_label, normalize_date
from src.services.exceptions import NotFoundError, SchedulingValidationError
from src.services.families import member_label
from src.services.notifications import NotificationMessage, Notifier, safe_notify

logger = logging.getLogger(__name__)

# Optional text fields that a PATCH may clear by sending null
NULLABLE_FIELDS = ("location_label", "title", "notes", "start_time", "end_time")


def event_label(family: Family, event: ScheduleEvent) -> str:
    """E.g. 'With Parent A, Home A (09:00 - 17:00)'."""
    label = f"With {family.parent_label(event.parent)}, {event.display_location}"
    time_range = event.time_range
    return f"{label} ({time_range})" if time_range else label


def _validate_party_and_location(parent: Optional[str], location: Optional[str]) -> None:
    if parent is not None and parent not in PARTIES:
        raise SchedulingValidationError(f"Invalid parent '{parent}'. Valid: {', '.join(PARTIES)}")
    if location is not None and location not in LOCATIONS:
        raise SchedulingValidationError(f"Invalid location '{location}'. Valid: {', '.join(LOCATIONS)}")


def list_events(
    session: Session,
    family_id: UUID,
    start_date: Optional[str] = None,
    end_date: Optional[str] = None,
) -> Sequence[ScheduleEvent]:
    """Family events ordered by date, optionally limited to an inclusive range."""
    conditions = [ScheduleEvent.family_id == family_id]
    if start_date:
        conditions.append(ScheduleEvent.date >= normalize_date(start_date))
    if end_date:
        conditions.append(ScheduleEvent.date <= normalize_date(end_date))

    stmt = (
        select(ScheduleEvent)
        .where(and_(*conditions))
        .order_by(ScheduleEvent.date, ScheduleEvent.start_time, ScheduleEvent.created_at)
    )
    return session.scalars(stmt).all()


def get_event(session: Session, family_id: UUID, event_id: UUID) -> ScheduleEvent:
    """
    Raises:
        NotFoundError: If the event does not exist in the family
    """
    event = session.get(ScheduleEvent, event_id)
    if event is None or event.family_id != family_id:
        raise NotFoundError(f"Event {event_id} not found")
    return event


def create_event(
    session: Session,
    family: Family,
    member: FamilyMember,
    date: str,
    parent: str,
    location: str,
    notifier: Optional[Notifier] = None,
    **fields: Any,
) -> ScheduleEvent:
    """
    Create an event after checking the assigned party is not blocked.

    Raises:
        SchedulingValidationError: If parent or location is unknown
        ScheduleConflictError: If the date is blocked for the assigned party
    """
    date = normalize_date(date)
    _validate_party_and_location(parent, location)
    ensure_date_available(session, family, date, parent, actor=member, notifier=notifier)

    event = ScheduleEvent(
        family_id=family.id,
        date=date,
        parent=parent,
        location=location,
        created_by=member.id,
        **{k: fields.get(k) for k in NULLABLE_FIELDS},
    )
    session.add(event)
    session.flush()

    actor = member_label(family, member)
    logger.info(f"Member {member.id} created event on {date} for {parent}")
    log_family_activity(
        session, family.id, str(member.id), actor, "event_created",
        {"date": date, "label": event_label(family, event)},
    )
    safe_notify(
        notifier,
        family.other_member_ids(member.id),
        NotificationMessage(
            type="event.created",
            title=f"New event: {format_day_label(date)}",
            body=event_label(family, event),
            data={"event_id": str(event.id), "date": date},
        ),
    )
    return event


def update_event(
    session: Session,
    family: Family,
    member: FamilyMember,
    event_id: UUID,
    changes: dict[str, Any],
    notifier: Optional[Notifier] = None,
) -> ScheduleEvent:
    """
    Apply a partial update.

    Keys absent from `changes` are left untouched. The conflict check runs
    against the final date/party only when one of them changes.

    Raises:
        NotFoundError: If the event does not exist in the family
        ScheduleConflictError: If the new date/party is blocked
    """
    event = get_event(session, family.id, event_id)

    new_date = normalize_date(changes["date"]) if changes.get("date") is not None else event.date
    new_parent = changes["parent"] if changes.get("parent") is not None else event.parent
    _validate_party_and_location(new_parent, changes.get("location"))

    if new_date != event.date or new_parent != event.parent:
        ensure_date_available(
            session, family, new_date, new_parent,
            actor=member, notifier=notifier, action="move",
        )

    event.date = new_date
    event.parent = new_parent
    if changes.get("location") is not None:
        event.location = changes["location"]
    for key in NULLABLE_FIELDS:
        if key in changes:
            setattr(event, key, changes[key])
    session.flush()

    actor = member_label(family, member)
    logger.info(f"Member {member.id} updated event {event_id}")
    log_family_activity(
        session, family.id, str(member.id), actor, "event_updated",
        {"date": event.date, "label": event_label(family, event)},
    )
    safe_notify(
        notifier,
        family.other_member_ids(member.id),
        NotificationMessage(
            type="event.updated",
            title=f"Event changed: {format_day_label(event.date)}",
            body=f"{actor} changed an event: {event_label(family, event)}",
            data={"event_id": str(event.id), "date": event.date},
        ),
    )
    return event


def import_events(
    session: Session,
    family: Family,
    member: FamilyMember,
    entries: Sequence[dict[str, Any]],
    notifier: Optional[Notifier] = None,
) -> list[ScheduleEvent]:
    """
    Create several events at once.

    Every entry is checked against the blocked periods before anything is
    written, so one conflict rejects the whole import. The other members get
    a single summary notification instead of one per event.

    Raises:
        SchedulingValidationError: If there is nothing to import
        ScheduleConflictError: If any entry lands on a blocked day
    """
    if not entries:
        raise SchedulingValidationError(
            "No valid events found (date, parent and location are required)."
        )

    for entry in entries:
        _validate_party_and_location(entry["parent"], entry["location"])
        ensure_date_available(
            session, family, normalize_date(entry["date"]), entry["parent"],
            actor=member, notifier=notifier,
        )

    events = [
        create_event(
            session, family, member, entry["date"], entry["parent"], entry["location"],
            **{k: entry.get(k) for k in NULLABLE_FIELDS},
        )
        for entry in entries
    ]

    actor = member_label(family, member)
    logger.info(f"Member {member.id} imported {len(events)} events into family {family.id}")
    safe_notify(
        notifier,
        family.other_member_ids(member.id),
        NotificationMessage(
            type="events.imported",
            title="Events imported",
            body=f"{actor} imported {len(events)} events into the calendar.",
            data={"count": len(events)},
        ),
    )
    return events


def delete_event(
    session: Session,
    family: Family,
    member: FamilyMember,
    event_id: UUID,
) -> None:
    """
    Raises:
        NotFoundError: If the event does not exist in the family
    """
    event = get_event(session, family.id, event_id)
    payload = {"date": event.date, "label": event_label(family, event)}
    session.delete(event)
    session.flush()

    logger.info(f"Member {member.id} deleted event {event_id}")
    log_family_activity(
        session, family.id, str(member.id), member_label(family, member),
        "event_deleted", payload,
    )


def replace_events_for_date(
    session: Session,
    family_id: UUID,
    date: str,
    parent: str,
    location: str,
    created_by: UUID,
) -> ScheduleEvent:
    """
    Delete every event of the family on `date` and insert one assignment.

    Runs in the caller's transaction and flushes immediately so a storage
    failure surfaces here rather than at commit.
    """
    session.execute(
        delete(ScheduleEvent).where(
            ScheduleEvent.family_id == family_id,
            ScheduleEvent.date == date,
        )
    )
    event = ScheduleEvent(
        family_id=family_id,
        date=date,
        parent=parent,
        location=location,
        created_by=created_by,
    )
    session.add(event)
    session.flush()
    return event
