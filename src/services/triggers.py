"""
Scheduled trigger jobs.

Both jobs walk every family, commit per family, and isolate failures: one
family's error is logged and rolled back without affecting the rest. They
report aggregate counts only.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session

from src.models.family import Family
from src.services.dates import add_days, format_day_label, format_week_label, is_monday, next_monday, today
from src.services.exceptions import DateValidationError
from src.services.families import get_all_families
from src.services.notifications import DeferredNotifier, NotificationMessage, Notifier, safe_notify
from src.services.proposals import create_week_proposal
from src.services.schedule import event_label, list_events

logger = logging.getLogger(__name__)

NO_EVENTS_BODY = "No events scheduled."


@dataclass
class TriggerSummary:
    """Result of one weekly proposal run."""

    week_start: str
    week_label: str
    families_processed: int = 0
    proposals_created: int = 0
    families_failed: int = 0


@dataclass
class ReminderSummary:
    """Result of one evening reminder run."""

    date: str
    families_processed: int = 0
    reminders_sent: int = 0
    families_failed: int = 0


def _family_ids(session: Session) -> list:
    return [family.id for family in get_all_families(session)]


def run_weekly_proposals(
    session: Session,
    notifier: Optional[Notifier] = None,
    week_start: Optional[str] = None,
    tz_name: Optional[str] = None,
) -> TriggerSummary:
    """
    Create next week's pending proposal for every eligible family.

    Args:
        session: Database session (committed once per family)
        notifier: Notification sink for "proposal created" messages
        week_start: Monday to propose for (defaults to next Monday in tz_name)
        tz_name: IANA timezone deciding what "next Monday" is

    Returns:
        TriggerSummary with aggregate counts

    Raises:
        DateValidationError: If week_start is not a Monday
    """
    week_start = week_start or next_monday(tz_name=tz_name)
    if not is_monday(week_start):
        raise DateValidationError(f"Week start {week_start} is not a Monday")
    summary = TriggerSummary(week_start=week_start, week_label=format_week_label(week_start))

    for family_id in _family_ids(session):
        summary.families_processed += 1
        # Announcements leave only once the family's proposal is committed
        outbox = DeferredNotifier(notifier)
        try:
            family = session.get(Family, family_id)
            if family is None:
                continue
            proposal = create_week_proposal(session, family, week_start, outbox)
            session.commit()
            outbox.deliver_pending()
            if proposal is not None:
                summary.proposals_created += 1
        except Exception as e:
            session.rollback()
            outbox.discard()
            summary.families_failed += 1
            logger.error(f"Weekly proposal failed for family {family_id}: {e}", exc_info=True)

    logger.info(
        f"Weekly proposals for {week_start}: {summary.proposals_created} created, "
        f"{summary.families_processed} families processed, {summary.families_failed} failed"
    )
    return summary


def run_evening_reminder(
    session: Session,
    notifier: Optional[Notifier] = None,
    day: Optional[str] = None,
    tz_name: Optional[str] = None,
) -> ReminderSummary:
    """
    Remind each active family's members of tomorrow's schedule.

    Families with nothing scheduled are told so.

    Args:
        day: Date to remind about (defaults to tomorrow in tz_name)
    """
    day = day or add_days(today(tz_name), 1)
    summary = ReminderSummary(date=day)

    for family_id in _family_ids(session):
        summary.families_processed += 1
        try:
            family = session.get(Family, family_id)
            if family is None or not family.active or not family.member_ids:
                continue
            events = list_events(session, family.id, day, day)
            body = "; ".join(event_label(family, e) for e in events) or NO_EVENTS_BODY
            safe_notify(
                notifier,
                [str(m) for m in family.member_ids],
                NotificationMessage(
                    type="reminder.evening",
                    title=f"Tomorrow, {format_day_label(day)}",
                    body=body,
                    data={"date": day, "events": len(events)},
                ),
            )
            summary.reminders_sent += 1
        except Exception as e:
            session.rollback()
            summary.families_failed += 1
            logger.error(f"Evening reminder failed for family {family_id}: {e}", exc_info=True)

    logger.info(f"Evening reminder for {day}: {summary.reminders_sent} families notified")
    return summary
