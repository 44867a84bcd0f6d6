"""
Scheduled trigger routes.

Called by an external scheduler (GET or POST), authenticated with the
shared cron secret. Only aggregate counts are returned.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from src.api.dependencies import get_notifier, verify_cron_secret
from src.api.models import ReminderTriggerResponse, WeeklyTriggerResponse
from src.config import Settings, get_settings
from src.database import get_db
from src.services.dates import normalize_date
from src.services.notifications import Notifier
from src.services.triggers import run_evening_reminder, run_weekly_proposals

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cron",
    tags=["Cron"],
    dependencies=[Depends(verify_cron_secret)],
    responses={401: {"description": "Missing or wrong cron secret"}},
)


@router.api_route("/weekly-proposal", methods=["GET", "POST"], response_model=WeeklyTriggerResponse)
def weekly_proposal(
    week_start: Optional[str] = Query(None, description="Monday to propose for (defaults to next Monday)"),
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> WeeklyTriggerResponse:
    """Create next week's pending proposal for every eligible family."""
    summary = run_weekly_proposals(
        db,
        notifier,
        week_start=normalize_date(week_start) if week_start else None,
        tz_name=settings.timezone,
    )
    return WeeklyTriggerResponse(
        week_start=summary.week_start,
        week_label=summary.week_label,
        families_processed=summary.families_processed,
        proposals_created=summary.proposals_created,
    )


@router.api_route("/evening-reminder", methods=["GET", "POST"], response_model=ReminderTriggerResponse)
def evening_reminder(
    db: Session = Depends(get_db),
    notifier: Notifier = Depends(get_notifier),
    settings: Settings = Depends(get_settings),
) -> ReminderTriggerResponse:
    """Send each family tomorrow's schedule."""
    summary = run_evening_reminder(db, notifier, tz_name=settings.timezone)
    return ReminderTriggerResponse(
        date=summary.date,
        families_processed=summary.families_processed,
        reminders_sent=summary.reminders_sent,
    )
