"""
Calendar feed routes.
"""

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_family
from src.database import get_db
from src.models.family import Family
from src.services.calendar_feed import build_calendar
from src.services.schedule import list_events

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Calendar"])

ICS_FILENAME = "coparent-schedule.ics"


@router.get(
    "/calendar.ics",
    response_class=Response,
    responses={200: {"content": {"text/calendar": {}}, "description": "iCalendar document"}},
)
def export_calendar(
    family: Family = Depends(get_current_family),
    db: Session = Depends(get_db),
) -> Response:
    """Download the family's whole schedule as an .ics file."""
    events = list_events(db, family.id)
    logger.info(f"Exporting {len(events)} events of family {family.id} as iCalendar")
    return Response(
        content=build_calendar(family, events),
        media_type="text/calendar; charset=utf-8",
        headers={
            "Content-Disposition": f'attachment; filename="{ICS_FILENAME}"',
            "Cache-Control": "no-store",
        },
    )
