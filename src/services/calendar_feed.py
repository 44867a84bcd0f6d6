"""
iCalendar export of a family's schedule.

Renders the stored events as a VCALENDAR document that calendar apps can
subscribe to or import. Timed events become local floating times; events
without a time become all-day entries.
"""

from typing import Sequence

from src.models.family import Family
from src.models.schedule import ScheduleEvent
from src.services.dates import add_days

CALENDAR_NAME = "Co-Parent Scheduler"
PRODUCT_ID = "-//Co-Parent Scheduler//EN"
UID_DOMAIN = "coparent-scheduler"

DAY_START = "00:00"
DAY_END = "23:59"


def escape_ics(value: str) -> str:
    """Escape text for an iCalendar TEXT property value."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\n", "\\n")
    )


def event_summary(family: Family, event: ScheduleEvent) -> str:
    """The event's own title, else who has the child and where."""
    if event.title and event.title.strip():
        return event.title.strip()
    return f"With {family.parent_label(event.parent)}, {event.display_location}"


def _stamp(date: str, time: str) -> str:
    hours, minutes = (int(part) for part in time.split(":"))
    return f"{date.replace('-', '')}T{hours:02d}{minutes:02d}00"


def _event_lines(family: Family, event: ScheduleEvent) -> list[str]:
    summary = event_summary(family, event)
    description = " - ".join(part for part in (summary, event.notes) if part)

    lines = ["BEGIN:VEVENT", f"UID:{event.id}@{UID_DOMAIN}"]
    if event.start_time or event.end_time:
        lines.append(f"DTSTART:{_stamp(event.date, event.start_time or DAY_START)}")
        lines.append(f"DTEND:{_stamp(event.date, event.end_time or DAY_END)}")
    else:
        lines.append(f"DTSTART;VALUE=DATE:{event.date.replace('-', '')}")
        lines.append(f"DTEND;VALUE=DATE:{add_days(event.date, 1).replace('-', '')}")
    lines.append(f"SUMMARY:{escape_ics(summary)}")
    lines.append(f"DESCRIPTION:{escape_ics(description)}")
    lines.append("END:VEVENT")
    return lines


def build_calendar(family: Family, events: Sequence[ScheduleEvent]) -> str:
    """
    Render events as an iCalendar document.

    Lines are separated by CRLF as the format requires; events keep the order
    they are given in.
    """
    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODUCT_ID}",
        "CALSCALE:GREGORIAN",
        f"X-WR-CALNAME:{CALENDAR_NAME}",
    ]
    for event in events:
        lines.extend(_event_lines(family, event))
    lines.append("END:VCALENDAR")
    return "\r\n".join(lines)
