"""
Unit tests for the iCalendar export.
"""

import uuid

from src.models.schedule import ScheduleEvent
from src.services.calendar_feed import build_calendar, escape_ics, event_summary


def make_event(**fields) -> ScheduleEvent:
    defaults = {"id": uuid.uuid4(), "date": "2026-02-03", "parent": "parent_a", "location": "home_a"}
    return ScheduleEvent(**{**defaults, **fields})


def event_block(ics: str) -> list[str]:
    lines = ics.split("\r\n")
    return lines[lines.index("BEGIN:VEVENT") + 1:lines.index("END:VEVENT")]


class TestEscapeIcs:
    def test_escapes_special_characters(self):
        assert escape_ics("a;b,c\\d\ne") == "a\\;b\\,c\\\\d\\ne"

    def test_plain_text_unchanged(self):
        assert escape_ics("Swimming lesson") == "Swimming lesson"


class TestEventSummary:
    def test_title_wins(self, family):
        assert event_summary(family, make_event(title="  Swimming ")) == "Swimming"

    def test_assignment_without_title(self, family_factory):
        family, _, _ = family_factory(parent_b_name="Mihai")
        event = make_event(parent="parent_b", location="other", location_label="Grandma's", start_time="10:00")

        assert event_summary(family, event) == "With Mihai, Grandma's"


class TestBuildCalendar:
    def test_calendar_envelope(self, family):
        ics = build_calendar(family, [])

        assert ics.split("\r\n") == [
            "BEGIN:VCALENDAR",
            "VERSION:2.0",
            "PRODID:-//Co-Parent Scheduler//EN",
            "CALSCALE:GREGORIAN",
            "X-WR-CALNAME:Co-Parent Scheduler",
            "END:VCALENDAR",
        ]

    def test_all_day_event_ends_next_day(self, family):
        event = make_event(date="2026-02-28")

        block = event_block(build_calendar(family, [event]))

        assert block == [
            f"UID:{event.id}@coparent-scheduler",
            "DTSTART;VALUE=DATE:20260228",
            "DTEND;VALUE=DATE:20260301",
            "SUMMARY:With Parent A\\, Home A",
            "DESCRIPTION:With Parent A\\, Home A",
        ]

    def test_timed_event_defaults_missing_end(self, family):
        event = make_event(title="Swimming", start_time="17:30", notes="Bring towel; goggles")

        block = event_block(build_calendar(family, [event]))

        assert "DTSTART:20260203T173000" in block
        assert "DTEND:20260203T235900" in block
        assert "SUMMARY:Swimming" in block
        assert "DESCRIPTION:Swimming - Bring towel\\; goggles" in block

    def test_end_only_starts_at_midnight(self, family):
        block = event_block(build_calendar(family, [make_event(end_time="09:00")]))

        assert "DTSTART:20260203T000000" in block
        assert "DTEND:20260203T090000" in block
