"""
Unit tests for the weekly proposal lifecycle.

Covers idempotent creation, approval bookkeeping and the exactly-once
commit of an approved week into the schedule.
"""

from datetime import datetime, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError

from src.models.activity import FamilyActivity
from src.models.availability import BlockedPeriod
from src.models.proposals import WeekProposal
from src.models.schedule import ScheduleEvent
from src.services import proposals as proposal_service
from src.services.availability import create_blocked_period
from src.services.exceptions import AuthorizationError, NotFoundError, PlanLimitError
from src.services.proposals import (
    approve_proposal,
    create_week_proposal,
    find_pending_proposal,
    get_current_proposal,
)
from src.services.schedule import create_event, list_events, replace_events_for_date

WEEK = "2026-02-02"
WEEK_DATES = [
    "2026-02-02", "2026-02-03", "2026-02-04", "2026-02-05",
    "2026-02-06", "2026-02-07", "2026-02-08",
]


def all_proposals(session, family_id):
    return session.scalars(select(WeekProposal).where(WeekProposal.family_id == family_id)).all()


class TestCreateWeekProposal:
    """Test pending proposal creation."""

    def test_creates_pending_proposal(self, db_session, family, parent_a, parent_b, notifier):
        create_blocked_period(db_session, family, parent_a, "2026-02-03", "2026-02-05")

        proposal = create_week_proposal(db_session, family, WEEK, notifier)
        db_session.commit()

        assert proposal is not None
        assert proposal.status == "pending"
        assert proposal.approved_by == {}
        assert [d["parent"] for d in proposal.days] == [
            "parent_a", "parent_b", "parent_b", "parent_b",
            "parent_a", "parent_b", "parent_a",
        ]

    def test_notifies_all_members(self, db_session, family, parent_a, parent_b, notifier):
        create_week_proposal(db_session, family, WEEK, notifier)

        sent = notifier.of_type("proposal.created")
        assert len(sent) == 1
        assert sorted(sent[0][0]) == sorted([str(parent_a.id), str(parent_b.id)])
        assert "2 Feb - 8 Feb 2026" in sent[0][1].body

    def test_idempotent_for_same_week(self, db_session, family, parent_a, notifier):
        first = create_week_proposal(db_session, family, WEEK, notifier)
        db_session.commit()

        second = create_week_proposal(db_session, family, WEEK, notifier)
        db_session.commit()

        assert first is not None
        assert second is None
        assert len(all_proposals(db_session, family.id)) == 1
        assert len(notifier.of_type("proposal.created")) == 1

    def test_duplicate_insert_rejected_by_storage(self, db_session, family, parent_a):
        """The partial unique index is the last line against concurrent creation."""
        create_week_proposal(db_session, family, WEEK)
        db_session.commit()
        family_id = family.id

        db_session.add(WeekProposal(family_id=family_id, week_start=WEEK, days=[], approved_by={}, status="pending"))
        with pytest.raises(IntegrityError):
            db_session.flush()
        db_session.rollback()

        assert len(all_proposals(db_session, family_id)) == 1

    def test_concurrent_duplicate_keeps_callers_work(self, db_session, family, parent_a):
        """A duplicate that slips past the lookup is skipped without undoing earlier writes."""
        create_week_proposal(db_session, family, WEEK)
        db_session.commit()

        block_id = create_blocked_period(db_session, family, parent_a, "2026-03-02", "2026-03-03").id
        with patch("src.services.proposals.find_pending_proposal", return_value=None):
            duplicate = create_week_proposal(db_session, family, WEEK)
        db_session.commit()

        assert duplicate is None
        assert len(all_proposals(db_session, family.id)) == 1
        assert db_session.get(BlockedPeriod, block_id) is not None

    def test_new_week_gets_its_own_proposal(self, db_session, family, parent_a):
        create_week_proposal(db_session, family, WEEK)
        create_week_proposal(db_session, family, "2026-02-09")
        db_session.commit()

        assert len(all_proposals(db_session, family.id)) == 2

    def test_free_plan_skipped(self, db_session, family_factory):
        family, _, _ = family_factory(plan="free")
        assert create_week_proposal(db_session, family, WEEK) is None

    def test_inactive_family_skipped(self, db_session, family_factory):
        family, _, _ = family_factory(active=False)
        assert create_week_proposal(db_session, family, WEEK) is None

    def test_single_member_family_skipped(self, db_session, family):
        family.member_ids = family.member_ids[:1]
        db_session.commit()

        assert create_week_proposal(db_session, family, WEEK) is None

    def test_unresolved_roles_skipped(self, db_session, family_factory):
        family, _, _ = family_factory(roles=("parent_a", None))
        assert create_week_proposal(db_session, family, WEEK) is None


class TestApproveProposal:
    """Test approval bookkeeping and unanimous commit."""

    @pytest.fixture
    def proposal(self, db_session, family, parent_a):
        create_blocked_period(db_session, family, parent_a, "2026-02-03", "2026-02-05")
        proposal = create_week_proposal(db_session, family, WEEK)
        db_session.commit()
        return proposal

    def test_first_approval_does_not_apply(self, db_session, family, parent_a, parent_b, proposal, notifier):
        result = approve_proposal(db_session, family, parent_a, notifier)
        db_session.commit()

        assert result.applied is False
        assert result.proposal.status == "pending"
        assert list(result.proposal.approved_by) == [str(parent_a.id)]
        assert list_events(db_session, family.id) == []

        sent = notifier.of_type("proposal.approved")
        assert len(sent) == 1
        assert sent[0][0] == [str(parent_b.id)]

    def test_reapproval_keeps_one_entry(self, db_session, family, parent_a, proposal):
        first = datetime(2026, 1, 30, 10, 0, tzinfo=timezone.utc)
        second = datetime(2026, 1, 30, 11, 0, tzinfo=timezone.utc)

        approve_proposal(db_session, family, parent_a, now=first)
        result = approve_proposal(db_session, family, parent_a, now=second)
        db_session.commit()

        assert result.applied is False
        assert result.proposal.approved_by == {str(parent_a.id): second.isoformat()}

    def test_second_approval_commits_week(self, db_session, family, parent_a, parent_b, proposal, notifier):
        approve_proposal(db_session, family, parent_a, notifier)
        result = approve_proposal(db_session, family, parent_b, notifier)
        db_session.commit()

        assert result.applied is True
        assert result.proposal.status == "approved"
        assert set(result.proposal.approved_by) == {str(parent_a.id), str(parent_b.id)}

        events = list_events(db_session, family.id, WEEK_DATES[0], WEEK_DATES[-1])
        assert [e.date for e in events] == WEEK_DATES
        assert [(e.parent, e.location) for e in events] == [
            (d["parent"], d["location"]) for d in proposal.days
        ]
        assert len(notifier.of_type("proposal.applied")) == 1

    def test_losing_concurrent_approval_commits_nothing(self, db_session, family, parent_a, parent_b, proposal, notifier):
        """The approval that loses the pending -> approved flip leaves the schedule alone."""
        approve_proposal(db_session, family, parent_a)
        db_session.commit()

        def load_then_lose_race(session, family_id, for_update=False):
            current = get_current_proposal(session, family_id, for_update)
            session.execute(
                update(WeekProposal)
                .where(WeekProposal.id == current.id)
                .values(status="approved")
                .execution_options(synchronize_session=False)
            )
            return current

        with patch.object(proposal_service, "get_current_proposal", side_effect=load_then_lose_race):
            result = approve_proposal(db_session, family, parent_b, notifier)
        db_session.commit()

        assert result.applied is True
        assert result.proposal.status == "approved"
        assert list_events(db_session, family.id) == []
        assert notifier.of_type("proposal.applied") == []

        actions = db_session.scalars(
            select(FamilyActivity.action).where(FamilyActivity.family_id == family.id)
        ).all()
        assert "proposal_applied" not in actions

    def test_failed_commit_leaves_proposal_pending(self, db_session, family, parent_a, parent_b, proposal):
        approve_proposal(db_session, family, parent_a)
        db_session.commit()
        family_id, first_id = family.id, str(parent_a.id)
        calls = []

        def fail_on_fourth_day(*args, **kwargs):
            calls.append(args[2])
            if len(calls) == 4:
                raise RuntimeError("connection lost")
            return replace_events_for_date(*args, **kwargs)

        with patch.object(proposal_service, "replace_events_for_date", side_effect=fail_on_fourth_day):
            with pytest.raises(RuntimeError):
                approve_proposal(db_session, family, parent_b)
        db_session.rollback()

        current = get_current_proposal(db_session, family_id)
        assert calls == WEEK_DATES[:4]
        assert current.status == "pending"
        assert list(current.approved_by) == [first_id]
        assert list_events(db_session, family_id) == []

    def test_out_of_order_approval(self, db_session, family, parent_a, parent_b, proposal):
        """Parent B approving first still commits on the completing approval."""
        first = approve_proposal(db_session, family, parent_b)
        assert first.applied is False

        second = approve_proposal(db_session, family, parent_a)
        db_session.commit()

        assert second.applied is True
        assert second.proposal.status == "approved"
        assert len(list_events(db_session, family.id)) == 7

    def test_commit_replaces_existing_events(self, db_session, family, parent_a, parent_b, proposal):
        kept = create_event(db_session, family, parent_b, "2026-02-10", "parent_b", "home_b")
        create_event(db_session, family, parent_b, "2026-02-06", "together", "other", title="Party")
        create_event(db_session, family, parent_b, "2026-02-06", "parent_b", "home_b", start_time="18:00")
        db_session.commit()

        approve_proposal(db_session, family, parent_a)
        approve_proposal(db_session, family, parent_b)
        db_session.commit()

        friday = list_events(db_session, family.id, "2026-02-06", "2026-02-06")
        assert len(friday) == 1
        assert friday[0].parent == "parent_a"
        assert friday[0].title is None
        assert db_session.get(ScheduleEvent, kept.id) is not None

    def test_committed_events_created_by_first_member(self, db_session, family, parent_a, parent_b, proposal):
        approve_proposal(db_session, family, parent_b)
        approve_proposal(db_session, family, parent_a)
        db_session.commit()

        creators = {e.created_by for e in list_events(db_session, family.id)}
        assert creators == {parent_a.id}

    def test_commit_ignores_blocked_days(self, db_session, family, parent_a, parent_b, proposal):
        """Committing an approved week bypasses the conflict check."""
        create_blocked_period(db_session, family, parent_a, "2026-02-02", "2026-02-02")
        db_session.commit()

        approve_proposal(db_session, family, parent_a)
        approve_proposal(db_session, family, parent_b)
        db_session.commit()

        monday = list_events(db_session, family.id, "2026-02-02", "2026-02-02")
        assert [e.parent for e in monday] == ["parent_a"]

    def test_approved_proposal_is_no_longer_current(self, db_session, family, parent_a, parent_b, proposal):
        approve_proposal(db_session, family, parent_a)
        approve_proposal(db_session, family, parent_b)
        db_session.commit()

        assert get_current_proposal(db_session, family.id) is None
        assert find_pending_proposal(db_session, family.id, WEEK) is None
        with pytest.raises(NotFoundError):
            approve_proposal(db_session, family, parent_a)

    def test_applied_activity_recorded(self, db_session, family, parent_a, parent_b, proposal):
        approve_proposal(db_session, family, parent_a)
        approve_proposal(db_session, family, parent_b)
        db_session.commit()

        actions = db_session.scalars(
            select(FamilyActivity.action).where(FamilyActivity.family_id == family.id)
        ).all()
        assert "proposal_approved" in actions
        assert "proposal_applied" in actions

    def test_non_member_cannot_approve(self, db_session, family, outsider, proposal):
        with pytest.raises(AuthorizationError):
            approve_proposal(db_session, family, outsider)

        assert get_current_proposal(db_session, family.id).approved_by == {}

    def test_no_pending_proposal(self, db_session, family, parent_a):
        with pytest.raises(NotFoundError):
            approve_proposal(db_session, family, parent_a)

    def test_free_plan_cannot_approve(self, db_session, family_factory):
        family, first, _ = family_factory(plan="free")
        with pytest.raises(PlanLimitError):
            approve_proposal(db_session, family, first)

    def test_latest_pending_proposal_is_current(self, db_session, family, parent_a, proposal):
        later = create_week_proposal(db_session, family, "2026-02-09")
        db_session.commit()

        assert get_current_proposal(db_session, family.id).id == later.id
