"""
Weekly schedule proposals.

Provides:
- generate_proposal: pure 7-day assignment from both parents' blocked periods
- create_week_proposal: idempotent creation of a pending proposal
- approve_proposal: approval bookkeeping and the exactly-once commit of an
  approved week into the schedule event store

Lifecycle per (family, week_start): absent -> pending -> approved. Pending
proposals are never cancelled or expired.
"""

import logging
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from src.models.base import utcnow
from src.models.family import Family, FamilyMember, PARENT_A, PARENT_B, PARENT_ROLES
from src.models.proposals import STATUS_APPROVED, STATUS_PENDING, WeekProposal
from src.models.schedule import DEFAULT_LOCATIONS
from src.services.activity import log_family_activity
from src.services.availability import BlockSpan, get_blocked_periods, is_date_in_block
from src.services.dates import WEEK_LENGTH, add_days, format_week_label, is_monday
from src.services.exceptions import (
    AuthorizationError,
    DateValidationError,
    NotFoundError,
)
from src.services.families import ParentSlots, member_label, resolve_parent_roles
from src.services.notifications import NotificationMessage, Notifier, safe_notify
from src.services.plans import can_use_weekly_proposal, require_weekly_proposal
from src.services.schedule import replace_events_for_date

logger = logging.getLogger(__name__)

MIN_MEMBERS = 2


@dataclass(frozen=True)
class ProposalDay:
    """One day of a proposed week."""

    date: str
    parent: str
    location: str

    def to_dict(self) -> dict:
        return asdict(self)


@dataclass
class ApprovalResult:
    """Outcome of one approval call."""

    proposal: WeekProposal
    applied: bool


# =============================================================================
# Generator
# =============================================================================


def _is_blocked(date: str, role: str, user_id: Optional[str], blocks: Sequence[BlockSpan]) -> bool:
    return any(
        str(b.user_id) == user_id
        and b.parent_role == role
        and is_date_in_block(date, b.start_date, b.end_date)
        for b in blocks
    )


def generate_proposal(
    week_start: str,
    parents: ParentSlots,
    blocks: Sequence[BlockSpan],
) -> list[ProposalDay]:
    """
    Compute the custody assignment for the week starting on `week_start`.

    For day index i:
    - only parent A blocked -> parent B
    - only parent B blocked -> parent A
    - both blocked, or neither -> even i parent A, odd i parent B

    The both-blocked case still assigns a blocked parent.

    Returns:
        Seven days in date order, or [] if either parent slot is unresolved

    Raises:
        DateValidationError: If week_start is not a Monday
    """
    if not is_monday(week_start):
        raise DateValidationError(f"Week start {week_start} is not a Monday")
    if not parents.is_complete:
        return []

    days = []
    for i in range(WEEK_LENGTH):
        date = add_days(week_start, i)
        blocked = {role: _is_blocked(date, role, parents.user_for(role), blocks) for role in PARENT_ROLES}

        if blocked[PARENT_A] and not blocked[PARENT_B]:
            parent = PARENT_B
        elif blocked[PARENT_B] and not blocked[PARENT_A]:
            parent = PARENT_A
        else:
            parent = PARENT_A if i % 2 == 0 else PARENT_B

        days.append(ProposalDay(date=date, parent=parent, location=DEFAULT_LOCATIONS[parent]))

    return days


def generate_proposal_for_family(
    session: Session,
    family: Family,
    week_start: str,
) -> list[ProposalDay]:
    """Load the family's parent slots and blocked periods, then generate."""
    member_ids = [str(m) for m in family.member_ids or []]
    if len(member_ids) < MIN_MEMBERS:
        return []

    parents = resolve_parent_roles(session, member_ids)
    if not parents.is_complete:
        logger.info(f"Family {family.id}: parent roles not resolved, no proposal")
        return []

    return generate_proposal(week_start, parents, get_blocked_periods(session, family.id))


# =============================================================================
# Queries
# =============================================================================


def find_pending_proposal(
    session: Session,
    family_id: UUID,
    week_start: str,
) -> Optional[WeekProposal]:
    stmt = select(WeekProposal).where(
        WeekProposal.family_id == family_id,
        WeekProposal.week_start == week_start,
        WeekProposal.status == STATUS_PENDING,
    )
    return session.scalars(stmt).first()


def get_current_proposal(
    session: Session,
    family_id: UUID,
    for_update: bool = False,
) -> Optional[WeekProposal]:
    """Most recently created pending proposal of the family."""
    stmt = (
        select(WeekProposal)
        .where(
            WeekProposal.family_id == family_id,
            WeekProposal.status == STATUS_PENDING,
        )
        .order_by(WeekProposal.created_at.desc())
        .limit(1)
    )
    if for_update:
        stmt = stmt.with_for_update()
    return session.scalars(stmt).first()


def proposal_week_label(proposal: WeekProposal) -> str:
    return format_week_label(proposal.week_start, proposal.week_end)


# =============================================================================
# Creation
# =============================================================================


def create_week_proposal(
    session: Session,
    family: Family,
    week_start: str,
    notifier: Optional[Notifier] = None,
) -> Optional[WeekProposal]:
    """
    Create the pending proposal for a family and week, if appropriate.

    Skips (returns None) when the family is inactive, has fewer than two
    members, is on a plan without weekly proposals, already has a pending
    proposal for the week, or the generator yields no days.

    A concurrent duplicate insert is rejected by the partial unique index;
    only the insert's savepoint is rolled back and None is returned, so the
    caller's other pending work survives.
    """
    member_ids = [str(m) for m in family.member_ids or []]
    if not family.active or len(member_ids) < MIN_MEMBERS:
        return None
    if not can_use_weekly_proposal(family.plan):
        return None

    if find_pending_proposal(session, family.id, week_start) is not None:
        logger.debug(f"Family {family.id} already has a pending proposal for {week_start}")
        return None

    days = generate_proposal_for_family(session, family, week_start)
    if not days:
        return None

    family_id = family.id
    proposal = WeekProposal(
        family_id=family_id,
        week_start=week_start,
        days=[d.to_dict() for d in days],
        approved_by={},
        status=STATUS_PENDING,
    )
    try:
        with session.begin_nested():
            session.add(proposal)
    except IntegrityError:
        logger.info(f"Family {family_id} proposal for {week_start} created concurrently, skipping")
        return None

    week_label = proposal_week_label(proposal)
    logger.info(f"Created proposal {proposal.id} for family {family_id}, week {week_start}")
    safe_notify(
        notifier,
        member_ids,
        NotificationMessage(
            type="proposal.created",
            title="Weekly schedule proposal",
            body=f"The schedule for {week_label} is ready. Open the app to approve it.",
            data={"proposal_id": str(proposal.id), "week_start": week_start},
        ),
    )
    return proposal


# =============================================================================
# Approval
# =============================================================================


def _commit_week(session: Session, family: Family, proposal: WeekProposal) -> None:
    """Replace the family's events on each proposal date with the proposal's day."""
    created_by = UUID(str(family.member_ids[0]))
    for day in proposal.days:
        replace_events_for_date(
            session,
            family.id,
            day["date"],
            day["parent"],
            day["location"],
            created_by,
        )


def approve_proposal(
    session: Session,
    family: Family,
    member: FamilyMember,
    notifier: Optional[Notifier] = None,
    now: Optional[datetime] = None,
) -> ApprovalResult:
    """
    Record the member's approval of the family's current pending proposal.

    The proposal row is locked for the duration of the transaction, so
    concurrent approvals are applied one after the other against the latest
    approval map. When the map covers every family member, the status flips
    pending -> approved with a conditional update; only the caller whose
    update matched performs the week commit.

    Raises:
        AuthorizationError: If the member is not part of the family
        PlanLimitError: If the family's plan lacks weekly proposals
        NotFoundError: If there is no pending proposal
    """
    user_id = str(member.id)
    if not family.has_member(user_id):
        raise AuthorizationError("You are not a member of this family.")
    require_weekly_proposal(family.plan)

    proposal = get_current_proposal(session, family.id, for_update=True)
    if proposal is None:
        raise NotFoundError("There is no proposal to approve.")

    timestamp = (now or utcnow()).isoformat()
    approved_by = {**(proposal.approved_by or {}), user_id: timestamp}
    member_ids = [str(m) for m in family.member_ids]
    week_label = proposal_week_label(proposal)
    approver = member_label(family, member)

    if not all(m in approved_by for m in member_ids):
        proposal.approved_by = approved_by
        session.flush()

        logger.info(f"Member {user_id} approved proposal {proposal.id} ({len(approved_by)}/{len(member_ids)})")
        log_family_activity(
            session, family.id, user_id, approver, "proposal_approved",
            {"week_label": week_label},
        )
        safe_notify(
            notifier,
            family.other_member_ids(user_id),
            NotificationMessage(
                type="proposal.approved",
                title="Schedule approved",
                body=(
                    f"{approver} approved the schedule for {week_label}. "
                    "Once you approve too, it is applied automatically."
                ),
                data={"proposal_id": str(proposal.id)},
            ),
        )
        return ApprovalResult(proposal=proposal, applied=False)

    result = session.execute(
        update(WeekProposal)
        .where(
            WeekProposal.id == proposal.id,
            WeekProposal.status == STATUS_PENDING,
        )
        .values(status=STATUS_APPROVED, approved_by=approved_by, updated_at=utcnow())
        .execution_options(synchronize_session=False)
    )
    session.refresh(proposal)

    if result.rowcount != 1:
        logger.info(f"Proposal {proposal.id} already applied by a concurrent approval")
        return ApprovalResult(proposal=proposal, applied=True)

    _commit_week(session, family, proposal)

    logger.info(f"Proposal {proposal.id} approved by all members, week {proposal.week_start} applied")
    log_family_activity(
        session, family.id, user_id, approver, "proposal_applied",
        {"week_label": week_label, "week_start": proposal.week_start},
    )
    safe_notify(
        notifier,
        member_ids,
        NotificationMessage(
            type="proposal.applied",
            title="Schedule applied",
            body=f"The schedule for {week_label} has been applied. Check the calendar.",
            data={"proposal_id": str(proposal.id), "week_start": proposal.week_start},
        ),
    )
    return ApprovalResult(proposal=proposal, applied=True)
