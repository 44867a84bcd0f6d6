"""
Availability service.

Provides:
- Blocked period queries and owner-only create/delete
- The point-in-time conflict check applied to every direct event write

The conflict check is re-evaluated against the stored blocked periods on
each write. Existing events are never re-validated when a block is added.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Protocol, Sequence
from uuid import UUID

from sqlalchemy import and_, func, select
from sqlalchemy.orm import Session

from src.models.availability import BlockedPeriod
from src.models.family import Family, FamilyMember, PARENT_ROLES
from src.models.schedule import TOGETHER
from src.services.activity import log_family_activity
from src.services.dates import format_day_label, month_bounds, normalize_date
from src.services.exceptions import (
    AuthorizationError,
    NotFoundError,
    PlanLimitError,
    ScheduleConflictError,
    SchedulingValidationError,
)
from src.services.families import member_label
from src.services.notifications import NotificationMessage, Notifier, safe_notify
from src.services.plans import PLAN_LIMITS, can_add_blocked_period, normalize_plan

logger = logging.getLogger(__name__)


class BlockSpan(Protocol):
    """Anything shaped like a blocked period (ORM row or plain record)."""

    user_id: object
    parent_role: str
    start_date: str
    end_date: str


@dataclass(frozen=True)
class Blocker:
    """Owner of the block that rejected a date."""

    user_id: str
    parent_role: str


def is_date_in_block(date: str, start_date: str, end_date: str) -> bool:
    """Inclusive range check on YYYY-MM-DD strings."""
    return start_date <= date <= end_date


def get_blocker_for_date(
    date: str,
    party: str,
    blocks: Sequence[BlockSpan],
) -> Optional[Blocker]:
    """
    Find the first block that makes `date` unavailable for `party`.

    'together' needs both parents, so either parent's block counts.
    """
    roles = PARENT_ROLES if party == TOGETHER else (party,)
    for block in blocks:
        if block.parent_role in roles and is_date_in_block(date, block.start_date, block.end_date):
            return Blocker(user_id=str(block.user_id), parent_role=block.parent_role)
    return None


def get_blocked_periods(
    session: Session,
    family_id: UUID,
    user_id: Optional[UUID] = None,
) -> Sequence[BlockedPeriod]:
    """Blocked periods of a family, optionally only one member's, by start date."""
    conditions = [BlockedPeriod.family_id == family_id]
    if user_id is not None:
        conditions.append(BlockedPeriod.user_id == user_id)

    stmt = (
        select(BlockedPeriod)
        .where(and_(*conditions))
        .order_by(BlockedPeriod.start_date, BlockedPeriod.created_at)
    )
    return session.scalars(stmt).all()


def count_blocked_periods_in_month(session: Session, family_id: UUID, date: str) -> int:
    """Number of the family's blocked periods starting in the month of `date`."""
    first, last = month_bounds(date)
    stmt = select(func.count(BlockedPeriod.id)).where(
        BlockedPeriod.family_id == family_id,
        BlockedPeriod.start_date >= first,
        BlockedPeriod.start_date <= last,
    )
    return session.scalar(stmt) or 0


def create_blocked_period(
    session: Session,
    family: Family,
    member: FamilyMember,
    start_date: str,
    end_date: str,
    note: Optional[str] = None,
) -> BlockedPeriod:
    """
    Block a date range for the calling parent.

    Raises:
        SchedulingValidationError: If the member has no parent role or start > end
        DateValidationError: If a date is malformed
        PlanLimitError: If the family's monthly allowance is used up
    """
    if member.parent_role not in PARENT_ROLES:
        raise SchedulingValidationError(
            "Choose whether you are parent A or parent B in your profile first."
        )

    start = normalize_date(start_date)
    end = normalize_date(end_date)
    if start > end:
        raise SchedulingValidationError(
            "Invalid period: start_date must be on or before end_date."
        )

    plan = normalize_plan(family.plan)
    if not can_add_blocked_period(plan, count_blocked_periods_in_month(session, family.id, start)):
        limit = PLAN_LIMITS[plan]["max_blocked_periods_per_month"]
        raise PlanLimitError(
            f"Your plan allows {limit} blocked periods per month. Upgrade for unlimited periods."
        )

    block = BlockedPeriod(
        family_id=family.id,
        user_id=member.id,
        parent_role=member.parent_role,
        start_date=start,
        end_date=end,
        note=note,
    )
    session.add(block)
    session.flush()

    logger.info(f"Member {member.id} blocked {start}..{end} in family {family.id}")
    log_family_activity(
        session, family.id, str(member.id), member_label(family, member),
        "blocked_period_added", {"start_date": start, "end_date": end},
    )
    return block


def delete_blocked_period(
    session: Session,
    family: Family,
    member: FamilyMember,
    block_id: UUID,
) -> None:
    """
    Delete one of the caller's own blocked periods.

    Raises:
        NotFoundError: If the block does not exist in the family
        AuthorizationError: If the block belongs to someone else
    """
    block = session.get(BlockedPeriod, block_id)
    if block is None or block.family_id != family.id:
        raise NotFoundError(f"Blocked period {block_id} not found")
    if block.user_id != member.id:
        raise AuthorizationError("You can only delete your own blocked periods.")

    payload = {"start_date": block.start_date, "end_date": block.end_date}
    session.delete(block)
    session.flush()

    logger.info(f"Member {member.id} deleted blocked period {block_id}")
    log_family_activity(
        session, family.id, str(member.id), member_label(family, member),
        "blocked_period_deleted", payload,
    )


def blocked_day_attempt_message(attempted_by: str, date: str) -> NotificationMessage:
    return NotificationMessage(
        type="blocked_day.attempt",
        title="Blocked day",
        body=(
            f"{attempted_by} tried to schedule time with the child on "
            f"{format_day_label(date)}, but you have that day blocked."
        ),
        data={"date": date},
    )


def ensure_date_available(
    session: Session,
    family: Family,
    date: str,
    party: str,
    actor: Optional[FamilyMember] = None,
    notifier: Optional[Notifier] = None,
    action: str = "add",
) -> None:
    """
    Reject an event write that lands on a blocked day.

    On rejection the blocking parent is notified (best-effort) before the
    error is raised.

    Raises:
        ScheduleConflictError: Naming the parent whose block caused it
    """
    blocker = get_blocker_for_date(date, party, get_blocked_periods(session, family.id))
    if blocker is None:
        return

    attempted_by = member_label(family, actor) if actor is not None else "Someone"
    safe_notify(notifier, [blocker.user_id], blocked_day_attempt_message(attempted_by, date))

    label = family.parent_label(blocker.parent_role)
    logger.info(f"Rejected event on {date} for {party}: blocked by {blocker.parent_role}")
    verb = "move the event" if action == "move" else "add"
    raise ScheduleConflictError(
        f"You cannot {verb}: {label} has blocked days in that period.",
        blocker_user_id=blocker.user_id,
        blocker_role=blocker.parent_role,
    )
