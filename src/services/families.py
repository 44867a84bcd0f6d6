"""
Family queries and parent role resolution.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.models.family import Family, FamilyMember, PARENT_A, PARENT_B
from src.services.exceptions import AuthorizationError, NotFoundError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ParentSlots:
    """
    The two fixed parent slots of a family.

    Either slot may be None when no member has chosen that role yet.
    """

    parent_a: Optional[str] = None
    parent_b: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return bool(self.parent_a and self.parent_b)

    def user_for(self, role: str) -> Optional[str]:
        if role == PARENT_A:
            return self.parent_a
        if role == PARENT_B:
            return self.parent_b
        return None


def _as_uuid(value) -> Optional[UUID]:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


def get_family(session: Session, family_id: UUID) -> Optional[Family]:
    """Get a family by id regardless of its active flag."""
    return session.get(Family, family_id)


def get_all_families(session: Session) -> Sequence[Family]:
    stmt = (
        select(Family)
        .where(Family.deleted_at.is_(None))
        .order_by(Family.created_at)
    )
    return session.scalars(stmt).all()


def get_member(session: Session, user_id) -> Optional[FamilyMember]:
    member_uuid = _as_uuid(user_id)
    if member_uuid is None:
        return None
    member = session.get(FamilyMember, member_uuid)
    if member is None or member.deleted_at is not None:
        return None
    return member


def resolve_parent_roles(session: Session, member_ids: Sequence[str]) -> ParentSlots:
    """
    Map member ids onto the parent A / parent B slots.

    The role comes from each member's parent_role profile attribute; ids that
    are malformed or unknown are ignored. If several members claim the same
    role, the last one found wins.
    """
    uuids = [u for u in (_as_uuid(m) for m in member_ids) if u is not None]
    if not uuids:
        return ParentSlots()

    stmt = select(FamilyMember).where(
        FamilyMember.id.in_(uuids),
        FamilyMember.deleted_at.is_(None),
    )
    slots: dict[str, str] = {}
    for member in session.scalars(stmt).all():
        if member.parent_role in (PARENT_A, PARENT_B):
            slots[member.parent_role] = str(member.id)

    return ParentSlots(parent_a=slots.get(PARENT_A), parent_b=slots.get(PARENT_B))


def get_family_for_member(session: Session, member: FamilyMember) -> Family:
    """
    Resolve and authorize the family a member acts on.

    Raises:
        NotFoundError: If the member does not belong to a family
        AuthorizationError: If the family is inactive or does not list the member
    """
    if member.family_id is None:
        raise NotFoundError("You do not belong to a family.")

    family = get_family(session, member.family_id)
    if family is None:
        raise NotFoundError("You do not belong to a family.")
    if not family.active or family.deleted_at is not None:
        raise AuthorizationError(
            "The family does not exist or has been deactivated. Contact support."
        )
    if not family.has_member(member.id):
        raise AuthorizationError("You are not a member of this family.")
    return family


def member_label(family: Family, member: Optional[FamilyMember]) -> str:
    """Display label for a member, based on their parent role."""
    if member is None:
        return "Someone"
    if member.parent_role in (PARENT_A, PARENT_B):
        return family.parent_label(member.parent_role)
    return member.name or "Someone"
