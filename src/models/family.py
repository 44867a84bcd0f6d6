"""
Family and FamilyMember models.

Entities:
- Family: The two-parent unit that owns blocked periods, events and proposals
- FamilyMember: A user profile; its parent_role maps it into one of the two
  fixed parent slots

Authentication lives outside this service; a FamilyMember row is the local
profile the upstream identity resolves to.
"""

import uuid
from typing import Optional

from sqlalchemy import Boolean, ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from src.models.base import BaseModel, get_json_type

PARENT_A = "parent_a"
PARENT_B = "parent_b"
PARENT_ROLES = (PARENT_A, PARENT_B)


class Family(BaseModel):
    """
    Represents a co-parenting family.

    member_ids is ordered: index 0 is the family creator (parent A by
    convention) and is recorded as the creator of events committed from an
    approved proposal.
    """

    __tablename__ = "families"

    name: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Optional family display name"
    )

    member_ids: Mapped[list] = mapped_column(
        get_json_type(),
        nullable=False,
        default=list,
        doc="Ordered list of member id strings"
    )

    plan: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default="free",
        doc="Plan tier: 'free', 'pro', 'family'"
    )

    active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        doc="Inactive families are excluded from every operation"
    )

    parent_a_name: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Display label for parent A"
    )

    parent_b_name: Mapped[Optional[str]] = mapped_column(
        String(100),
        nullable=True,
        doc="Display label for parent B"
    )

    members: Mapped[list["FamilyMember"]] = relationship(
        "FamilyMember",
        back_populates="family",
        doc="Member profiles (unordered; use member_ids for order)"
    )

    __table_args__ = (
        Index("idx_family_plan", "plan"),
        Index("idx_family_active", "active"),
    )

    def parent_label(self, role: Optional[str]) -> str:
        """Display label for a parent role."""
        if role == PARENT_A:
            return (self.parent_a_name or "").strip() or "Parent A"
        if role == PARENT_B:
            return (self.parent_b_name or "").strip() or "Parent B"
        if role == "together":
            return "Together"
        return "The other parent"

    def has_member(self, user_id) -> bool:
        return str(user_id) in [str(m) for m in self.member_ids or []]

    def other_member_ids(self, user_id) -> list[str]:
        """Member ids excluding user_id, in family order."""
        return [str(m) for m in self.member_ids or [] if str(m) != str(user_id)]

    def __repr__(self) -> str:
        return f"<Family(id={self.id}, plan='{self.plan}', members={len(self.member_ids or [])})>"


class FamilyMember(BaseModel):
    """
    A parent's profile.

    parent_role is the per-user attribute the proposal engine uses to place
    the member into the parent A or parent B slot.
    """

    __tablename__ = "family_members"

    name: Mapped[str] = mapped_column(
        String(100),
        nullable=False,
        doc="Full name"
    )

    email: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        unique=True,
        doc="Email address"
    )

    parent_role: Mapped[Optional[str]] = mapped_column(
        String(20),
        nullable=True,
        doc="'parent_a', 'parent_b' or NULL when not chosen yet"
    )

    family_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        ForeignKey("families.id"),
        nullable=True,
        doc="Family this member belongs to"
    )

    family: Mapped[Optional["Family"]] = relationship(
        "Family",
        back_populates="members",
    )

    __table_args__ = (
        Index("idx_family_member_email", "email"),
        Index("idx_family_member_family", "family_id"),
    )

    def __repr__(self) -> str:
        return f"<FamilyMember(name='{self.name}', parent_role='{self.parent_role}')>"
