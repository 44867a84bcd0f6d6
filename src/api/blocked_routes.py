"""
Blocked period routes.

Each parent manages their own blocked days; both parents can see all of the
family's blocks.
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_family, get_current_member
from src.api.models import BlockedPeriodResponse, CreateBlockedPeriodRequest, OkResponse
from src.database import get_db
from src.models.family import Family, FamilyMember
from src.services.availability import (
    create_blocked_period,
    delete_blocked_period,
    get_blocked_periods,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/blocked-periods", tags=["Availability"])


@router.get("", response_model=list[BlockedPeriodResponse])
def list_blocked_periods(
    mine: bool = Query(False, description="Only the caller's own periods"),
    member: FamilyMember = Depends(get_current_member),
    family: Family = Depends(get_current_family),
    db: Session = Depends(get_db),
) -> list[BlockedPeriodResponse]:
    """List the family's blocked periods ordered by start date."""
    blocks = get_blocked_periods(db, family.id, member.id if mine else None)
    return [BlockedPeriodResponse.from_model(b) for b in blocks]


@router.post("", response_model=BlockedPeriodResponse, status_code=201)
def add_blocked_period(
    request: CreateBlockedPeriodRequest,
    member: FamilyMember = Depends(get_current_member),
    family: Family = Depends(get_current_family),
    db: Session = Depends(get_db),
) -> BlockedPeriodResponse:
    """
    Block an inclusive date range for the calling parent.

    Blocking does not touch events already on the calendar; it only affects
    later event writes and future proposals.
    """
    block = create_blocked_period(
        db, family, member, request.start_date, request.end_date, request.note
    )
    return BlockedPeriodResponse.from_model(block)


@router.delete("/{block_id}", response_model=OkResponse)
def remove_blocked_period(
    block_id: UUID,
    member: FamilyMember = Depends(get_current_member),
    family: Family = Depends(get_current_family),
    db: Session = Depends(get_db),
) -> OkResponse:
    delete_blocked_period(db, family, member, block_id)
    return OkResponse()
