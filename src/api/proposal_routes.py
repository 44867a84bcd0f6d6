"""
Weekly proposal routes.
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_family, get_current_member, get_notifier
from src.api.models import ApproveProposalResponse, CurrentProposalResponse, proposal_to_response
from src.database import get_db
from src.models.family import Family, FamilyMember
from src.services.notifications import Notifier
from src.services.plans import can_use_weekly_proposal, normalize_plan
from src.services.proposals import approve_proposal, get_current_proposal, proposal_week_label

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/proposals", tags=["Proposals"])

UPGRADE_MESSAGE = "Automatic weekly proposals are available on the Pro plan."


@router.get("/current", response_model=CurrentProposalResponse)
def get_current(
    member: FamilyMember = Depends(get_current_member),
    family: Family = Depends(get_current_family),
    db: Session = Depends(get_db),
) -> CurrentProposalResponse:
    """
    The family's latest pending proposal, if any.

    Families on the free plan get no proposal and an upgrade message.
    """
    plan = normalize_plan(family.plan)
    if not can_use_weekly_proposal(plan):
        return CurrentProposalResponse(proposal=None, plan=plan, upgrade_message=UPGRADE_MESSAGE)

    proposal = get_current_proposal(db, family.id)
    if proposal is None:
        return CurrentProposalResponse(proposal=None, plan=plan)

    return CurrentProposalResponse(
        proposal=proposal_to_response(proposal, family, str(member.id), proposal_week_label(proposal)),
        plan=plan,
    )


@router.post(
    "/current/approve",
    response_model=ApproveProposalResponse,
    responses={
        403: {"description": "Not a member, or plan without weekly proposals"},
        404: {"description": "No pending proposal"},
    },
)
def approve_current(
    member: FamilyMember = Depends(get_current_member),
    family: Family = Depends(get_current_family),
    notifier: Notifier = Depends(get_notifier),
    db: Session = Depends(get_db),
) -> ApproveProposalResponse:
    """
    Approve the current proposal.

    When every family member has approved, the week is written to the
    calendar and `applied` is true. Approving twice is harmless.
    """
    result = approve_proposal(db, family, member, notifier=notifier)
    return ApproveProposalResponse(
        applied=result.applied,
        proposal_id=str(result.proposal.id),
        status=result.proposal.status,
    )
