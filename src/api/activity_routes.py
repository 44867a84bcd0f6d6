"""
Family activity history routes.
"""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_family
from src.api.models import ActivityEntryResponse
from src.database import get_db
from src.models.family import Family
from src.services.activity import DEFAULT_LIMIT, get_family_activity

router = APIRouter(prefix="/activity", tags=["Activity"])


@router.get("", response_model=list[ActivityEntryResponse])
def list_activity(
    limit: int = Query(default=DEFAULT_LIMIT, ge=1, le=200),
    family: Family = Depends(get_current_family),
    db: Session = Depends(get_db),
) -> list[ActivityEntryResponse]:
    """Most recent family activity first."""
    return [ActivityEntryResponse.from_model(e) for e in get_family_activity(db, family.id, limit)]
