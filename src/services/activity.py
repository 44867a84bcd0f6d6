"""
Family activity history.

Recording never fails the calling operation: errors are logged and the
entry is dropped.
"""

import logging
from typing import Any, Optional, Sequence
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from src.models.activity import FamilyActivity

logger = logging.getLogger(__name__)

DEFAULT_LIMIT = 80


def log_family_activity(
    session: Session,
    family_id: UUID,
    user_id: Optional[str],
    user_label: str,
    action: str,
    payload: Optional[dict[str, Any]] = None,
) -> None:
    """
    Append an entry to the family's history.

    Runs inside a savepoint so a failed insert cannot poison the caller's
    transaction.
    """
    try:
        with session.begin_nested():
            session.add(
                FamilyActivity(
                    family_id=family_id,
                    user_id=str(user_id) if user_id else None,
                    user_label=user_label.strip() or "User",
                    action=action,
                    payload=payload or {},
                )
            )
    except Exception as e:
        logger.error(f"Failed to record activity '{action}' for family {family_id}: {e}")


def get_family_activity(
    session: Session,
    family_id: UUID,
    limit: int = DEFAULT_LIMIT,
) -> Sequence[FamilyActivity]:
    """Most recent entries first."""
    stmt = (
        select(FamilyActivity)
        .where(FamilyActivity.family_id == family_id)
        .order_by(FamilyActivity.created_at.desc())
        .limit(limit)
    )
    return session.scalars(stmt).all()
