"""
FastAPI dependency injection providers.

Provides database sessions, the calling member and family, the notifier,
and cron secret verification.
"""

import hmac
import logging
from typing import Optional

from fastapi import BackgroundTasks, Depends, Header, Query, Request
from sqlalchemy.orm import Session

from src.config import Settings, get_settings
from src.database import get_db
from src.models.family import Family, FamilyMember
from src.services.exceptions import AuthenticationError
from src.services.families import get_family_for_member, get_member
from src.services.notifications import BackgroundNotifier, Notifier, build_notifier

logger = logging.getLogger(__name__)

# Delivery notifier shared by all requests (initialized at startup)
_notifier: Optional[Notifier] = None


def init_notifier(settings: Optional[Settings] = None) -> Notifier:
    """Initialize the delivery notifier at application startup."""
    global _notifier
    _notifier = build_notifier(settings or get_settings())
    logger.info(f"Notifier initialized: {type(_notifier).__name__}")
    return _notifier


def get_delivery_notifier() -> Notifier:
    if _notifier is None:
        return init_notifier()
    return _notifier


def get_notifier(
    request: Request,
    background_tasks: BackgroundTasks,
    delivery: Notifier = Depends(get_delivery_notifier),
) -> BackgroundNotifier:
    """
    Request-scoped notifier.

    Notifications are queued on background tasks and delivered after the
    response, once the request transaction has been committed. The notifier
    is kept on request.state so the conflict handler can deliver what a
    rejected event write queued after sending the 409.
    """
    notifier = BackgroundNotifier(background_tasks, delivery)
    request.state.notifier = notifier
    return notifier


def get_current_member(
    x_user_id: Optional[str] = Header(None, description="Authenticated user ID"),
    db: Session = Depends(get_db),
) -> FamilyMember:
    """
    Resolve the caller from the X-User-ID header set by the auth gateway.

    Raises:
        AuthenticationError: If the header is missing or the user is unknown
    """
    if not x_user_id:
        raise AuthenticationError("Not authenticated")
    member = get_member(db, x_user_id)
    if member is None:
        raise AuthenticationError("Not authenticated")
    return member


def get_current_family(
    member: FamilyMember = Depends(get_current_member),
    db: Session = Depends(get_db),
) -> Family:
    """The caller's active family (raises if missing, inactive or not a member)."""
    return get_family_for_member(db, member)


def verify_cron_secret(
    authorization: Optional[str] = Header(None),
    secret: Optional[str] = Query(None, description="Shared cron secret"),
    settings: Settings = Depends(get_settings),
) -> None:
    """
    Authenticate a scheduled trigger call.

    Accepts 'Authorization: Bearer <secret>' or '?secret=<secret>'. With no
    secret configured every call is rejected.

    Raises:
        AuthenticationError: If the secret is missing or wrong
    """
    expected = settings.cron_secret
    if not expected:
        logger.warning("Cron call rejected: CRON_SECRET is not configured")
        raise AuthenticationError("Unauthorized")

    candidates = []
    if authorization and authorization.startswith("Bearer "):
        candidates.append(authorization[len("Bearer "):])
    if secret:
        candidates.append(secret)

    if not any(hmac.compare_digest(c.encode(), expected.encode()) for c in candidates):
        raise AuthenticationError("Unauthorized")
