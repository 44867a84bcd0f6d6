"""
Notification webhook routes.

Members register HTTPS endpoints that receive signed notification payloads
(proposal created/approved/applied, event changes, blocked day attempts,
evening reminders).
"""

import logging
import secrets
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy import select
from sqlalchemy.orm import Session

from src.api.dependencies import get_current_member
from src.database import get_db
from src.models.family import FamilyMember
from src.models.webhooks import NOTIFICATION_TYPES, Webhook

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/webhooks", tags=["Webhooks"])


# =============================================================================
# Request/Response Models
# =============================================================================


class CreateWebhookRequest(BaseModel):
    """Register a notification endpoint."""

    url: str = Field(
        ...,
        description="HTTPS URL to send notifications to",
        examples=["https://push.example.com/coparent"],
    )
    event_types: list[str] = Field(
        default=list(NOTIFICATION_TYPES),
        description="Notification types to receive",
    )
    description: Optional[str] = Field(None, max_length=255)

    @field_validator("url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith("https://"):
            raise ValueError("Webhook URL must use HTTPS")
        return v

    @field_validator("event_types")
    @classmethod
    def validate_event_types(cls, v: list[str]) -> list[str]:
        if not v:
            raise ValueError("At least one notification type is required")
        for event_type in v:
            if event_type not in NOTIFICATION_TYPES:
                raise ValueError(
                    f"Invalid notification type: {event_type}. "
                    f"Valid types: {', '.join(NOTIFICATION_TYPES)}"
                )
        return v


class WebhookResponse(BaseModel):
    id: str
    url: str
    event_types: list[str]
    description: Optional[str] = None
    active: bool
    failure_count: int
    created_at: str


class CreatedWebhookResponse(WebhookResponse):
    """Includes the signing secret, which is only shown once."""

    secret: str


class WebhookListResponse(BaseModel):
    webhooks: list[WebhookResponse]
    total: int


# =============================================================================
# Helper Functions
# =============================================================================


def _webhook_fields(webhook: Webhook) -> dict:
    return {
        "id": str(webhook.id),
        "url": webhook.url,
        "event_types": webhook.event_type_list,
        "description": webhook.description,
        "active": webhook.active,
        "failure_count": webhook.failure_count,
        "created_at": webhook.created_at.isoformat() if webhook.created_at else "",
    }


def _get_own_webhook(db: Session, webhook_id: UUID, user_id: str) -> Webhook:
    stmt = select(Webhook).where(
        Webhook.id == webhook_id,
        Webhook.user_id == user_id,
        Webhook.deleted_at.is_(None),
    )
    webhook = db.scalars(stmt).first()
    if webhook is None:
        raise HTTPException(status_code=404, detail=f"Webhook {webhook_id} not found")
    return webhook


# =============================================================================
# Endpoints
# =============================================================================


@router.post("", response_model=CreatedWebhookResponse, status_code=201)
def create_webhook(
    request: CreateWebhookRequest,
    member: FamilyMember = Depends(get_current_member),
    db: Session = Depends(get_db),
) -> CreatedWebhookResponse:
    """
    Register a new notification webhook.

    Payloads are signed with HMAC-SHA256 over the raw body, sent in the
    X-Webhook-Signature header. Save the returned `secret`; it is not shown
    again.
    """
    webhook = Webhook(
        user_id=str(member.id),
        url=request.url,
        secret=secrets.token_urlsafe(32),
        event_types=",".join(request.event_types),
        description=request.description,
        active=True,
        failure_count=0,
    )
    db.add(webhook)
    db.flush()

    logger.info(f"Created webhook {webhook.id} for member {member.id}")
    return CreatedWebhookResponse(secret=webhook.secret, **_webhook_fields(webhook))


@router.get("", response_model=WebhookListResponse)
def list_webhooks(
    member: FamilyMember = Depends(get_current_member),
    db: Session = Depends(get_db),
) -> WebhookListResponse:
    stmt = select(Webhook).where(
        Webhook.user_id == str(member.id),
        Webhook.deleted_at.is_(None),
    ).order_by(Webhook.created_at.desc())
    webhooks = db.scalars(stmt).all()

    return WebhookListResponse(
        webhooks=[WebhookResponse(**_webhook_fields(w)) for w in webhooks],
        total=len(webhooks),
    )


@router.delete("/{webhook_id}", response_model=WebhookResponse)
def delete_webhook(
    webhook_id: UUID,
    member: FamilyMember = Depends(get_current_member),
    db: Session = Depends(get_db),
) -> WebhookResponse:
    """Soft delete: the webhook is deactivated and kept for audit."""
    webhook = _get_own_webhook(db, webhook_id, str(member.id))
    webhook.soft_delete()
    webhook.active = False
    db.flush()

    logger.info(f"Deleted webhook {webhook_id} for member {member.id}")
    return WebhookResponse(**_webhook_fields(webhook))


@router.patch("/{webhook_id}/toggle", response_model=WebhookResponse)
def toggle_webhook(
    webhook_id: UUID,
    active: bool = Query(..., description="Set webhook active status"),
    member: FamilyMember = Depends(get_current_member),
    db: Session = Depends(get_db),
) -> WebhookResponse:
    """Enable or disable a webhook; re-enabling resets the failure count."""
    webhook = _get_own_webhook(db, webhook_id, str(member.id))
    webhook.active = active
    if active:
        webhook.failure_count = 0
    db.flush()

    logger.info(f"Set webhook {webhook_id} active={active}")
    return WebhookResponse(**_webhook_fields(webhook))
