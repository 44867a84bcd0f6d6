"""
Notification sink.

Services hand (recipient ids, message) to a Notifier and never wait on or
fail because of delivery. The production notifier posts signed JSON
payloads to each recipient's registered webhooks with retry logic; the API
layer wraps it in a BackgroundNotifier so delivery happens after the
response is sent.
"""

import hashlib
import hmac
import json
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, ContextManager, Optional, Sequence

import httpx
from fastapi import BackgroundTasks
from sqlalchemy import select
from sqlalchemy.orm import Session
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.models.base import utcnow
from src.models.webhooks import Webhook

logger = logging.getLogger(__name__)


class WebhookDeliveryError(Exception):
    """Retryable delivery failure (timeout, transport error, non-2xx)."""


@dataclass
class NotificationMessage:
    """A notification as seen by the recipient."""

    type: str
    title: str
    body: str
    url: str = "/"
    data: dict[str, Any] = field(default_factory=dict)

    def to_payload(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "title": self.title,
            "body": self.body,
            "url": self.url,
            "data": self.data,
        }


class Notifier:
    """Interface of the notification sink."""

    def notify(self, recipient_ids: Sequence[str], message: NotificationMessage) -> None:
        raise NotImplementedError


def safe_notify(
    notifier: Optional[Notifier],
    recipient_ids: Sequence[str],
    message: NotificationMessage,
) -> None:
    """
    Send a notification without ever raising.

    Failures are logged and swallowed; callers must not depend on delivery.
    """
    recipients = [str(r) for r in recipient_ids if r]
    if notifier is None or not recipients:
        return
    try:
        notifier.notify(recipients, message)
    except Exception as e:
        logger.error(
            f"Notification {message.type} to {len(recipients)} recipient(s) failed: {e}",
            exc_info=True,
        )


class LoggingNotifier(Notifier):
    """Notifier that only logs (used when delivery is disabled)."""

    def notify(self, recipient_ids: Sequence[str], message: NotificationMessage) -> None:
        logger.info(f"Notification {message.type} for {list(recipient_ids)}: {message.title}")


class DeferredNotifier(Notifier):
    """
    Hold notifications until the work that produced them is committed.

    deliver_pending() forwards the queue to the delegate; discard() drops it
    when the work was rolled back.
    """

    def __init__(self, delegate: Optional[Notifier]):
        self.delegate = delegate
        self.pending: list[tuple[list[str], NotificationMessage]] = []

    def notify(self, recipient_ids: Sequence[str], message: NotificationMessage) -> None:
        self.pending.append((list(recipient_ids), message))

    def deliver_pending(self) -> None:
        pending, self.pending = self.pending, []
        for recipient_ids, message in pending:
            safe_notify(self.delegate, recipient_ids, message)

    def discard(self) -> None:
        if self.pending:
            logger.info(f"Discarding {len(self.pending)} notification(s) of rolled back work")
        self.pending = []


class BackgroundNotifier(DeferredNotifier):
    """
    Queue notifications on FastAPI background tasks (run after the response).

    Background tasks are not attached to error responses; the exception
    handler for schedule conflicts runs deliver_pending() after the 409.
    """

    def __init__(self, background_tasks: BackgroundTasks, delegate: Notifier):
        super().__init__(delegate)
        self.background_tasks = background_tasks

    def notify(self, recipient_ids: Sequence[str], message: NotificationMessage) -> None:
        if not self.pending:
            self.background_tasks.add_task(self.deliver_pending)
        super().notify(recipient_ids, message)


def generate_signature(payload: str, secret: str) -> str:
    """
    Generate HMAC-SHA256 signature for webhook payload.

    Returns:
        Hex-encoded signature
    """
    return hmac.new(
        secret.encode("utf-8"),
        payload.encode("utf-8"),
        hashlib.sha256,
    ).hexdigest()


def get_active_webhooks(
    session: Session,
    user_ids: Sequence[str],
    notification_type: str,
) -> list[Webhook]:
    """Active, non-deleted webhooks of the given users subscribed to the type."""
    stmt = select(Webhook).where(
        Webhook.user_id.in_([str(u) for u in user_ids]),
        Webhook.active.is_(True),
        Webhook.deleted_at.is_(None),
    )
    return [w for w in session.scalars(stmt).all() if w.should_trigger(notification_type)]


def deliver_webhook(
    client: httpx.Client,
    webhook: Webhook,
    message: NotificationMessage,
    max_attempts: int = 3,
    wait=None,
) -> bool:
    """
    Deliver one notification to one webhook.

    Retries timeouts, transport errors and non-2xx responses up to
    max_attempts, then records the outcome on the webhook.

    Returns:
        True if delivery succeeded, False otherwise
    """
    timestamp = utcnow().isoformat()
    payload_json = json.dumps(
        {"timestamp": timestamp, **message.to_payload()},
        default=str,
    )
    headers = {
        "Content-Type": "application/json",
        "X-Webhook-Signature": generate_signature(payload_json, webhook.secret),
        "X-Webhook-Event": message.type,
        "X-Webhook-Timestamp": timestamp,
    }

    def _post() -> None:
        try:
            response = client.post(webhook.url, content=payload_json, headers=headers)
        except httpx.TimeoutException as e:
            raise WebhookDeliveryError("Request timed out") from e
        except httpx.RequestError as e:
            raise WebhookDeliveryError(str(e)) from e
        if not 200 <= response.status_code < 300:
            raise WebhookDeliveryError(f"HTTP {response.status_code}: {response.text[:200]}")

    retrying = Retrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait if wait is not None else wait_exponential(multiplier=1, max=30),
        retry=retry_if_exception_type(WebhookDeliveryError),
        reraise=True,
    )
    try:
        for attempt in retrying:
            with attempt:
                _post()
    except WebhookDeliveryError as e:
        logger.error(
            f"Webhook {webhook.id} delivery failed after {max_attempts} attempts: {e}"
        )
        webhook.record_failure()
        return False

    logger.info(f"Webhook {webhook.id} delivered {message.type}")
    webhook.record_success()
    return True


class WebhookNotifier(Notifier):
    """
    Deliver notifications to the recipients' registered webhooks.

    Opens its own database session, since it runs after the request's
    session has been closed.
    """

    def __init__(
        self,
        session_factory: Callable[[], ContextManager[Session]],
        timeout: float = 10.0,
        max_attempts: int = 3,
        client: Optional[httpx.Client] = None,
        wait=None,
    ):
        self.session_factory = session_factory
        self.timeout = timeout
        self.max_attempts = max_attempts
        self.client = client
        self.wait = wait

    def notify(self, recipient_ids: Sequence[str], message: NotificationMessage) -> None:
        with self.session_factory() as session:
            webhooks = get_active_webhooks(session, recipient_ids, message.type)
            if not webhooks:
                logger.debug(f"No webhooks subscribed to {message.type} for {list(recipient_ids)}")
                return

            logger.info(f"Delivering {message.type} to {len(webhooks)} webhook(s)")
            if self.client is not None:
                self._deliver_all(self.client, webhooks, message)
            else:
                with httpx.Client(timeout=self.timeout) as client:
                    self._deliver_all(client, webhooks, message)

    def _deliver_all(
        self,
        client: httpx.Client,
        webhooks: list[Webhook],
        message: NotificationMessage,
    ) -> None:
        for webhook in webhooks:
            deliver_webhook(client, webhook, message, self.max_attempts, self.wait)


def build_notifier(settings) -> Notifier:
    """Notifier configured from settings."""
    if not settings.notifications_enabled:
        return LoggingNotifier()

    from src.database import get_db_context

    return WebhookNotifier(
        session_factory=get_db_context,
        timeout=settings.notification_timeout,
        max_attempts=settings.notification_max_retries,
    )
