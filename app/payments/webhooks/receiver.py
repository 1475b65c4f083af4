"""
Webhook intake: verify, store, queue.

The signature is checked over the exact raw body before anything is
parsed or stored. Verified deliveries are stored once per event id and
handed to Celery; the HTTP response never waits for business logic.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass

from payments.exceptions import PaymentValidationError, WebhookSignatureError
from payments.gateway import get_gateway_client
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus

logger = logging.getLogger(__name__)


@dataclass
class ReceivedWebhook:
    """
    Attributes:
        event: Stored WebhookEvent
        created: First delivery of this event id
        queued: Processing task was queued
    """

    event: WebhookEvent
    created: bool
    queued: bool


def build_event_id(event_type: str, body: dict) -> str:
    """Fallback event id when the delivery header is missing: "{event}:{entity_id}"."""
    entity_id = None
    for kind in ("refund", "payment", "dispute"):
        entity = (body.get("payload") or {}).get(kind, {}).get("entity", {})
        if isinstance(entity, dict) and entity.get("id"):
            entity_id = entity["id"]
            break
    return f"{event_type}:{entity_id or body.get('created_at', 'unknown')}"


def receive_webhook(raw_body: bytes, signature: str | None, event_id: str | None = None) -> ReceivedWebhook:
    """
    Accept one webhook delivery.

    Args:
        raw_body: Request body exactly as received
        signature: X-Razorpay-Signature header
        event_id: X-Razorpay-Event-Id header, if sent

    Raises:
        WebhookSignatureError: Missing or invalid signature
        PaymentValidationError: Body is not a JSON object with an event name
    """
    if not signature:
        logger.warning("Webhook received without signature header")
        raise WebhookSignatureError("Missing webhook signature")

    if not get_gateway_client().verify_webhook_signature(raw_body, signature):
        logger.warning("Webhook signature verification failed")
        raise WebhookSignatureError("Invalid webhook signature")

    try:
        body = json.loads(raw_body)
    except (TypeError, ValueError, UnicodeDecodeError):
        raise PaymentValidationError(
            "Webhook body is not valid JSON",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        ) from None

    event_type = body.get("event") if isinstance(body, dict) else None
    if not event_type:
        logger.warning("Webhook missing event name")
        raise PaymentValidationError(
            "Webhook body has no event name",
            error_code="INVALID_WEBHOOK_PAYLOAD",
        )

    event_id = event_id or build_event_id(event_type, body)

    logger.info(
        f"Received gateway webhook: {event_type}",
        extra={"event_id": event_id, "event_type": event_type},
    )

    webhook_event, created = WebhookEvent.objects.get_or_create(
        event_id=event_id,
        defaults={
            "event_type": event_type,
            "payload": body,
            "status": WebhookEventStatus.PENDING,
        },
    )

    if not created:
        if webhook_event.is_processed:
            logger.info(
                "Webhook already processed, returning success",
                extra={"event_id": event_id},
            )
            return ReceivedWebhook(event=webhook_event, created=False, queued=False)

        logger.info(
            f"Webhook already exists with status: {webhook_event.status}",
            extra={"event_id": event_id},
        )

    from payments.tasks import process_webhook_event

    try:
        process_webhook_event.delay(str(webhook_event.id))
    except Exception:
        # The retry sweep picks up pending events; the gateway redelivers too.
        logger.error(
            "Failed to queue webhook",
            extra={"event_id": event_id},
            exc_info=True,
        )
        return ReceivedWebhook(event=webhook_event, created=created, queued=False)

    logger.info(
        "Webhook queued for processing",
        extra={"event_id": event_id, "webhook_event_id": str(webhook_event.id)},
    )
    return ReceivedWebhook(event=webhook_event, created=created, queued=True)
