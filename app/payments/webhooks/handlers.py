"""
Webhook event handlers for gateway events.

This module provides a handler registry and implementations for
processing the gateway's payment and refund webhook events.

Every handler is idempotent: the gateway redelivers events, and the
verification flow may already have applied the same change.

Usage:
    from payments.webhooks.handlers import dispatch_webhook, register_handler

    # Register a custom handler
    @register_handler("custom.event")
    def handle_custom_event(webhook_event: WebhookEvent) -> ServiceResult:
        ...

    # Dispatch an event to its handler
    result = dispatch_webhook(webhook_event)
"""

from __future__ import annotations

import logging
from typing import Callable

from django.db import transaction
from django.utils import timezone

from core.services import ServiceResult
from notifications.services import NotificationService

from payments.gateway import from_minor_units
from payments.models import Payment, Refund, WebhookEvent
from payments.services.capture import apply_capture
from payments.services.query_service import PaymentQueryService
from payments.services.refund_service import mark_refunded_if_covered, record_refund_debit
from payments.state_machines import PaymentStatus, RefundStatus, TransactionStatus, TransactionType

logger = logging.getLogger(__name__)


# =============================================================================
# Handler Registry
# =============================================================================


# Maps event type strings to handler functions
WEBHOOK_HANDLERS: dict[str, Callable[[WebhookEvent], ServiceResult]] = {}


def register_handler(event_type: str) -> Callable:
    """
    Decorator to register a webhook event handler.

    Usage:
        @register_handler("payment.captured")
        def handle_payment_captured(webhook_event: WebhookEvent) -> ServiceResult:
            ...

    Args:
        event_type: The gateway event type (e.g., "payment.captured")
    """

    def decorator(func: Callable[[WebhookEvent], ServiceResult]) -> Callable:
        WEBHOOK_HANDLERS[event_type] = func
        logger.debug(f"Registered webhook handler for {event_type}")
        return func

    return decorator


def dispatch_webhook(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Dispatch a webhook event to the appropriate handler.

    Unknown event types are logged and acknowledged with success, so the
    gateway does not keep redelivering them.
    """
    handler = WEBHOOK_HANDLERS.get(webhook_event.event_type)

    if not handler:
        logger.info(
            f"No handler registered for event type: {webhook_event.event_type}",
            extra={"event_id": webhook_event.event_id},
        )
        return ServiceResult.success(None)

    logger.info(
        f"Dispatching {webhook_event.event_type} to handler",
        extra={"event_id": webhook_event.event_id},
    )

    return handler(webhook_event)


# =============================================================================
# Helpers
# =============================================================================


def _find_payment(order_id: str | None, payment_id: str | None, lock: bool = False) -> Payment | None:
    """Locate a payment by gateway order id, falling back to gateway payment id."""
    queryset = Payment.objects.select_for_update() if lock else Payment.objects.all()

    if order_id:
        payment = queryset.filter(gateway_order_id=order_id).first()
        if payment is not None:
            return payment
    if payment_id:
        return queryset.filter(gateway_payment_id=payment_id).first()
    return None


def _missing_entity(webhook_event: WebhookEvent, kind: str) -> ServiceResult:
    logger.error(
        f"{webhook_event.event_type}: Could not extract {kind} entity",
        extra={"event_id": webhook_event.event_id},
    )
    return ServiceResult.failure(
        f"Could not extract {kind} entity from webhook",
        error_code="INVALID_WEBHOOK_PAYLOAD",
    )


def _payment_not_found(webhook_event: WebhookEvent, entity: dict) -> ServiceResult:
    # Usually the webhook outran the order insert; the retry task picks it up.
    logger.warning(
        "Payment not found for webhook",
        extra={
            "event_id": webhook_event.event_id,
            "gateway_order_id": entity.get("order_id"),
            "gateway_payment_id": entity.get("payment_id") or entity.get("id"),
        },
    )
    return ServiceResult.failure(
        "Payment not found for webhook",
        error_code="PAYMENT_NOT_FOUND",
    )


# =============================================================================
# Payment Handlers
# =============================================================================


@register_handler("payment.authorized")
def handle_payment_authorized(webhook_event: WebhookEvent) -> ServiceResult:
    """Mark a created payment as authorized; later states ignore the event."""
    entity = webhook_event.get_entity("payment")
    if not entity.get("id"):
        return _missing_entity(webhook_event, "payment")

    with transaction.atomic():
        payment = _find_payment(entity.get("order_id"), entity["id"], lock=True)
        if payment is None:
            return _payment_not_found(webhook_event, entity)

        if payment.status != PaymentStatus.CREATED:
            logger.info(
                "Payment past created state, ignoring payment.authorized",
                extra={"payment_id": str(payment.id), "current_status": payment.status},
            )
            return ServiceResult.success(payment)

        payment.authorize(method=entity.get("method"))
        if not payment.gateway_payment_id:
            payment.gateway_payment_id = entity["id"]
        payment.save()

        logger.info(
            "Payment authorized",
            extra={"payment_id": str(payment.id), "gateway_payment_id": entity["id"]},
        )
        return ServiceResult.success(payment)


@register_handler("payment.captured")
def handle_payment_captured(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Apply a capture reported by the gateway.

    Runs the same unit of work as the verification flow. A payment that is
    already captured and credited is left alone; one that is captured but
    missing its credit gets only the credit.
    """
    entity = webhook_event.get_entity("payment")
    if not entity.get("id"):
        return _missing_entity(webhook_event, "payment")

    payment = _find_payment(entity.get("order_id"), entity["id"])
    if payment is None:
        return _payment_not_found(webhook_event, entity)

    if entity.get("amount") is not None and from_minor_units(entity["amount"]) != payment.amount:
        logger.error(
            "Captured amount differs from payment amount",
            extra={
                "payment_id": str(payment.id),
                "payment_amount": str(payment.amount),
                "captured_minor": entity.get("amount"),
            },
        )

    outcome = apply_capture(
        payment.id,
        gateway_payment_id=entity["id"],
        method=entity.get("method"),
    )
    PaymentQueryService.invalidate(entity["id"])

    if outcome.rejected:
        return ServiceResult.failure(
            f"Gateway captured {entity['id']} but the payment is {outcome.payment.status}",
            error_code="CAPTURE_REJECTED",
        )

    logger.info(
        "Processed payment.captured",
        extra={
            "payment_id": str(payment.id),
            "transitioned": outcome.transitioned,
            "credited": outcome.credited,
        },
    )
    return ServiceResult.success(outcome.payment)


@register_handler("payment.failed")
def handle_payment_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """Fail a pending payment and tell the buyer. No ledger effect."""
    entity = webhook_event.get_entity("payment")
    if not entity.get("id"):
        return _missing_entity(webhook_event, "payment")

    reason = entity.get("error_description") or "Payment failed"

    with transaction.atomic():
        payment = _find_payment(entity.get("order_id"), entity["id"], lock=True)
        if payment is None:
            return _payment_not_found(webhook_event, entity)

        if payment.status not in PaymentStatus.capturable():
            logger.info(
                "Payment already terminal, ignoring payment.failed",
                extra={"payment_id": str(payment.id), "current_status": payment.status},
            )
            return ServiceResult.success(payment)

        # An order can have several attempts; only the bound one decides it.
        if payment.gateway_payment_id and payment.gateway_payment_id != entity["id"]:
            logger.info(
                "payment.failed is for another attempt, ignoring",
                extra={
                    "payment_id": str(payment.id),
                    "gateway_payment_id": payment.gateway_payment_id,
                    "failed_attempt_id": entity["id"],
                },
            )
            return ServiceResult.success(payment)

        # The failed attempt's id is not stored.
        payment.fail(reason=reason)
        payment.save()

        logger.info(
            "Payment failed",
            extra={
                "payment_id": str(payment.id),
                "reason": reason,
                "error_code": entity.get("error_code"),
            },
        )
        NotificationService.notify_payment_failed(payment)
        return ServiceResult.success(payment)


# =============================================================================
# Refund Handlers
# =============================================================================


@register_handler("refund.created")
def handle_refund_created(webhook_event: WebhookEvent) -> ServiceResult:
    """Record a placeholder Refund for refunds we have not seen yet."""
    entity = webhook_event.get_entity("refund")
    if not entity.get("id") or not entity.get("amount"):
        return _missing_entity(webhook_event, "refund")

    with transaction.atomic():
        payment = _find_payment(None, entity.get("payment_id"), lock=True)
        if payment is None:
            return _payment_not_found(webhook_event, entity)

        refund = Refund.objects.filter(gateway_refund_id=entity["id"]).first()
        if refund is not None:
            logger.info(
                "Refund already recorded, ignoring refund.created",
                extra={"gateway_refund_id": entity["id"], "status": refund.status},
            )
            return ServiceResult.success(refund)

        status = entity.get("status")
        if status not in RefundStatus.values:
            status = RefundStatus.PENDING

        refund = Refund.objects.create(
            payment=payment,
            gateway_refund_id=entity["id"],
            amount=from_minor_units(entity["amount"]),
            currency=entity.get("currency") or payment.currency,
            status=status,
            speed_processed=entity.get("speed_processed"),
            initiated_by="gateway",
            notes=entity.get("notes") or {},
            processed_at=timezone.now() if status == RefundStatus.PROCESSED else None,
        )

        logger.info(
            "Refund recorded from webhook",
            extra={"payment_id": str(payment.id), "gateway_refund_id": refund.gateway_refund_id},
        )
        return ServiceResult.success(refund)


@register_handler("refund.processed")
def handle_refund_processed(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Settle a refund and claw it back from the seller.

    The debit is skipped when one already references the refund. A
    clawback the seller's balance cannot cover is recorded as a FAILED
    debit and the event still succeeds; redelivery would not help.
    """
    entity = webhook_event.get_entity("refund")
    if not entity.get("id") or not entity.get("amount"):
        return _missing_entity(webhook_event, "refund")

    with transaction.atomic():
        payment = _find_payment(None, entity.get("payment_id"), lock=True)
        if payment is None:
            return _payment_not_found(webhook_event, entity)

        refund = Refund.objects.select_for_update().filter(gateway_refund_id=entity["id"]).first()
        if refund is None:
            refund = Refund.objects.create(
                payment=payment,
                gateway_refund_id=entity["id"],
                amount=from_minor_units(entity["amount"]),
                currency=entity.get("currency") or payment.currency,
                status=RefundStatus.PROCESSED,
                speed_processed=entity.get("speed_processed"),
                initiated_by="gateway",
                notes=entity.get("notes") or {},
                processed_at=timezone.now(),
            )
        elif refund.status == RefundStatus.PENDING:
            refund.process(speed_processed=entity.get("speed_processed"))
            refund.save()
        elif refund.status == RefundStatus.FAILED:
            logger.error(
                "refund.processed received for a failed refund",
                extra={"gateway_refund_id": refund.gateway_refund_id},
            )
            return ServiceResult.success(refund)

        mark_refunded_if_covered(payment)
        debit_status = record_refund_debit(payment, refund)
        NotificationService.notify_refund(payment, refund)

    PaymentQueryService.invalidate(payment.gateway_payment_id)

    logger.info(
        "Processed refund.processed",
        extra={
            "payment_id": str(payment.id),
            "gateway_refund_id": refund.gateway_refund_id,
            "debit_status": debit_status,
        },
    )
    return ServiceResult.success(refund)


@register_handler("refund.failed")
def handle_refund_failed(webhook_event: WebhookEvent) -> ServiceResult:
    """
    Mark a pending refund failed, releasing its share of the refund bound.

    A clawback already applied for the refund is not reversed here.
    """
    entity = webhook_event.get_entity("refund")
    if not entity.get("id"):
        return _missing_entity(webhook_event, "refund")

    with transaction.atomic():
        refund = Refund.objects.select_for_update().filter(gateway_refund_id=entity["id"]).first()
        if refund is None or refund.status != RefundStatus.PENDING:
            logger.info(
                "No pending refund to fail, ignoring refund.failed",
                extra={"gateway_refund_id": entity["id"]},
            )
            return ServiceResult.success(refund)

        refund.fail()
        refund.save()

        debited = refund.payment.transactions.filter(
            type=TransactionType.DEBIT,
            status=TransactionStatus.COMPLETED,
            gateway_refund_id=refund.gateway_refund_id,
        ).exists()
        log = logger.error if debited else logger.warning
        log(
            "Refund failed at gateway",
            extra={
                "gateway_refund_id": refund.gateway_refund_id,
                "payment_id": str(refund.payment_id),
                "seller_debited": debited,
            },
        )
        return ServiceResult.success(refund)


# =============================================================================
# Dispute Handlers
# =============================================================================


@register_handler("dispute.created")
def handle_dispute_created(webhook_event: WebhookEvent) -> ServiceResult:
    entity = webhook_event.get_entity("dispute")
    logger.warning(
        "Dispute opened",
        extra={
            "event_id": webhook_event.event_id,
            "dispute_id": entity.get("id"),
            "gateway_payment_id": entity.get("payment_id"),
            "amount_minor": entity.get("amount"),
            "reason_code": entity.get("reason_code"),
        },
    )
    return ServiceResult.success(None)


@register_handler("dispute.resolved")
def handle_dispute_resolved(webhook_event: WebhookEvent) -> ServiceResult:
    entity = webhook_event.get_entity("dispute")
    logger.info(
        "Dispute resolved",
        extra={
            "event_id": webhook_event.event_id,
            "dispute_id": entity.get("id"),
            "gateway_payment_id": entity.get("payment_id"),
            "status": entity.get("status"),
        },
    )
    return ServiceResult.success(None)
