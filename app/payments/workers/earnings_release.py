"""
Earnings release worker: moves matured seller earnings to available.

A captured payment's seller share sits in pending balance for
EARNINGS_HOLD_DAYS. After that it is moved to available and the payment
transitions CAPTURED -> COMPLETED.

Tasks:
- release_matured_earnings: Periodic scan that queues matured payments
- release_payment_earnings: Releases one payment in a short transaction

Usage:
    # Typically called via celery-beat schedule
    from payments.workers import release_matured_earnings

    release_matured_earnings.delay()

    # Release a specific payment
    release_payment_earnings.delay(str(payment.id))
"""

from __future__ import annotations

import logging
from datetime import timedelta
from uuid import UUID

from celery import shared_task
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from payments.ledger import InsufficientBalance, PaymentTransaction, ledger
from payments.models import Payment
from payments.state_machines import PaymentStatus, TransactionStatus

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Maximum payments to queue per scan
BATCH_SIZE = 100


# =============================================================================
# Periodic Task: Scan for Matured Earnings
# =============================================================================


@shared_task(bind=True)
def release_matured_earnings(self) -> dict:
    """
    Queue a release task for each captured payment past the hold window.

    Idempotent: release_payment_earnings re-checks the payment under a
    row lock, so overlapping scans never release twice.

    Returns:
        Dict with:
        - queued_count: Number of payments queued for release
    """
    cutoff = timezone.now() - timedelta(days=settings.EARNINGS_HOLD_DAYS)

    logger.info("Starting matured earnings scan", extra={"cutoff": cutoff.isoformat()})

    matured = Payment.objects.filter(
        status=PaymentStatus.CAPTURED,
        earnings_released_at__isnull=True,
        captured_at__lt=cutoff,
    ).order_by("captured_at")[:BATCH_SIZE]

    queued_count = 0
    for payment in matured:
        try:
            release_payment_earnings.delay(str(payment.id))
            queued_count += 1
        except Exception as e:
            logger.error(
                f"Failed to queue payment for earnings release: {e}",
                extra={"payment_id": str(payment.id)},
            )

    logger.info(
        f"Matured earnings scan complete: queued {queued_count} payments",
        extra={"queued_count": queued_count},
    )

    return {"queued_count": queued_count}


# =============================================================================
# Individual Release Task
# =============================================================================


@shared_task(
    bind=True,
    autoretry_for=(Exception,),
    retry_backoff=True,
    retry_backoff_max=300,
    retry_kwargs={"max_retries": 3},
    acks_late=True,
)
def release_payment_earnings(self, payment_id: str) -> dict:
    """
    Move one payment's seller share from pending to available.

    Returns:
        Dict with status: "released", "not_found", "invalid_state",
        "no_credit" or "insufficient_pending"
    """
    payment_id = UUID(payment_id) if isinstance(payment_id, str) else payment_id

    with transaction.atomic():
        payment = Payment.objects.select_for_update().filter(id=payment_id).first()
        if payment is None:
            logger.warning("Payment not found for earnings release", extra={"payment_id": str(payment_id)})
            return {"status": "not_found", "payment_id": str(payment_id)}

        if payment.status != PaymentStatus.CAPTURED or payment.earnings_released_at is not None:
            logger.info(
                "Payment not eligible for earnings release",
                extra={"payment_id": str(payment_id), "status": payment.status},
            )
            return {"status": "invalid_state", "payment_id": str(payment_id)}

        credit = PaymentTransaction.objects.filter(
            idempotency_key=PaymentTransaction.credit_key(payment.id),
            status=TransactionStatus.COMPLETED,
        ).first()
        if credit is None:
            logger.warning(
                "Captured payment has no credit, skipping release",
                extra={"payment_id": str(payment_id)},
            )
            return {"status": "no_credit", "payment_id": str(payment_id)}

        try:
            ledger.move_pending_to_available(payment.seller_id, credit.amount)
        except InsufficientBalance as e:
            logger.error(
                "Pending balance lower than seller share, skipping release",
                extra={
                    "payment_id": str(payment_id),
                    "seller_id": str(payment.seller_id),
                    "amount": str(credit.amount),
                    "error": str(e),
                },
            )
            return {"status": "insufficient_pending", "payment_id": str(payment_id)}

        payment.complete()
        payment.save()

    logger.info(
        "Seller earnings released",
        extra={
            "payment_id": str(payment_id),
            "seller_id": str(payment.seller_id),
            "amount": str(credit.amount),
        },
    )
    return {"status": "released", "payment_id": str(payment_id), "amount": str(credit.amount)}
