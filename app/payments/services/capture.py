"""
Capture unit of work shared by the verification flow and the
payment.captured webhook.

Both entry points may run for the same payment at the same time. The
payment row is locked with select_for_update, the status is re-checked
under the lock, and the seller CREDIT is inserted under a unique
idempotency key before the balance moves, so a payment is credited at
most once whichever path wins.

Usage:
    from payments.services.capture import apply_capture

    outcome = apply_capture(
        payment.id,
        gateway_payment_id="pay_123",
        method="upi",
    )
    if outcome.credited:
        ...
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import F
from django.utils import timezone

from catalog.models import Product
from notifications.services import NotificationService

from payments.gateway import quantize_amount
from payments.ledger import PaymentTransaction, ledger
from payments.models import Payment
from payments.state_machines import PaymentStatus, TransactionStatus, TransactionType

logger = logging.getLogger(__name__)


def platform_fee(amount: Decimal) -> Decimal:
    """Platform commission on a sale, rounded half up to two places."""
    percent = Decimal(str(settings.PLATFORM_FEE_PERCENT))
    return quantize_amount(Decimal(amount) * percent / Decimal("100"))


def seller_share(amount: Decimal) -> Decimal:
    """What the seller earns from a sale of the given gross amount."""
    return quantize_amount(Decimal(amount)) - platform_fee(amount)


@dataclass
class CaptureOutcome:
    """
    Result of apply_capture.

    Attributes:
        payment: Payment as it stands after the unit of work
        transitioned: The payment moved to CAPTURED in this call
        credited: The seller CREDIT was recorded in this call
        seller_share: Net amount credited (or that would have been)
        rejected: The gateway captured money for a FAILED payment; nothing
            was applied and the capture needs review
    """

    payment: Payment
    transitioned: bool
    credited: bool
    seller_share: Decimal
    rejected: bool = False


def record_sale_credit(payment: Payment) -> bool:
    """
    Record the seller CREDIT for a captured payment and add it to pending.

    The ledger entry is inserted first under its unique idempotency key;
    only the caller that wins the insert touches the balance.

    Must be called inside the transaction holding the payment row lock.

    Returns:
        True if this call recorded the credit, False if it already existed
    """
    key = PaymentTransaction.credit_key(payment.id)
    if PaymentTransaction.objects.filter(idempotency_key=key).exists():
        logger.info(
            "Payment already credited, skipping",
            extra={"payment_id": str(payment.id), "idempotency_key": key},
        )
        return False

    fee = platform_fee(payment.amount)
    share = seller_share(payment.amount)

    try:
        with transaction.atomic():
            PaymentTransaction.objects.create(
                payment=payment,
                seller_id=payment.seller_id,
                amount=share,
                type=TransactionType.CREDIT,
                status=TransactionStatus.COMPLETED,
                description=f"Sale of product {payment.product_id}",
                idempotency_key=key,
                notes={
                    "gross_amount": str(payment.amount),
                    "platform_fee": str(fee),
                    "gateway_payment_id": payment.gateway_payment_id,
                },
                completed_at=timezone.now(),
            )
    except IntegrityError:
        logger.info(
            "Concurrent credit won the idempotency key, skipping",
            extra={"payment_id": str(payment.id), "idempotency_key": key},
        )
        return False

    ledger.record_sale(payment.seller_id, share)

    logger.info(
        "Seller credited for captured payment",
        extra={
            "payment_id": str(payment.id),
            "seller_id": str(payment.seller_id),
            "gross_amount": str(payment.amount),
            "platform_fee": str(fee),
            "seller_share": str(share),
        },
    )
    return True


def apply_capture(
    payment_pk: uuid.UUID,
    gateway_payment_id: str | None = None,
    signature: str | None = None,
    method: str | None = None,
) -> CaptureOutcome:
    """
    Move a payment to CAPTURED and credit the seller, once.

    Runs in its own short transaction (or a savepoint of the caller's):
    1. Lock the payment row
    2. CREATED/AUTHORIZED -> CAPTURED, storing gateway payment id,
       signature and method
    3. Already CAPTURED/COMPLETED -> keep the status, only make sure the
       credit exists (recovers a capture whose credit was lost)
    4. FAILED -> nothing applied; the outcome is marked rejected and
       logged at CRITICAL, since the gateway holds money for it
    5. Record the credit; on the first credit bump the product's
       sales_count and queue buyer/seller notifications

    The gateway is never called from here.

    Raises:
        Payment.DoesNotExist: Unknown payment
    """
    with transaction.atomic():
        payment = Payment.objects.select_for_update().get(pk=payment_pk)
        share = seller_share(payment.amount)
        transitioned = False

        if payment.status in PaymentStatus.capturable():
            payment.capture(method=method)
            if gateway_payment_id:
                payment.gateway_payment_id = gateway_payment_id
            if signature:
                payment.gateway_signature = signature
            payment.save()
            transitioned = True
            logger.info(
                "Payment captured",
                extra={
                    "payment_id": str(payment.id),
                    "gateway_order_id": payment.gateway_order_id,
                    "gateway_payment_id": payment.gateway_payment_id,
                },
            )
        elif payment.status == PaymentStatus.FAILED:
            logger.critical(
                "Gateway captured money for a failed payment - manual review needed",
                extra={
                    "payment_id": str(payment.id),
                    "gateway_order_id": payment.gateway_order_id,
                    "gateway_payment_id": gateway_payment_id,
                    "amount": str(payment.amount),
                },
            )
            return CaptureOutcome(
                payment=payment,
                transitioned=False,
                credited=False,
                seller_share=share,
                rejected=True,
            )
        elif not payment.is_captured:
            logger.warning(
                f"Capture ignored for payment in {payment.status} state",
                extra={
                    "payment_id": str(payment.id),
                    "status": payment.status,
                    "gateway_payment_id": gateway_payment_id,
                },
            )
            return CaptureOutcome(payment=payment, transitioned=False, credited=False, seller_share=share)
        elif gateway_payment_id and not payment.gateway_payment_id:
            payment.gateway_payment_id = gateway_payment_id
            payment.save(update_fields=["gateway_payment_id", "updated_at"])

        credited = record_sale_credit(payment)

        if credited:
            Product.objects.filter(id=payment.product_id).update(sales_count=F("sales_count") + 1)
            NotificationService.notify_payment_succeeded(payment, seller_share=share)

    return CaptureOutcome(payment=payment, transitioned=transitioned, credited=credited, seller_share=share)
