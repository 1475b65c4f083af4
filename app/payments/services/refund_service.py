"""
Refund service for returning money to buyers.

This module provides the RefundService class and the refund debit unit of
work shared with the refund.processed webhook.

The service implements:
1. Refund eligibility checking against already committed refunds
2. Partial and full refunds through the gateway with an idempotency key
3. Refund persistence and the Payment REFUNDED transition
4. The seller clawback: a DEBIT ledger entry plus a guarded balance debit

Clawback shortfall:
    When the seller's available balance cannot cover the refund, the
    gateway refund and the Refund row stand (the buyer has their money),
    a FAILED DEBIT entry records the outstanding clawback, and the caller
    receives PaymentError(error_code="INSUFFICIENT_BALANCE"). Nothing
    recovers the shortfall automatically; the FAILED DEBIT rows are the
    worklist for manual reconciliation.

Usage:
    from payments.services import InitiateRefundParams, RefundService

    eligibility = RefundService.check_refund_eligibility(payment)
    if eligibility.eligible:
        result = RefundService.initiate_refund(
            InitiateRefundParams(
                gateway_payment_id=payment.gateway_payment_id,
                amount=Decimal("300.00"),
                reason="Customer request",
            )
        )
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from django.db import IntegrityError, transaction
from django.utils import timezone

from core.services import BaseService, ServiceResult
from notifications.services import NotificationService

from payments.exceptions import (
    PaymentError,
    PaymentNotFoundError,
    PaymentValidationError,
    RefundAmountExceededError,
    RefundNotAllowedError,
)
from payments.gateway import (
    IdempotencyKeyGenerator,
    from_minor_units,
    get_gateway_client,
    quantize_amount,
    to_minor_units,
)
from payments.ledger import InsufficientBalance, PaymentTransaction, ledger
from payments.models import Payment, Refund
from payments.services.order_service import generate_receipt
from payments.state_machines import (
    PaymentStatus,
    RefundSpeed,
    RefundStatus,
    TransactionStatus,
    TransactionType,
)

if TYPE_CHECKING:
    from payments.gateway import GatewayRefund, RazorpayClient


logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

DEBITED = "debited"
ALREADY_RECORDED = "already_recorded"
CLAWBACK_OUTSTANDING = "clawback_outstanding"


# =============================================================================
# Shared Units of Work
# =============================================================================


def record_refund_debit(payment: Payment, refund: Refund) -> str:
    """
    Claw a refund back from the seller's available balance, once per refund.

    The balance debit and the DEBIT entry share one savepoint, so a lost
    race on the idempotency key undoes the debit as well.

    Returns:
        DEBITED, ALREADY_RECORDED, or CLAWBACK_OUTSTANDING when available
        balance was short (a FAILED DEBIT entry is recorded instead)
    """
    if PaymentTransaction.objects.filter(
        type=TransactionType.DEBIT,
        gateway_refund_id=refund.gateway_refund_id,
    ).exists():
        logger.info(
            "Refund debit already recorded, skipping",
            extra={"gateway_refund_id": refund.gateway_refund_id},
        )
        return ALREADY_RECORDED

    key = PaymentTransaction.debit_key(refund.gateway_refund_id)
    entry = {
        "payment": payment,
        "seller_id": payment.seller_id,
        "amount": -refund.amount,
        "type": TransactionType.DEBIT,
        "description": f"Refund {refund.gateway_refund_id}",
        "gateway_refund_id": refund.gateway_refund_id,
        "idempotency_key": key,
        "notes": {"reason": refund.reason, "initiated_by": refund.initiated_by},
    }

    try:
        with transaction.atomic():
            ledger.debit(payment.seller_id, refund.amount)
            PaymentTransaction.objects.create(
                status=TransactionStatus.COMPLETED,
                completed_at=timezone.now(),
                **entry,
            )
    except IntegrityError:
        logger.info(
            "Concurrent refund debit won the idempotency key, skipping",
            extra={"gateway_refund_id": refund.gateway_refund_id},
        )
        return ALREADY_RECORDED
    except InsufficientBalance as e:
        try:
            with transaction.atomic():
                PaymentTransaction.objects.create(status=TransactionStatus.FAILED, **entry)
        except IntegrityError:
            return ALREADY_RECORDED
        logger.critical(
            "Refund clawback failed: insufficient seller balance - manual reconciliation needed",
            extra={
                "payment_id": str(payment.id),
                "seller_id": str(payment.seller_id),
                "gateway_refund_id": refund.gateway_refund_id,
                "amount": str(refund.amount),
                "error": str(e),
            },
        )
        return CLAWBACK_OUTSTANDING

    logger.info(
        "Refund debited from seller balance",
        extra={
            "payment_id": str(payment.id),
            "seller_id": str(payment.seller_id),
            "gateway_refund_id": refund.gateway_refund_id,
            "amount": str(refund.amount),
        },
    )
    return DEBITED


def mark_refunded_if_covered(payment: Payment) -> bool:
    """
    Move a locked payment to REFUNDED once committed refunds reach its amount.

    Returns:
        True if the payment transitioned
    """
    if payment.status not in PaymentStatus.captured_family():
        return False
    refunded_total = Refund.objects.filter(payment=payment).committed().total_amount()
    if refunded_total < payment.amount:
        return False
    payment.refund()
    payment.save()
    logger.info(
        "Payment fully refunded",
        extra={"payment_id": str(payment.id), "refunded_total": str(refunded_total)},
    )
    return True


# =============================================================================
# Params & Result Types
# =============================================================================


@dataclass
class InitiateRefundParams:
    """
    Parameters for a refund request.

    Attributes:
        gateway_payment_id: Gateway payment id (pay_xxx) to refund
        amount: Major-unit amount; None refunds the whole remaining amount
        reason: Buyer/admin-facing reason
        speed: "normal" or "optimum"
        initiated_by: Who asked (buyer, seller, admin, system)
        idempotency_key: Client-supplied key; generated when omitted
    """

    gateway_payment_id: str
    amount: Decimal | None = None
    reason: str = ""
    speed: str = RefundSpeed.NORMAL
    initiated_by: str = "buyer"
    idempotency_key: str | None = None
    notes: dict[str, Any] = field(default_factory=dict)


@dataclass
class RefundEligibility:
    """
    Result of refund eligibility check.

    Attributes:
        eligible: Whether the payment can be refunded at all
        max_refundable: Amount still refundable
        refunded_amount: Sum of pending and processed refunds
        block_reason: Human-readable reason if not eligible
    """

    eligible: bool
    max_refundable: Decimal = Decimal("0.00")
    refunded_amount: Decimal = Decimal("0.00")
    block_reason: str | None = None


@dataclass
class RefundExecutionResult:
    """
    Result of a refund execution.

    Attributes:
        refund: The Refund model instance
        payment: The Payment after the refund
        debit_status: DEBITED or ALREADY_RECORDED
    """

    refund: Refund
    payment: Payment
    debit_status: str


# =============================================================================
# Refund Service
# =============================================================================


class RefundService(BaseService):
    """
    Service for refunding captured payments.

    Flow:
        1. Load payment by gateway payment id
        2. Check eligibility and amount bound (no side effects on failure)
        3. Call gateway refund OUTSIDE any transaction, with idempotency key
        4. Lock payment, persist Refund, mark REFUNDED when fully covered
        5. Record DEBIT and debit the seller's available balance
        6. Queue buyer/seller notifications on commit

    Refund Bound:
        Pending and processed refunds both count against the payment
        amount, so the processed total can never exceed it either.
    """

    _gateway_client: RazorpayClient | None = None

    @classmethod
    def get_gateway_client(cls) -> RazorpayClient:
        return cls._gateway_client or get_gateway_client()

    @classmethod
    def set_gateway_client(cls, client: RazorpayClient | None) -> None:
        """Set the gateway client (for testing)."""
        cls._gateway_client = client

    # =========================================================================
    # Eligibility Checking
    # =========================================================================

    @classmethod
    def check_refund_eligibility(cls, payment: Payment) -> RefundEligibility:
        """
        Check whether a payment can be refunded and by how much.

        Example:
            eligibility = RefundService.check_refund_eligibility(payment)
            if not eligibility.eligible:
                print(f"Cannot refund: {eligibility.block_reason}")
        """
        refunded = Refund.objects.filter(payment=payment).committed().total_amount()
        refunded = quantize_amount(refunded)

        if not payment.is_refundable:
            return RefundEligibility(
                eligible=False,
                refunded_amount=refunded,
                block_reason=cls._get_non_refundable_reason(payment.status),
            )

        remaining = quantize_amount(payment.amount - refunded)
        if remaining <= 0:
            return RefundEligibility(
                eligible=False,
                refunded_amount=refunded,
                block_reason="No remaining amount to refund",
            )

        return RefundEligibility(eligible=True, max_refundable=remaining, refunded_amount=refunded)

    @classmethod
    def _get_non_refundable_reason(cls, status: str) -> str:
        reasons = {
            PaymentStatus.CREATED: "Cannot refund a payment that has not been captured",
            PaymentStatus.AUTHORIZED: "Cannot refund a payment that has not been captured",
            PaymentStatus.FAILED: "Cannot refund a failed payment",
            PaymentStatus.REFUNDED: "Payment has already been fully refunded",
        }
        return reasons.get(status, f"Cannot refund payment in {status} state")

    @classmethod
    def _validate_amount(cls, amount: Any) -> Decimal:
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, TypeError, ValueError):
            raise PaymentValidationError(
                "Refund amount must be a number",
                error_code="INVALID_AMOUNT",
                details={"amount": str(amount)},
            ) from None
        if not value.is_finite() or value <= 0 or value != quantize_amount(value):
            raise PaymentValidationError(
                "Refund amount must be positive with at most two decimal places",
                error_code="INVALID_AMOUNT",
                details={"amount": str(amount)},
            )
        return value

    # =========================================================================
    # Refund Execution
    # =========================================================================

    @classmethod
    def initiate_refund(cls, params: InitiateRefundParams) -> ServiceResult[RefundExecutionResult]:
        """
        Refund a captured payment.

        Returns:
            ServiceResult containing RefundExecutionResult

        Raises:
            PaymentValidationError: Bad amount or speed
            PaymentNotFoundError: Unknown gateway payment id
            RefundNotAllowedError: Payment not refundable
            RefundAmountExceededError: Amount above payment or remaining amount
            GatewayError: Gateway refused or could not be reached
            PaymentError: INSUFFICIENT_BALANCE, raised after the refund was
                recorded when the seller clawback could not be applied
        """
        log = cls.get_logger()

        if params.speed not in RefundSpeed.values:
            raise PaymentValidationError(
                f"Unsupported refund speed: {params.speed}",
                error_code="INVALID_REFUND_SPEED",
                details={"speed": params.speed},
            )
        requested = cls._validate_amount(params.amount) if params.amount is not None else None

        payment = Payment.objects.filter(gateway_payment_id=params.gateway_payment_id).first()
        if payment is None:
            raise PaymentNotFoundError(
                f"Payment {params.gateway_payment_id} not found",
                details={"gateway_payment_id": params.gateway_payment_id},
            )

        eligibility = cls.check_refund_eligibility(payment)
        if not eligibility.eligible:
            log.warning(
                "Refund not allowed",
                extra={"payment_id": str(payment.id), "reason": eligibility.block_reason},
            )
            raise RefundNotAllowedError(
                eligibility.block_reason or "Payment cannot be refunded",
                details={"payment_id": str(payment.id), "status": payment.status},
            )

        amount = requested if requested is not None else eligibility.max_refundable
        if amount > payment.amount:
            raise RefundAmountExceededError(
                "Refund amount exceeds payment amount",
                details={"requested": str(amount), "payment_amount": str(payment.amount)},
            )
        if amount > eligibility.max_refundable:
            raise RefundAmountExceededError(
                "Refund amount exceeds remaining refundable amount",
                details={
                    "requested": str(amount),
                    "remaining": str(eligibility.max_refundable),
                    "already_refunded": str(eligibility.refunded_amount),
                },
            )

        idempotency_key = params.idempotency_key or IdempotencyKeyGenerator.generate(
            operation="refund",
            entity_id=payment.gateway_payment_id,
            attempt=payment.refunds.count() + 1,
        )
        refund_type = "FULL" if amount == payment.amount else "PARTIAL"

        log.info(
            "Starting refund",
            extra={
                "payment_id": str(payment.id),
                "amount": str(amount),
                "refund_type": refund_type,
                "idempotency_key": idempotency_key,
            },
        )

        gateway_refund = cls.get_gateway_client().refund(
            payment.gateway_payment_id,
            to_minor_units(amount),
            speed=params.speed,
            idempotency_key=idempotency_key,
            receipt=generate_receipt(),
            notes={
                "reason": params.reason,
                "initiated_by": params.initiated_by,
                "refund_type": refund_type,
                **params.notes,
            },
        )

        with transaction.atomic():
            payment = Payment.objects.select_for_update().get(pk=payment.pk)
            refund = cls._store_refund(payment, gateway_refund, params, idempotency_key)
            mark_refunded_if_covered(payment)
            debit_status = record_refund_debit(payment, refund)
            NotificationService.notify_refund(payment, refund)

        if debit_status == CLAWBACK_OUTSTANDING:
            raise PaymentError(
                "Refund issued but the seller balance could not cover the clawback",
                error_code="INSUFFICIENT_BALANCE",
                details={
                    "payment_id": str(payment.id),
                    "gateway_refund_id": refund.gateway_refund_id,
                    "amount": str(refund.amount),
                },
            )

        log.info(
            "Refund completed",
            extra={
                "payment_id": str(payment.id),
                "gateway_refund_id": refund.gateway_refund_id,
                "debit_status": debit_status,
            },
        )
        return ServiceResult.success(
            RefundExecutionResult(refund=refund, payment=payment, debit_status=debit_status)
        )

    @classmethod
    def _store_refund(
        cls,
        payment: Payment,
        gateway_refund: GatewayRefund,
        params: InitiateRefundParams,
        idempotency_key: str,
    ) -> Refund:
        """Create the Refund, or complete the placeholder a webhook created first."""
        status = RefundStatus.PROCESSED if gateway_refund.status == RefundStatus.PROCESSED else RefundStatus.PENDING

        refund = Refund.objects.select_for_update().filter(gateway_refund_id=gateway_refund.id).first()
        if refund is None:
            return Refund.objects.create(
                payment=payment,
                gateway_refund_id=gateway_refund.id,
                amount=from_minor_units(gateway_refund.amount_minor),
                currency=gateway_refund.currency,
                status=status,
                reason=params.reason,
                speed_requested=params.speed,
                speed_processed=gateway_refund.speed_processed,
                initiated_by=params.initiated_by,
                idempotency_key=idempotency_key,
                notes=params.notes,
                processed_at=timezone.now() if status == RefundStatus.PROCESSED else None,
            )

        refund.reason = params.reason
        refund.initiated_by = params.initiated_by
        refund.idempotency_key = idempotency_key
        if status == RefundStatus.PROCESSED and refund.status == RefundStatus.PENDING:
            refund.process(speed_processed=gateway_refund.speed_processed)
        refund.save()
        return refund
