"""
Read-side queries for payments and seller balances.

Gateway payment entities are cached for PAYMENT_DETAILS_CACHE_SECONDS so
status polling from the client does not hammer the gateway. Local state
(status, refund totals) is always read fresh.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.core.cache import cache

from core.services import BaseService, ServiceResult

from payments.exceptions import PaymentNotFoundError
from payments.gateway import get_gateway_client
from payments.ledger import BalanceSnapshot, ledger
from payments.models import Payment, Refund
from payments.state_machines import PaymentStatus, RefundStatus

if TYPE_CHECKING:
    from payments.gateway import GatewayPaymentDetails, RazorpayClient


CACHE_KEY_PREFIX = "payments:gateway_payment"


@dataclass
class PaymentDetails:
    """
    A payment as seen by both sides.

    Attributes:
        payment: Local Payment, None if the gateway knows a payment we do not
        gateway: Gateway payment entity (possibly from cache)
        refunded_amount: Sum of processed refunds
        pending_refund_amount: Sum of refunds still pending at the gateway
    """

    payment: Payment | None
    gateway: GatewayPaymentDetails
    refunded_amount: Decimal = Decimal("0.00")
    pending_refund_amount: Decimal = Decimal("0.00")


@dataclass
class OrderPaymentsSummary:
    total_payments: int = 0
    total_amount: Decimal = Decimal("0.00")
    successful: int = 0
    pending: int = 0
    failed: int = 0
    refunded: int = 0


@dataclass
class OrderPayments:
    gateway_order_id: str
    payments: list[Payment] = field(default_factory=list)
    summary: OrderPaymentsSummary = field(default_factory=OrderPaymentsSummary)


class PaymentQueryService(BaseService):
    """Payment lookups for the API layer."""

    _gateway_client: RazorpayClient | None = None

    @classmethod
    def get_gateway_client(cls) -> RazorpayClient:
        return cls._gateway_client or get_gateway_client()

    @classmethod
    def set_gateway_client(cls, client: RazorpayClient | None) -> None:
        """Set the gateway client (for testing)."""
        cls._gateway_client = client

    @classmethod
    def _cache_key(cls, gateway_payment_id: str) -> str:
        return f"{CACHE_KEY_PREFIX}:{gateway_payment_id}"

    @classmethod
    def fetch_gateway_payment(cls, gateway_payment_id: str) -> GatewayPaymentDetails:
        """Gateway payment entity, served from cache when fresh."""
        key = cls._cache_key(gateway_payment_id)
        details = cache.get(key)
        if details is not None:
            return details

        details = cls.get_gateway_client().fetch_payment(gateway_payment_id)
        cache.set(key, details, timeout=settings.PAYMENT_DETAILS_CACHE_SECONDS)
        return details

    @classmethod
    def invalidate(cls, gateway_payment_id: str | None) -> None:
        if gateway_payment_id:
            cache.delete(cls._cache_key(gateway_payment_id))

    @classmethod
    def get_payment_details(cls, gateway_payment_id: str) -> ServiceResult[PaymentDetails]:
        """
        Gateway payment entity merged with local status and refund totals.

        Raises:
            GatewayRequestError: Gateway does not know the payment
            GatewayUnavailableError: Gateway unreachable after retries
        """
        validation = cls.validate_required(gateway_payment_id=gateway_payment_id)
        if validation is not None:
            return validation

        gateway = cls.fetch_gateway_payment(gateway_payment_id)
        payment = Payment.objects.filter(gateway_payment_id=gateway_payment_id).first()

        details = PaymentDetails(payment=payment, gateway=gateway)
        if payment is not None:
            refunds = Refund.objects.filter(payment=payment)
            details.refunded_amount = refunds.filter(status=RefundStatus.PROCESSED).total_amount()
            details.pending_refund_amount = refunds.filter(status=RefundStatus.PENDING).total_amount()
        else:
            cls.get_logger().warning(
                "Gateway payment has no local record",
                extra={"gateway_payment_id": gateway_payment_id, "gateway_order_id": gateway.order_id},
            )

        return ServiceResult.success(details)

    @classmethod
    def get_order_payments(cls, gateway_order_id: str) -> ServiceResult[OrderPayments]:
        """
        All local payments for a gateway order, with a status summary.

        Raises:
            PaymentNotFoundError: No payment exists for the order
        """
        payments = list(Payment.objects.filter(gateway_order_id=gateway_order_id).order_by("created_at"))
        if not payments:
            raise PaymentNotFoundError(
                f"No payments found for order {gateway_order_id}",
                details={"gateway_order_id": gateway_order_id},
            )

        summary = OrderPaymentsSummary(total_payments=len(payments))
        for payment in payments:
            summary.total_amount += payment.amount
            if payment.status in PaymentStatus.captured_family():
                summary.successful += 1
            elif payment.status in PaymentStatus.capturable():
                summary.pending += 1
            elif payment.status == PaymentStatus.FAILED:
                summary.failed += 1
            elif payment.status == PaymentStatus.REFUNDED:
                summary.refunded += 1

        return ServiceResult.success(
            OrderPayments(gateway_order_id=gateway_order_id, payments=payments, summary=summary)
        )

    @classmethod
    def get_seller_balance(cls, seller_id: uuid.UUID) -> ServiceResult[BalanceSnapshot]:
        """Balance snapshot; zeros for sellers with no sales yet."""
        return ServiceResult.success(ledger.get_balance(seller_id))
