"""
Payment verification and capture.

Called when the buyer's browser reports a completed checkout with the
gateway's (order_id, payment_id, signature) triple. The signature is
checked locally, the payment is captured at the gateway, and the local
capture unit of work credits the seller.

Usage:
    from payments.services import PaymentVerificationService, VerifyPaymentParams

    result = PaymentVerificationService.verify_and_capture(
        VerifyPaymentParams(
            gateway_order_id="order_abc",
            gateway_payment_id="pay_xyz",
            signature="5f1c...",
        )
    )
    if not result.success:
        # result.error_code == "INVALID_SIGNATURE"
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from core.services import BaseService, ServiceResult

from payments.exceptions import PaymentNotFoundError
from payments.gateway import get_gateway_client, to_minor_units
from payments.models import Payment
from payments.services.capture import apply_capture
from payments.state_machines import PaymentStatus

if TYPE_CHECKING:
    from payments.gateway import RazorpayClient


@dataclass
class VerifyPaymentParams:
    gateway_order_id: str
    gateway_payment_id: str
    signature: str


@dataclass
class VerificationResult:
    """
    Outcome of a successful verification.

    Attributes:
        payment: Payment after the call
        captured_now: This call performed the capture
        already_processed: Payment was already terminal; nothing was done
    """

    payment: Payment
    captured_now: bool = False
    already_processed: bool = False


class PaymentVerificationService(BaseService):
    """
    Verifies client-side payment confirmations and captures payments.

    Safety Guarantees:
        - A bad signature never changes the stored payment
        - Terminal payments are returned as-is without a gateway call
        - The gateway capture runs outside any database transaction
        - The local capture is idempotent against the payment.captured
          webhook (row lock + unique credit key)
    """

    _gateway_client: RazorpayClient | None = None

    @classmethod
    def get_gateway_client(cls) -> RazorpayClient:
        return cls._gateway_client or get_gateway_client()

    @classmethod
    def set_gateway_client(cls, client: RazorpayClient | None) -> None:
        """Set the gateway client (for testing)."""
        cls._gateway_client = client

    @classmethod
    def verify_and_capture(cls, params: VerifyPaymentParams) -> ServiceResult[VerificationResult]:
        """
        Verify the confirmation signature and capture the payment.

        Returns:
            ServiceResult with VerificationResult, or failure with
            error_code INVALID_SIGNATURE / VALIDATION_ERROR

        Raises:
            PaymentNotFoundError: No payment for the gateway order id
            GatewayError: Capture call failed; the payment is left as it was
        """
        logger = cls.get_logger()

        validation = cls.validate_required(
            gateway_order_id=params.gateway_order_id,
            gateway_payment_id=params.gateway_payment_id,
            signature=params.signature,
        )
        if validation is not None:
            return validation

        client = cls.get_gateway_client()
        if not client.verify_signature(params.gateway_order_id, params.gateway_payment_id, params.signature):
            logger.warning(
                "Invalid payment signature",
                extra={
                    "gateway_order_id": params.gateway_order_id,
                    "gateway_payment_id": params.gateway_payment_id,
                },
            )
            return ServiceResult.failure("Invalid payment signature", error_code="INVALID_SIGNATURE")

        payment = Payment.objects.filter(gateway_order_id=params.gateway_order_id).first()
        if payment is None:
            raise PaymentNotFoundError(
                f"Payment not found for order {params.gateway_order_id}",
                details={
                    "gateway_order_id": params.gateway_order_id,
                    "gateway_payment_id": params.gateway_payment_id,
                },
            )

        if payment.status == PaymentStatus.FAILED:
            # A later attempt on the same order; its authorization stays uncaptured.
            logger.error(
                "Confirmed attempt for a failed payment, not capturing",
                extra={
                    "payment_id": str(payment.id),
                    "gateway_order_id": params.gateway_order_id,
                    "gateway_payment_id": params.gateway_payment_id,
                },
            )
            return ServiceResult.success(VerificationResult(payment=payment, already_processed=True))

        if payment.is_terminal:
            logger.info(
                f"Payment already {payment.status}, returning stored state",
                extra={"payment_id": str(payment.id), "status": payment.status},
            )
            return ServiceResult.success(VerificationResult(payment=payment, already_processed=True))

        logger.info(
            "Capturing payment at gateway",
            extra={
                "payment_id": str(payment.id),
                "gateway_payment_id": params.gateway_payment_id,
                "amount": str(payment.amount),
            },
        )
        capture = client.capture(
            params.gateway_payment_id,
            to_minor_units(payment.amount),
            payment.currency,
        )

        try:
            outcome = apply_capture(
                payment.id,
                gateway_payment_id=capture.payment_id,
                signature=params.signature,
                method=capture.method,
            )
        except Exception:
            # Money moved at the gateway; the payment.captured webhook
            # replays this unit of work.
            logger.critical(
                "Gateway capture succeeded but local persist failed - reconciliation needed",
                extra={
                    "payment_id": str(payment.id),
                    "gateway_order_id": params.gateway_order_id,
                    "gateway_payment_id": params.gateway_payment_id,
                },
                exc_info=True,
            )
            raise

        return ServiceResult.success(
            VerificationResult(payment=outcome.payment, captured_now=outcome.transitioned)
        )
