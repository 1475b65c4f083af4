"""
Payment-specific exceptions for payment operations.

This module provides a hierarchy of exceptions for payment operations,
covering payment domain errors, gateway failures, refund rules and
signature checks.

Exception Hierarchy:
    PaymentError (base for payment domain)
    ├── PaymentNotFoundError - Payment lookup failures
    ├── PaymentValidationError - Request validation failures
    └── PaymentProcessingError - Payment processing failures
        └── GatewayError - Base for all gateway errors
            ├── GatewayRequestError - Gateway rejected the request (permanent)
            └── GatewayUnavailableError - Network, 429 or 5xx (transient, retry)

    RefundNotAllowedError - Payment not refundable (BusinessError)
    RefundAmountExceededError - Refund above remaining amount (BusinessError)

    InvalidPaymentSignatureError - Client confirmation signature mismatch (SecurityError)
    WebhookSignatureError - Webhook HMAC mismatch (SecurityError)

Usage:
    from payments.exceptions import GatewayError, RefundAmountExceededError

    if amount > remaining:
        raise RefundAmountExceededError(
            "Refund amount exceeds remaining refundable amount",
            details={"requested": str(amount), "remaining": str(remaining)},
        )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, BusinessError, SecurityError

if TYPE_CHECKING:
    from typing import Any


# =============================================================================
# Payment Domain Exceptions
# =============================================================================


class PaymentError(BaseApplicationError):
    """
    Base exception for all payment operations.

    All payment-specific exceptions inherit from this class,
    which itself inherits from BaseApplicationError for
    consistent API error responses.

    Example:
        try:
            RefundService.initiate_refund(params)
        except PaymentError as e:
            logger.error(f"Refund failed: {e}")
            return Response(e.to_dict(), status=400)
    """

    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    """
    Raised when a payment cannot be found.

    Example:
        payment = Payment.objects.filter(gateway_order_id=order_id).first()
        if not payment:
            raise PaymentNotFoundError(
                f"Payment for order {order_id} not found",
                details={"gateway_order_id": order_id},
            )
    """

    default_error_code: str = "PAYMENT_NOT_FOUND"


class PaymentValidationError(PaymentError):
    """
    Raised when payment request validation fails.

    Use for:
    - Invalid payment amount
    - Invalid currency
    - Missing required fields

    Always raised before the gateway is called.
    """

    default_error_code: str = "PAYMENT_VALIDATION_ERROR"


class PaymentProcessingError(PaymentError):
    """
    Raised when payment processing fails.

    Use for:
    - Gateway API errors
    - Processing timeouts
    """

    default_error_code: str = "PAYMENT_PROCESSING_ERROR"


# =============================================================================
# Gateway Exceptions
# =============================================================================


class GatewayError(PaymentProcessingError):
    """
    Base exception for all payment gateway errors.

    The message is always sanitized: raw gateway bodies are logged by the
    client and never attached to the exception.

    Attributes:
        status_code: HTTP status returned by the gateway (None for network errors)
        gateway_code: Gateway's error code, when the body carried one
        is_retryable: Whether the operation can be retried

    Example:
        try:
            client.capture(payment_id, amount_minor, currency)
        except GatewayError as e:
            if e.is_retryable:
                schedule_retry(e)
            else:
                raise
    """

    default_error_code: str = "GATEWAY_ERROR"
    is_retryable: bool = False

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        status_code: int | None = None,
        gateway_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if status_code is not None:
            details["status_code"] = status_code
        if gateway_code:
            details["gateway_code"] = gateway_code
        super().__init__(message, error_code=error_code, details=details)
        self.status_code = status_code
        self.gateway_code = gateway_code


class GatewayRequestError(GatewayError):
    """
    Gateway rejected the request (4xx other than 429, or a malformed body).

    Permanent: the same request will never succeed.
    """

    default_error_code: str = "GATEWAY_REQUEST_REJECTED"
    is_retryable: bool = False


class GatewayUnavailableError(GatewayError):
    """
    Gateway unreachable, timed out, rate limited or returned 5xx.

    IMPORTANT: for POST operations the call may have succeeded on the
    gateway's side. Capture and refund are never retried blindly; the
    webhook path reconciles the final state.
    """

    default_error_code: str = "GATEWAY_UNAVAILABLE"
    is_retryable: bool = True


# =============================================================================
# Business Rule Exceptions
# =============================================================================


class RefundNotAllowedError(BusinessError):
    """Payment is not in a refundable state."""

    default_error_code: str = "REFUND_NOT_ALLOWED"


class RefundAmountExceededError(BusinessError):
    """Requested refund is larger than the payment or its remaining refundable amount."""

    default_error_code: str = "REFUND_AMOUNT_EXCEEDED"


# =============================================================================
# Signature Exceptions
# =============================================================================


class InvalidPaymentSignatureError(SecurityError):
    """Client-submitted payment confirmation failed signature verification."""

    default_error_code: str = "INVALID_SIGNATURE"


class WebhookSignatureError(SecurityError):
    """
    Webhook delivery failed signature verification.

    The delivery is rejected before the payload is parsed; the gateway
    will redeliver.
    """

    default_error_code: str = "INVALID_WEBHOOK_SIGNATURE"


# =============================================================================
# Exports
# =============================================================================

__all__ = [
    # Payment domain
    "PaymentError",
    "PaymentNotFoundError",
    "PaymentValidationError",
    "PaymentProcessingError",
    # Gateway
    "GatewayError",
    "GatewayRequestError",
    "GatewayUnavailableError",
    # Business rules
    "RefundNotAllowedError",
    "RefundAmountExceededError",
    # Signatures
    "InvalidPaymentSignatureError",
    "WebhookSignatureError",
]
