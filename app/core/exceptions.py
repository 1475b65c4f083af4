"""
Base exception classes for application-wide error handling.

This module provides a standardized exception hierarchy that enables:
- Consistent error responses across the API
- Machine-readable error codes for client handling
- Detailed error information for debugging

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Malformed input, rejected before any side effect
    ├── NotFoundError - Referenced resource absent
    ├── SecurityError - Signature/authenticity checks failed
    └── ConflictError - State conflicts (duplicates, concurrent modifications)
        └── BusinessError - Business rule refused the operation

Usage:
    from core.exceptions import ValidationError, NotFoundError

    raise ValidationError("Amount must be positive", error_code="INVALID_AMOUNT")

    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=400)

Note:
    These exceptions are for domain/business logic errors.
    DRF handles API-layer exceptions (serialization, authentication, etc.).
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, ids, amounts)

    Example:
        try:
            payment = PaymentQueryService.get_by_gateway_payment_id(payment_id)
        except NotFoundError as e:
            logger.warning(f"Payment not found: {e.error_code}")
            return Response(e.to_dict(), status=404)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        """
        Initialize the exception.

        Args:
            message: Human-readable error description
            error_code: Machine-readable error code (defaults to class default)
            details: Additional error context
        """
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Returns:
            Dict with error, error_code, and details keys
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Use for:
    - Bad amounts (zero, negative, above limits)
    - Missing ids
    - Unsupported currencies

    Always raised before any external call so there are no side effects.
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """
    Raised when a requested resource is not found.

    Example:
        product = Product.objects.filter(id=product_id).first()
        if not product:
            raise NotFoundError(
                f"Product {product_id} not found",
                error_code="PRODUCT_NOT_FOUND",
                details={"product_id": str(product_id)},
            )
    """

    default_error_code: str = "NOT_FOUND"


class SecurityError(BaseApplicationError):
    """
    Raised when a signature or authenticity check fails.

    Use for:
    - Webhook deliveries whose HMAC does not match the raw body
    - Client-submitted payment confirmations with a bad signature

    Note:
        Buyer-facing flows return a structured failure instead of raising;
        webhook deliveries are rejected so the gateway redelivers.
    """

    default_error_code: str = "SECURITY_ERROR"


class ConflictError(BaseApplicationError):
    """
    Raised when operation conflicts with current resource state.

    Use for:
    - Duplicate entries (unique constraint violations)
    - Concurrent modification conflicts
    - Invalid state transitions

    Note:
        HTTP 409 Conflict is the appropriate status for these errors.
    """

    default_error_code: str = "CONFLICT"


class BusinessError(ConflictError):
    """
    Raised when a business rule refuses an otherwise well-formed request.

    Use for:
    - Insufficient seller balance for a debit
    - Refund exceeding the remaining refundable amount
    - Payment not in a refundable state

    No partial mutation may have happened when this is raised.
    """

    default_error_code: str = "BUSINESS_RULE_VIOLATION"

