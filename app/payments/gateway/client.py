"""
Razorpay REST client for payment operations.

This module provides the RazorpayClient class which encapsulates all
gateway API interactions. All gateway calls should go through this
client to ensure consistent error handling, timeouts, idempotency,
and observability.

Features:
- Connect/read timeouts on every call
- Automatic error translation to domain exceptions
- Structured logging with timing metrics
- Retries with exponential backoff for fetch (GET) only
- HMAC-SHA256 verification of payment confirmations and webhooks

Configuration is injected: build a GatewayConfig (usually with
GatewayConfig.from_settings()) and hand it to the client. The client
never reads global settings itself.

Usage:
    from payments.gateway import GatewayConfig, RazorpayClient

    client = RazorpayClient(GatewayConfig.from_settings())

    order = client.create_order(
        amount_minor=49900,
        currency="INR",
        receipt="rcpt_1718000000000_a1b2c3",
        notes={"product_id": str(product.id)},
    )

    if client.verify_signature(order.id, payment_id, signature):
        capture = client.capture(payment_id, order.amount_minor, order.currency)
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import random
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from datetime import timezone as dt_timezone
from typing import Any

import requests
from django.conf import settings
from django.utils import timezone

from payments.exceptions import (
    GatewayError,
    GatewayRequestError,
    GatewayUnavailableError,
)

DEFAULT_BASE_URL = "https://api.razorpay.com/v1"


# =============================================================================
# Configuration
# =============================================================================


@dataclass(frozen=True)
class GatewayConfig:
    """
    Credentials and transport settings for the gateway client.

    Attributes:
        key_id: API key id (HTTP Basic username, also sent to checkout)
        key_secret: API key secret (HTTP Basic password, signature key)
        webhook_secret: Secret used to sign webhook deliveries
        base_url: REST API root
        connect_timeout: Seconds to wait for a TCP connection
        read_timeout: Seconds to wait for a response
        max_fetch_retries: Extra attempts for fetch calls on transient errors
        checkout_timeout: Seconds a created order stays payable
    """

    key_id: str
    key_secret: str
    webhook_secret: str = ""
    base_url: str = DEFAULT_BASE_URL
    connect_timeout: float = 10.0
    read_timeout: float = 30.0
    max_fetch_retries: int = 3
    checkout_timeout: int = 900

    @classmethod
    def from_settings(cls) -> GatewayConfig:
        """Build the config from Django settings (RAZORPAY_* values)."""
        return cls(
            key_id=settings.RAZORPAY_KEY_ID,
            key_secret=settings.RAZORPAY_KEY_SECRET,
            webhook_secret=settings.RAZORPAY_WEBHOOK_SECRET,
            base_url=getattr(settings, "RAZORPAY_BASE_URL", DEFAULT_BASE_URL),
            connect_timeout=getattr(settings, "RAZORPAY_CONNECT_TIMEOUT_SECONDS", 10),
            read_timeout=getattr(settings, "RAZORPAY_READ_TIMEOUT_SECONDS", 30),
            max_fetch_retries=getattr(settings, "RAZORPAY_MAX_FETCH_RETRIES", 3),
            checkout_timeout=getattr(settings, "RAZORPAY_CHECKOUT_TIMEOUT_SECONDS", 900),
        )

    @property
    def timeout(self) -> tuple[float, float]:
        return (self.connect_timeout, self.read_timeout)

    def __repr__(self) -> str:
        return f"GatewayConfig(key_id={self.key_id!r}, base_url={self.base_url!r})"


# =============================================================================
# Data Types
# =============================================================================


@dataclass
class GatewayOrder:
    """
    Result of creating a gateway order.

    Attributes:
        id: Gateway order id (order_xxx)
        amount_minor: Order amount in minor units
        currency: ISO 4217 currency code
        receipt: Merchant receipt reference echoed back
        status: Gateway order status (created, attempted, paid)
        created_at: Creation time reported by the gateway
        notes: Key-value notes attached to the order
    """

    id: str
    amount_minor: int
    currency: str
    receipt: str | None
    status: str
    created_at: datetime | None = None
    notes: dict[str, Any] = field(default_factory=dict)


@dataclass
class GatewayCapture:
    """Result of capturing an authorized payment."""

    payment_id: str
    order_id: str | None
    status: str
    method: str | None
    amount_minor: int
    currency: str
    captured_at: datetime


@dataclass
class GatewayRefund:
    """
    Result of a refund request.

    Attributes:
        id: Gateway refund id (rfnd_xxx)
        payment_id: Refunded payment id
        amount_minor: Refunded amount in minor units
        status: pending, processed or failed
        speed_requested: Speed asked for (normal/optimum)
        speed_processed: Speed the gateway actually used
    """

    id: str
    payment_id: str
    amount_minor: int
    currency: str
    status: str
    speed_requested: str | None = None
    speed_processed: str | None = None
    created_at: datetime | None = None
    processed_at: datetime | None = None


@dataclass
class GatewayPaymentDetails:
    """Payment entity as reported by the gateway fetch endpoint."""

    id: str
    order_id: str | None
    amount_minor: int
    currency: str
    status: str
    method: str | None = None
    email: str | None = None
    contact: str | None = None
    fee_minor: int | None = None
    tax_minor: int | None = None
    created_at: datetime | None = None
    notes: dict[str, Any] = field(default_factory=dict)


# =============================================================================
# Idempotency Key Generator
# =============================================================================


class IdempotencyKeyGenerator:
    """
    Generate idempotency keys for gateway calls.

    Format: "{operation}:{entity_id}:{attempt}:{hash}"

    The hash component provides uniqueness across service restarts
    while the structured format aids debugging and correlation.

    Example:
        key = IdempotencyKeyGenerator.generate(
            operation="refund",
            entity_id=payment.gateway_payment_id,
            attempt=2,
        )
        # Result: "refund:pay_29QQoUBi66xm2f:2:a1b2c3d4"
    """

    @staticmethod
    def generate(
        operation: str,
        entity_id: uuid.UUID | str,
        attempt: int = 1,
    ) -> str:
        entity_str = str(entity_id)
        hash_input = f"{operation}:{entity_str}:{attempt}:{settings.SECRET_KEY}"
        short_hash = hashlib.sha256(hash_input.encode()).hexdigest()[:8]

        return f"{operation}:{entity_str}:{attempt}:{short_hash}"


# =============================================================================
# Retry Logic Helpers
# =============================================================================


def backoff_delay(attempt: int, base: float = 1.0, max_delay: float = 60.0) -> float:
    """
    Calculate exponential backoff delay with jitter.

    Args:
        attempt: Current attempt number (0-indexed)
        base: Base delay in seconds (default: 1.0)
        max_delay: Maximum delay in seconds (default: 60.0)

    Returns:
        Delay in seconds with jitter (0-25% of calculated delay)

    Example:
        # Attempt 0: 1.0 - 1.25 seconds
        # Attempt 1: 2.0 - 2.5 seconds
        # Attempt 2: 4.0 - 5.0 seconds
        delay = backoff_delay(attempt=2)
    """
    delay = min(base * (2**attempt), max_delay)
    jitter = delay * random.uniform(0, 0.25)
    return delay + jitter


def _hmac_hex(secret: str, message: bytes) -> str:
    return hmac.new(secret.encode("utf-8"), message, hashlib.sha256).hexdigest()


def _from_epoch(value: Any) -> datetime | None:
    if value in (None, ""):
        return None
    try:
        return datetime.fromtimestamp(int(value), tz=dt_timezone.utc)
    except (TypeError, ValueError, OverflowError):
        return None


def _notes(value: Any) -> dict[str, Any]:
    # The gateway serializes empty notes as an empty list.
    return dict(value) if isinstance(value, dict) else {}


# =============================================================================
# Razorpay Client
# =============================================================================


class RazorpayClient:
    """
    Client for the Razorpay REST API.

    Thread-safe as long as each thread (or Celery worker process) uses its
    own requests.Session; build one client per unit of work.

    POST operations (create order, capture, refund) are never retried here
    because the gateway only de-duplicates requests that carry an explicit
    idempotency key. Fetch is retried on transient errors.
    """

    def __init__(self, config: GatewayConfig, session: requests.Session | None = None):
        self.config = config
        self.session = session or requests.Session()

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Get logger for this client."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    # =========================================================================
    # Core Operations
    # =========================================================================

    def create_order(
        self,
        amount_minor: int,
        currency: str,
        receipt: str,
        notes: dict[str, Any] | None = None,
    ) -> GatewayOrder:
        """
        Create a gateway order the buyer can pay against.

        Orders are created with manual capture; the verification flow
        captures once the client-side signature checks out.

        Raises:
            GatewayRequestError: Gateway rejected the order
            GatewayUnavailableError: Gateway unreachable or erroring
        """
        payload = {
            "amount": amount_minor,
            "currency": currency,
            "receipt": receipt,
            "payment_capture": 0,
            "partial_payment": False,
            "notes": notes or {},
            "timeout": self.config.checkout_timeout,
        }
        log_context = {
            "operation": "create_order",
            "amount_minor": amount_minor,
            "currency": currency,
            "receipt": receipt,
        }
        data = self._request("POST", "/orders", log_context, payload=payload)

        return GatewayOrder(
            id=self._require(data, "id", log_context),
            amount_minor=int(data.get("amount", amount_minor)),
            currency=data.get("currency", currency),
            receipt=data.get("receipt", receipt),
            status=data.get("status", "created"),
            created_at=_from_epoch(data.get("created_at")),
            notes=_notes(data.get("notes")),
        )

    def capture(self, payment_id: str, amount_minor: int, currency: str) -> GatewayCapture:
        """
        Capture an authorized payment for the full order amount.

        Raises:
            GatewayRequestError: Payment not capturable (e.g. already captured elsewhere)
            GatewayUnavailableError: Gateway unreachable or erroring
        """
        log_context = {
            "operation": "capture",
            "payment_id": payment_id,
            "amount_minor": amount_minor,
        }
        data = self._request(
            "POST",
            f"/payments/{payment_id}/capture",
            log_context,
            payload={"amount": amount_minor, "currency": currency},
        )

        return GatewayCapture(
            payment_id=self._require(data, "id", log_context),
            order_id=data.get("order_id"),
            status=data.get("status", "captured"),
            method=data.get("method"),
            amount_minor=int(data.get("amount", amount_minor)),
            currency=data.get("currency", currency),
            captured_at=timezone.now(),
        )

    def refund(
        self,
        payment_id: str,
        amount_minor: int,
        speed: str = "normal",
        idempotency_key: str | None = None,
        receipt: str | None = None,
        notes: dict[str, Any] | None = None,
    ) -> GatewayRefund:
        """
        Refund part or all of a captured payment.

        The idempotency key is forwarded so the gateway collapses repeated
        submissions into a single refund.

        Raises:
            GatewayRequestError: Refund rejected (e.g. exceeds captured amount)
            GatewayUnavailableError: Gateway unreachable or erroring
        """
        payload: dict[str, Any] = {
            "amount": amount_minor,
            "speed": speed,
            "notes": notes or {},
        }
        if receipt:
            payload["receipt"] = receipt
        if idempotency_key:
            payload["idempotency_key"] = idempotency_key

        log_context = {
            "operation": "refund",
            "payment_id": payment_id,
            "amount_minor": amount_minor,
            "idempotency_key": idempotency_key,
        }
        data = self._request("POST", f"/payments/{payment_id}/refund", log_context, payload=payload)

        return GatewayRefund(
            id=self._require(data, "id", log_context),
            payment_id=data.get("payment_id", payment_id),
            amount_minor=int(data.get("amount", amount_minor)),
            currency=data.get("currency", "INR"),
            status=data.get("status", "pending"),
            speed_requested=data.get("speed_requested", speed),
            speed_processed=data.get("speed_processed"),
            created_at=_from_epoch(data.get("created_at")),
            processed_at=_from_epoch(data.get("processed_at")),
        )

    def fetch_payment(self, payment_id: str) -> GatewayPaymentDetails:
        """
        Fetch a payment entity.

        Retried up to config.max_fetch_retries times on network errors,
        timeouts, 429 and 5xx responses.

        Raises:
            GatewayRequestError: Unknown payment id or rejected request
            GatewayUnavailableError: Still failing after all retries
        """
        log_context = {"operation": "fetch_payment", "payment_id": payment_id}
        logger = self.get_logger()

        attempt = 0
        while True:
            try:
                data = self._request("GET", f"/payments/{payment_id}", log_context)
                break
            except GatewayUnavailableError:
                if attempt >= self.config.max_fetch_retries:
                    raise
                delay = backoff_delay(attempt)
                logger.warning(
                    "Retrying gateway fetch",
                    extra={**log_context, "attempt": attempt + 1, "delay_seconds": delay},
                )
                time.sleep(delay)
                attempt += 1

        return GatewayPaymentDetails(
            id=self._require(data, "id", log_context),
            order_id=data.get("order_id"),
            amount_minor=int(data.get("amount", 0)),
            currency=data.get("currency", "INR"),
            status=data.get("status", ""),
            method=data.get("method"),
            email=data.get("email"),
            contact=data.get("contact"),
            fee_minor=data.get("fee"),
            tax_minor=data.get("tax"),
            created_at=_from_epoch(data.get("created_at")),
            notes=_notes(data.get("notes")),
        )

    # =========================================================================
    # Signature Verification
    # =========================================================================

    def verify_signature(self, order_id: str | None, payment_id: str | None, signature: str | None) -> bool:
        """
        Verify the signature returned to the buyer's browser after checkout.

        The gateway signs "{order_id}|{payment_id}" with the key secret.
        Any missing or malformed input verifies as False.
        """
        if not (order_id and payment_id and signature and self.config.key_secret):
            return False
        if not isinstance(signature, str):
            return False
        expected = _hmac_hex(self.config.key_secret, f"{order_id}|{payment_id}".encode("utf-8"))
        return hmac.compare_digest(expected, signature.strip())

    def verify_webhook_signature(self, raw_payload: bytes | str | None, signature: str | None) -> bool:
        """
        Verify a webhook delivery against the raw request body.

        Must be called with the exact bytes received, before any parsing.
        """
        if raw_payload is None or not signature or not self.config.webhook_secret:
            return False
        if not isinstance(signature, str):
            return False
        body = raw_payload.encode("utf-8") if isinstance(raw_payload, str) else bytes(raw_payload)
        expected = _hmac_hex(self.config.webhook_secret, body)
        return hmac.compare_digest(expected, signature.strip())

    # =========================================================================
    # Transport
    # =========================================================================

    def _request(
        self,
        method: str,
        path: str,
        log_context: dict[str, Any],
        payload: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Send one request and return the decoded JSON body."""
        logger = self.get_logger()
        url = f"{self.config.base_url.rstrip('/')}{path}"

        start_time = time.time()
        logger.info("Starting gateway operation", extra=log_context)

        try:
            response = self.session.request(
                method,
                url,
                json=payload,
                auth=(self.config.key_id, self.config.key_secret),
                timeout=self.config.timeout,
            )
        except requests.RequestException as e:
            duration_ms = (time.time() - start_time) * 1000
            self._handle_transport_error(e, log_context, duration_ms)
            raise  # Never reached, but satisfies type checker

        duration_ms = (time.time() - start_time) * 1000
        if not response.ok:
            self._handle_error_response(response, log_context, duration_ms)

        try:
            data = response.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            logger.error(
                "Malformed gateway response",
                extra={
                    **log_context,
                    "status_code": response.status_code,
                    "response_body": response.text[:1000],
                    "duration_ms": duration_ms,
                },
            )
            raise GatewayError(
                "Payment gateway returned an unreadable response",
                error_code="GATEWAY_MALFORMED_RESPONSE",
                status_code=response.status_code,
            )

        logger.info(
            "Gateway operation completed",
            extra={
                **log_context,
                "status_code": response.status_code,
                "gateway_status": data.get("status"),
                "duration_ms": duration_ms,
            },
        )
        return data

    def _require(self, data: dict[str, Any], key: str, log_context: dict[str, Any]) -> Any:
        value = data.get(key)
        if not value:
            self.get_logger().error(
                "Gateway response missing field",
                extra={**log_context, "missing_field": key, "response_body": json.dumps(data)[:1000]},
            )
            raise GatewayError(
                "Payment gateway returned an incomplete response",
                error_code="GATEWAY_MALFORMED_RESPONSE",
            )
        return value

    # =========================================================================
    # Error Handling
    # =========================================================================

    def _handle_transport_error(
        self,
        error: Exception,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate requests exceptions to domain exceptions.

        Raises:
            GatewayUnavailableError: Always; network failures are transient
        """
        logger = self.get_logger()
        log_context = {**log_context, "duration_ms": duration_ms}

        if isinstance(error, requests.Timeout):
            logger.error("Gateway request timed out", extra=log_context)
            raise GatewayUnavailableError(
                "Payment gateway timed out. Please retry.",
                error_code="GATEWAY_TIMEOUT",
            )

        logger.error(
            f"Connection error to gateway: {type(error).__name__}",
            extra=log_context,
            exc_info=True,
        )
        raise GatewayUnavailableError("Could not reach the payment gateway. Please retry.")

    def _handle_error_response(
        self,
        response: requests.Response,
        log_context: dict[str, Any],
        duration_ms: float,
    ) -> None:
        """
        Translate a non-2xx response into a sanitized domain exception.

        The raw body is logged for operators and never attached to the
        exception.

        Raises:
            GatewayUnavailableError: 429 and 5xx
            GatewayRequestError: Any other 4xx
        """
        logger = self.get_logger()
        status_code = response.status_code
        gateway_code = None
        try:
            body = response.json()
            if isinstance(body, dict) and isinstance(body.get("error"), dict):
                gateway_code = body["error"].get("code")
        except ValueError:
            pass

        log_context = {
            **log_context,
            "status_code": status_code,
            "gateway_code": gateway_code,
            "response_body": response.text[:1000],
            "duration_ms": duration_ms,
        }

        if status_code == 429:
            logger.warning("Rate limited by gateway", extra=log_context)
            raise GatewayUnavailableError(
                "Payment gateway rate limit exceeded. Please retry.",
                error_code="GATEWAY_RATE_LIMITED",
                status_code=status_code,
                gateway_code=gateway_code,
            )

        if status_code >= 500:
            logger.error("Gateway server error", extra=log_context)
            raise GatewayUnavailableError(
                "Payment gateway service error. Please retry.",
                status_code=status_code,
                gateway_code=gateway_code,
            )

        if status_code in (401, 403):
            logger.critical("Gateway authentication failed - check API keys", extra=log_context)
        else:
            logger.error("Gateway rejected request", extra=log_context)
        raise GatewayRequestError(
            "Payment gateway rejected the request",
            status_code=status_code,
            gateway_code=gateway_code,
        )


def get_gateway_client() -> RazorpayClient:
    """Build a client from Django settings; the edge where config is read."""
    return RazorpayClient(GatewayConfig.from_settings())
