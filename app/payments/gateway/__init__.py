"""
Payment gateway client.

All gateway API calls go through RazorpayClient to ensure consistent
error handling, timeouts, idempotency, and observability.

Usage:
    from payments.gateway import get_gateway_client, to_minor_units

    client = get_gateway_client()
    order = client.create_order(to_minor_units(amount), "INR", receipt, notes)
"""

from payments.gateway.client import (
    GatewayCapture,
    GatewayConfig,
    GatewayOrder,
    GatewayPaymentDetails,
    GatewayRefund,
    IdempotencyKeyGenerator,
    RazorpayClient,
    backoff_delay,
    get_gateway_client,
)
from payments.gateway.money import from_minor_units, quantize_amount, to_minor_units

__all__ = [
    "GatewayCapture",
    "GatewayConfig",
    "GatewayOrder",
    "GatewayPaymentDetails",
    "GatewayRefund",
    "IdempotencyKeyGenerator",
    "RazorpayClient",
    "backoff_delay",
    "from_minor_units",
    "get_gateway_client",
    "quantize_amount",
    "to_minor_units",
]
