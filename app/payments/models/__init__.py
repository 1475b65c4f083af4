"""
Payment domain models.

This module contains all payment-related models:
- Payment: One buyer payment, tracked from gateway order to capture/refund
- Refund: Money returned to a buyer, mirroring a gateway refund
- WebhookEvent: Gateway webhook event tracking for idempotent processing
- PaymentTransaction: Immutable ledger entries (from payments.ledger)
- SellerBalance: Per-seller balance aggregate (from payments.ledger)
"""

from payments.ledger.models import PaymentTransaction, SellerBalance
from payments.models.payment import Payment
from payments.models.refund import Refund
from payments.models.webhook_event import WebhookEvent

__all__ = [
    "Payment",
    "PaymentTransaction",
    "Refund",
    "SellerBalance",
    "WebhookEvent",
]
