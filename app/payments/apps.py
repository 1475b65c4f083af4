"""
Payments app configuration.

This app provides payment processing for marketplace purchases:
- Gateway orders, verification and capture
- Refunds with seller clawback
- Seller balance ledger
- Webhook reconciliation
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"

    def ready(self):
        # Registers the webhook handlers
        from payments.webhooks import handlers  # noqa: F401
