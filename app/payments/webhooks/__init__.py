"""
Webhook handling for payment gateway events.

Webhooks are verified over the raw body, stored idempotently, and
processed asynchronously via Celery tasks.

Usage:
    # In urls.py
    from payments.webhooks.views import razorpay_webhook

    urlpatterns = [
        path("webhooks/razorpay/", razorpay_webhook, name="razorpay_webhook"),
    ]
"""

from payments.webhooks.handlers import dispatch_webhook, register_handler
from payments.webhooks.receiver import receive_webhook
from payments.webhooks.views import razorpay_webhook

__all__ = [
    "dispatch_webhook",
    "razorpay_webhook",
    "receive_webhook",
    "register_handler",
]
