"""
Webhook endpoint view for the payment gateway.

The view:
1. Hands the raw body and signature header to receive_webhook
2. Returns 400 for bad signatures or malformed bodies
3. Returns 200 for accepted deliveries (new or duplicate)

Usage:
    # In urls.py
    from payments.webhooks.views import razorpay_webhook

    urlpatterns = [
        path("webhooks/razorpay/", razorpay_webhook, name="razorpay_webhook"),
    ]
"""

from __future__ import annotations

import logging

from django.http import HttpRequest, HttpResponse
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_POST

from payments.exceptions import PaymentValidationError, WebhookSignatureError
from payments.webhooks.receiver import receive_webhook

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "X-Razorpay-Signature"
EVENT_ID_HEADER = "X-Razorpay-Event-Id"


@csrf_exempt
@require_POST
def razorpay_webhook(request: HttpRequest) -> HttpResponse:
    """
    Receive and queue gateway webhook events.

    The gateway expects a quick 2xx; processing happens in Celery.

    Returns:
        HttpResponse with status:
        - 200: Event accepted (new or duplicate)
        - 400: Missing/invalid signature or malformed payload
    """
    try:
        received = receive_webhook(
            request.body,
            request.headers.get(SIGNATURE_HEADER),
            request.headers.get(EVENT_ID_HEADER),
        )
    except WebhookSignatureError:
        return HttpResponse("Invalid signature", status=400)
    except PaymentValidationError as e:
        logger.warning("Rejected webhook payload", extra={"error": e.message})
        return HttpResponse("Invalid event", status=400)

    if not received.created and received.event.is_processed:
        return HttpResponse("Already processed", status=200)
    return HttpResponse("Accepted", status=200)
