"""
Pytest fixtures for webhook tests.

Provides gateway-shaped payload builders and WebhookEvent rows for
testing the webhook view, receiver, handlers, and tasks. Payment
fixtures come from payments/conftest.py.
"""

from unittest.mock import patch

import pytest

from payments.gateway import to_minor_units
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tests.factories import WebhookEventFactory, gateway_payload


# =============================================================================
# Payload Fixtures
# =============================================================================


@pytest.fixture
def payment_payload():
    """
    Build a payment.* event body for a Payment.

    Usage:
        body = payment_payload("payment.captured", payment, method="card")
    """

    def _build(event: str, payment, payment_id: str | None = None, **entity_fields) -> dict:
        entity = {
            "id": payment_id or payment.gateway_payment_id or "pay_webhook123",
            "entity": "payment",
            "order_id": payment.gateway_order_id,
            "amount": to_minor_units(payment.amount),
            "currency": payment.currency,
            "status": event.split(".")[1],
            "method": "upi",
        }
        entity.update(entity_fields)
        return gateway_payload(event, payment=entity)

    return _build


@pytest.fixture
def refund_payload():
    """
    Build a refund.* event body for a captured Payment.

    Usage:
        body = refund_payload("refund.processed", payment, "rfnd_1", amount=10000)
    """

    def _build(event: str, payment, refund_id: str, amount: int = 10000, **entity_fields) -> dict:
        entity = {
            "id": refund_id,
            "entity": "refund",
            "payment_id": payment.gateway_payment_id,
            "amount": amount,
            "currency": payment.currency,
            "status": event.split(".")[1],
            "speed_processed": "normal",
        }
        entity.update(entity_fields)
        return gateway_payload(event, refund=entity)

    return _build


@pytest.fixture
def make_event(db):
    """Store a WebhookEvent for a payload, as the receiver would."""

    def _make(payload: dict, **kwargs) -> WebhookEvent:
        return WebhookEventFactory(event_type=payload["event"], payload=payload, **kwargs)

    return _make


# =============================================================================
# WebhookEvent Fixtures
# =============================================================================


@pytest.fixture
def pending_webhook_event(db):
    return WebhookEventFactory()


@pytest.fixture
def processed_webhook_event(db):
    event = WebhookEventFactory()
    event.mark_processing()
    event.mark_processed()
    event.save()
    return event


@pytest.fixture
def failed_webhook_event(db):
    return WebhookEventFactory(
        status=WebhookEventStatus.FAILED,
        error_message="Payment not found for webhook",
        retry_count=1,
    )


# =============================================================================
# Mock Fixtures
# =============================================================================


@pytest.fixture
def mock_process_task():
    """Stop the receiver from running the processing task."""
    with patch("payments.tasks.process_webhook_event.delay") as mock_delay:
        yield mock_delay
