"""
Tests for the gateway webhook endpoint.

Tests cover:
- Signature verification
- Event storage and idempotent redelivery
- Task queuing
- HTTP method restrictions
"""

import pytest
from django.urls import reverse

from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tests.factories import gateway_payload
from payments.tests.gateway_stubs import webhook_signature


@pytest.fixture
def webhook_url():
    return reverse("payments:razorpay_webhook")


@pytest.fixture
def post_webhook(client, webhook_url):
    """POST a raw body with gateway headers."""

    def _post(body: bytes, signature: str | None = None, event_id: str | None = None):
        headers = {}
        if signature is not None:
            headers["HTTP_X_RAZORPAY_SIGNATURE"] = signature
        if event_id is not None:
            headers["HTTP_X_RAZORPAY_EVENT_ID"] = event_id
        return client.post(webhook_url, data=body, content_type="application/json", **headers)

    return _post


@pytest.fixture
def captured_body():
    return gateway_payload("payment.captured", payment={"id": "pay_view", "order_id": "order_view"})


# =============================================================================
# Signature Verification Tests
# =============================================================================


class TestWebhookSignature:
    def test_missing_signature_returns_400(self, db, post_webhook, signed_webhook, captured_body):
        body, _ = signed_webhook(captured_body)

        response = post_webhook(body)

        assert response.status_code == 400
        assert response.content == b"Invalid signature"

    def test_invalid_signature_returns_400(self, db, post_webhook, signed_webhook, captured_body):
        body, _ = signed_webhook(captured_body)

        response = post_webhook(body, signature="deadbeef")

        assert response.status_code == 400
        assert not WebhookEvent.objects.exists()


# =============================================================================
# Event Storage Tests
# =============================================================================


class TestWebhookEventCreation:
    def test_accepts_and_stores_new_event(
        self, db, post_webhook, signed_webhook, captured_body, mock_process_task
    ):
        body, signature = signed_webhook(captured_body)

        response = post_webhook(body, signature, event_id="evt_view_1")

        assert response.status_code == 200
        assert response.content == b"Accepted"
        event = WebhookEvent.objects.get(event_id="evt_view_1")
        assert event.event_type == "payment.captured"
        assert event.status == WebhookEventStatus.PENDING
        mock_process_task.assert_called_once_with(str(event.id))

    def test_already_processed_event(
        self, post_webhook, signed_webhook, processed_webhook_event, mock_process_task
    ):
        body, signature = signed_webhook(processed_webhook_event.payload)

        response = post_webhook(body, signature, event_id=processed_webhook_event.event_id)

        assert response.status_code == 200
        assert response.content == b"Already processed"
        mock_process_task.assert_not_called()

    def test_duplicate_pending_event_accepted(
        self, post_webhook, signed_webhook, pending_webhook_event, mock_process_task
    ):
        body, signature = signed_webhook(pending_webhook_event.payload)

        response = post_webhook(body, signature, event_id=pending_webhook_event.event_id)

        assert response.status_code == 200
        assert response.content == b"Accepted"
        assert WebhookEvent.objects.count() == 1

    def test_invalid_json_returns_400(self, db, post_webhook):
        body = b"not json"

        response = post_webhook(body, webhook_signature(body))

        assert response.status_code == 400
        assert response.content == b"Invalid event"

    def test_missing_event_returns_400(self, db, post_webhook, signed_webhook):
        body, signature = signed_webhook({"entity": "event", "payload": {}})

        response = post_webhook(body, signature)

        assert response.status_code == 400
        assert response.content == b"Invalid event"

    def test_queue_failure_still_returns_200(
        self, db, post_webhook, signed_webhook, captured_body, mock_process_task
    ):
        mock_process_task.side_effect = ConnectionError("Broker unavailable")
        body, signature = signed_webhook(captured_body)

        response = post_webhook(body, signature, event_id="evt_view_noqueue")

        assert response.status_code == 200
        assert WebhookEvent.objects.filter(event_id="evt_view_noqueue").exists()

    def test_does_not_require_authentication(
        self, db, post_webhook, signed_webhook, captured_body, mock_process_task
    ):
        body, signature = signed_webhook(captured_body)

        assert post_webhook(body, signature).status_code == 200


# =============================================================================
# HTTP Method Tests
# =============================================================================


class TestWebhookHttpMethods:
    @pytest.mark.parametrize("method", ["get", "put", "delete"])
    def test_only_post_allowed(self, db, client, webhook_url, method):
        response = getattr(client, method)(webhook_url)

        assert response.status_code == 405
