"""
Tests for webhook intake: signature check, storage, dedupe, queueing.
"""

import pytest

from payments.exceptions import PaymentValidationError, WebhookSignatureError
from payments.models import WebhookEvent
from payments.state_machines import WebhookEventStatus
from payments.tests.factories import gateway_payload
from payments.tests.gateway_stubs import webhook_signature
from payments.webhooks.receiver import build_event_id, receive_webhook


class TestBuildEventId:
    def test_uses_refund_entity_first(self):
        body = gateway_payload(
            "refund.processed",
            refund={"id": "rfnd_1"},
            payment={"id": "pay_1"},
        )

        assert build_event_id("refund.processed", body) == "refund.processed:rfnd_1"

    def test_payment_entity(self):
        body = gateway_payload("payment.captured", payment={"id": "pay_1"})

        assert build_event_id("payment.captured", body) == "payment.captured:pay_1"

    def test_falls_back_to_created_at(self):
        body = {"event": "payment.captured", "payload": {}, "created_at": 1700000000}

        assert build_event_id("payment.captured", body) == "payment.captured:1700000000"


class TestReceiveWebhook:
    @pytest.fixture
    def captured_body(self):
        return gateway_payload("payment.captured", payment={"id": "pay_rcv", "order_id": "order_rcv"})

    def test_missing_signature(self, db, signed_webhook, captured_body):
        body, _ = signed_webhook(captured_body)

        with pytest.raises(WebhookSignatureError):
            receive_webhook(body, None)

        assert not WebhookEvent.objects.exists()

    def test_invalid_signature(self, db, signed_webhook, captured_body):
        body, _ = signed_webhook(captured_body)

        with pytest.raises(WebhookSignatureError):
            receive_webhook(body, "0" * 64)

        assert not WebhookEvent.objects.exists()

    def test_signature_covers_exact_bytes(self, db, signed_webhook, captured_body):
        body, signature = signed_webhook(captured_body)

        with pytest.raises(WebhookSignatureError):
            receive_webhook(body + b" ", signature)

    def test_stores_and_queues(self, signed_webhook, captured_body, mock_process_task, db):
        body, signature = signed_webhook(captured_body)

        received = receive_webhook(body, signature, "evt_rcv_1")

        assert received.created
        assert received.queued
        event = received.event
        assert event.event_id == "evt_rcv_1"
        assert event.event_type == "payment.captured"
        assert event.status == WebhookEventStatus.PENDING
        assert event.payload == captured_body
        mock_process_task.assert_called_once_with(str(event.id))

    def test_event_id_fallback(self, signed_webhook, captured_body, mock_process_task, db):
        body, signature = signed_webhook(captured_body)

        received = receive_webhook(body, signature)

        assert received.event.event_id == "payment.captured:pay_rcv"

    def test_duplicate_delivery_stored_once(self, signed_webhook, captured_body, mock_process_task, db):
        body, signature = signed_webhook(captured_body)

        first = receive_webhook(body, signature, "evt_dup")
        second = receive_webhook(body, signature, "evt_dup")

        assert first.created
        assert not second.created
        assert second.event.pk == first.event.pk
        assert WebhookEvent.objects.filter(event_id="evt_dup").count() == 1
        # Unprocessed duplicates are queued again
        assert mock_process_task.call_count == 2

    def test_processed_duplicate_not_requeued(self, signed_webhook, processed_webhook_event, mock_process_task):
        body, signature = signed_webhook(processed_webhook_event.payload)

        received = receive_webhook(body, signature, processed_webhook_event.event_id)

        assert not received.created
        assert not received.queued
        mock_process_task.assert_not_called()

    def test_invalid_json(self, db):
        body = b"{not json"

        with pytest.raises(PaymentValidationError) as exc_info:
            receive_webhook(body, webhook_signature(body))

        assert exc_info.value.error_code == "INVALID_WEBHOOK_PAYLOAD"

    def test_missing_event_name(self, db, signed_webhook):
        body, signature = signed_webhook({"entity": "event", "payload": {}})

        with pytest.raises(PaymentValidationError):
            receive_webhook(body, signature)

        assert not WebhookEvent.objects.exists()

    def test_queue_failure_still_stores(self, signed_webhook, captured_body, mock_process_task, db):
        mock_process_task.side_effect = ConnectionError("Broker unavailable")
        body, signature = signed_webhook(captured_body)

        received = receive_webhook(body, signature, "evt_noqueue")

        assert received.created
        assert not received.queued
        assert WebhookEvent.objects.get(event_id="evt_noqueue").status == WebhookEventStatus.PENDING
