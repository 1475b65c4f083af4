"""
Tests for webhook Celery tasks.

Tests cover:
- process_webhook_event task (mocked dispatch and real handlers)
- retry_failed_webhooks task
- cleanup_stuck_webhooks task
- cleanup_old_webhooks task
"""

from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch
from uuid import uuid4

import pytest
from django.utils import timezone

from core.services import ServiceResult
from payments.ledger import ledger
from payments.models import Payment, WebhookEvent
from payments.state_machines import PaymentStatus, WebhookEventStatus
from payments.tasks import (
    MAX_WEBHOOK_RETRIES,
    STUCK_PROCESSING_THRESHOLD_MINUTES,
    UNQUEUED_PENDING_THRESHOLD_MINUTES,
    cleanup_old_webhooks,
    cleanup_stuck_webhooks,
    process_webhook_event,
    retry_failed_webhooks,
)
from payments.tests.factories import WebhookEventFactory, gateway_payload


def _backdate(event, **fields):
    WebhookEvent.objects.filter(id=event.id).update(**fields)


# =============================================================================
# process_webhook_event Tests
# =============================================================================


class TestProcessWebhookEvent:
    """Tests for the process_webhook_event task."""

    def test_process_pending_event_success(self, pending_webhook_event):
        with patch("payments.webhooks.handlers.dispatch_webhook") as mock_dispatch:
            mock_dispatch.return_value = ServiceResult.success(None)

            result = process_webhook_event(str(pending_webhook_event.id))

        assert result["status"] == "processed"
        assert result["event_id"] == pending_webhook_event.event_id

        pending_webhook_event.refresh_from_db()
        assert pending_webhook_event.status == WebhookEventStatus.PROCESSED
        assert pending_webhook_event.processed_at is not None
        assert pending_webhook_event.retry_count == 1

    def test_skip_already_processed_event(self, processed_webhook_event):
        with patch("payments.webhooks.handlers.dispatch_webhook") as mock_dispatch:
            result = process_webhook_event(str(processed_webhook_event.id))

        assert result["status"] == "already_processed"
        mock_dispatch.assert_not_called()

    def test_event_not_found(self, db):
        result = process_webhook_event(str(uuid4()))

        assert result["status"] == "not_found"

    def test_handler_failure_marks_event_failed(self, pending_webhook_event):
        with patch("payments.webhooks.handlers.dispatch_webhook") as mock_dispatch:
            mock_dispatch.return_value = ServiceResult.failure(
                "Payment not found for webhook", error_code="PAYMENT_NOT_FOUND"
            )

            result = process_webhook_event(str(pending_webhook_event.id))

        assert result["status"] == "handler_failed"
        assert result["error"] == "Payment not found for webhook"

        pending_webhook_event.refresh_from_db()
        assert pending_webhook_event.status == WebhookEventStatus.FAILED
        assert pending_webhook_event.can_retry

    def test_exception_marks_event_failed_and_raises(self, pending_webhook_event):
        with patch("payments.webhooks.handlers.dispatch_webhook") as mock_dispatch:
            mock_dispatch.side_effect = RuntimeError("Database connection lost")

            with pytest.raises(RuntimeError, match="Database connection lost"):
                process_webhook_event(str(pending_webhook_event.id))

        pending_webhook_event.refresh_from_db()
        assert pending_webhook_event.status == WebhookEventStatus.FAILED
        assert pending_webhook_event.error_message == "RuntimeError: Database connection lost"

    def test_retry_of_failed_event_increments_count(self, failed_webhook_event):
        with patch("payments.webhooks.handlers.dispatch_webhook") as mock_dispatch:
            mock_dispatch.return_value = ServiceResult.success(None)

            process_webhook_event(str(failed_webhook_event.id))

        failed_webhook_event.refresh_from_db()
        assert failed_webhook_event.retry_count == 2
        assert failed_webhook_event.status == WebhookEventStatus.PROCESSED
        assert failed_webhook_event.error_message is None


class TestProcessWebhookEventHandlers:
    """The task running the registered handlers end to end."""

    def test_captured_event_credits_seller(self, payment, payment_payload, make_event):
        event = make_event(payment_payload("payment.captured", payment, payment_id="pay_task"))

        result = process_webhook_event(str(event.id))

        assert result["status"] == "processed"
        assert Payment.objects.get(pk=payment.pk).status == PaymentStatus.CAPTURED
        assert ledger.get_balance(payment.seller_id).pending_balance == Decimal("449.10")

    def test_webhook_before_order_insert_fails_for_retry(self, db, make_event):
        event = make_event(
            gateway_payload("payment.captured", payment={"id": "pay_early", "order_id": "order_late"})
        )

        result = process_webhook_event(str(event.id))

        assert result["status"] == "handler_failed"
        event.refresh_from_db()
        assert event.status == WebhookEventStatus.FAILED

    def test_unknown_event_type_is_processed(self, db, make_event):
        event = make_event(gateway_payload("settlement.processed"))

        assert process_webhook_event(str(event.id))["status"] == "processed"


# =============================================================================
# retry_failed_webhooks Tests
# =============================================================================


class TestRetryFailedWebhooks:
    """Tests for the retry_failed_webhooks task."""

    def test_queues_failed_webhooks_for_retry(self, failed_webhook_event, mock_process_task):
        result = retry_failed_webhooks()

        assert result["queued_count"] == 1
        mock_process_task.assert_called_once_with(str(failed_webhook_event.id))

    def test_skips_webhooks_at_max_retries(self, failed_webhook_event, mock_process_task):
        failed_webhook_event.retry_count = MAX_WEBHOOK_RETRIES
        failed_webhook_event.save()

        result = retry_failed_webhooks()

        assert result["queued_count"] == 0
        mock_process_task.assert_not_called()

    def test_skips_recent_pending_and_processed(
        self, pending_webhook_event, processed_webhook_event, mock_process_task
    ):
        result = retry_failed_webhooks()

        assert result["queued_count"] == 0
        mock_process_task.assert_not_called()

    def test_queues_pending_events_never_picked_up(self, pending_webhook_event, mock_process_task):
        _backdate(
            pending_webhook_event,
            created_at=timezone.now() - timedelta(minutes=UNQUEUED_PENDING_THRESHOLD_MINUTES + 1),
        )

        result = retry_failed_webhooks()

        assert result["queued_count"] == 1
        mock_process_task.assert_called_once_with(str(pending_webhook_event.id))

    def test_handles_queueing_error(self, failed_webhook_event, mock_process_task):
        mock_process_task.side_effect = ConnectionError("Broker unavailable")

        result = retry_failed_webhooks()

        assert result["queued_count"] == 0

    def test_processes_multiple_failed_webhooks(self, db, mock_process_task):
        WebhookEventFactory.create_batch(
            5,
            status=WebhookEventStatus.FAILED,
            error_message="Previous failure",
            retry_count=1,
        )

        result = retry_failed_webhooks()

        assert result["queued_count"] == 5
        assert mock_process_task.call_count == 5


# =============================================================================
# cleanup_stuck_webhooks Tests
# =============================================================================


class TestCleanupStuckWebhooks:
    """Tests for the cleanup_stuck_webhooks task."""

    @pytest.fixture
    def stale(self):
        return timezone.now() - timedelta(minutes=STUCK_PROCESSING_THRESHOLD_MINUTES + 5)

    def test_resets_stuck_processing_webhooks(self, db, stale):
        stuck_event = WebhookEventFactory(status=WebhookEventStatus.PROCESSING, retry_count=1)
        _backdate(stuck_event, updated_at=stale)

        result = cleanup_stuck_webhooks()

        assert result["reset_count"] == 1
        stuck_event.refresh_from_db()
        assert stuck_event.status == WebhookEventStatus.FAILED
        assert "timed out" in stuck_event.error_message
        assert stuck_event.can_retry

    def test_leaves_recent_processing_webhooks(self, db):
        recent_event = WebhookEventFactory(status=WebhookEventStatus.PROCESSING)

        result = cleanup_stuck_webhooks()

        assert result["reset_count"] == 0
        recent_event.refresh_from_db()
        assert recent_event.status == WebhookEventStatus.PROCESSING

    def test_only_affects_processing_status(self, pending_webhook_event, failed_webhook_event, stale):
        WebhookEvent.objects.filter(
            id__in=[pending_webhook_event.id, failed_webhook_event.id]
        ).update(updated_at=stale)

        result = cleanup_stuck_webhooks()

        assert result["reset_count"] == 0


# =============================================================================
# cleanup_old_webhooks Tests
# =============================================================================


class TestCleanupOldWebhooks:
    """Tests for the cleanup_old_webhooks task."""

    def test_deletes_old_processed_webhooks(self, db):
        old_event = WebhookEventFactory(
            status=WebhookEventStatus.PROCESSED,
            processed_at=timezone.now() - timedelta(days=100),
        )

        result = cleanup_old_webhooks(days=90)

        assert result["deleted_count"] == 1
        assert not WebhookEvent.objects.filter(id=old_event.id).exists()

    def test_keeps_recent_processed_webhooks(self, processed_webhook_event):
        result = cleanup_old_webhooks(days=90)

        assert result["deleted_count"] == 0
        assert WebhookEvent.objects.filter(id=processed_webhook_event.id).exists()

    def test_keeps_failed_webhooks(self, failed_webhook_event):
        old_date = timezone.now() - timedelta(days=100)
        _backdate(failed_webhook_event, created_at=old_date, updated_at=old_date)

        result = cleanup_old_webhooks(days=90)

        assert result["deleted_count"] == 0
        assert WebhookEvent.objects.filter(id=failed_webhook_event.id).exists()

    def test_respects_days_parameter(self, db):
        WebhookEventFactory(
            status=WebhookEventStatus.PROCESSED,
            processed_at=timezone.now() - timedelta(days=60),
        )

        assert cleanup_old_webhooks(days=90)["deleted_count"] == 0
        assert cleanup_old_webhooks(days=30)["deleted_count"] == 1
