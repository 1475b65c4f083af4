"""
WebhookEvent model for gateway webhook event tracking.

Stores every verified webhook delivery for idempotent processing and
audit trails. The unique event_id constraint ensures redelivered
webhooks are detected and handled correctly.

Usage:
    from payments.models import WebhookEvent

    event, created = WebhookEvent.objects.get_or_create(
        event_id="evt_1234567890",
        defaults={
            "event_type": "payment.captured",
            "payload": webhook_payload,
        },
    )

    if not created and event.is_processed:
        # Redelivery - already processed
        return HttpResponse(status=200)
"""

from __future__ import annotations

from django.db import models
from django.utils import timezone

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import WebhookEventStatus

MAX_WEBHOOK_RETRIES = 5


class WebhookEvent(UUIDPrimaryKeyMixin, BaseModel):
    """
    Tracks gateway webhook events for idempotent processing.

    Stores the full webhook payload and processing status to:
    1. Prevent duplicate handling (idempotency)
    2. Enable retry logic for failed events
    3. Provide audit trail for debugging

    Processing Flow:
        1. Webhook arrives, verify signature over the raw body
        2. Insert/get WebhookEvent with event_id
        3. If exists and PROCESSED -> return 200 (duplicate)
        4. Queue processing task, return 200
        5. Task sets PROCESSING, routes to handler
        6. Task sets PROCESSED or FAILED
        7. If FAILED, retry task will pick up later

    Fields:
        event_id: X-Razorpay-Event-Id header, or "{event}:{entity_id}"
        event_type: Gateway event name (payment.captured, refund.processed, ...)
        payload: Full JSON body
        status: Processing status
        processed_at: When event was successfully processed
        error_message: Error details if processing failed
        retry_count: Number of processing attempts
    """

    # ==========================================================================
    # Event Identification
    # ==========================================================================

    event_id = models.CharField(
        max_length=255,
        unique=True,
        help_text="Gateway event ID - unique constraint for idempotency",
    )

    event_type = models.CharField(
        max_length=100,
        db_index=True,
        help_text="Gateway event type (e.g., 'payment.captured')",
    )

    payload = models.JSONField(help_text="Full webhook payload (JSON)")

    # ==========================================================================
    # Processing Status
    # ==========================================================================

    status = models.CharField(
        max_length=20,
        choices=WebhookEventStatus.choices,
        default=WebhookEventStatus.PENDING,
        db_index=True,
    )

    processed_at = models.DateTimeField(null=True, blank=True)

    error_message = models.TextField(null=True, blank=True)

    retry_count = models.PositiveSmallIntegerField(
        default=0,
        help_text="Number of processing attempts",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Webhook Event"
        verbose_name_plural = "Webhook Events"
        indexes = [
            models.Index(fields=["status", "created_at"], name="webhook_status_created_idx"),
            models.Index(fields=["event_type", "created_at"], name="webhook_type_created_idx"),
            models.Index(fields=["status", "retry_count"], name="webhook_status_retry_idx"),
        ]

    def __str__(self) -> str:
        return f"WebhookEvent({self.event_id}, {self.event_type})"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_processed(self) -> bool:
        return self.status == WebhookEventStatus.PROCESSED

    @property
    def is_failed(self) -> bool:
        return self.status == WebhookEventStatus.FAILED

    @property
    def can_retry(self) -> bool:
        """Failed with fewer than MAX_WEBHOOK_RETRIES attempts."""
        return self.is_failed and self.retry_count < MAX_WEBHOOK_RETRIES

    # ==========================================================================
    # Helper Methods
    # ==========================================================================

    def mark_processing(self) -> None:
        """Note: Does not save - caller must save after calling."""
        self.status = WebhookEventStatus.PROCESSING
        self.retry_count += 1

    def mark_processed(self) -> None:
        """Note: Does not save - caller must save after calling."""
        self.status = WebhookEventStatus.PROCESSED
        self.processed_at = timezone.now()
        self.error_message = None

    def mark_failed(self, error_message: str) -> None:
        """Note: Does not save - caller must save after calling."""
        self.status = WebhookEventStatus.FAILED
        self.error_message = error_message

    def get_entity(self, kind: str) -> dict:
        """
        Extract an entity from the payload.

        Gateway payloads nest entities as payload.<kind>.entity, e.g.
        payload.payment.entity or payload.refund.entity.

        Returns:
            The entity dict, or {} when absent
        """
        try:
            entity = self.payload.get("payload", {}).get(kind, {}).get("entity", {})
        except (AttributeError, TypeError):
            return {}
        return entity if isinstance(entity, dict) else {}

    def get_object_id(self) -> str | None:
        """Return the id of the refund, payment or dispute entity, in that order."""
        for kind in ("refund", "payment", "dispute"):
            entity_id = self.get_entity(kind).get("id")
            if entity_id:
                return entity_id
        return None
