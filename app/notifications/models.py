"""
Notification models.

Each Notification is one rendered message to one recipient. Subject and
body are rendered at creation time and never change afterwards; only the
delivery fields move.

Delivery Flow:
    PENDING -> SENT
    PENDING -> SKIPPED (recipient has no email)
    PENDING -> FAILED (attempts exhausted)
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class RecipientType(models.TextChoices):
    BUYER = "buyer", "Buyer"
    SELLER = "seller", "Seller"


class NotificationKind(models.TextChoices):
    """What the message is about; selects the template."""

    PAYMENT_SUCCEEDED = "payment_succeeded", "Payment Succeeded"
    PRODUCT_DELIVERY = "product_delivery", "Product Delivery"
    NEW_SALE = "new_sale", "New Sale"
    PAYMENT_FAILED = "payment_failed", "Payment Failed"
    REFUND_PROCESSED = "refund_processed", "Refund Processed"
    REFUND_ISSUED = "refund_issued", "Refund Issued"


class DeliveryStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    SENT = "sent", "Sent"
    SKIPPED = "skipped", "Skipped"
    FAILED = "failed", "Failed"


class Notification(UUIDPrimaryKeyMixin, BaseModel):
    """
    A rendered email to a buyer or seller.

    Fields:
        recipient_type/recipient_id: Catalog party receiving the message
        recipient_email: Address captured at creation time
        kind: NotificationKind
        subject/body: Fully rendered strings
        context: Values the templates were rendered with
        status: Delivery status
        attempt_count: Delivery attempts made so far
        last_error: Error from the most recent failed attempt
        idempotency_key: Prevents queueing the same message twice
    """

    recipient_type = models.CharField(max_length=10, choices=RecipientType.choices)
    recipient_id = models.UUIDField(db_index=True)
    recipient_email = models.EmailField(null=True, blank=True)

    kind = models.CharField(max_length=32, choices=NotificationKind.choices, db_index=True)

    subject = models.CharField(max_length=255)
    body = models.TextField(blank=True, default="")
    context = models.JSONField(default=dict, blank=True)

    status = models.CharField(
        max_length=10,
        choices=DeliveryStatus.choices,
        default=DeliveryStatus.PENDING,
        db_index=True,
    )
    attempt_count = models.PositiveSmallIntegerField(default=0)
    last_error = models.TextField(null=True, blank=True)
    sent_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)

    idempotency_key = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        unique=True,
        help_text="Idempotency key to prevent duplicate notifications",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(
                fields=["recipient_type", "recipient_id", "-created_at"],
                name="notif_recipient_idx",
            ),
        ]

    def __str__(self) -> str:
        return f"Notification({self.kind}) -> {self.recipient_type}:{self.recipient_id} [{self.status}]"
