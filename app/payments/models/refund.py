"""
Refund model for tracking money returned to buyers.

A Refund mirrors one gateway refund entity. One Payment can have several
partial refunds; the sum of refunds that have not failed never exceeds
the payment amount.

Usage:
    from payments.models import Refund

    refund = Refund.objects.create(
        payment=payment,
        gateway_refund_id="rfnd_123",
        amount=Decimal("300.00"),
        status=RefundStatus.PROCESSED,
        reason="Duplicate purchase",
    )
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import Q, Sum
from django.db.models.functions import Coalesce
from django.utils import timezone

from django_fsm import FSMField, transition

from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin

from payments.state_machines import RefundSpeed, RefundStatus


class RefundQuerySet(models.QuerySet):
    def committed(self):
        """Refunds that hold part of the payment amount (pending or processed)."""
        return self.exclude(status=RefundStatus.FAILED)

    def total_amount(self) -> Decimal:
        return self.aggregate(
            total=Coalesce(Sum("amount"), Decimal("0"), output_field=models.DecimalField())
        )["total"]


class Refund(UUIDPrimaryKeyMixin, BaseModel):
    """
    Money returned to a buyer for a captured payment.

    State Flow:
        PENDING -> PROCESSED
        PENDING -> FAILED

    Fields:
        payment: Source Payment being refunded
        gateway_refund_id: Gateway refund ID (rfnd_xxx), unique
        amount: Refund amount in major units
        status: Mirrors the gateway refund status
        reason: Buyer/admin-facing refund reason
        speed_requested/speed_processed: Refund speed asked for and used
        initiated_by: Who asked for the refund (buyer, seller, admin, system)
        idempotency_key: Key sent to the gateway with the refund request
        processed_at: When the gateway reported the refund processed
    """

    payment = models.ForeignKey(
        "payments.Payment",
        on_delete=models.PROTECT,
        related_name="refunds",
        help_text="Payment being refunded",
    )

    gateway_refund_id = models.CharField(
        max_length=64,
        unique=True,
        help_text="Gateway refund ID (rfnd_xxx)",
    )

    amount = models.DecimalField(max_digits=12, decimal_places=2)
    currency = models.CharField(max_length=3, default="INR")

    status = FSMField(
        default=RefundStatus.PENDING,
        choices=RefundStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current refund state, mirrors the gateway",
    )

    reason = models.CharField(max_length=255, blank=True, default="")

    speed_requested = models.CharField(
        max_length=16,
        choices=RefundSpeed.choices,
        default=RefundSpeed.NORMAL,
    )
    speed_processed = models.CharField(max_length=16, null=True, blank=True)

    initiated_by = models.CharField(
        max_length=32,
        default="buyer",
        help_text="Who requested the refund (buyer, seller, admin, system, gateway)",
    )

    idempotency_key = models.CharField(max_length=255, null=True, blank=True, db_index=True)
    receipt = models.CharField(max_length=40, null=True, blank=True)
    notes = models.JSONField(default=dict, blank=True)

    processed_at = models.DateTimeField(null=True, blank=True)

    objects = RefundQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Refund"
        verbose_name_plural = "Refunds"
        indexes = [
            models.Index(fields=["payment", "status"], name="refund_payment_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="refund_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Refund({self.gateway_refund_id}, {self.status}, {self.amount} {self.currency})"

    @property
    def is_processed(self) -> bool:
        return self.status == RefundStatus.PROCESSED

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(field=status, source=RefundStatus.PENDING, target=RefundStatus.PROCESSED)
    def process(self, speed_processed: str | None = None):
        """Transition: PENDING -> PROCESSED"""
        self.processed_at = timezone.now()
        if speed_processed:
            self.speed_processed = speed_processed

    @transition(field=status, source=RefundStatus.PENDING, target=RefundStatus.FAILED)
    def fail(self):
        """Transition: PENDING -> FAILED"""
