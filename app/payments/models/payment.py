"""
Payment model for the buyer-to-seller payment lifecycle.

A Payment is created when the buyer starts checkout (one gateway order)
and tracks the payment through capture, earnings release, refund or
failure.

Usage:
    from payments.models import Payment
    from payments.state_machines import PaymentStatus

    payment = Payment.objects.create(
        gateway_order_id="order_abc",
        receipt="rcpt_1718000000000_a1b2c3",
        product_id=product.id,
        seller_id=product.seller_id,
        buyer_id=buyer.id,
        amount=Decimal("499.00"),
    )

    # State transitions using django-fsm
    payment.capture(method="upi")  # created -> captured
    payment.save()
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import Q
from django.utils import timezone

from django_fsm import FSMField, transition

from core.exceptions import ConflictError
from core.models import BaseModel
from core.model_mixins import UUIDPrimaryKeyMixin, VersionedMixin

from payments.state_machines import PaymentStatus


class Payment(UUIDPrimaryKeyMixin, VersionedMixin, BaseModel):
    """
    One buyer payment for one product.

    Catalog parties are referenced by plain UUID columns and loaded
    explicitly through catalog.loaders; there are no ORM relations
    between a Payment and the catalog.

    State Flow:
        CREATED -> AUTHORIZED -> CAPTURED -> COMPLETED

    Failure Flow:
        CREATED/AUTHORIZED -> FAILED

    Refund Flow:
        CAPTURED/COMPLETED -> REFUNDED (once refunds cover the amount)

    Fields:
        gateway_order_id: Gateway order id (order_xxx), immutable
        gateway_payment_id: Gateway payment id (pay_xxx), set on capture
        gateway_signature: Signature submitted with the confirmation
        receipt: Merchant receipt reference sent with the order
        product_id/seller_id/buyer_id: Catalog identifiers
        amount: Amount in major units, immutable
        status: Current FSM state
        earnings_released_at: When the seller share moved to available
        notes: Flexible JSON storage
        version: Bumped on every save

    Note:
        The status field is protected: change it only through the
        transition methods, inside transaction.atomic() with the row
        locked by select_for_update().
    """

    # ==========================================================================
    # Gateway References
    # ==========================================================================

    gateway_order_id = models.CharField(
        max_length=64,
        unique=True,
        help_text="Gateway order ID (order_xxx), never changes after creation",
    )

    gateway_payment_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        unique=True,
        help_text="Gateway payment ID (pay_xxx), set once the buyer pays",
    )

    gateway_signature = models.CharField(
        max_length=128,
        null=True,
        blank=True,
        help_text="Signature submitted with the client-side confirmation",
    )

    receipt = models.CharField(
        max_length=40,
        help_text="Merchant receipt reference sent with the gateway order",
    )

    # ==========================================================================
    # Catalog Identifiers
    # ==========================================================================

    product_id = models.UUIDField(db_index=True, help_text="Purchased product")
    seller_id = models.UUIDField(db_index=True, help_text="Seller receiving the earnings")
    buyer_id = models.UUIDField(db_index=True, help_text="Buyer making the payment")

    # ==========================================================================
    # Amount & Status
    # ==========================================================================

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Payment amount in major units, never changes after creation",
    )

    currency = models.CharField(
        max_length=3,
        default="INR",
        help_text="ISO 4217 currency code",
    )

    status = FSMField(
        default=PaymentStatus.CREATED,
        choices=PaymentStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the payment (managed by FSM)",
    )

    payment_method = models.CharField(
        max_length=32,
        null=True,
        blank=True,
        help_text="Method reported by the gateway (card, upi, netbanking, ...)",
    )

    # ==========================================================================
    # State Timestamps
    # ==========================================================================

    captured_at = models.DateTimeField(null=True, blank=True)
    refunded_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When refunds reached the full payment amount",
    )
    failed_at = models.DateTimeField(null=True, blank=True)
    earnings_released_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When the seller share moved from pending to available",
    )

    # ==========================================================================
    # Metadata & Error Info
    # ==========================================================================

    error_description = models.TextField(
        null=True,
        blank=True,
        help_text="Failure reason reported by the gateway",
    )

    notes = models.JSONField(
        default=dict,
        blank=True,
        help_text="Order notes and buyer-supplied description",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment"
        verbose_name_plural = "Payments"
        indexes = [
            models.Index(fields=["seller_id", "status"], name="payment_seller_status_idx"),
            models.Index(fields=["buyer_id", "created_at"], name="payment_buyer_created_idx"),
            models.Index(fields=["status", "captured_at"], name="payment_status_captured_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount__gt=0),
                name="payment_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Payment({self.gateway_order_id}, {self.status}, {self.amount} {self.currency})"

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_captured(self) -> bool:
        return self.status in PaymentStatus.captured_family()

    @property
    def is_terminal(self) -> bool:
        return self.status in PaymentStatus.terminal()

    @property
    def is_refundable(self) -> bool:
        """Captured (or completed) and not yet fully refunded."""
        return self.is_captured and self.refunded_at is None

    # ==========================================================================
    # Persistence
    # ==========================================================================

    IMMUTABLE_FIELDS = ("gateway_order_id", "amount")

    def save(self, *args, **kwargs):
        if not self._state.adding:
            self._check_immutable_fields(kwargs.get("update_fields"))
        super().save(*args, **kwargs)

    def _check_immutable_fields(self, update_fields=None) -> None:
        fields = [
            name
            for name in self.IMMUTABLE_FIELDS
            if update_fields is None or name in update_fields
        ]
        if not fields:
            return

        stored = Payment.objects.filter(pk=self.pk).values(*fields).first()
        if stored is None:
            return

        changed = []
        if "gateway_order_id" in stored and stored["gateway_order_id"] != self.gateway_order_id:
            changed.append("gateway_order_id")
        if "amount" in stored and stored["amount"] != Decimal(str(self.amount)):
            changed.append("amount")

        if changed:
            raise ConflictError(
                f"Payment {', '.join(changed)} cannot change after creation",
                error_code="PAYMENT_IMMUTABLE_FIELD",
                details={"payment_id": str(self.pk), "fields": changed},
            )

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=PaymentStatus.CREATED,
        target=PaymentStatus.AUTHORIZED,
    )
    def authorize(self, method: str | None = None):
        """
        Transition: CREATED -> AUTHORIZED

        Called from the payment.authorized webhook.
        """
        if method:
            self.payment_method = method

    @transition(
        field=status,
        source=[PaymentStatus.CREATED, PaymentStatus.AUTHORIZED],
        target=PaymentStatus.CAPTURED,
    )
    def capture(self, method: str | None = None):
        """
        Mark the payment as captured.

        Transition: CREATED/AUTHORIZED -> CAPTURED

        Captures may arrive before the authorized webhook, so CREATED is
        an allowed source.
        """
        self.captured_at = timezone.now()
        if method:
            self.payment_method = method

    @transition(
        field=status,
        source=PaymentStatus.CAPTURED,
        target=PaymentStatus.COMPLETED,
    )
    def complete(self):
        """
        Transition: CAPTURED -> COMPLETED

        Called when the seller share leaves the hold window and moves to
        available balance.
        """
        self.earnings_released_at = timezone.now()

    @transition(
        field=status,
        source=[PaymentStatus.CAPTURED, PaymentStatus.COMPLETED],
        target=PaymentStatus.REFUNDED,
    )
    def refund(self):
        """
        Transition: CAPTURED/COMPLETED -> REFUNDED

        Called once refunds cover the full payment amount. Partial
        refunds leave the status unchanged.
        """
        self.refunded_at = timezone.now()

    @transition(
        field=status,
        source=[PaymentStatus.CREATED, PaymentStatus.AUTHORIZED],
        target=PaymentStatus.FAILED,
    )
    def fail(self, reason: str | None = None):
        """
        Mark payment as failed.

        Transition: CREATED/AUTHORIZED -> FAILED

        Only the gateway's payment.failed webhook calls this; a bad
        client-side signature never fails a payment.
        """
        self.failed_at = timezone.now()
        if reason:
            self.error_description = reason
