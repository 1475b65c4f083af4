"""
Ledger models for seller earnings.

This module defines the two halves of the ledger:
- PaymentTransaction: Append-only log of credits and debits per payment
- SellerBalance: Aggregate balance per seller, changed only through
  conditional single-statement updates (see payments.ledger.services)

Usage:
    from payments.ledger.models import PaymentTransaction, SellerBalance

    balance = SellerBalance.objects.filter(seller_id=seller_id).first()
    credits = PaymentTransaction.objects.filter(payment=payment, type=TransactionType.CREDIT)
"""

from __future__ import annotations

from decimal import Decimal

from django.db import models
from django.db.models import Q

from core.exceptions import ConflictError
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel

from payments.state_machines import TransactionStatus, TransactionType


class SellerBalance(BaseModel):
    """
    Earnings aggregate for one seller.

    Fields:
        seller_id: Seller identifier (primary key)
        available_balance: Withdrawable now
        pending_balance: Earned but still inside the hold window
        total_earnings: Lifetime seller share credited
        last_payout_at: When the last payout left
        next_payout_date: Scheduled next payout

    Constraints:
        - available_balance >= 0
        - pending_balance >= 0

    Note:
        Never read-modify-write these columns. Use BalanceLedger, whose
        UPDATE ... WHERE balance >= amount statements keep concurrent
        writers consistent without row locks.
    """

    seller_id = models.UUIDField(
        primary_key=True,
        help_text="Seller this balance belongs to",
    )

    available_balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    pending_balance = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))
    total_earnings = models.DecimalField(max_digits=14, decimal_places=2, default=Decimal("0.00"))

    last_payout_at = models.DateTimeField(null=True, blank=True)
    next_payout_date = models.DateField(null=True, blank=True)

    class Meta:
        verbose_name = "Seller Balance"
        verbose_name_plural = "Seller Balances"
        constraints = [
            models.CheckConstraint(
                condition=Q(available_balance__gte=0),
                name="seller_balance_available_non_negative",
            ),
            models.CheckConstraint(
                condition=Q(pending_balance__gte=0),
                name="seller_balance_pending_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"SellerBalance({self.seller_id}, available={self.available_balance}, pending={self.pending_balance})"


class PaymentTransaction(UUIDPrimaryKeyMixin, BaseModel):
    """
    An immutable ledger entry tied to a payment.

    Credits record the seller share of a captured payment; debits record
    refund clawbacks. Entries are never updated - corrections are new
    entries.

    Fields:
        payment: Payment the entry belongs to
        seller_id: Seller whose balance the entry affects
        amount: Signed amount (positive credit, negative debit)
        type: credit or debit
        status: completed, or failed for a clawback that could not apply
        gateway_refund_id: Refund a debit belongs to
        idempotency_key: Unique key preventing duplicate entries

    Idempotency keys:
        payment:{payment_id}:credit
        refund:{gateway_refund_id}:debit
    """

    payment = models.ForeignKey(
        "payments.Payment",
        on_delete=models.PROTECT,
        related_name="transactions",
    )

    seller_id = models.UUIDField(db_index=True)

    amount = models.DecimalField(
        max_digits=12,
        decimal_places=2,
        help_text="Signed amount: positive for credits, negative for debits",
    )

    type = models.CharField(max_length=10, choices=TransactionType.choices)

    status = models.CharField(
        max_length=10,
        choices=TransactionStatus.choices,
        default=TransactionStatus.COMPLETED,
        db_index=True,
    )

    description = models.TextField(null=True, blank=True)

    gateway_refund_id = models.CharField(
        max_length=64,
        null=True,
        blank=True,
        db_index=True,
    )

    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Unique key to prevent duplicate entries",
    )

    notes = models.JSONField(default=dict, blank=True)

    completed_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payment Transaction"
        verbose_name_plural = "Payment Transactions"
        indexes = [
            models.Index(fields=["payment", "type"], name="txn_payment_type_idx"),
            models.Index(fields=["seller_id", "created_at"], name="txn_seller_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(type=TransactionType.CREDIT, amount__gt=0)
                    | Q(type=TransactionType.DEBIT, amount__lt=0)
                ),
                name="payment_transaction_amount_sign_matches_type",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.get_type_display()}: {self.amount} ({self.status})"

    @staticmethod
    def credit_key(payment_id) -> str:
        return f"payment:{payment_id}:credit"

    @staticmethod
    def debit_key(gateway_refund_id: str) -> str:
        return f"refund:{gateway_refund_id}:debit"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise ConflictError(
                "Ledger transactions are immutable",
                error_code="TRANSACTION_IMMUTABLE",
                details={"transaction_id": str(self.pk)},
            )
        super().save(*args, **kwargs)
