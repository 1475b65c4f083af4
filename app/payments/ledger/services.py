"""
Balance ledger service for seller earnings.

This module provides the BalanceLedger class, the only code allowed to
change SellerBalance rows. Every operation is a single UPDATE statement
with F() expressions and, where money leaves a column, a guard in the
WHERE clause:

    UPDATE seller_balance
       SET available_balance = available_balance - :amount
     WHERE seller_id = :seller AND available_balance >= :amount

Concurrent writers for the same seller serialize on the row inside the
database, so callers never need an explicit lock and a debit either
fully applies or raises InsufficientBalance with nothing changed.

Usage:
    from payments.ledger import ledger, InsufficientBalance

    ledger.record_sale(seller_id, Decimal("449.10"))

    try:
        ledger.debit(seller_id, Decimal("300.00"))
    except InsufficientBalance:
        ...
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal
from django.db import IntegrityError, transaction
from django.db.models import F

from core.exceptions import ValidationError

from .exceptions import InsufficientBalance
from .models import SellerBalance
from .types import BalanceSnapshot

logger = logging.getLogger(__name__)


class BalanceLedger:
    """
    Service class for seller balance operations.

    All methods are static - no instance state is maintained.
    Amounts are positive Decimals in major units.
    """

    @staticmethod
    def _validate_amount(amount: Decimal) -> Decimal:
        if not isinstance(amount, Decimal):
            raise ValidationError(
                "Ledger amounts must be Decimal",
                error_code="INVALID_AMOUNT",
                details={"amount": repr(amount)},
            )
        if amount <= 0:
            raise ValidationError(
                "Ledger amounts must be positive",
                error_code="INVALID_AMOUNT",
                details={"amount": str(amount)},
            )
        return amount

    @staticmethod
    def _ensure_row(seller_id: uuid.UUID) -> None:
        """Create the seller's zero balance row if it does not exist yet."""
        if SellerBalance.objects.filter(seller_id=seller_id).exists():
            return
        try:
            with transaction.atomic():
                SellerBalance.objects.create(seller_id=seller_id)
        except IntegrityError:
            # Another writer created it first
            pass

    @staticmethod
    def credit(seller_id: uuid.UUID, amount: Decimal) -> None:
        """
        Add to available balance and total earnings.

        Always succeeds; the balance row is created if absent.
        """
        amount = BalanceLedger._validate_amount(amount)
        BalanceLedger._ensure_row(seller_id)
        SellerBalance.objects.filter(seller_id=seller_id).update(
            available_balance=F("available_balance") + amount,
            total_earnings=F("total_earnings") + amount,
        )
        logger.info(
            "Seller balance credited",
            extra={"seller_id": str(seller_id), "amount": str(amount)},
        )

    @staticmethod
    def record_sale(seller_id: uuid.UUID, amount: Decimal) -> None:
        """
        Add a sale's seller share to pending balance and total earnings.

        Funds stay pending until the hold window passes; see
        move_pending_to_available.
        """
        amount = BalanceLedger._validate_amount(amount)
        BalanceLedger._ensure_row(seller_id)
        SellerBalance.objects.filter(seller_id=seller_id).update(
            pending_balance=F("pending_balance") + amount,
            total_earnings=F("total_earnings") + amount,
        )
        logger.info(
            "Sale recorded to pending balance",
            extra={"seller_id": str(seller_id), "amount": str(amount)},
        )

    @staticmethod
    def move_pending_to_available(seller_id: uuid.UUID, amount: Decimal) -> None:
        """
        Move funds from pending to available.

        Raises:
            InsufficientBalance: pending balance is lower than amount
        """
        amount = BalanceLedger._validate_amount(amount)
        updated = SellerBalance.objects.filter(
            seller_id=seller_id,
            pending_balance__gte=amount,
        ).update(
            pending_balance=F("pending_balance") - amount,
            available_balance=F("available_balance") + amount,
        )
        if updated == 0:
            raise InsufficientBalance(seller_id, amount, balance_field="pending")
        logger.info(
            "Pending balance released",
            extra={"seller_id": str(seller_id), "amount": str(amount)},
        )

    @staticmethod
    def debit(seller_id: uuid.UUID, amount: Decimal) -> None:
        """
        Take funds from available balance.

        Never drives the balance below zero: either the whole amount is
        deducted or nothing is.

        Raises:
            InsufficientBalance: available balance is lower than amount
        """
        amount = BalanceLedger._validate_amount(amount)
        updated = SellerBalance.objects.filter(
            seller_id=seller_id,
            available_balance__gte=amount,
        ).update(
            available_balance=F("available_balance") - amount,
        )
        if updated == 0:
            raise InsufficientBalance(seller_id, amount, balance_field="available")
        logger.info(
            "Seller balance debited",
            extra={"seller_id": str(seller_id), "amount": str(amount)},
        )

    @staticmethod
    def get_balance(seller_id: uuid.UUID) -> BalanceSnapshot:
        """
        Read the seller's current balance.

        Returns a zero snapshot for sellers with no row yet.
        """
        balance = SellerBalance.objects.filter(seller_id=seller_id).first()
        if balance is None:
            return BalanceSnapshot.empty(seller_id)
        return BalanceSnapshot.from_model(balance)


# Singleton instance for convenient access
ledger = BalanceLedger()
