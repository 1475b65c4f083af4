"""
Data types for ledger operations.

Types:
    BalanceSnapshot: Read-only view of a seller's balance

Usage:
    from payments.ledger import ledger

    snapshot = ledger.get_balance(seller_id)
    print(snapshot.available_balance)
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from .models import SellerBalance


@dataclass(frozen=True)
class BalanceSnapshot:
    """
    Point-in-time copy of a SellerBalance row.

    Attributes:
        seller_id: Seller the balance belongs to
        available_balance: Withdrawable now
        pending_balance: Inside the hold window
        total_earnings: Lifetime seller share
    """

    seller_id: uuid.UUID
    available_balance: Decimal
    pending_balance: Decimal
    total_earnings: Decimal
    last_payout_at: datetime | None = None
    next_payout_date: date | None = None

    @classmethod
    def empty(cls, seller_id: uuid.UUID) -> BalanceSnapshot:
        zero = Decimal("0.00")
        return cls(seller_id=seller_id, available_balance=zero, pending_balance=zero, total_earnings=zero)

    @classmethod
    def from_model(cls, balance: SellerBalance) -> BalanceSnapshot:
        return cls(
            seller_id=balance.seller_id,
            available_balance=balance.available_balance,
            pending_balance=balance.pending_balance,
            total_earnings=balance.total_earnings,
            last_payout_at=balance.last_payout_at,
            next_payout_date=balance.next_payout_date,
        )

    def as_dict(self) -> dict[str, Any]:
        return asdict(self)
