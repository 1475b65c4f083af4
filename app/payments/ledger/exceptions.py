"""
Ledger-specific exceptions for balance operations.

Exception Hierarchy:
    BusinessError (core)
    └── InsufficientBalance - Conditional balance update matched no row

Usage:
    from payments.ledger.exceptions import InsufficientBalance

    try:
        ledger.debit(seller_id, Decimal("300.00"))
    except InsufficientBalance as e:
        logger.warning(f"Need {e.required} from {e.balance_field}")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BusinessError

if TYPE_CHECKING:
    import uuid
    from decimal import Decimal


class InsufficientBalance(BusinessError):
    """
    Raised when a guarded balance update affected no rows.

    Either the seller has no balance row or the guarded column holds less
    than the requested amount. Nothing was changed.

    Attributes:
        seller_id: Seller whose balance was checked
        required: Amount the operation needed
        balance_field: "available" or "pending"
    """

    default_error_code: str = "INSUFFICIENT_BALANCE"

    def __init__(
        self,
        seller_id: uuid.UUID,
        required: Decimal,
        balance_field: str = "available",
    ):
        self.seller_id = seller_id
        self.required = required
        self.balance_field = balance_field
        super().__init__(
            f"Insufficient {balance_field} balance for seller {seller_id}",
            details={
                "seller_id": str(seller_id),
                "required": str(required),
                "balance_field": balance_field,
            },
        )
