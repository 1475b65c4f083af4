"""
Ledger - seller balances and the payment transaction log.

The ledger has two parts: an append-only PaymentTransaction log and a
SellerBalance aggregate that is changed only through guarded
single-statement updates.

Public API:
    Models:
        PaymentTransaction - Immutable credit/debit entries
        SellerBalance - Per-seller available/pending/total aggregate

    Service:
        ledger - Singleton instance of BalanceLedger
        BalanceLedger - Class with all balance operations

    Types:
        BalanceSnapshot - Read-only balance view

    Exceptions:
        InsufficientBalance - Guarded update matched no row

Usage:
    from payments.ledger import ledger, InsufficientBalance

    ledger.record_sale(seller_id, Decimal("449.10"))
    ledger.move_pending_to_available(seller_id, Decimal("449.10"))

    try:
        ledger.debit(seller_id, Decimal("600.00"))
    except InsufficientBalance as e:
        print(f"Need {e.required} from {e.balance_field}")
"""

from .exceptions import InsufficientBalance
from .models import PaymentTransaction, SellerBalance
from .services import BalanceLedger, ledger
from .types import BalanceSnapshot

__all__ = [
    # Models
    "PaymentTransaction",
    "SellerBalance",
    # Service
    "ledger",
    "BalanceLedger",
    # Types
    "BalanceSnapshot",
    # Exceptions
    "InsufficientBalance",
]
