"""
Pytest fixtures for ledger tests.

Sections:
    - Test Data Fixtures: seller ids
    - Balance Fixtures: pre-seeded SellerBalance rows
"""

import uuid
from decimal import Decimal

import pytest

from payments.ledger.tests.factories import SellerBalanceFactory


# ==========================================================================
# Test Data Fixtures
# ==========================================================================


@pytest.fixture
def seller_id():
    return uuid.uuid4()


# ==========================================================================
# Balance Fixtures
# ==========================================================================


@pytest.fixture
def funded_balance(db, seller_id):
    """Seller with 500.00 available and 200.00 pending."""
    return SellerBalanceFactory(
        seller_id=seller_id,
        available_balance=Decimal("500.00"),
        pending_balance=Decimal("200.00"),
        total_earnings=Decimal("700.00"),
    )
