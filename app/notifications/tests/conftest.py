"""
Test configuration and fixtures for notification tests.

Payment fixtures (payment, captured_payment, ...) come from
payments/conftest.py and are not visible here, so the ones needed are
built from factories.

Usage:
    def test_example(pending_notification, mailoutbox):
        deliver_notification(str(pending_notification.id))
        assert len(mailoutbox) == 1
"""

from decimal import Decimal

import pytest

from catalog.tests.factories import BuyerFactory, ProductFactory, SellerFactory
from notifications.models import DeliveryStatus
from notifications.tests.factories import NotificationFactory
from payments.tests.factories import PaymentFactory, RefundFactory


# =============================================================================
# Party Fixtures
# =============================================================================


@pytest.fixture
def seller(db):
    return SellerFactory(name="Pixel Press", email="sales@pixelpress.example")


@pytest.fixture
def buyer(db):
    return BuyerFactory(name="Asha Rao", email="asha@example.com")


@pytest.fixture
def product(seller):
    return ProductFactory(seller_id=seller.id, title="Icon Pack", price=Decimal("1499.00"))


# =============================================================================
# Payment Fixtures
# =============================================================================


@pytest.fixture
def payment(product, buyer):
    """Payment for `product` by `buyer`, paid by UPI."""
    return PaymentFactory(
        product=product,
        buyer_id=buyer.id,
        amount=Decimal("1499.00"),
        payment_method="upi",
        receipt="rcpt_icons_01",
        gateway_payment_id="pay_icons01",
    )


@pytest.fixture
def refund(payment):
    return RefundFactory(
        payment=payment,
        gateway_refund_id="rfnd_icons01",
        amount=Decimal("500.00"),
        reason="Duplicate purchase",
    )


# =============================================================================
# Notification Fixtures
# =============================================================================


@pytest.fixture
def pending_notification(db):
    return NotificationFactory(recipient_email="asha@example.com", subject="Payment Successful")


@pytest.fixture
def sent_notification(db):
    return NotificationFactory(status=DeliveryStatus.SENT, attempt_count=1)
