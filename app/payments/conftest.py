"""
Shared pytest fixtures for the payments app.

Fixtures here are visible to every test package under payments/
(tests, ledger, webhooks, workers). Payments are provided in each FSM
state, built through the real transitions and the capture unit of work
so that ledger rows and balances match what production would hold.

Sections:
    - Catalog Fixtures
    - Gateway Fixtures
    - Payment State Fixtures
    - API Fixtures

Usage:
    def test_refund(captured_payment, gateway_client):
        gateway_client.refund.return_value = make_gateway_refund(captured_payment, Decimal("100.00"))
        ...
"""

import json
import uuid
from datetime import timedelta
from decimal import Decimal
from unittest.mock import MagicMock

import pytest
import requests
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from catalog.tests.factories import BuyerFactory, ProductFactory, SellerFactory
from payments.gateway import GatewayConfig, RazorpayClient
from payments.ledger import ledger
from payments.models import Payment
from payments.services import (
    PaymentOrderService,
    PaymentQueryService,
    PaymentVerificationService,
    RefundService,
)
from payments.services.capture import apply_capture
from payments.tests.factories import PaymentFactory
from payments.tests.gateway_stubs import TEST_KEY_SECRET, TEST_WEBHOOK_SECRET, webhook_signature

INJECTABLE_SERVICES = (
    PaymentOrderService,
    PaymentVerificationService,
    RefundService,
    PaymentQueryService,
)


# =============================================================================
# Catalog Fixtures
# =============================================================================


@pytest.fixture
def seller(db):
    return SellerFactory()


@pytest.fixture
def buyer(db):
    return BuyerFactory()


@pytest.fixture
def product(db, seller):
    """Published 499.00 INR product owned by `seller`."""
    return ProductFactory(seller_id=seller.id, price=Decimal("499.00"))


# =============================================================================
# Gateway Fixtures
# =============================================================================


@pytest.fixture
def gateway_config():
    return GatewayConfig(
        key_id="rzp_test_key",
        key_secret=TEST_KEY_SECRET,
        webhook_secret=TEST_WEBHOOK_SECRET,
        base_url="https://gateway.test/v1",
    )


@pytest.fixture
def gateway_client(gateway_config, mocker):
    """
    RazorpayClient with its API calls mocked and real signature checks.

    Injected into every payment service for the duration of the test.
    Set return values on create_order/capture/refund/fetch_payment.
    """
    client = RazorpayClient(gateway_config, session=MagicMock(spec=requests.Session))
    for name in ("create_order", "capture", "refund", "fetch_payment"):
        mocker.patch.object(client, name)

    for service in INJECTABLE_SERVICES:
        service.set_gateway_client(client)
    yield client
    for service in INJECTABLE_SERVICES:
        service.set_gateway_client(None)


# =============================================================================
# Payment State Fixtures
# =============================================================================


@pytest.fixture
def payment(db, product, buyer):
    """Payment in CREATED state for `product`, bought by `buyer`."""
    return PaymentFactory(product=product, buyer_id=buyer.id)


@pytest.fixture
def authorized_payment(payment):
    payment.authorize(method="card")
    payment.save()
    return payment


@pytest.fixture
def captured_payment(payment):
    """
    CAPTURED payment with its seller credit recorded.

    Seller balance after: pending 449.10, total 449.10.
    """
    outcome = apply_capture(
        payment.id,
        gateway_payment_id=f"pay_{uuid.uuid4().hex[:14]}",
        method="upi",
    )
    return outcome.payment


@pytest.fixture
def completed_payment(captured_payment):
    """
    COMPLETED payment whose earnings have moved to available.

    Seller balance after: available 449.10, pending 0.00.
    """
    payment = Payment.objects.get(pk=captured_payment.pk)
    ledger.move_pending_to_available(payment.seller_id, Decimal("449.10"))
    payment.complete()
    payment.save()
    return payment


@pytest.fixture
def failed_payment(payment):
    payment.fail(reason="Card declined by issuer")
    payment.save()
    return payment


@pytest.fixture
def matured_payment(captured_payment):
    """CAPTURED payment whose capture is older than the earnings hold."""
    Payment.objects.filter(pk=captured_payment.pk).update(
        captured_at=timezone.now() - timedelta(days=8)
    )
    return Payment.objects.get(pk=captured_payment.pk)


# =============================================================================
# Webhook Fixtures
# =============================================================================


@pytest.fixture
def signed_webhook():
    """
    Encode a webhook body and sign it like the gateway does.

    Returns (raw_body, signature).
    """

    def _build(payload: dict) -> tuple[bytes, str]:
        body = json.dumps(payload).encode()
        return body, webhook_signature(body)

    return _build


# =============================================================================
# API Fixtures
# =============================================================================


@pytest.fixture
def api_user(db):
    return get_user_model().objects.create_user(username="api-user", password="testpass123")


@pytest.fixture
def staff_user(db):
    return get_user_model().objects.create_user(
        username="staff-user", password="testpass123", is_staff=True
    )


@pytest.fixture
def api_client(api_user):
    client = APIClient()
    client.force_authenticate(user=api_user)
    return client


@pytest.fixture
def anonymous_client():
    return APIClient()
