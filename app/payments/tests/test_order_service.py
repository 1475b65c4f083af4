"""
Tests for PaymentOrderService.

The gateway client is the mocked `gateway_client` fixture; these tests
check what reaches the gateway and what ends up in the database.
"""

import uuid
from decimal import Decimal

import pytest

from catalog.exceptions import BuyerNotFoundError, ProductNotFoundError, SellerNotFoundError
from catalog.models import Seller
from catalog.tests.factories import ProductFactory
from payments.exceptions import GatewayUnavailableError, PaymentValidationError
from payments.models import Payment
from payments.services import CreateOrderParams, PaymentOrderService
from payments.services.order_service import generate_receipt
from payments.state_machines import PaymentStatus
from payments.tests.gateway_stubs import make_gateway_order


@pytest.fixture
def order_params(product, buyer):
    return CreateOrderParams(product_id=product.id, buyer_id=buyer.id)


class TestGenerateReceipt:
    def test_format(self):
        receipt = generate_receipt()

        prefix, millis, suffix = receipt.split("_")
        assert prefix == "rcpt"
        assert millis.isdigit()
        assert len(suffix) == 6
        assert len(receipt) <= 40

    def test_receipts_differ(self):
        assert generate_receipt() != generate_receipt()


class TestValidateAmount:
    @pytest.mark.parametrize("value", ["0", "-5", "abc", None, "NaN", "1.001"])
    def test_rejects_bad_amounts(self, value):
        with pytest.raises(PaymentValidationError) as exc_info:
            PaymentOrderService.validate_amount(value)

        assert exc_info.value.error_code == "INVALID_AMOUNT"

    @pytest.mark.parametrize("value", ["0.50", "10000000.01"])
    def test_rejects_out_of_range(self, value):
        with pytest.raises(PaymentValidationError) as exc_info:
            PaymentOrderService.validate_amount(value)

        assert exc_info.value.error_code == "AMOUNT_OUT_OF_RANGE"

    def test_normalizes(self):
        assert PaymentOrderService.validate_amount("499") == Decimal("499.00")


class TestCreateOrder:
    def test_creates_gateway_order_and_payment(self, gateway_client, order_params, product, seller, buyer):
        gateway_client.create_order.return_value = make_gateway_order(
            Decimal("499.00"), receipt="rcpt_x", id="order_new"
        )

        result = PaymentOrderService.create_order(order_params)

        assert result.success
        created = result.data
        assert created.key_id == "rzp_test_key"
        assert created.gateway_order.id == "order_new"

        payment = Payment.objects.get(gateway_order_id="order_new")
        assert payment.status == PaymentStatus.CREATED
        assert payment.amount == Decimal("499.00")
        assert payment.product_id == product.id
        assert payment.seller_id == seller.id
        assert payment.buyer_id == buyer.id
        assert payment.receipt == "rcpt_x"

        kwargs = gateway_client.create_order.call_args.kwargs
        assert kwargs["amount_minor"] == 49900
        assert kwargs["currency"] == "INR"
        assert kwargs["notes"] == {
            "product_id": str(product.id),
            "seller_id": str(seller.id),
            "buyer_id": str(buyer.id),
            "order_type": "PRODUCT_PURCHASE",
        }

    def test_explicit_amount_overrides_price(self, gateway_client, order_params):
        order_params.amount = Decimal("250.50")
        gateway_client.create_order.return_value = make_gateway_order(Decimal("250.50"))

        result = PaymentOrderService.create_order(order_params)

        assert result.data.payment.amount == Decimal("250.50")
        assert gateway_client.create_order.call_args.kwargs["amount_minor"] == 25050

    def test_description_and_notes_kept_locally(self, gateway_client, order_params):
        order_params.description = "Ebook bundle"
        order_params.notes = {"campaign": "spring"}
        gateway_client.create_order.return_value = make_gateway_order()

        payment = PaymentOrderService.create_order(order_params).data.payment

        assert payment.notes == {"description": "Ebook bundle", "notes": {"campaign": "spring"}}

    def test_lowercase_currency_is_normalized(self, gateway_client, order_params):
        order_params.currency = "inr"
        gateway_client.create_order.return_value = make_gateway_order()

        PaymentOrderService.create_order(order_params)

        assert gateway_client.create_order.call_args.kwargs["currency"] == "INR"

    def test_invalid_currency(self, gateway_client, order_params):
        order_params.currency = "RUPEES"

        with pytest.raises(PaymentValidationError) as exc_info:
            PaymentOrderService.create_order(order_params)

        assert exc_info.value.error_code == "INVALID_CURRENCY"
        gateway_client.create_order.assert_not_called()

    def test_invalid_amount_has_no_side_effects(self, gateway_client, order_params):
        order_params.amount = Decimal("-1")

        with pytest.raises(PaymentValidationError):
            PaymentOrderService.create_order(order_params)

        gateway_client.create_order.assert_not_called()
        assert not Payment.objects.exists()

    def test_missing_buyer_id(self, gateway_client, product):
        result = PaymentOrderService.create_order(CreateOrderParams(product_id=product.id, buyer_id=None))

        assert not result.success
        assert result.error_code == "VALIDATION_ERROR"
        assert "buyer_id" in result.errors

    def test_unknown_product(self, gateway_client, buyer):
        with pytest.raises(ProductNotFoundError):
            PaymentOrderService.create_order(CreateOrderParams(product_id=uuid.uuid4(), buyer_id=buyer.id))

    def test_unpublished_product(self, gateway_client, seller, buyer):
        product = ProductFactory(seller_id=seller.id, is_published=False)

        with pytest.raises(ProductNotFoundError):
            PaymentOrderService.create_order(CreateOrderParams(product_id=product.id, buyer_id=buyer.id))

    def test_inactive_seller(self, gateway_client, order_params, seller):
        Seller.objects.filter(pk=seller.pk).update(is_active=False)

        with pytest.raises(SellerNotFoundError):
            PaymentOrderService.create_order(order_params)

    def test_unknown_buyer(self, gateway_client, product):
        with pytest.raises(BuyerNotFoundError):
            PaymentOrderService.create_order(CreateOrderParams(product_id=product.id, buyer_id=uuid.uuid4()))

        gateway_client.create_order.assert_not_called()

    def test_gateway_failure_leaves_no_payment(self, gateway_client, order_params):
        gateway_client.create_order.side_effect = GatewayUnavailableError("Payment gateway unavailable")

        with pytest.raises(GatewayUnavailableError):
            PaymentOrderService.create_order(order_params)

        assert not Payment.objects.exists()
