"""
Payment order service: the entry point of checkout.

Creates a gateway order for one product purchase and records the local
Payment in CREATED state. No balance changes happen here.

Usage:
    from payments.services import CreateOrderParams, PaymentOrderService

    result = PaymentOrderService.create_order(
        CreateOrderParams(product_id=product.id, buyer_id=buyer.id)
    )
    if result.success:
        checkout = result.data  # OrderCreated
"""

from __future__ import annotations

import re
import secrets
import time
import uuid
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import TYPE_CHECKING, Any

from catalog.loaders import load_buyer, load_product, load_seller
from core.services import BaseService, ServiceResult

from payments.exceptions import PaymentValidationError
from payments.gateway import from_minor_units, get_gateway_client, quantize_amount, to_minor_units
from payments.models import Payment

if TYPE_CHECKING:
    from payments.gateway import GatewayOrder, RazorpayClient


# =============================================================================
# Constants
# =============================================================================

MIN_ORDER_AMOUNT = Decimal("1.00")
MAX_ORDER_AMOUNT = Decimal("10000000.00")
ORDER_TYPE = "PRODUCT_PURCHASE"
RECEIPT_MAX_LENGTH = 40

_CURRENCY_RE = re.compile(r"^[A-Z]{3}$")


def generate_receipt() -> str:
    """
    Merchant receipt reference: rcpt_{epoch_ms}_{6 hex}.

    Unique in practice, not guaranteed; the gateway order id is the real key.
    """
    receipt = f"rcpt_{int(time.time() * 1000)}_{secrets.token_hex(3)}"
    return receipt[:RECEIPT_MAX_LENGTH]


# =============================================================================
# Params & Result Types
# =============================================================================


@dataclass
class CreateOrderParams:
    """
    Parameters for creating a payment order.

    Attributes:
        product_id: Product being bought
        buyer_id: Buyer paying
        amount: Major-unit amount; defaults to the product price
        currency: ISO 4217 code (default INR)
        description: Optional buyer-facing description, kept in notes
        notes: Optional free-form notes, kept in notes

    Example:
        params = CreateOrderParams(
            product_id=product.id,
            buyer_id=buyer.id,
            amount=Decimal("499.00"),
        )
    """

    product_id: uuid.UUID
    buyer_id: uuid.UUID
    amount: Decimal | None = None
    currency: str = "INR"
    description: str | None = None
    notes: dict[str, Any] = field(default_factory=dict)


@dataclass
class OrderCreated:
    """
    What the client needs to open checkout.

    Attributes:
        payment: The persisted Payment (CREATED)
        gateway_order: Order as returned by the gateway
        key_id: Public gateway key for the checkout widget
    """

    payment: Payment
    gateway_order: GatewayOrder
    key_id: str


# =============================================================================
# Service
# =============================================================================


class PaymentOrderService(BaseService):
    """
    Creates gateway orders and their local Payment rows.

    Flow:
        1. Validate amount and currency (no side effects on failure)
        2. Load product, seller and buyer explicitly
        3. Create the gateway order (manual capture)
        4. Persist Payment(status=CREATED)

    The gateway client can be injected for testing via set_gateway_client().
    """

    _gateway_client: RazorpayClient | None = None

    @classmethod
    def get_gateway_client(cls) -> RazorpayClient:
        return cls._gateway_client or get_gateway_client()

    @classmethod
    def set_gateway_client(cls, client: RazorpayClient | None) -> None:
        """Set the gateway client (for testing)."""
        cls._gateway_client = client

    @classmethod
    def validate_amount(cls, amount: Any) -> Decimal:
        """
        Validate and normalize an order amount.

        Raises:
            PaymentValidationError: Not a number, non-positive, or out of range
        """
        try:
            value = Decimal(str(amount))
        except (InvalidOperation, TypeError, ValueError):
            raise PaymentValidationError(
                "Amount must be a number",
                error_code="INVALID_AMOUNT",
                details={"amount": str(amount)},
            ) from None

        if not value.is_finite() or value <= 0:
            raise PaymentValidationError(
                "Amount must be positive",
                error_code="INVALID_AMOUNT",
                details={"amount": str(amount)},
            )
        if value != quantize_amount(value):
            raise PaymentValidationError(
                "Amount must have at most two decimal places",
                error_code="INVALID_AMOUNT",
                details={"amount": str(amount)},
            )
        if value < MIN_ORDER_AMOUNT or value > MAX_ORDER_AMOUNT:
            raise PaymentValidationError(
                f"Amount must be between {MIN_ORDER_AMOUNT} and {MAX_ORDER_AMOUNT}",
                error_code="AMOUNT_OUT_OF_RANGE",
                details={"amount": str(value)},
            )
        return quantize_amount(value)

    @classmethod
    def validate_currency(cls, currency: str | None) -> str:
        code = (currency or "").upper()
        if not _CURRENCY_RE.match(code):
            raise PaymentValidationError(
                "Currency must be a three-letter ISO code",
                error_code="INVALID_CURRENCY",
                details={"currency": currency},
            )
        return code

    @classmethod
    def create_order(cls, params: CreateOrderParams) -> ServiceResult[OrderCreated]:
        """
        Create a gateway order and the local Payment.

        Args:
            params: CreateOrderParams

        Returns:
            ServiceResult containing OrderCreated

        Raises:
            PaymentValidationError: Bad amount or currency
            ProductNotFoundError / SellerNotFoundError / BuyerNotFoundError
            GatewayError: Gateway rejected or could not be reached
        """
        logger = cls.get_logger()

        validation = cls.validate_required(product_id=params.product_id, buyer_id=params.buyer_id)
        if validation is not None:
            return validation

        currency = cls.validate_currency(params.currency)
        if params.amount is not None:
            amount = cls.validate_amount(params.amount)

        product = load_product(params.product_id)
        seller = load_seller(product.seller_id)
        buyer = load_buyer(params.buyer_id)

        if params.amount is None:
            amount = cls.validate_amount(product.price)

        receipt = generate_receipt()
        gateway_notes = {
            "product_id": str(product.id),
            "seller_id": str(seller.id),
            "buyer_id": str(buyer.id),
            "order_type": ORDER_TYPE,
        }

        logger.info(
            "Creating payment order",
            extra={
                "product_id": str(product.id),
                "buyer_id": str(buyer.id),
                "amount": str(amount),
                "currency": currency,
                "receipt": receipt,
            },
        )

        client = cls.get_gateway_client()
        gateway_order = client.create_order(
            amount_minor=to_minor_units(amount),
            currency=currency,
            receipt=receipt,
            notes=gateway_notes,
        )

        local_notes: dict[str, Any] = {}
        if params.description:
            local_notes["description"] = params.description
        if params.notes:
            local_notes["notes"] = params.notes

        payment = Payment.objects.create(
            gateway_order_id=gateway_order.id,
            receipt=gateway_order.receipt or receipt,
            product_id=product.id,
            seller_id=seller.id,
            buyer_id=buyer.id,
            amount=from_minor_units(gateway_order.amount_minor),
            currency=gateway_order.currency or currency,
            notes=local_notes,
        )

        logger.info(
            "Payment order created",
            extra={
                "payment_id": str(payment.id),
                "gateway_order_id": payment.gateway_order_id,
                "amount": str(payment.amount),
            },
        )

        return ServiceResult.success(
            OrderCreated(payment=payment, gateway_order=gateway_order, key_id=client.config.key_id)
        )
