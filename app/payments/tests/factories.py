"""
Factory Boy factories for payment test data.

This module provides factories for creating test instances of payment models.
Factories generate realistic test data while allowing easy customization.

Usage:
    from payments.tests.factories import (
        PaymentFactory,
        RefundFactory,
        WebhookEventFactory,
    )

    # Create a basic payment for a fresh product, seller and buyer
    payment = PaymentFactory()

    # Create a payment for an existing product
    payment = PaymentFactory(product=product, amount=Decimal("250.00"))

    # Refund against a payment
    refund = RefundFactory(payment=payment, amount=Decimal("100.00"))
"""

import uuid
from decimal import Decimal

import factory

from catalog.tests.factories import BuyerFactory, ProductFactory
from payments.models import Payment, Refund, WebhookEvent
from payments.state_machines import RefundStatus, WebhookEventStatus


class PaymentFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating Payment instances.

    Default creates a CREATED payment of 499.00 INR for a newly created
    product (and its seller) bought by a newly created buyer.

    Example:
        # Default created payment
        payment = PaymentFactory()

        # Payment for a specific product and buyer
        payment = PaymentFactory(product=product, buyer_id=buyer.id)

    Note:
        status is managed by FSM, default is CREATED. Use the fixtures in
        conftest.py for payments in later states.
    """

    class Meta:
        model = Payment
        skip_postgeneration_save = True
        exclude = ("product",)

    product = factory.SubFactory(ProductFactory)

    gateway_order_id = factory.Sequence(lambda n: f"order_test{n:06d}")
    receipt = factory.Sequence(lambda n: f"rcpt_1718000000000_{n:06x}")
    product_id = factory.SelfAttribute("product.id")
    seller_id = factory.SelfAttribute("product.seller_id")
    buyer_id = factory.LazyFunction(lambda: BuyerFactory().id)
    amount = Decimal("499.00")
    currency = "INR"
    notes = factory.LazyFunction(dict)


class RefundFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating Refund instances.

    Default creates a PROCESSED refund of 100.00 against a new payment.

    Example:
        refund = RefundFactory(payment=payment, amount=Decimal("300.00"))
        pending = RefundFactory(payment=payment, status=RefundStatus.PENDING)
    """

    class Meta:
        model = Refund
        skip_postgeneration_save = True

    payment = factory.SubFactory(PaymentFactory)
    gateway_refund_id = factory.Sequence(lambda n: f"rfnd_test{n:06d}")
    amount = Decimal("100.00")
    currency = "INR"
    status = RefundStatus.PROCESSED
    reason = factory.Faker("sentence", nb_words=4)
    initiated_by = "buyer"
    notes = factory.LazyFunction(dict)


def gateway_payload(event: str, **entities) -> dict:
    """
    Build a gateway webhook body.

    Example:
        gateway_payload("payment.captured", payment={"id": "pay_1", "order_id": "order_1"})
    """
    return {
        "entity": "event",
        "account_id": "acc_test",
        "event": event,
        "contains": list(entities),
        "payload": {kind: {"entity": entity} for kind, entity in entities.items()},
        "created_at": 1718000000,
    }


class WebhookEventFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating WebhookEvent instances.

    Default creates a PENDING payment.captured webhook.

    Example:
        # Specific event type
        event = WebhookEventFactory(
            event_type="refund.processed",
            payload=gateway_payload("refund.processed", refund={...}),
        )

        # Failed webhook
        event = WebhookEventFactory(
            status=WebhookEventStatus.FAILED,
            error_message="Processing error",
            retry_count=3,
        )
    """

    class Meta:
        model = WebhookEvent
        skip_postgeneration_save = True

    event_id = factory.Sequence(lambda n: f"evt_test_{n}_{uuid.uuid4().hex[:8]}")
    event_type = "payment.captured"
    payload = factory.LazyAttribute(
        lambda o: gateway_payload(
            o.event_type,
            payment={
                "id": f"pay_{uuid.uuid4().hex[:14]}",
                "order_id": f"order_{uuid.uuid4().hex[:14]}",
                "amount": 49900,
                "currency": "INR",
                "status": "captured",
                "method": "upi",
            },
        )
    )
    status = WebhookEventStatus.PENDING
