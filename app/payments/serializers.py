"""
DRF serializers for the payments API.

Request serializers validate shape only; amount ranges and refund rules
are enforced by the services so every entry point gets the same checks.

Related files:
    - services/: Order, verification, refund and query services
    - views.py: Payment API views
"""

from __future__ import annotations

from rest_framework import serializers

from payments.ledger import PaymentTransaction
from payments.models import Payment, Refund
from payments.state_machines import RefundSpeed


# =============================================================================
# Requests
# =============================================================================


class CreateOrderSerializer(serializers.Serializer):
    """
    Request body for order creation.

    amount defaults to the product price when omitted.
    """

    product_id = serializers.UUIDField()
    buyer_id = serializers.UUIDField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False)
    currency = serializers.CharField(max_length=3, default="INR")
    description = serializers.CharField(max_length=255, required=False, allow_blank=True)
    notes = serializers.DictField(required=False, default=dict)


class VerifyPaymentSerializer(serializers.Serializer):
    """The triple the checkout widget hands back to the browser."""

    razorpay_order_id = serializers.CharField(max_length=64)
    razorpay_payment_id = serializers.CharField(max_length=64)
    razorpay_signature = serializers.CharField(max_length=128)


class InitiateRefundSerializer(serializers.Serializer):
    payment_id = serializers.CharField(max_length=64, help_text="Gateway payment ID (pay_xxx)")
    amount = serializers.DecimalField(
        max_digits=14,
        decimal_places=2,
        required=False,
        help_text="Refund amount; omit to refund the remaining amount",
    )
    reason = serializers.CharField(max_length=255, required=False, allow_blank=True, default="")
    speed = serializers.ChoiceField(choices=RefundSpeed.choices, default=RefundSpeed.NORMAL)
    idempotency_key = serializers.CharField(max_length=255, required=False)
    notes = serializers.DictField(required=False, default=dict)


# =============================================================================
# Responses
# =============================================================================


class PaymentSerializer(serializers.ModelSerializer):
    class Meta:
        model = Payment
        fields = [
            "id",
            "gateway_order_id",
            "gateway_payment_id",
            "receipt",
            "product_id",
            "seller_id",
            "buyer_id",
            "amount",
            "currency",
            "status",
            "payment_method",
            "captured_at",
            "refunded_at",
            "failed_at",
            "earnings_released_at",
            "error_description",
            "created_at",
        ]
        read_only_fields = fields


class RefundSerializer(serializers.ModelSerializer):
    gateway_payment_id = serializers.CharField(source="payment.gateway_payment_id", read_only=True)

    class Meta:
        model = Refund
        fields = [
            "id",
            "gateway_refund_id",
            "gateway_payment_id",
            "amount",
            "currency",
            "status",
            "reason",
            "speed_requested",
            "speed_processed",
            "initiated_by",
            "processed_at",
            "created_at",
        ]
        read_only_fields = fields


class PaymentTransactionSerializer(serializers.ModelSerializer):
    class Meta:
        model = PaymentTransaction
        fields = ["id", "amount", "type", "status", "description", "gateway_refund_id", "created_at"]
        read_only_fields = fields


class OrderCreatedSerializer(serializers.Serializer):
    """What the client needs to open the checkout widget."""

    order_id = serializers.CharField(source="gateway_order.id")
    amount = serializers.IntegerField(source="gateway_order.amount_minor", help_text="Amount in minor units")
    currency = serializers.CharField(source="gateway_order.currency")
    receipt = serializers.CharField(source="payment.receipt")
    status = serializers.CharField(source="payment.status")
    payment_id = serializers.UUIDField(source="payment.id", help_text="Local payment ID")
    key_id = serializers.CharField()


class GatewayPaymentSerializer(serializers.Serializer):
    id = serializers.CharField()
    order_id = serializers.CharField(allow_null=True)
    amount = serializers.IntegerField(source="amount_minor")
    currency = serializers.CharField()
    status = serializers.CharField()
    method = serializers.CharField(allow_null=True)
    email = serializers.CharField(allow_null=True)
    contact = serializers.CharField(allow_null=True)
    fee = serializers.IntegerField(source="fee_minor", allow_null=True)
    tax = serializers.IntegerField(source="tax_minor", allow_null=True)
    created_at = serializers.DateTimeField(allow_null=True)


class PaymentDetailsSerializer(serializers.Serializer):
    gateway = GatewayPaymentSerializer()
    payment = PaymentSerializer(allow_null=True)
    refunded_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    pending_refund_amount = serializers.DecimalField(max_digits=14, decimal_places=2)


class OrderPaymentsSummarySerializer(serializers.Serializer):
    total_payments = serializers.IntegerField()
    total_amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    successful = serializers.IntegerField()
    pending = serializers.IntegerField()
    failed = serializers.IntegerField()
    refunded = serializers.IntegerField()


class OrderPaymentsSerializer(serializers.Serializer):
    gateway_order_id = serializers.CharField()
    payments = PaymentSerializer(many=True)
    summary = OrderPaymentsSummarySerializer()


class SellerBalanceSerializer(serializers.Serializer):
    seller_id = serializers.UUIDField()
    available_balance = serializers.DecimalField(max_digits=14, decimal_places=2)
    pending_balance = serializers.DecimalField(max_digits=14, decimal_places=2)
    total_earnings = serializers.DecimalField(max_digits=14, decimal_places=2)
    last_payout_at = serializers.DateTimeField(allow_null=True)
    next_payout_date = serializers.DateField(allow_null=True)


class ErrorResponseSerializer(serializers.Serializer):
    success = serializers.BooleanField(default=False)
    error = serializers.CharField()
    error_code = serializers.CharField()
    details = serializers.DictField(required=False)
