"""
Payment services for coordinating payment operations.

This module provides:
- PaymentOrderService: Creates gateway orders (checkout entry point)
- PaymentVerificationService: Verifies client confirmations and captures
- RefundService: Refunds captured payments and claws back seller earnings
- PaymentQueryService: Payment details, order summaries, seller balances

Usage:
    from payments.services import PaymentOrderService, CreateOrderParams

    result = PaymentOrderService.create_order(
        CreateOrderParams(product_id=product.id, buyer_id=buyer.id)
    )

    from payments.services import PaymentVerificationService, VerifyPaymentParams

    result = PaymentVerificationService.verify_and_capture(
        VerifyPaymentParams(
            gateway_order_id="order_abc",
            gateway_payment_id="pay_xyz",
            signature="5f1c...",
        )
    )

    from payments.services import RefundService, InitiateRefundParams

    result = RefundService.initiate_refund(
        InitiateRefundParams(gateway_payment_id="pay_xyz", amount=Decimal("300.00"))
    )
"""

from payments.services.capture import CaptureOutcome, apply_capture, platform_fee, seller_share
from payments.services.order_service import (
    CreateOrderParams,
    OrderCreated,
    PaymentOrderService,
)
from payments.services.query_service import (
    OrderPayments,
    OrderPaymentsSummary,
    PaymentDetails,
    PaymentQueryService,
)
from payments.services.refund_service import (
    InitiateRefundParams,
    RefundEligibility,
    RefundExecutionResult,
    RefundService,
)
from payments.services.verification_service import (
    PaymentVerificationService,
    VerificationResult,
    VerifyPaymentParams,
)

__all__ = [
    "CaptureOutcome",
    "CreateOrderParams",
    "InitiateRefundParams",
    "OrderCreated",
    "OrderPayments",
    "OrderPaymentsSummary",
    "PaymentDetails",
    "PaymentOrderService",
    "PaymentQueryService",
    "PaymentVerificationService",
    "RefundEligibility",
    "RefundExecutionResult",
    "RefundService",
    "VerificationResult",
    "VerifyPaymentParams",
    "apply_capture",
    "platform_fee",
    "seller_share",
]
