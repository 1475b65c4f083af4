"""
API views for payment orders, verification, refunds and queries.

Provides:
- CreateOrderView: Start checkout for a product
- VerifyPaymentView: Verify the checkout signature and capture
- InitiateRefundView: Refund a captured payment
- PaymentDetailView: Gateway payment merged with local state
- OrderPaymentsView: Payments for a gateway order with a summary
- SellerBalanceView: Seller earnings balance

Domain errors are translated to HTTP responses by error_response():
validation and signature problems are 400, missing resources 404,
refused business rules 409, and gateway failures 502.
"""

from __future__ import annotations

import logging

from drf_spectacular.utils import OpenApiResponse, extend_schema
from rest_framework import status
from rest_framework.response import Response
from rest_framework.views import APIView

from core.exceptions import (
    BaseApplicationError,
    ConflictError,
    NotFoundError,
)
from payments.exceptions import (
    GatewayError,
    PaymentError,
    PaymentNotFoundError,
)
from payments.serializers import (
    CreateOrderSerializer,
    ErrorResponseSerializer,
    InitiateRefundSerializer,
    OrderCreatedSerializer,
    OrderPaymentsSerializer,
    PaymentDetailsSerializer,
    PaymentSerializer,
    RefundSerializer,
    SellerBalanceSerializer,
    VerifyPaymentSerializer,
)
from payments.services import (
    CreateOrderParams,
    InitiateRefundParams,
    PaymentOrderService,
    PaymentQueryService,
    PaymentVerificationService,
    RefundService,
    VerifyPaymentParams,
)

logger = logging.getLogger(__name__)


def error_status(exc: BaseApplicationError) -> int:
    if isinstance(exc, (NotFoundError, PaymentNotFoundError)):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, GatewayError):
        return status.HTTP_502_BAD_GATEWAY
    if isinstance(exc, ConflictError):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, PaymentError) and exc.error_code == "INSUFFICIENT_BALANCE":
        return status.HTTP_409_CONFLICT
    # Validation and signature errors
    return status.HTTP_400_BAD_REQUEST


def error_response(exc: BaseApplicationError) -> Response:
    """Render a domain error as {"success": false, "error", "error_code"[, "details"]}."""
    http_status = error_status(exc)
    # Gateway details carry status codes only; messages are already sanitized
    body = {"success": False, **exc.to_dict()}
    log = logger.error if http_status >= 500 else logger.info
    log(
        "Payment API request failed",
        extra={"error_code": exc.error_code, "http_status": http_status},
    )
    return Response(body, status=http_status)


def validation_error_response(errors) -> Response:
    return Response(
        {
            "success": False,
            "error": "Invalid request",
            "error_code": "VALIDATION_ERROR",
            "errors": errors,
        },
        status=status.HTTP_400_BAD_REQUEST,
    )


class CreateOrderView(APIView):
    """
    Create a payment order.

    POST /api/v1/payments/orders/

    Response:
        201 Created: Order created, checkout can open
        400 Bad Request: Invalid amount or currency
        404 Not Found: Product, seller or buyer missing
        502 Bad Gateway: Gateway rejected or unreachable
    """

    @extend_schema(
        operation_id="create_payment_order",
        summary="Create payment order",
        description="Create a gateway order for a product purchase and record the payment.",
        request=CreateOrderSerializer,
        responses={
            201: OpenApiResponse(response=OrderCreatedSerializer, description="Order created"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Validation error"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Product, seller or buyer not found"),
            502: OpenApiResponse(response=ErrorResponseSerializer, description="Gateway error"),
        },
        tags=["Payments"],
    )
    def post(self, request):
        serializer = CreateOrderSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        try:
            result = PaymentOrderService.create_order(
                CreateOrderParams(
                    product_id=data["product_id"],
                    buyer_id=data["buyer_id"],
                    amount=data.get("amount"),
                    currency=data["currency"],
                    description=data.get("description") or None,
                    notes=data.get("notes") or {},
                )
            )
        except BaseApplicationError as e:
            return error_response(e)

        if not result.success:
            return Response(result.to_response(), status=status.HTTP_400_BAD_REQUEST)

        return Response(
            {"success": True, "data": OrderCreatedSerializer(result.data).data},
            status=status.HTTP_201_CREATED,
        )


class VerifyPaymentView(APIView):
    """
    Verify a checkout confirmation and capture the payment.

    POST /api/v1/payments/verify/

    Response:
        200 OK: Captured (or already processed)
        400 Bad Request: Signature mismatch, status "failed"
        404 Not Found: Unknown gateway order
        502 Bad Gateway: Capture failed at the gateway
    """

    @extend_schema(
        operation_id="verify_payment",
        summary="Verify and capture payment",
        request=VerifyPaymentSerializer,
        responses={
            200: OpenApiResponse(response=PaymentSerializer, description="Payment captured or already processed"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Invalid signature"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Payment not found"),
            502: OpenApiResponse(response=ErrorResponseSerializer, description="Gateway error"),
        },
        tags=["Payments"],
    )
    def post(self, request):
        serializer = VerifyPaymentSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        try:
            result = PaymentVerificationService.verify_and_capture(
                VerifyPaymentParams(
                    gateway_order_id=data["razorpay_order_id"],
                    gateway_payment_id=data["razorpay_payment_id"],
                    signature=data["razorpay_signature"],
                )
            )
        except BaseApplicationError as e:
            return error_response(e)

        if not result.success:
            return Response(
                {"status": "failed", **result.to_response()},
                status=status.HTTP_400_BAD_REQUEST,
            )

        payment = result.data.payment
        return Response(
            {
                "success": True,
                "status": payment.status,
                "already_processed": result.data.already_processed,
                "data": PaymentSerializer(payment).data,
            }
        )


class InitiateRefundView(APIView):
    """
    Refund a captured payment, fully or partially.

    POST /api/v1/payments/refunds/

    Response:
        201 Created: Refund recorded
        400 Bad Request: Invalid amount or speed
        404 Not Found: Unknown payment
        409 Conflict: Not refundable, amount exceeded, or seller clawback
            short (the refund itself went through)
        502 Bad Gateway: Gateway refused or unreachable
    """

    @extend_schema(
        operation_id="initiate_refund",
        summary="Initiate refund",
        request=InitiateRefundSerializer,
        responses={
            201: OpenApiResponse(response=RefundSerializer, description="Refund recorded"),
            400: OpenApiResponse(response=ErrorResponseSerializer, description="Validation error"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="Payment not found"),
            409: OpenApiResponse(response=ErrorResponseSerializer, description="Refund refused"),
            502: OpenApiResponse(response=ErrorResponseSerializer, description="Gateway error"),
        },
        tags=["Refunds"],
    )
    def post(self, request):
        serializer = InitiateRefundSerializer(data=request.data)
        if not serializer.is_valid():
            return validation_error_response(serializer.errors)

        data = serializer.validated_data
        initiated_by = "admin" if request.user.is_staff else "buyer"
        try:
            result = RefundService.initiate_refund(
                InitiateRefundParams(
                    gateway_payment_id=data["payment_id"],
                    amount=data.get("amount"),
                    reason=data.get("reason", ""),
                    speed=data["speed"],
                    initiated_by=initiated_by,
                    idempotency_key=data.get("idempotency_key"),
                    notes=data.get("notes") or {},
                )
            )
        except BaseApplicationError as e:
            return error_response(e)

        return Response(
            {"success": True, "data": RefundSerializer(result.data.refund).data},
            status=status.HTTP_201_CREATED,
        )


class PaymentDetailView(APIView):
    """
    GET /api/v1/payments/{payment_id}/

    Gateway entity (cached briefly) plus local status and refund totals.
    """

    @extend_schema(
        operation_id="get_payment_details",
        summary="Get payment details",
        responses={
            200: OpenApiResponse(response=PaymentDetailsSerializer, description="Payment details"),
            502: OpenApiResponse(response=ErrorResponseSerializer, description="Gateway error"),
        },
        tags=["Payments"],
    )
    def get(self, request, payment_id):
        try:
            result = PaymentQueryService.get_payment_details(payment_id)
        except BaseApplicationError as e:
            return error_response(e)

        return Response({"success": True, "data": PaymentDetailsSerializer(result.data).data})


class OrderPaymentsView(APIView):
    """GET /api/v1/payments/orders/{order_id}/payments/"""

    @extend_schema(
        operation_id="get_order_payments",
        summary="List payments for an order",
        responses={
            200: OpenApiResponse(response=OrderPaymentsSerializer, description="Payments with summary"),
            404: OpenApiResponse(response=ErrorResponseSerializer, description="No payments for order"),
        },
        tags=["Payments"],
    )
    def get(self, request, order_id):
        try:
            result = PaymentQueryService.get_order_payments(order_id)
        except BaseApplicationError as e:
            return error_response(e)

        return Response({"success": True, "data": OrderPaymentsSerializer(result.data).data})


class SellerBalanceView(APIView):
    """GET /api/v1/payments/balances/{seller_id}/"""

    @extend_schema(
        operation_id="get_seller_balance",
        summary="Get seller balance",
        responses={200: OpenApiResponse(response=SellerBalanceSerializer, description="Balance snapshot")},
        tags=["Balances"],
    )
    def get(self, request, seller_id):
        result = PaymentQueryService.get_seller_balance(seller_id)
        return Response({"success": True, "data": SellerBalanceSerializer(result.data).data})
