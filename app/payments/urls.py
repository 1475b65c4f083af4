"""
URL configuration for the payments app.

Routes:
    - POST orders/                           - Create payment order
    - POST verify/                           - Verify and capture payment
    - POST refunds/                          - Initiate refund
    - GET  orders/<order_id>/payments/       - Payments for a gateway order
    - GET  balances/<seller_id>/             - Seller balance
    - POST webhooks/razorpay/                - Razorpay webhook endpoint
    - GET  <payment_id>/                     - Payment details

All routes are prefixed with /api/v1/payments/ when included in the main URLconf.
"""

from django.urls import path

from payments import views
from payments.webhooks.views import razorpay_webhook

app_name = "payments"

urlpatterns = [
    path("orders/", views.CreateOrderView.as_view(), name="create_order"),
    path("verify/", views.VerifyPaymentView.as_view(), name="verify_payment"),
    path("refunds/", views.InitiateRefundView.as_view(), name="initiate_refund"),
    path("orders/<str:order_id>/payments/", views.OrderPaymentsView.as_view(), name="order_payments"),
    path("balances/<uuid:seller_id>/", views.SellerBalanceView.as_view(), name="seller_balance"),
    # Webhook endpoints
    path("webhooks/razorpay/", razorpay_webhook, name="razorpay_webhook"),
    # Catch-all last
    path("<str:payment_id>/", views.PaymentDetailView.as_view(), name="payment_detail"),
]
