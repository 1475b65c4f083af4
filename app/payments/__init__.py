"""
Payments app for marketplace purchases through the Razorpay gateway.

This app handles:
- Payment orders and client-side verification with capture
- Webhook reconciliation of payment and refund events
- Seller balance ledger (pending, available, lifetime earnings)
- Refunds and seller clawbacks
- Release of matured earnings from pending to available

Related apps:
    - catalog: Products, sellers and buyers (loaded explicitly by id)
    - notifications: Buyer and seller messages

Usage:
    from payments.services import CreateOrderParams, PaymentOrderService

    result = PaymentOrderService.create_order(
        CreateOrderParams(product_id=product.id, buyer_id=buyer.id)
    )
"""
