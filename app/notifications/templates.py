"""
Subject and body templates per notification kind.

Templates use str.format placeholders; a missing placeholder raises
KeyError at render time.
"""

from __future__ import annotations

from decimal import Decimal

from notifications.models import NotificationKind

TEMPLATES: dict[str, tuple[str, str]] = {
    NotificationKind.PAYMENT_SUCCEEDED: (
        "Payment Successful - {product_title}",
        "Dear {buyer_name},\n\n"
        "Your payment has been successfully processed.\n\n"
        "Product: {product_title}\n"
        "Amount: {amount}\n"
        "Receipt No: {receipt}\n"
        "Payment Method: {payment_method}\n",
    ),
    NotificationKind.PRODUCT_DELIVERY: (
        "Your Download is Ready - {product_title}",
        "Dear {buyer_name},\n\n"
        "Thank you for your purchase. {product_title} is now available "
        "in your library.\n\n"
        "Order ID: {order_id}\n",
    ),
    NotificationKind.NEW_SALE: (
        "New Sale! - {product_title}",
        "Dear {seller_name},\n\n"
        "{buyer_name} bought {product_title}.\n\n"
        "Sale amount: {amount}\n"
        "Your earnings: {seller_share}\n\n"
        "Earnings become available for payout after the holding period.\n",
    ),
    NotificationKind.PAYMENT_FAILED: (
        "Payment Failed - {product_title}",
        "Dear {buyer_name},\n\n"
        "Your payment for {product_title} has failed.\n\n"
        "Amount: {amount}\n"
        "Order ID: {order_id}\n\n"
        "Please try again or contact support if the issue persists.\n",
    ),
    NotificationKind.REFUND_PROCESSED: (
        "Refund Processed - {product_title}",
        "Dear {buyer_name},\n\n"
        "A refund of {refund_amount} for {product_title} "
        "(paid {amount}) is {refund_status}.\n\n"
        "Reason: {reason}\n",
    ),
    NotificationKind.REFUND_ISSUED: (
        "Refund Issued - {product_title}",
        "Dear {seller_name},\n\n"
        "A refund of {refund_amount} was issued to {buyer_name} for {product_title}.\n\n"
        "Reason: {reason}\n",
    ),
}


def format_amount(amount: Decimal | str, currency: str = "INR") -> str:
    """Format "1234.5" as "INR 1,234.50"."""
    return f"{currency} {Decimal(amount):,.2f}"


def render(kind: str, context: dict) -> tuple[str, str]:
    """
    Render subject and body for a kind.

    Raises:
        KeyError: Unknown kind or missing placeholder
    """
    subject_template, body_template = TEMPLATES[kind]
    return subject_template.format(**context), body_template.format(**context)
