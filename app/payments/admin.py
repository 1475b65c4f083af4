"""
Payment admin configuration.

This file imports admin configurations from the ledger submodule
and registers payment domain models with the Django admin.
"""

from django.contrib import admin

from payments.ledger.admin import PaymentTransactionAdmin, SellerBalanceAdmin
from payments.models import Payment, Refund, WebhookEvent

__all__ = [
    "PaymentAdmin",
    "PaymentTransactionAdmin",
    "RefundAdmin",
    "SellerBalanceAdmin",
    "WebhookEventAdmin",
]


class RefundInline(admin.TabularInline):
    model = Refund
    extra = 0
    can_delete = False
    fields = ["gateway_refund_id", "amount", "status", "reason", "initiated_by", "processed_at"]
    readonly_fields = fields

    def has_add_permission(self, request, obj=None) -> bool:
        return False


@admin.register(Payment)
class PaymentAdmin(admin.ModelAdmin):
    """
    Admin configuration for Payment.

    Status is FSM-protected, so every field is read-only here; state
    changes go through the services and webhooks.
    """

    list_display = [
        "id",
        "gateway_order_id",
        "gateway_payment_id",
        "amount_display",
        "status",
        "seller_id",
        "captured_at",
        "created_at",
    ]
    list_filter = ["status", "currency", "payment_method", "created_at"]
    search_fields = ["id", "gateway_order_id", "gateway_payment_id", "receipt", "seller_id", "buyer_id"]
    readonly_fields = [
        "id",
        "gateway_order_id",
        "gateway_payment_id",
        "gateway_signature",
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
        "notes",
        "version",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]
    inlines = [RefundInline]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "status", "gateway_order_id", "gateway_payment_id", "receipt"),
            },
        ),
        (
            "Parties",
            {
                "fields": ("product_id", "seller_id", "buyer_id"),
            },
        ),
        (
            "Amount",
            {
                "fields": ("amount", "currency", "payment_method"),
            },
        ),
        (
            "Status Timestamps",
            {
                "fields": ("captured_at", "earnings_released_at", "refunded_at", "failed_at"),
            },
        ),
        (
            "Failure Info",
            {
                "fields": ("error_description",),
                "classes": ("collapse",),
            },
        ),
        (
            "Metadata",
            {
                "fields": ("gateway_signature", "notes", "version"),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def amount_display(self, obj: Payment) -> str:
        return f"{obj.amount:,.2f} {obj.currency}"

    amount_display.short_description = "Amount"

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for payments (audit trail)."""
        return False


@admin.register(Refund)
class RefundAdmin(admin.ModelAdmin):
    list_display = [
        "id",
        "gateway_refund_id",
        "payment",
        "amount",
        "status",
        "initiated_by",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "speed_requested", "initiated_by", "created_at"]
    search_fields = ["id", "gateway_refund_id", "payment__gateway_payment_id", "reason"]
    readonly_fields = [
        "id",
        "payment",
        "gateway_refund_id",
        "amount",
        "currency",
        "status",
        "reason",
        "speed_requested",
        "speed_processed",
        "initiated_by",
        "idempotency_key",
        "receipt",
        "notes",
        "processed_at",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for refunds (audit trail)."""
        return False


@admin.register(WebhookEvent)
class WebhookEventAdmin(admin.ModelAdmin):
    """
    Admin configuration for WebhookEvent.

    Provides visibility into webhook processing status.
    Webhook events are immutable once received.
    """

    list_display = [
        "id",
        "event_id",
        "event_type",
        "status",
        "retry_count",
        "processed_at",
        "created_at",
    ]
    list_filter = ["status", "event_type", "created_at"]
    search_fields = ["id", "event_id", "event_type"]
    readonly_fields = [
        "id",
        "created_at",
        "updated_at",
        "event_id",
        "event_type",
        "payload",
        "processed_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    fieldsets = (
        (
            None,
            {
                "fields": ("id", "event_id", "event_type", "status"),
            },
        ),
        (
            "Processing",
            {
                "fields": ("processed_at", "retry_count"),
            },
        ),
        (
            "Error Info",
            {
                "fields": ("error_message",),
                "classes": ("collapse",),
            },
        ),
        (
            "Payload",
            {
                "fields": ("payload",),
                "classes": ("collapse",),
            },
        ),
        (
            "Timestamps",
            {
                "fields": ("created_at", "updated_at"),
            },
        ),
    )

    def has_delete_permission(self, request, obj=None) -> bool:
        """Disable delete for webhook events (audit trail)."""
        return False

    def has_add_permission(self, request) -> bool:
        """Disable adding webhook events through admin."""
        return False
