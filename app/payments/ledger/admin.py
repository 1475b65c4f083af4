"""
Django admin configuration for ledger models.

Both models are read-only in the admin: balances change only through
BalanceLedger, and transactions are append-only.

Key features:
- PaymentTransaction is immutable (no add/edit/delete permissions)
- FAILED debits are filterable, they are the outstanding clawbacks
"""

from django.contrib import admin

from .models import PaymentTransaction, SellerBalance


@admin.register(SellerBalance)
class SellerBalanceAdmin(admin.ModelAdmin):
    list_display = [
        "seller_id",
        "available_balance",
        "pending_balance",
        "total_earnings",
        "last_payout_at",
        "updated_at",
    ]
    search_fields = ["seller_id"]
    readonly_fields = [
        "seller_id",
        "available_balance",
        "pending_balance",
        "total_earnings",
        "last_payout_at",
        "next_payout_date",
        "created_at",
        "updated_at",
    ]
    ordering = ["-updated_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
    """
    Admin configuration for PaymentTransaction.

    Entries are immutable; corrections are new entries.
    """

    list_display = [
        "id",
        "payment",
        "seller_id",
        "type",
        "amount",
        "status",
        "gateway_refund_id",
        "created_at",
    ]
    list_filter = ["type", "status", "created_at"]
    search_fields = ["id", "seller_id", "idempotency_key", "gateway_refund_id", "payment__gateway_order_id"]
    readonly_fields = [
        "id",
        "payment",
        "seller_id",
        "amount",
        "type",
        "status",
        "description",
        "gateway_refund_id",
        "idempotency_key",
        "notes",
        "completed_at",
        "created_at",
        "updated_at",
    ]
    date_hierarchy = "created_at"
    ordering = ["-created_at"]

    def has_add_permission(self, request) -> bool:
        return False

    def has_change_permission(self, request, obj=None) -> bool:
        return False

    def has_delete_permission(self, request, obj=None) -> bool:
        return False
