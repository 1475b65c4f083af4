"""Admin configuration for notifications."""

from django.contrib import admin

from notifications.models import Notification


@admin.register(Notification)
class NotificationAdmin(admin.ModelAdmin):
    list_display = [
        "kind",
        "recipient_type",
        "recipient_email",
        "status",
        "attempt_count",
        "created_at",
    ]
    list_filter = ["kind", "status", "recipient_type"]
    search_fields = ["recipient_email", "recipient_id", "idempotency_key"]
    readonly_fields = [
        "id",
        "recipient_type",
        "recipient_id",
        "recipient_email",
        "kind",
        "subject",
        "body",
        "context",
        "idempotency_key",
        "attempt_count",
        "last_error",
        "sent_at",
        "failed_at",
        "created_at",
        "updated_at",
    ]
    ordering = ["-created_at"]
