"""
Notifications app for buyer and seller email notifications.

This app provides:
- Notification model storing each rendered message and its delivery state
- NotificationService for queueing payment, delivery and refund messages
- deliver_notification Celery task with retry and a terminal FAILED state

Usage:
    from notifications.services import NotificationService

    # Queue the buyer/seller messages for a captured payment
    NotificationService.notify_payment_succeeded(payment, seller_share=Decimal("449.10"))
"""
