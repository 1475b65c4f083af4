"""
Celery tasks for notification delivery.

Tasks:
    deliver_notification: Send one Notification by email

Design:
    - Tasks receive the notification id (UUID string)
    - Re-running on a non-PENDING notification is a no-op
    - Failed attempts are retried with exponential backoff; after
      NOTIFICATION_MAX_ATTEMPTS the notification is marked FAILED for good

Usage:
    from notifications.tasks import deliver_notification

    # Queued automatically by NotificationService.create_notification()
    deliver_notification.delay(notification_id="uuid-string")
"""

from __future__ import annotations

import logging

from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail
from django.utils import timezone as django_timezone

from notifications.models import DeliveryStatus, Notification

logger = logging.getLogger(__name__)

RETRY_BASE_SECONDS = 30
RETRY_MAX_SECONDS = 3600


def retry_countdown(attempt: int) -> int:
    """Seconds to wait before the next attempt: 30, 60, 120, ... capped at an hour."""
    return min(RETRY_BASE_SECONDS * (2 ** max(attempt - 1, 0)), RETRY_MAX_SECONDS)


def _get_pending(notification_id: str) -> Notification | None:
    notification = Notification.objects.filter(id=notification_id).first()
    if notification is None:
        logger.warning(f"Notification {notification_id} not found")
        return None
    if notification.status != DeliveryStatus.PENDING:
        logger.info(f"Notification {notification_id} status is {notification.status}, skipping")
        return None
    return notification


@shared_task(bind=True, max_retries=None, acks_late=True)
def deliver_notification(self, notification_id: str) -> bool:
    """
    Send a notification by email.

    Flow:
        1. Fetch notification, skip if not PENDING
        2. send_mail
        3. On success: status=SENT
        4. On error: bump attempt_count; FAILED once attempts are
           exhausted, otherwise retry with backoff

    Returns:
        True if sent or skipped, False on terminal failure
    """
    notification = _get_pending(notification_id)
    if notification is None:
        return True

    max_attempts = settings.NOTIFICATION_MAX_ATTEMPTS

    try:
        send_mail(
            subject=notification.subject,
            message=notification.body,
            from_email=settings.DEFAULT_FROM_EMAIL,
            recipient_list=[notification.recipient_email],
        )
    except Exception as exc:
        notification.attempt_count += 1
        notification.last_error = f"{type(exc).__name__}: {exc}"

        if notification.attempt_count >= max_attempts:
            notification.status = DeliveryStatus.FAILED
            notification.failed_at = django_timezone.now()
            notification.save(
                update_fields=["status", "attempt_count", "last_error", "failed_at", "updated_at"]
            )
            logger.error(
                f"Notification {notification_id} failed permanently after "
                f"{notification.attempt_count} attempts",
                extra={"kind": notification.kind, "error": notification.last_error},
            )
            return False

        notification.save(update_fields=["attempt_count", "last_error", "updated_at"])
        logger.warning(
            f"Notification {notification_id} delivery failed, will retry",
            extra={"attempt": notification.attempt_count, "error": notification.last_error},
        )
        raise self.retry(exc=exc, countdown=retry_countdown(notification.attempt_count))

    notification.status = DeliveryStatus.SENT
    notification.sent_at = django_timezone.now()
    notification.attempt_count += 1
    notification.save(update_fields=["status", "sent_at", "attempt_count", "updated_at"])

    logger.info(
        f"Notification {notification_id} sent",
        extra={"kind": notification.kind, "recipient_type": notification.recipient_type},
    )
    return True
