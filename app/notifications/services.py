"""
Notification service layer.

This module provides the NotificationService class, which renders
buyer/seller messages and queues them for delivery.

Design Principles:
    - Services are stateless (use class methods)
    - Expected failures return ServiceResult.failure()
    - Delivery tasks are queued with transaction.on_commit, so a rolled
      back payment transaction never emails anyone
    - A notification problem never fails the payment operation that
      triggered it; callers get a ServiceResult and move on

Usage:
    from notifications.services import NotificationService

    NotificationService.notify_payment_succeeded(payment, seller_share=Decimal("449.10"))
    NotificationService.notify_refund(payment, refund)
"""

from __future__ import annotations

import uuid
from decimal import Decimal
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction

from catalog.loaders import find_buyer, find_product, find_seller
from core.services import BaseService, ServiceResult

from notifications.models import DeliveryStatus, Notification, NotificationKind, RecipientType
from notifications.templates import format_amount, render

if TYPE_CHECKING:
    from payments.models import Payment, Refund


class NotificationService(BaseService):
    """
    Service for notification operations.

    Methods:
        create_notification: Render and queue one message
        notify_payment_succeeded: Buyer receipt, buyer delivery, seller sale
        notify_payment_failed: Buyer failure notice
        notify_refund: Buyer and seller refund notices
    """

    @classmethod
    def create_notification(
        cls,
        recipient_type: str,
        recipient_id: uuid.UUID,
        recipient_email: str | None,
        kind: str,
        context: dict,
        idempotency_key: str | None = None,
    ) -> ServiceResult[Notification]:
        """
        Render a message and queue it for delivery.

        Recipients without an email are stored as SKIPPED and nothing is
        queued.

        Error codes:
            DUPLICATE: A notification with this idempotency_key exists

        Raises:
            KeyError: Template placeholder missing from context
        """
        # Import tasks here to avoid circular imports
        from notifications import tasks

        if idempotency_key and Notification.objects.filter(idempotency_key=idempotency_key).exists():
            cls.get_logger().info(
                f"Duplicate notification prevented: idempotency_key={idempotency_key}"
            )
            return ServiceResult.failure(
                f"Notification with idempotency_key already exists: {idempotency_key}",
                error_code="DUPLICATE",
            )

        subject, body = render(kind, context)
        status = DeliveryStatus.PENDING if recipient_email else DeliveryStatus.SKIPPED

        try:
            with transaction.atomic():
                notification = Notification.objects.create(
                    recipient_type=recipient_type,
                    recipient_id=recipient_id,
                    recipient_email=recipient_email or None,
                    kind=kind,
                    subject=subject,
                    body=body,
                    context=context,
                    status=status,
                    idempotency_key=idempotency_key,
                )
        except IntegrityError:
            return ServiceResult.failure(
                f"Notification with idempotency_key already exists: {idempotency_key}",
                error_code="DUPLICATE",
            )

        if status == DeliveryStatus.PENDING:
            notification_id = str(notification.id)
            transaction.on_commit(lambda: tasks.deliver_notification.delay(notification_id))
        else:
            cls.get_logger().info(
                f"Notification {notification.id} skipped: recipient has no email",
                extra={"kind": kind, "recipient_id": str(recipient_id)},
            )

        return ServiceResult.success(notification)

    # =========================================================================
    # Payment Notifications
    # =========================================================================

    @classmethod
    def notify_payment_succeeded(
        cls,
        payment: Payment,
        seller_share: Decimal,
    ) -> list[ServiceResult[Notification]]:
        """Queue the buyer receipt, the buyer delivery notice and the seller sale notice."""
        context = cls._payment_context(payment)
        context["seller_share"] = format_amount(seller_share, payment.currency)
        buyer_email = context.pop("_buyer_email")
        seller_email = context.pop("_seller_email")

        return [
            cls.create_notification(
                RecipientType.BUYER,
                payment.buyer_id,
                buyer_email,
                NotificationKind.PAYMENT_SUCCEEDED,
                context,
                idempotency_key=f"payment:{payment.id}:succeeded",
            ),
            cls.create_notification(
                RecipientType.BUYER,
                payment.buyer_id,
                buyer_email,
                NotificationKind.PRODUCT_DELIVERY,
                context,
                idempotency_key=f"payment:{payment.id}:delivery",
            ),
            cls.create_notification(
                RecipientType.SELLER,
                payment.seller_id,
                seller_email,
                NotificationKind.NEW_SALE,
                context,
                idempotency_key=f"payment:{payment.id}:sale",
            ),
        ]

    @classmethod
    def notify_payment_failed(cls, payment: Payment) -> ServiceResult[Notification]:
        context = cls._payment_context(payment)
        buyer_email = context.pop("_buyer_email")
        context.pop("_seller_email")

        return cls.create_notification(
            RecipientType.BUYER,
            payment.buyer_id,
            buyer_email,
            NotificationKind.PAYMENT_FAILED,
            context,
            idempotency_key=f"payment:{payment.id}:failed",
        )

    @classmethod
    def notify_refund(cls, payment: Payment, refund: Refund) -> list[ServiceResult[Notification]]:
        """Queue the buyer and seller notices for one refund."""
        context = cls._payment_context(payment)
        buyer_email = context.pop("_buyer_email")
        seller_email = context.pop("_seller_email")
        context.update(
            refund_amount=format_amount(refund.amount, refund.currency),
            refund_status=refund.status,
            reason=refund.reason or "Not specified",
        )

        return [
            cls.create_notification(
                RecipientType.BUYER,
                payment.buyer_id,
                buyer_email,
                NotificationKind.REFUND_PROCESSED,
                context,
                idempotency_key=f"refund:{refund.gateway_refund_id}:buyer",
            ),
            cls.create_notification(
                RecipientType.SELLER,
                payment.seller_id,
                seller_email,
                NotificationKind.REFUND_ISSUED,
                context,
                idempotency_key=f"refund:{refund.gateway_refund_id}:seller",
            ),
        ]

    @classmethod
    def _payment_context(cls, payment: Payment) -> dict:
        buyer = find_buyer(payment.buyer_id)
        seller = find_seller(payment.seller_id)
        product = find_product(payment.product_id)

        buyer_name = (buyer.name or buyer.email) if buyer else "Customer"
        return {
            "buyer_name": buyer_name,
            "seller_name": seller.name if seller else "Seller",
            "product_title": product.title if product else "your purchase",
            "amount": format_amount(payment.amount, payment.currency),
            "receipt": payment.receipt,
            "order_id": payment.gateway_order_id,
            "payment_method": payment.payment_method or "N/A",
            "_buyer_email": buyer.email if buyer else None,
            "_seller_email": seller.email if seller else None,
        }
