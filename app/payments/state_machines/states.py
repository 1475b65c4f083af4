"""
State enums for payment models.

This module defines all state enums used by payment models. These are
Django TextChoices for database storage and admin integration.

State Machines Overview:

Payment States (django-fsm):
    created → authorized → captured → completed
    created → captured (capture without a prior authorized event)
    created/authorized → failed
    captured/completed → refunded

Refund States (mirror the gateway):
    pending → processed
    pending → failed

WebhookEvent States:
    pending → processing → processed
    pending → processing → failed → processing (retry)
"""

from django.db import models


class PaymentStatus(models.TextChoices):
    """
    States for the Payment model lifecycle.

    Terminal states: CAPTURED, COMPLETED, REFUNDED, FAILED
    A terminal payment is never captured again; CAPTURED and COMPLETED
    can still move forward (release, refund).

    State Flow:
        CREATED → AUTHORIZED → CAPTURED → COMPLETED

    Failure Flow:
        CREATED/AUTHORIZED → FAILED

    Refund Flow:
        CAPTURED/COMPLETED → REFUNDED
    """

    CREATED = "created", "Created"
    AUTHORIZED = "authorized", "Authorized"
    CAPTURED = "captured", "Captured"
    COMPLETED = "completed", "Completed"
    REFUNDED = "refunded", "Refunded"
    FAILED = "failed", "Failed"

    @classmethod
    def capturable(cls) -> list[str]:
        return [cls.CREATED, cls.AUTHORIZED]

    @classmethod
    def captured_family(cls) -> list[str]:
        """Statuses in which the payment has been captured and not reversed."""
        return [cls.CAPTURED, cls.COMPLETED]

    @classmethod
    def terminal(cls) -> list[str]:
        return [cls.CAPTURED, cls.COMPLETED, cls.REFUNDED, cls.FAILED]


class TransactionType(models.TextChoices):
    """Direction of a ledger entry."""

    CREDIT = "credit", "Credit"
    DEBIT = "debit", "Debit"


class TransactionStatus(models.TextChoices):
    """
    Outcome of a ledger entry.

    FAILED debits record a refund whose seller clawback could not be
    applied because available balance was insufficient.
    """

    PENDING = "pending", "Pending"
    COMPLETED = "completed", "Completed"
    FAILED = "failed", "Failed"


class RefundStatus(models.TextChoices):
    """States for the Refund model, mirroring the gateway refund entity."""

    PENDING = "pending", "Pending"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


class RefundSpeed(models.TextChoices):
    NORMAL = "normal", "Normal"
    OPTIMUM = "optimum", "Optimum"


class WebhookEventStatus(models.TextChoices):
    """
    Processing states for WebhookEvent.

    State Flow:
        PENDING → PROCESSING → PROCESSED
        PENDING → PROCESSING → FAILED → PROCESSING (retry)

    Events stuck in PROCESSING longer than the threshold are reset to
    FAILED by the cleanup task so they can be retried.
    """

    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PROCESSED = "processed", "Processed"
    FAILED = "failed", "Failed"


__all__ = [
    "PaymentStatus",
    "RefundSpeed",
    "RefundStatus",
    "TransactionStatus",
    "TransactionType",
    "WebhookEventStatus",
]
