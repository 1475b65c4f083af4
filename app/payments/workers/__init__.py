"""
Workers for async payment processing.

This module contains Celery tasks for background payment operations:
- EarningsRelease: Moves matured seller earnings from pending to available

Usage:
    from payments.workers import release_matured_earnings, release_payment_earnings

    # Trigger manual processing
    release_matured_earnings.delay()
    release_payment_earnings.delay(str(payment_id))
"""

from payments.workers.earnings_release import (
    release_matured_earnings,
    release_payment_earnings,
)

__all__ = [
    "release_matured_earnings",
    "release_payment_earnings",
]
