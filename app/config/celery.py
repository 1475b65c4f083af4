"""
Celery configuration for the payments service.

Workers consume:
- Webhook processing (payments.tasks.process_webhook_event)
- Notification delivery (notifications.tasks.deliver_notification)
- Periodic jobs scheduled through django-celery-beat (webhook retries,
  stuck webhook cleanup, release of matured seller earnings)

Redis is used as both the message broker and result backend. Tasks are
auto-discovered from all installed Django apps.

For more information, see:
https://docs.celeryq.dev/en/stable/django/first-steps-with-django.html
"""

import os

from celery import Celery

# Set the default Django settings module for the Celery worker
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

app.autodiscover_tasks()
