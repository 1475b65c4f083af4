"""
Tests for notifications app.

This package contains test modules for:
- test_services.py: NotificationService tests
- test_tasks.py: Email delivery task tests
- test_templates.py: Template rendering tests

Usage:
    pytest notifications/tests/
    pytest notifications/tests/test_services.py
"""
