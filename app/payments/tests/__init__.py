"""
Tests for payments app.

This package contains test modules for:
- test_state_transitions.py: Payment and Refund FSM transitions
- test_capture.py: Fee split and the capture unit of work
- test_order_service.py, test_verification_service.py,
  test_refund_service.py, test_query_service.py: Service tests
- test_views.py: API endpoint tests
- test_scenarios.py: End-to-end payment journeys

Usage:
    pytest payments/tests/
    pytest payments/tests/test_refund_service.py
"""
