"""
Pytest fixtures for gateway client tests.

Sections:
    - Configuration Fixtures
    - Mock Session Fixtures
"""

import hashlib
import hmac
from unittest.mock import MagicMock

import pytest
import requests

from payments.gateway import GatewayConfig, RazorpayClient


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def gateway_config():
    """Gateway config with test credentials and no real network."""
    return GatewayConfig(
        key_id="rzp_test_key",
        key_secret="test_key_secret",
        webhook_secret="test_webhook_secret",
        base_url="https://gateway.test/v1",
        max_fetch_retries=2,
    )


@pytest.fixture
def sign():
    """Produce the hex HMAC-SHA256 the gateway would send."""

    def _sign(secret: str, message: str | bytes) -> str:
        body = message.encode() if isinstance(message, str) else message
        return hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()

    return _sign


# =============================================================================
# Mock Session Fixtures
# =============================================================================


def make_response(status_code: int = 200, json_data=None, text: str | None = None):
    """Build a MagicMock shaped like requests.Response."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.ok = 200 <= status_code < 400
    if json_data is None:
        response.json.side_effect = ValueError("No JSON")
        response.text = text or ""
    else:
        response.json.return_value = json_data
        response.text = text or str(json_data)
    return response


@pytest.fixture
def session():
    """Mock requests.Session injected into the client."""
    return MagicMock(spec=requests.Session)


@pytest.fixture
def client(gateway_config, session):
    """RazorpayClient wired to the mock session."""
    return RazorpayClient(gateway_config, session=session)
