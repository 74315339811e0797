"""
Backend-specific test fixtures and configuration.

These fixtures extend the global fixtures with mocked services for
testing FastAPI routes without going through the fake BTCPay server.
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient


# =============================================================================
# Service Mocks
# =============================================================================

@pytest.fixture
def mock_adapter():
    """
    Create a fully mocked BTCPayAdapter.
    
    All methods are AsyncMock, allowing you to configure return values:
    
        mock_adapter.get_user_by_email.return_value = {...}
    """
    adapter = MagicMock()
    for name in (
        "create_user",
        "get_user",
        "get_user_by_email",
        "get_user_by_account",
        "update_user",
        "delete_user",
        "link_account",
        "unlink_account",
        "get_session_and_user",
        "create_session",
        "update_session",
        "delete_session",
        "create_verification_token",
        "use_verification_token",
    ):
        setattr(adapter, name, AsyncMock())
    return adapter


@pytest.fixture
def mock_auth_service():
    """Create a fully mocked AuthService."""
    service = MagicMock()
    service.origin = "http://testserver"
    service.safe_callback_url = MagicMock(return_value="http://testserver")
    service.request_magic_link = AsyncMock()
    service.complete_magic_link = AsyncMock()
    service.get_session = AsyncMock()
    service.sign_out = AsyncMock()
    return service


@pytest.fixture
def client_with_mock_auth(app, mock_auth_service):
    """TestClient whose AuthService dependency is the mock above."""
    from app.dependencies.auth import get_auth_service

    app.dependency_overrides[get_auth_service] = lambda: mock_auth_service
    with TestClient(app, follow_redirects=False) as c:
        yield c
    app.dependency_overrides.clear()


# =============================================================================
# Assertion Helpers
# =============================================================================

@pytest.fixture
def assert_error_response():
    """Helper to check FastAPI error bodies."""
    def _assert(response, status_code: int, detail_contains: str = None):
        assert response.status_code == status_code
        data = response.json()
        assert "detail" in data
        if detail_contains:
            assert detail_contains.lower() in str(data["detail"]).lower()
    return _assert
