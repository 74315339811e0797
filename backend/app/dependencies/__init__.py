"""
Dependencies for dependency injection in routes.
"""
from app.dependencies.auth import (
    CurrentUser,
    get_auth_service,
    get_btcpay_adapter,
    get_current_user,
    get_session_token,
)

__all__ = [
    "CurrentUser",
    "get_auth_service",
    "get_btcpay_adapter",
    "get_current_user",
    "get_session_token",
]
