"""
Service layer for business logic.
"""
from app.services.auth_service import AuthService
from app.services.btcpay_adapter import BTCPayAdapter
from app.services.btcpay_api import BTCPayClient

__all__ = [
    "AuthService",
    "BTCPayAdapter",
    "BTCPayClient",
]
