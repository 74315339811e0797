"""
Pydantic models for documents kept in BTCPay stores.
"""
from app.models.user import AdapterUser
from app.models.session import AdapterSession, VerificationToken

__all__ = [
    "AdapterUser",
    "AdapterSession",
    "VerificationToken",
]
