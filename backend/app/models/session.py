"""
Session and verification token documents.
"""
from datetime import datetime, timezone
from typing import Optional

from pydantic import BaseModel, Field


class AdapterSession(BaseModel):
    """Session document stored in the BTCPay Sessions store."""
    id: str = Field(..., description="Document id (invoice orderId)")
    session_token: str = Field(..., alias="sessionToken", description="Opaque cookie value")
    user_id: str = Field(..., alias="userId", description="Owning user id")
    expires: datetime = Field(..., description="Session expiry")
    btcpay_id: Optional[str] = Field(None, alias="btcpayId")

    class Config:
        populate_by_name = True
        extra = "allow"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return as_utc(self.expires) <= now


class VerificationToken(BaseModel):
    """One-time magic link token stored in the VerificationTokens store."""
    id: Optional[str] = Field(None, description="Document id (invoice orderId)")
    identifier: str = Field(..., description="Email address the link was sent to")
    token: str = Field(..., description="Hashed token")
    expires: datetime = Field(..., description="Link expiry")
    user_id: Optional[str] = Field(None, alias="userId", description="Known user at request time")

    class Config:
        populate_by_name = True
        extra = "allow"

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        now = now or datetime.now(timezone.utc)
        return as_utc(self.expires) <= now


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
