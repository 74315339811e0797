"""
User document stored in the BTCPay Users store.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class AdapterUser(BaseModel):
    """
    User document as returned by BTCPayAdapter.
    
    Field names follow the stored camelCase keys through aliases.
    """
    id: str = Field(..., description="Document id (invoice orderId)")
    email: str = Field(..., description="User email address")
    name: Optional[str] = Field(None, description="Display name")
    image: Optional[str] = Field(None, description="Avatar URL")
    email_verified: Optional[datetime] = Field(
        None,
        alias="emailVerified",
        description="When the email address was confirmed by magic link"
    )
    btcpay_id: Optional[str] = Field(
        None,
        alias="btcpayId",
        description="BTCPay invoice id backing this document"
    )

    class Config:
        populate_by_name = True
        extra = "allow"
