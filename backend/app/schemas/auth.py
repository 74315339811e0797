"""
Authentication request/response schemas.
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


class MagicLinkRequest(BaseModel):
    """Sign-in request body for the magic link provider."""
    email: EmailStr = Field(..., description="Address to send the sign-in link to")
    callback_url: Optional[str] = Field(
        None,
        alias="callbackUrl",
        description="Where to redirect after the link is opened"
    )

    class Config:
        populate_by_name = True


class UrlResponse(BaseModel):
    """URL the client should navigate to next."""
    url: str = Field(..., description="Absolute URL")


class SessionUser(BaseModel):
    """User fields exposed to the browser."""
    id: str
    email: str
    name: Optional[str] = None
    image: Optional[str] = None


class SessionResponse(BaseModel):
    """Active session payload."""
    user: SessionUser
    expires: datetime
