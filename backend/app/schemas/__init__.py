"""
Request/response schemas for the API.
"""
from app.schemas.auth import (
    MagicLinkRequest,
    UrlResponse,
    SessionResponse,
    SessionUser,
)

__all__ = [
    "MagicLinkRequest",
    "UrlResponse",
    "SessionResponse",
    "SessionUser",
]
