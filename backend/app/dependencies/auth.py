"""
Authentication dependencies for route protection.
"""
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from app.config import get_settings
from app.models.user import AdapterUser
from app.services.auth_service import AuthService
from app.services.btcpay_adapter import BTCPayAdapter
from app.services.btcpay_api import get_btcpay_client


async def get_btcpay_adapter() -> BTCPayAdapter:
    """Dependency to get a BTCPayAdapter over the shared client."""
    client = await get_btcpay_client()
    return BTCPayAdapter(client, get_settings().store_ids)


async def get_auth_service(
    adapter: Annotated[BTCPayAdapter, Depends(get_btcpay_adapter)],
) -> AuthService:
    """Dependency to get AuthService instance."""
    return AuthService(adapter)


def get_session_token(request: Request) -> str | None:
    """Read the session cookie, if present."""
    return request.cookies.get(get_settings().session_cookie_name)


async def get_current_user(
    request: Request,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> AdapterUser:
    """
    Dependency to get the signed-in user from the session cookie.
    
    Raises:
        HTTPException 401: If there is no valid session
    """
    result = await auth_service.get_session(get_session_token(request))
    if result is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
        )
    _, user = result
    return user


# Type alias for cleaner route signatures
CurrentUser = Annotated[AdapterUser, Depends(get_current_user)]
