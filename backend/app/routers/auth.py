"""
Authentication router for magic link sign-in, session lookup and sign-out.
"""
import logging
from typing import Annotated, Optional

import httpx
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse, RedirectResponse

from app.config import get_settings
from app.dependencies.auth import get_auth_service, get_session_token
from app.schemas.auth import (
    MagicLinkRequest,
    SessionResponse,
    SessionUser,
    UrlResponse,
)
from app.services.auth_service import MAGIC_LINK_PROVIDER_ID, AuthService

logger = logging.getLogger(__name__)

settings = get_settings()

router = APIRouter(prefix=settings.auth_base_path, tags=["Authentication"])


def upstream_error(exc: httpx.HTTPError) -> HTTPException:
    logger.error("BTCPay request failed: %s", exc)
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail="Authentication store unavailable",
    )


@router.post(
    f"/signin/{MAGIC_LINK_PROVIDER_ID}",
    response_model=UrlResponse,
    summary="Send a magic link",
)
async def sign_in(
    body: MagicLinkRequest,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Email a one-time sign-in link.

    - **email**: Address to sign in
    - **callbackUrl**: Optional page to land on after sign-in

    Returns the URL of the "check your email" page.
    """
    try:
        url = await auth_service.request_magic_link(body.email, body.callback_url)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except httpx.HTTPError as e:
        raise upstream_error(e)
    return {"url": url}


@router.get(
    f"/callback/{MAGIC_LINK_PROVIDER_ID}",
    summary="Magic link callback",
    response_class=RedirectResponse,
    status_code=status.HTTP_302_FOUND,
)
async def magic_link_callback(
    token: Annotated[str, Query(description="Token from the email")],
    email: Annotated[str, Query(description="Address the link was sent to")],
    callback_url: Annotated[Optional[str], Query(alias="callbackUrl")] = None,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Consume the link, set the session cookie and redirect.

    Invalid, used or expired links redirect to the sign-in page with
    `?error=Verification`.
    """
    try:
        session, _ = await auth_service.complete_magic_link(email, token)
    except ValueError:
        return RedirectResponse(
            url=f"{auth_service.origin}{settings.sign_in_page}?error=Verification",
            status_code=status.HTTP_302_FOUND,
        )
    except httpx.HTTPError as e:
        raise upstream_error(e)

    response = RedirectResponse(
        url=auth_service.safe_callback_url(callback_url),
        status_code=status.HTTP_302_FOUND,
    )
    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.session_token,
        expires=session.expires,
        httponly=True,
        samesite="lax",
        secure=settings.secure_cookies,
        path="/",
    )
    return response


@router.get(
    "/session",
    summary="Get the current session",
)
async def get_session(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Return the signed-in user and session expiry.

    Responds with an empty object when there is no valid session.
    """
    try:
        result = await auth_service.get_session(get_session_token(request))
    except httpx.HTTPError as e:
        raise upstream_error(e)

    if result is None:
        return {}

    session, user = result
    return SessionResponse(
        user=SessionUser(id=user.id, email=user.email, name=user.name, image=user.image),
        expires=session.expires,
    )


@router.post(
    "/signout",
    response_model=UrlResponse,
    summary="Sign out",
)
async def sign_out(
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
):
    """Delete the current session and clear its cookie."""
    try:
        await auth_service.sign_out(get_session_token(request))
    except httpx.HTTPError as e:
        raise upstream_error(e)

    response = JSONResponse(content=UrlResponse(url=auth_service.origin).model_dump())
    response.delete_cookie(settings.session_cookie_name, path="/")
    return response
