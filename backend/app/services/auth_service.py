"""
Passwordless authentication (magic link) on top of BTCPayAdapter.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Optional
from urllib.parse import urlencode, urlparse

from pydantic import EmailStr, TypeAdapter, ValidationError

from app.config import Settings, get_settings
from app.core.security import generate_token, hash_token
from app.models.session import AdapterSession, VerificationToken, as_utc
from app.models.user import AdapterUser
from app.services.btcpay_adapter import BTCPayAdapter
from app.services.email_service import EmailSender, get_email_sender

logger = logging.getLogger(__name__)

MAGIC_LINK_PROVIDER_ID = "magic-link"

_email_adapter = TypeAdapter(EmailStr)


def normalize_email(email: str) -> str:
    """
    Trim, lowercase and validate an email address.

    Raises:
        ValueError: If the address is invalid
    """
    candidate = (email or "").strip().lower()
    try:
        return _email_adapter.validate_python(candidate)
    except ValidationError:
        raise ValueError("Invalid email address")


def strip_storage_fields(doc: dict[str, Any]) -> dict[str, Any]:
    """Drop the BTCPay invoice id before writing a document back."""
    return {k: v for k, v in doc.items() if k != "btcpayId"}


class AuthService:
    """Service for magic link sign-in and database sessions."""

    def __init__(
        self,
        adapter: BTCPayAdapter,
        email_sender: Optional[EmailSender] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize with the persistence adapter and email transport."""
        self.adapter = adapter
        self.settings = settings or get_settings()
        self.email_sender = email_sender or get_email_sender(self.settings)

    @property
    def origin(self) -> str:
        return self.settings.auth_origin.rstrip("/")

    def _url(self, path: str, **params: Optional[str]) -> str:
        query = urlencode({k: v for k, v in params.items() if v is not None})
        return f"{self.origin}{path}" + (f"?{query}" if query else "")

    def _now(self) -> datetime:
        return datetime.now(timezone.utc)

    def safe_callback_url(self, callback_url: Optional[str]) -> str:
        """
        Restrict redirects to the configured origin.

        Relative paths are joined to the origin; foreign hosts fall back
        to the origin itself.
        """
        if not callback_url:
            return self.origin
        if callback_url.startswith("/") and not callback_url.startswith("//"):
            return f"{self.origin}{callback_url}"
        if urlparse(callback_url).netloc == urlparse(self.origin).netloc:
            return callback_url
        return self.origin

    # ==================== Magic link ====================

    async def request_magic_link(self, email: str, callback_url: Optional[str] = None) -> str:
        """
        Create a verification token and email the sign-in link.

        Args:
            email: Address to sign in
            callback_url: Where to land after sign-in

        Returns:
            URL of the "check your email" page

        Raises:
            ValueError: If the email address is invalid
        """
        identifier = normalize_email(email)
        token = generate_token()
        expires = self._now() + timedelta(seconds=self.settings.magic_link_max_age_seconds)

        record: dict[str, Any] = {
            "identifier": identifier,
            "token": hash_token(token, self.settings.nextauth_secret),
            "expires": expires,
        }
        existing_user = await self.adapter.get_user_by_email(identifier)
        if existing_user:
            record["userId"] = existing_user["id"]

        # one live link per address; lookups match on identifier only
        await self.adapter.client.archive_invoices_by_metadata(
            self.adapter.verification_tokens_store, "identifier", identifier
        )
        await self.adapter.create_verification_token(record)

        link = self._url(
            f"{self.settings.auth_base_path}/callback/{MAGIC_LINK_PROVIDER_ID}",
            token=token,
            email=identifier,
            callbackUrl=self.safe_callback_url(callback_url),
        )
        await self.email_sender.send_magic_link(identifier, link, urlparse(self.origin).netloc)
        logger.info("Magic link requested for %s", identifier)

        return self._url(self.settings.verify_request_page, provider=MAGIC_LINK_PROVIDER_ID, type="email")

    async def complete_magic_link(self, email: str, token: str) -> tuple[AdapterSession, AdapterUser]:
        """
        Consume a magic link and open a session.

        Args:
            email: Address from the link
            token: Plain token from the link

        Returns:
            (session, user)

        Raises:
            ValueError: If the link is unknown, already used or expired
        """
        identifier = normalize_email(email)
        record = await self.adapter.use_verification_token({
            "identifier": identifier,
            "token": hash_token(token, self.settings.nextauth_secret),
        })
        if not record:
            logger.warning("Rejected magic link for %s", identifier)
            raise ValueError("Invalid or already used verification link")

        if VerificationToken(**record).is_expired(self._now()):
            raise ValueError("Verification link has expired")

        now = self._now()
        user = await self.adapter.get_user_by_email(identifier)
        if user is None:
            user = await self.adapter.create_user({"email": identifier, "emailVerified": now})
            logger.info("Created user %s for %s", user["id"], identifier)
        elif not user.get("emailVerified"):
            user = await self.adapter.update_user({**strip_storage_fields(user), "emailVerified": now})

        session = await self.adapter.create_session({
            "sessionToken": generate_token(),
            "userId": user["id"],
            "expires": now + timedelta(seconds=self.settings.session_max_age_seconds),
        })
        logger.info("Signed in user %s", user["id"])

        return AdapterSession(**session), AdapterUser(**user)

    # ==================== Sessions ====================

    async def get_session(self, session_token: Optional[str]) -> Optional[tuple[AdapterSession, AdapterUser]]:
        """
        Resolve a session cookie.

        Expired sessions are deleted; sessions older than the update age
        get their expiry pushed forward.

        Returns:
            (session, user) or None
        """
        if not session_token:
            return None

        result = await self.adapter.get_session_and_user(session_token)
        if not result:
            return None

        session = AdapterSession(**result["session"])
        user = AdapterUser(**result["user"])
        now = self._now()

        if session.is_expired(now):
            await self.adapter.delete_session(session_token)
            return None

        max_age = timedelta(seconds=self.settings.session_max_age_seconds)
        update_age = timedelta(seconds=self.settings.session_update_age_seconds)
        if as_utc(session.expires) - max_age + update_age <= now:
            expires = now + max_age
            await self.adapter.update_session({
                **strip_storage_fields(result["session"]),
                "expires": expires,
            })
            session = session.model_copy(update={"expires": expires})

        return session, user

    async def sign_out(self, session_token: Optional[str]) -> Optional[dict[str, Any]]:
        """Delete the session behind a cookie, if any."""
        if not session_token:
            return None
        return await self.adapter.delete_session(session_token)
