"""
Auth persistence adapter backed by BTCPay invoices.

Implements the user / session / verification-token methods an Auth.js-style
framework expects from a database adapter. Each collection maps to its own
BTCPay store; documents are stored through BTCPayClient.
"""
import logging
from typing import Any, Optional

from app.core.security import generate_id, tokens_match
from app.services.btcpay_api import BTCPayClient

logger = logging.getLogger(__name__)

REQUIRED_STORES = ("Users", "Sessions", "VerificationTokens")


class AdapterConfigError(ValueError):
    """Raised when the adapter is built without all store ids."""


class MissingDocumentIdError(ValueError):
    """Raised when an update is requested for a document without an id."""


class BTCPayAdapter:
    """
    Database adapter for the auth layer.

    Only fixed configuration is kept on the instance; all state lives
    in BTCPay, so one adapter can serve concurrent requests.
    """

    def __init__(self, client: BTCPayClient, store_ids: Optional[dict[str, Optional[str]]] = None):
        """
        Initialize with a BTCPay client and the store mapping.

        Args:
            client: BTCPayClient instance
            store_ids: {"Users": ..., "Sessions": ..., "VerificationTokens": ...}

        Raises:
            AdapterConfigError: If any store id is missing
        """
        if not store_ids or not all(store_ids.get(name) for name in REQUIRED_STORES):
            raise AdapterConfigError(
                "You must supply storeIds for Users, Sessions, and VerificationTokens."
            )
        self.client = client
        self.users_store = store_ids["Users"]
        self.sessions_store = store_ids["Sessions"]
        self.verification_tokens_store = store_ids["VerificationTokens"]

    # ==================== Document helpers ====================

    async def _create_document(self, store: str, data: dict[str, Any]) -> dict[str, Any]:
        if not data.get("id"):
            data["id"] = generate_id()
        await self.client.create_invoice(store, {"orderId": data["id"], "metadata": data})
        # The caller's object is returned, not BTCPay's echo
        return data

    async def _get_document(self, store: str, doc_id: str) -> Optional[dict[str, Any]]:
        return await self.client.get_invoice_by_order_id(store, doc_id)

    async def _update_document(self, store: str, doc_id: str, data: dict[str, Any]) -> Optional[dict[str, Any]]:
        # Metadata is replaced wholesale; fields missing from `data` are dropped
        return await self.client.update_invoice(store, doc_id, {"metadata": data})

    async def _delete_document(self, store: str, doc_id: str) -> Optional[dict[str, Any]]:
        return await self.client.archive_invoice(store, doc_id)

    async def _find_document_by_field(self, store: str, field: str, value: Any) -> Optional[dict[str, Any]]:
        return await self.client.find_invoice_by_metadata(store, field, value)

    # ==================== Users ====================

    async def create_user(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._create_document(self.users_store, data)

    async def get_user(self, user_id: str) -> Optional[dict[str, Any]]:
        return await self._get_document(self.users_store, user_id)

    async def get_user_by_email(self, email: str) -> Optional[dict[str, Any]]:
        return await self._find_document_by_field(self.users_store, "email", email)

    async def get_user_by_account(self, data: Any) -> None:
        """Each user has exactly one account, so account lookups never match."""
        return None

    async def update_user(self, data: dict[str, Any]) -> Optional[dict[str, Any]]:
        if not data.get("id"):
            raise MissingDocumentIdError("User must have an id to update.")
        return await self._update_document(self.users_store, data["id"], data)

    async def delete_user(self, user_id: str) -> None:
        """
        Archive a user, then its sessions and verification tokens.

        Steps run in order and are not transactional: if one fails the
        earlier archives stay applied.
        """
        await self._delete_document(self.users_store, user_id)
        sessions = await self.client.archive_invoices_by_metadata(self.sessions_store, "userId", user_id)
        tokens = await self.client.archive_invoices_by_metadata(
            self.verification_tokens_store, "userId", user_id
        )
        logger.info(
            "Deleted user %s (%d sessions, %d verification tokens archived)",
            user_id,
            len(sessions),
            len(tokens),
        )

    async def link_account(self, data: Any) -> Any:
        return data

    async def unlink_account(self, data: Any) -> Any:
        return data

    # ==================== Sessions ====================

    async def get_session_and_user(self, session_token: str) -> Optional[dict[str, Any]]:
        """
        Resolve a session token into its session and owning user.

        Returns:
            {"session": ..., "user": ...} or None if either is missing
        """
        session = await self._find_document_by_field(self.sessions_store, "sessionToken", session_token)
        if not session:
            return None
        user = await self._get_document(self.users_store, session.get("userId"))
        if not user:
            return None
        return {"session": session, "user": user}

    async def create_session(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._create_document(self.sessions_store, data)

    async def update_session(self, data: dict[str, Any]) -> Optional[dict[str, Any]]:
        if not data.get("id"):
            raise MissingDocumentIdError("Session must have an id to update.")
        return await self._update_document(self.sessions_store, data["id"], data)

    async def delete_session(self, session_token: str) -> Optional[dict[str, Any]]:
        session = await self._find_document_by_field(self.sessions_store, "sessionToken", session_token)
        if not session:
            return None
        await self._delete_document(self.sessions_store, session["id"])
        return session

    # ==================== Verification tokens ====================

    async def create_verification_token(self, data: dict[str, Any]) -> dict[str, Any]:
        return await self._create_document(self.verification_tokens_store, data)

    async def use_verification_token(self, data: dict[str, Any]) -> Optional[dict[str, Any]]:
        """
        Consume a verification token.

        The record is looked up by identifier and must carry the exact token.
        On success it is archived so the same token cannot be used twice.

        Args:
            data: {"identifier": ..., "token": ...}

        Returns:
            The stored token document, or None
        """
        record = await self._find_document_by_field(
            self.verification_tokens_store, "identifier", data.get("identifier")
        )
        if not record or not tokens_match(record.get("token"), data.get("token")):
            return None

        await self._delete_document(self.verification_tokens_store, record["id"])
        logger.info("Verification token %s consumed", record["id"])
        return record
