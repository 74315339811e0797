"""
BTCPay Server Greenfield API client used as a document store.

Each document lives in one invoice:
- invoice.orderId holds the document id
- invoice.metadata holds the document fields
- invoice.id (assigned by BTCPay) is exposed as `btcpayId`

Archived invoices are treated as deleted and are skipped by every read path.
"""
import logging
from typing import Any, Optional

import httpx
from pydantic_core import to_jsonable_python

from app.config import get_settings

logger = logging.getLogger(__name__)

API_PREFIX = "/api/v1"


class InvoiceNotFoundError(ValueError):
    """No active invoice exists for the requested order id."""


def wrap_payload(doc: Any) -> Any:
    """
    Wrap a plain document into an invoice payload.

    Payloads that already carry `metadata` are passed through unchanged,
    which lets callers send pre-wrapped bodies (e.g. for updates).

    Args:
        doc: Document with an `id` field

    Returns:
        {"orderId": doc["id"], "metadata": doc} or doc itself
    """
    if isinstance(doc, dict) and "metadata" not in doc:
        return {"orderId": doc.get("id"), "metadata": doc}
    return doc


def unwrap_invoice(invoice: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
    """
    Turn an invoice back into the document it stores.

    Args:
        invoice: Invoice object returned by BTCPay

    Returns:
        Document with `id` from orderId, metadata fields, and `btcpayId`,
        or None if invoice is empty
    """
    if not invoice:
        return None
    return {
        "id": invoice.get("orderId"),
        **(invoice.get("metadata") or {}),
        "btcpayId": invoice.get("id"),
    }


class StoreInvoices:
    """
    Invoice operations bound to a single store.

    Avoids passing the store id on every call:
        await client.user.get_invoice_by_order_id("abc")
    """

    def __init__(self, client: "BTCPayClient", store_id: Optional[str]):
        self._client = client
        self.store_id = store_id

    async def create_invoice(self, doc: dict[str, Any]) -> Optional[dict[str, Any]]:
        return await self._client.create_invoice(self.store_id, doc)

    async def get_invoice_by_order_id(self, order_id: str) -> Optional[dict[str, Any]]:
        return await self._client.get_invoice_by_order_id(self.store_id, order_id)

    async def update_invoice(self, order_id: str, doc: dict[str, Any]) -> Optional[dict[str, Any]]:
        return await self._client.update_invoice(self.store_id, order_id, doc)

    async def archive_invoice(self, order_id: str) -> Optional[dict[str, Any]]:
        return await self._client.archive_invoice(self.store_id, order_id)

    async def list_invoices(self, query_params: Optional[dict[str, Any]] = None) -> list[dict[str, Any]]:
        return await self._client.list_invoices(self.store_id, query_params)

    async def find_invoice_by_metadata(self, key: str, value: Any) -> Optional[dict[str, Any]]:
        return await self._client.find_invoice_by_metadata(self.store_id, key, value)

    async def archive_invoices_by_metadata(self, key: str, value: Any) -> list[dict[str, Any]]:
        return await self._client.archive_invoices_by_metadata(self.store_id, key, value)


class BTCPayClient:
    """
    Async client for the BTCPay Greenfield invoices API.

    Holds only fixed configuration plus a pooled HTTP connection, so one
    instance can be shared across requests.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        user_store_id: Optional[str] = None,
        session_store_id: Optional[str] = None,
        verification_token_store_id: Optional[str] = None,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            base_url: BTCPay Server URL (trailing slashes are stripped)
            api_key: Greenfield API key
            user_store_id: Store holding user documents
            session_store_id: Store holding session documents
            verification_token_store_id: Store holding verification tokens
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

        self.user = StoreInvoices(self, user_store_id)
        self.session = StoreInvoices(self, session_store_id)
        self.verification_token = StoreInvoices(self, verification_token_store_id)

    @property
    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"token {self._api_key}",
        }

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client with connection pooling."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=f"{self.base_url}{API_PREFIX}",
                headers=self.headers,
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        """Close HTTP client."""
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def request(
        self,
        path: str,
        method: str = "GET",
        body: Any = None,
        params: Optional[dict[str, Any]] = None,
    ) -> Any:
        """
        Perform a request against the Greenfield API.

        Args:
            path: Endpoint path below /api/v1
            method: HTTP method
            body: JSON payload
            params: Query string parameters

        Returns:
            Parsed JSON response (None for empty bodies)

        Raises:
            httpx.HTTPStatusError: On non-2xx responses
            httpx.RequestError: On transport failures
        """
        client = await self._get_client()
        logger.debug("BTCPay %s %s params=%s", method, path, params)

        response = await client.request(
            method,
            path,
            params=params,
            json=to_jsonable_python(body) if body is not None else None,
        )
        response.raise_for_status()

        if not response.content:
            return None
        return response.json()

    # ==================== Single invoice operations ====================

    async def create_invoice(self, store_id: str, doc: dict[str, Any]) -> Optional[dict[str, Any]]:
        """
        Create an invoice holding the document.

        Args:
            store_id: Store identifier
            doc: Plain document, or a payload already wrapped with `metadata`

        Returns:
            The created document (unwrapped)
        """
        payload = wrap_payload(doc)
        invoice = await self.request("/invoices", "POST", payload, params={"storeId": store_id})
        return unwrap_invoice(invoice)

    async def get_invoice_by_order_id(self, store_id: str, order_id: str) -> Optional[dict[str, Any]]:
        """
        Get the active invoice for an order id.

        Args:
            store_id: Store identifier
            order_id: Document id

        Returns:
            Unwrapped document or None if no active invoice exists
        """
        result = await self.request(
            "/invoices",
            "GET",
            params={"storeId": store_id, "orderId": order_id},
        )
        if not isinstance(result, list):
            return None

        for invoice in result:
            if not invoice.get("archived"):
                return unwrap_invoice(invoice)
        return None

    async def _resolve_invoice_id(self, store_id: str, order_id: str, action: str) -> str:
        existing = await self.get_invoice_by_order_id(store_id, order_id)
        if not existing:
            logger.warning("No active invoice for orderId=%s in store %s (%s)", order_id, store_id, action)
            raise InvoiceNotFoundError(f"Invoice not found for {action}.")
        return existing.get("btcpayId") or existing["id"]

    async def update_invoice(
        self,
        store_id: str,
        order_id: str,
        doc: dict[str, Any],
    ) -> Optional[dict[str, Any]]:
        """
        Replace the document stored under an order id.

        Args:
            store_id: Store identifier
            order_id: Document id
            doc: New document (or pre-wrapped payload)

        Returns:
            The updated document (unwrapped)

        Raises:
            InvoiceNotFoundError: If no active invoice has this order id
        """
        payload = wrap_payload(doc)
        invoice_id = await self._resolve_invoice_id(store_id, order_id, "update")
        invoice = await self.request(
            f"/invoices/{invoice_id}",
            "POST",
            payload,
            params={"storeId": store_id},
        )
        return unwrap_invoice(invoice)

    async def archive_invoice(self, store_id: str, order_id: str) -> Optional[dict[str, Any]]:
        """
        Archive (soft-delete) the invoice for an order id.

        Raises:
            InvoiceNotFoundError: If no active invoice has this order id
        """
        invoice_id = await self._resolve_invoice_id(store_id, order_id, "archiving")
        invoice = await self.request(
            f"/invoices/{invoice_id}/archive",
            "POST",
            params={"storeId": store_id},
        )
        return unwrap_invoice(invoice)

    # ==================== Collection operations ====================

    async def list_invoices(
        self,
        store_id: str,
        query_params: Optional[dict[str, Any]] = None,
    ) -> list[dict[str, Any]]:
        """
        List active invoices in a store.

        Args:
            store_id: Store identifier
            query_params: Additional Greenfield filters

        Returns:
            Unwrapped documents of non-archived invoices
        """
        params = dict(query_params or {})
        params["storeId"] = store_id

        result = await self.request("/invoices", "GET", params=params)
        if not isinstance(result, list):
            return []
        return [unwrap_invoice(inv) for inv in result if not inv.get("archived")]

    async def find_invoice_by_metadata(self, store_id: str, key: str, value: Any) -> Optional[dict[str, Any]]:
        """
        Find the first active document whose field `key` equals `value`.

        BTCPay cannot filter on metadata, so this scans the store listing.
        """
        documents = await self.list_invoices(store_id)
        for doc in documents:
            if doc and doc.get(key) == value:
                return doc
        return None

    async def archive_invoices_by_metadata(self, store_id: str, key: str, value: Any) -> list[dict[str, Any]]:
        """
        Archive every active document whose field `key` equals `value`.

        Archives one by one; a failure stops the loop and leaves earlier
        archives in place.

        Returns:
            Archived documents (unwrapped)
        """
        documents = await self.list_invoices(store_id)
        matching = [doc for doc in documents if doc and doc.get(key) == value]

        results = []
        for doc in matching:
            archived = await self.archive_invoice(store_id, doc["id"])
            results.append(archived)

        if matching:
            logger.info("Archived %d invoices in store %s where %s matched", len(results), store_id, key)
        return results


# Singleton instance for shared use
_btcpay_client: Optional[BTCPayClient] = None


async def get_btcpay_client() -> BTCPayClient:
    """Get shared BTCPayClient instance configured from settings."""
    global _btcpay_client
    if _btcpay_client is None:
        settings = get_settings()
        _btcpay_client = BTCPayClient(
            base_url=settings.btcpay_base_url,
            api_key=settings.btcpay_api_key,
            user_store_id=settings.btcpay_user_store_id,
            session_store_id=settings.btcpay_session_store_id,
            verification_token_store_id=settings.btcpay_verification_token_store_id,
            timeout=settings.btcpay_timeout_seconds,
        )
    return _btcpay_client


async def close_btcpay_client() -> None:
    """Close the shared client, if any."""
    global _btcpay_client
    if _btcpay_client is not None:
        await _btcpay_client.close()
        _btcpay_client = None
