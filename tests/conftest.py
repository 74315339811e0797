"""
Global test fixtures for the BTCPay auth backend.

This module provides shared fixtures for all tests including:
- An in-memory fake BTCPay Greenfield server (httpx.MockTransport)
- BTCPayClient / BTCPayAdapter / AuthService wired to the fake server
- A recording email sender for magic link assertions
- FastAPI test clients with dependencies overridden
"""

import json
import os
import sys
import uuid
from pathlib import Path
from typing import Any, Generator

import httpx
import pytest
from fastapi.testclient import TestClient

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent / "backend"))

# Settings are cached on first use, so configure them before any app import
os.environ.setdefault("BTCPAY_BASE_URL", "https://btcpay.test/")
os.environ.setdefault("BTCPAY_API_KEY", "test-api-key")
os.environ.setdefault("BTCPAY_USER_STORE_ID", "store-users")
os.environ.setdefault("BTCPAY_SESSION_STORE_ID", "store-sessions")
os.environ.setdefault("BTCPAY_VERIFICATION_TOKEN_STORE_ID", "store-tokens")
os.environ.setdefault("NEXTAUTH_SECRET", "test-secret")
os.environ.setdefault("AUTH_ORIGIN", "http://testserver")
os.environ.setdefault("SMTP_HOST", "")


STORE_IDS = {
    "Users": "store-users",
    "Sessions": "store-sessions",
    "VerificationTokens": "store-tokens",
}


# =============================================================================
# Fake BTCPay Server
# =============================================================================

class FakeBTCPayServer:
    """
    Minimal in-memory stand-in for the Greenfield invoices endpoints.

    Invoices are kept in insertion order and never removed; archiving only
    flips the `archived` flag, like the real server.
    """

    def __init__(self, api_key: str = "test-api-key"):
        self.api_key = api_key
        self.invoices: list[dict[str, Any]] = []
        self.requests: list[httpx.Request] = []
        self.fail_with: int | None = None

    # ---- helpers used by tests ----

    def add_invoice(
        self,
        store_id: str,
        order_id: str,
        metadata: dict[str, Any],
        archived: bool = False,
    ) -> dict[str, Any]:
        invoice = {
            "id": f"inv_{uuid.uuid4().hex[:12]}",
            "storeId": store_id,
            "orderId": order_id,
            "metadata": metadata,
            "archived": archived,
            "status": "New",
        }
        self.invoices.append(invoice)
        return invoice

    def invoices_for(self, store_id: str, order_id: str | None = None) -> list[dict[str, Any]]:
        return [
            inv for inv in self.invoices
            if inv["storeId"] == store_id and (order_id is None or inv["orderId"] == order_id)
        ]

    def active(self, store_id: str) -> list[dict[str, Any]]:
        return [inv for inv in self.invoices_for(store_id) if not inv["archived"]]

    def _find(self, invoice_id: str) -> dict[str, Any] | None:
        for inv in self.invoices:
            if inv["id"] == invoice_id:
                return inv
        return None

    # ---- transport ----

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)

        if request.headers.get("Authorization") != f"token {self.api_key}":
            return httpx.Response(401, json={"code": "unauthenticated"})
        if self.fail_with is not None:
            return httpx.Response(self.fail_with, json={"code": "server-error"})

        path = request.url.path
        params = request.url.params
        store_id = params.get("storeId")
        body = json.loads(request.content) if request.content else None

        if path == "/api/v1/invoices" and request.method == "GET":
            result = self.invoices_for(store_id, params.get("orderId"))
            take = params.get("take")
            if take is not None:
                result = result[: int(take)]
            return httpx.Response(200, json=result)

        if path == "/api/v1/invoices" and request.method == "POST":
            invoice = self.add_invoice(store_id, body.get("orderId"), body.get("metadata") or {})
            return httpx.Response(200, json=invoice)

        parts = path.split("/")
        # /api/v1/invoices/{id} or /api/v1/invoices/{id}/archive
        if len(parts) >= 5 and parts[3] == "invoices" and request.method == "POST":
            invoice = self._find(parts[4])
            if invoice is None or invoice["storeId"] != store_id:
                return httpx.Response(404, json={"code": "invoice-not-found"})
            if len(parts) == 6 and parts[5] == "archive":
                invoice["archived"] = True
                return httpx.Response(200, json=invoice)
            invoice["metadata"] = body.get("metadata") or {}
            return httpx.Response(200, json=invoice)

        return httpx.Response(404, json={"code": "not-found"})

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


class RecordingEmailSender:
    """Email sender that keeps magic links in memory."""

    def __init__(self):
        self.sent: list[dict[str, str]] = []

    async def send_magic_link(self, email: str, url: str, host: str) -> None:
        self.sent.append({"email": email, "url": url, "host": host})

    @property
    def last_url(self) -> str:
        return self.sent[-1]["url"]


# =============================================================================
# Client / Adapter Fixtures
# =============================================================================

@pytest.fixture
def store_ids() -> dict[str, str]:
    """Store ids for the three collections."""
    return dict(STORE_IDS)


@pytest.fixture
def fake_btcpay() -> FakeBTCPayServer:
    """Fresh fake BTCPay server per test."""
    return FakeBTCPayServer()


@pytest.fixture
def btcpay_client(fake_btcpay, store_ids):
    """
    BTCPayClient talking to the fake server.

    The underlying httpx client is created lazily inside whichever event
    loop first uses it, so this works for async tests and TestClient alike.
    """
    from app.services.btcpay_api import BTCPayClient

    client = BTCPayClient(
        base_url="https://btcpay.test/",
        api_key="test-api-key",
        user_store_id=store_ids["Users"],
        session_store_id=store_ids["Sessions"],
        verification_token_store_id=store_ids["VerificationTokens"],
        transport=fake_btcpay.transport(),
    )
    return client


@pytest.fixture
def adapter(btcpay_client, store_ids):
    """BTCPayAdapter over the fake server."""
    from app.services.btcpay_adapter import BTCPayAdapter

    return BTCPayAdapter(btcpay_client, store_ids)


@pytest.fixture
def email_sender() -> RecordingEmailSender:
    """Email sender that records magic links."""
    return RecordingEmailSender()


@pytest.fixture
def auth_service(adapter, email_sender):
    """AuthService wired to the fake server and recording sender."""
    from app.services.auth_service import AuthService

    return AuthService(adapter, email_sender=email_sender)


# =============================================================================
# Document Fixtures
# =============================================================================

@pytest.fixture
def user_doc() -> dict:
    """Plain user document."""
    return {"id": "u1", "email": "a@b.com"}


@pytest.fixture
def session_doc() -> dict:
    """Session document owned by user u1."""
    return {
        "id": "s1",
        "sessionToken": "tok-s1",
        "userId": "u1",
        "expires": "2099-01-01T00:00:00Z",
    }


@pytest.fixture
def verification_token_doc() -> dict:
    """Verification token document for a@b.com."""
    return {
        "id": "vt1",
        "identifier": "a@b.com",
        "token": "secret-token",
        "expires": "2099-01-01T00:00:00Z",
    }


# =============================================================================
# FastAPI Test Client Fixtures
# =============================================================================

@pytest.fixture
def app():
    """
    Create FastAPI app for testing.

    Note: This imports the actual app; use `client` to get one whose
    BTCPay dependencies point at the fake server.
    """
    from app.main import app
    return app


@pytest.fixture
def client(app, adapter, auth_service) -> Generator:
    """
    Create a TestClient with the adapter and auth service overridden.

    Redirects are not followed so tests can inspect Location and cookies.
    """
    from app.dependencies.auth import get_auth_service, get_btcpay_adapter

    app.dependency_overrides[get_btcpay_adapter] = lambda: adapter
    app.dependency_overrides[get_auth_service] = lambda: auth_service
    with TestClient(app, follow_redirects=False) as c:
        yield c
    app.dependency_overrides.clear()
