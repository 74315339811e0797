"""
BTCPay Auth Backend - FastAPI Application

Passwordless (magic link) authentication whose users, sessions and
verification tokens are persisted as BTCPay Server invoices.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_settings
from app.core.logging import setup_logging
from app.routers import auth, health
from app.services.btcpay_adapter import AdapterConfigError, BTCPayAdapter
from app.services.btcpay_api import close_btcpay_client, get_btcpay_client

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan manager.

    Startup:
    - Validate that all BTCPay store ids are configured (raises AdapterConfigError)

    Shutdown:
    - Close the shared BTCPay HTTP client
    """
    logger.info("Starting up BTCPay Auth Backend...")

    client = await get_btcpay_client()
    try:
        BTCPayAdapter(client, get_settings().store_ids)
    except AdapterConfigError as e:
        logger.error("BTCPay adapter misconfigured: %s", e)
        await close_btcpay_client()
        raise
    logger.info("BTCPay adapter configured for %s", client.base_url)

    yield

    logger.info("Shutting down BTCPay Auth Backend...")
    await close_btcpay_client()
    logger.info("BTCPay client closed")


# Create FastAPI application
app = FastAPI(
    title="BTCPay Auth API",
    description="""
## Magic link authentication on BTCPay Server

Users, sessions and verification tokens are stored as invoices in three
BTCPay stores. Deleting a record archives its invoice.

### Sign-in flow
1. `POST /api/auth/signin/magic-link` with an email address
2. Open the emailed link (`GET /api/auth/callback/magic-link`)
3. The session cookie identifies the user on later requests
    """,
    version="0.1.0",
    lifespan=lifespan,
)

# Configure CORS
settings = get_settings()
app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.auth_origin.rstrip("/")],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(health.router)
app.include_router(auth.router)


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint with API information."""
    return {
        "name": "BTCPay Auth API",
        "version": "0.1.0",
        "docs": "/docs",
        "health": "/health",
    }
