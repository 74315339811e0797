"""
Health check router for liveness and readiness probes.
"""
from fastapi import APIRouter, status

from app.services.btcpay_api import get_btcpay_client

router = APIRouter(tags=["Health"])


@router.get(
    "/health",
    status_code=status.HTTP_200_OK,
    summary="Basic health check",
)
async def health_check():
    """
    Basic health check endpoint.
    Returns 200 if the API is running.
    """
    return {"status": "healthy"}


@router.get(
    "/health/ready",
    status_code=status.HTTP_200_OK,
    summary="Readiness check with dependencies",
)
async def readiness_check():
    """
    Readiness check that verifies the BTCPay Server is reachable
    with the configured API key.
    """
    checks = {
        "api": "healthy",
        "btcpay": "unknown",
    }
    
    try:
        client = await get_btcpay_client()
        await client.user.list_invoices({"take": 1})
        checks["btcpay"] = "healthy"
    except Exception as e:
        checks["btcpay"] = f"unhealthy: {str(e)}"
    
    all_healthy = all(v == "healthy" for v in checks.values())
    
    return {
        "status": "healthy" if all_healthy else "degraded",
        "checks": checks,
    }
