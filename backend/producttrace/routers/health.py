"""Health check endpoints for load balancers and monitoring."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from producttrace.config import settings
from producttrace.services.ledger import SupplyChainLedger, get_ledger

router = APIRouter(tags=["health"])

logger = logging.getLogger(__name__)


@router.get("/health")
async def health_check():
    """Lightweight liveness check (no database round-trip)."""
    return {
        "status": "ok",
        "service": "producttrace",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "environment": settings.environment,
    }


@router.get("/health/ready")
async def readiness_check(ledger: SupplyChainLedger = Depends(get_ledger)):
    """Readiness check: 200 only when the ledger database answers."""
    checks = {"service": "ok", "database": "unknown"}
    healthy = True

    try:
        await ledger.ping()
        checks["database"] = "ok"
    except Exception as e:
        logger.warning("Readiness check failed: %s", e)
        checks["database"] = f"error: {str(e)[:100]}"
        healthy = False

    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "service": "producttrace",
            "checks": checks,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        },
    )
