# zyro/api/health.py
"""
Health check endpoints.
"""
from datetime import datetime, timezone
from fastapi import APIRouter

from zyro.db import get_connection_error, is_connected

router = APIRouter(tags=["Health"])


@router.get("/healthz")
async def healthz():
    """Simple health check."""
    return {"ok": True, "timestamp": datetime.now(timezone.utc).isoformat()}


@router.get("/api/health")
async def api_health():
    """API health check, including database connectivity."""
    return {
        "status": "healthy" if is_connected() else "degraded",
        "database": {"connected": is_connected(), "error": get_connection_error()},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
