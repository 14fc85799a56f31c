"""
Liveness and dependency probes for deployment checks.
"""

from datetime import datetime, timezone
import logging

from fastapi import APIRouter, HTTPException, status

from sevasetu.core.settings import settings
from sevasetu.services.container import get_container

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("")
async def health_check():
    """Process is up and serving requests."""
    return {
        "status": "healthy",
        "service": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "timestamp": _now(),
    }


@router.get("/db")
async def store_health():
    """
    Complaint store probe.

    Lists complaints through the configured backend (memory or Firestore);
    any backend failure is reported as 503.
    """
    store = get_container().store
    try:
        count = len(store.list())
    except Exception as e:
        logger.error(f"❌ Complaint store probe failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Complaint store unavailable: {e}",
        )

    return {
        "status": "healthy",
        "backend": type(store).__name__,
        "connected": True,
        "complaints_count": count,
        "timestamp": _now(),
    }
