"""System health endpoint."""

from datetime import datetime, timezone

from fastapi import APIRouter

from ... import __version__

router = APIRouter(tags=["System"])

@router.get("/health")
async def health():
    """Liveness check."""
    return {
        "status": "ok",
        "version": __version__,
        "time": datetime.now(timezone.utc).isoformat()
    }

__all__ = ['router']
