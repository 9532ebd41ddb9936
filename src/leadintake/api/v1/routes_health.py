"""Health check endpoints for the Lead Intake service."""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

from leadintake.core.config import settings

router = APIRouter()


@router.get("/health")
async def health_check() -> dict:
    """Health check endpoint.

    Returns service status, name, and version information without touching
    the storage backend.
    """
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
    }


@router.get("/ping", response_class=PlainTextResponse)
async def ping() -> str:
    """Load balancer heartbeat."""
    return "."
