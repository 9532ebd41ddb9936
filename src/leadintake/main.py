"""Main application entrypoint for the Lead Intake service."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from leadintake.api.middleware import (
    HTTPErrorLoggingMiddleware,
    RequestIDMiddleware,
    RequestSizeLimitMiddleware,
)
from leadintake.api.rate_limit import limiter
from leadintake.api.v1 import routes_health
from leadintake.api.v1.routes_lead import router as lead_router
from leadintake.core.config import settings
from leadintake.core.logging import setup_logging

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Lead intake service started",
        extra={"environment": settings.ENV, "storage_backend": settings.STORAGE_BACKEND},
    )
    yield
    service = getattr(app.state, "attachment_service", None)
    if service is not None:
        await service.aclose()
    logger.info("Lead intake service shutting down")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        FastAPI: Configured FastAPI application instance
    """
    setup_logging()

    app = FastAPI(
        title=settings.SERVICE_NAME,
        version=settings.SERVICE_VERSION,
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Last added runs first
    app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_bytes)
    app.add_middleware(HTTPErrorLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)

    app.include_router(routes_health.router, tags=["health"])
    app.include_router(lead_router)

    return app


# Export app instance for ASGI servers
app = create_app()


if __name__ == "__main__":
    import os

    import uvicorn

    port = int(os.getenv("PORT", "8080"))
    uvicorn.run(app, host="0.0.0.0", port=port)
