"""Per-IP rate limiting for public endpoints."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from leadintake.core.config import settings

# In-process storage; disabled for local development
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri="memory://",
    enabled=settings.rate_limit_enabled,
)
