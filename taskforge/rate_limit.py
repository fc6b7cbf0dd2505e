import logging

from fastapi import Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from .api.errors import error_response
from .config import settings

logger = logging.getLogger("taskforge.rate_limit")


limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI,
    headers_enabled=True,
    enabled=settings.RATE_LIMIT_ENABLED,
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded):
    """429 in the same {"error": ...} shape as every other failure, plus the limit headers."""
    logger.warning("rate limited path=%s client=%s limit=%s", request.url.path, get_remote_address(request), exc.detail)
    response = error_response(429, f"Rate limit exceeded: {exc.detail}")
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)


__all__ = ["limiter", "rate_limit_exceeded_handler"]
