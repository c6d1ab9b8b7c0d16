"""
Request rate limits, enforced with slowapi.

Anonymous clients are identified by the socket peer address
(`get_remote_address`). X-Forwarded-For and X-Real-IP are not read here:
behind a reverse proxy, run uvicorn with ``--proxy-headers
--forwarded-allow-ips=<proxy ip>`` so the peer address becomes the real
client only when the proxy is trusted.
"""
import logging

from fastapi import Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from core.config import RATE_LIMIT_ENABLED, RATE_LIMIT_STORAGE_URI

logger = logging.getLogger(__name__)

LOGIN = "5/15minutes"
LEADS = "10/minute"
DEMOS_WRITE = "20/minute"


def user_key(request: Request) -> str:
    """Per-account key. `get_current_user` stores the id on request.state."""
    user_id = getattr(request.state, "user_id", None)
    if user_id is None:
        return get_remote_address(request)
    return f"user:{user_id}"


limiter = Limiter(
    key_func=get_remote_address,
    headers_enabled=True,
    storage_uri=RATE_LIMIT_STORAGE_URI,
    enabled=RATE_LIMIT_ENABLED,
)

login_limit = limiter.limit(LOGIN, error_message="Too many login attempts. Please wait 15 minutes.")
leads_limit = limiter.limit(LEADS, error_message="Too many requests. Please wait a moment.")
# Create and update draw from one budget per user.
demos_write_limit = limiter.shared_limit(
    DEMOS_WRITE, scope="demo-writes", key_func=user_key,
    error_message="Too many write requests. Please wait a moment.",
)


async def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """429 with the usual `detail` body plus Retry-After and X-RateLimit-* headers."""
    logger.warning(f"Rate limit {exc.limit.limit} exceeded on {request.url.path} by {get_remote_address(request)}")
    response = JSONResponse(status_code=429, content={"detail": exc.detail})
    return request.app.state.limiter._inject_headers(response, request.state.view_rate_limit)


def reset() -> None:
    """Forget every counter."""
    limiter.reset()
