"""
Rate limiting configuration for the create-user API.

Rate limits are configurable via environment variables. Only the POST route
is limited; CORS preflights are never counted.
"""
import os
import logging
from slowapi import Limiter
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded
from fastapi import Request
from fastapi.responses import JSONResponse

from api.provisioning import CORS_HEADERS

logger = logging.getLogger("create-user-api.rate_limiter")

# Format: "number/period" where period can be: second, minute, hour, day
CREATE_USER_RATE_LIMIT = os.getenv("RATE_LIMIT_CREATE_USER", "10/minute")

logger.info("Rate limiting configured - CreateUser: %s", CREATE_USER_RATE_LIMIT)


def get_client_key(request: Request) -> str:
    """
    Identifier used for rate limiting: the client IP address.

    Tokens are not decoded here; the requester is only known after the
    provisioning handler has verified it.
    """
    return get_remote_address(request)


limiter = Limiter(
    key_func=get_client_key,
    # Redis URI format: redis://host:port/db or rediss:// for SSL
    storage_uri=os.getenv("RATE_LIMIT_STORAGE_URI", "memory://"),
)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    """
    Custom handler for rate limit exceeded responses.

    Keeps the create-user failure shape ({"success": false, "error": ...})
    and the CORS headers so browser clients can display the message as-is.
    """
    logger.warning("Rate limit exceeded for %s on path %s", get_client_key(request), request.url.path)

    retry_after = getattr(exc, "retry_after", 60)
    return JSONResponse(
        status_code=429,
        content={
            "success": False,
            "error": "Demasiadas solicitudes. Intenta de nuevo más tarde.",
            "detail": str(exc.detail) if hasattr(exc, "detail") else "Rate limit exceeded",
        },
        headers={
            **CORS_HEADERS,
            "Retry-After": str(retry_after),
        },
    )
