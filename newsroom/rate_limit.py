"""Per-client request rate limiting applied to every route."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from newsroom.config import settings

logger = logging.getLogger(__name__)


def create_limiter(default_limit: str | None = None) -> Limiter:
    """Build a fixed-window limiter keyed by client IP."""
    return Limiter(
        key_func=get_remote_address,
        default_limits=[default_limit or settings.RATE_LIMIT_DEFAULT],
        storage_uri=settings.RATE_LIMIT_STORAGE_URI,
        strategy="fixed-window",
        enabled=settings.RATE_LIMIT_ENABLED,
    )


limiter = create_limiter()


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> JSONResponse:
    # Called synchronously by SlowAPIMiddleware, so this must not be a coroutine.
    logger.warning(
        "Rate limit exceeded",
        extra={"method": request.method, "path": request.url.path},
    )
    return JSONResponse(
        status_code=429,
        content={"message": "Too many requests, please try again later"},
    )


def setup_rate_limiting(app: FastAPI) -> None:
    """
    Attach the module limiter to *app*.

    The middleware reads ``app.state.limiter`` on every request, so the
    limiter can be swapped at runtime.
    """
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)
