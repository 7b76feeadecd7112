"""Entry-point for the SideStore identity API (ASGI ``app``).

This module constructs the FastAPI instance, acquires the review signing
keypair, wires global middleware, registers all route groups, and exposes the
``app`` variable that the ASGI server imports.
"""

from __future__ import annotations

import os
import logging
import traceback
from datetime import datetime, timezone
from time import perf_counter
from typing import Callable, Awaitable, Dict

from fastapi import Depends, FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware
from slowapi import Limiter
from slowapi.middleware import SlowAPIMiddleware
from slowapi.util import get_remote_address

from sidestore_id import APP_ENV, SUPABASE_KEY, SUPABASE_URL

from sidestore_id.settings import HEALTH_API_PATH, Settings, load_settings
from sidestore_id.utils.logger import configure_logging, logger, request_id_ctx
from sidestore_id.utils.reviews import SequenceLocks
from sidestore_id.utils.signing_keys import acquire_signing_key

# Rate limiter (IP-based by default)
limiter = Limiter(key_func=get_remote_address, default_limits=["60/minute"])


class RequestContextMiddleware(BaseHTTPMiddleware):
    """Attach request-level context vars for structured logging."""

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:  # type: ignore[override]
        start = perf_counter()
        request_id = request.headers.get("X-Request-Id", os.urandom(4).hex())
        token = request_id_ctx.set(request_id)
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            response.headers["X-Request-Id"] = request_id
        finally:
            duration_ms = (perf_counter() - start) * 1000
            logger.info(
                "request.complete",
                extra={
                    "extra": {
                        "path": request.url.path,
                        "method": request.method,
                        "status_code": status_code,
                        "duration_ms": round(duration_ms, 2),
                        "user_id": getattr(request.state, "user_id", None),
                    }
                },
            )
            request_id_ctx.reset(token)
        return response


def create_app(settings: Settings | None = None) -> FastAPI:  # noqa: C901
    configure_logging()
    if not SUPABASE_URL or not SUPABASE_KEY:
        raise RuntimeError("Supabase env vars not configured")
    settings = settings or load_settings()

    # Boot-time signing identity: any failure here aborts startup.
    signing_keypair = acquire_signing_key(settings.storage_path)

    app = FastAPI(
        title="SideStore Identity API",
        version="0.1.0",
        docs_url="/docs" if APP_ENV != "production" else None,
        redoc_url=None,
        openapi_url="/openapi.json" if APP_ENV != "production" else None,
    )
    app.state.settings = settings
    app.state.signing_keypair = signing_keypair
    app.state.sequence_locks = SequenceLocks()

    # Global middleware
    app.add_middleware(RequestContextMiddleware)
    # Rate limiting middleware (SlowAPI expects limiter via app.state)
    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)

    # Register default handler for 429 responses from SlowAPI
    from slowapi.errors import RateLimitExceeded  # noqa: WPS433  (runtime import)
    from slowapi import _rate_limit_exceeded_handler

    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # Global exception handler - logs full tracebacks for any unhandled 500s
    @app.exception_handler(Exception)
    async def log_unhandled_exceptions(request: Request, exc: Exception):
        """Log full traceback for any unhandled exception and answer with a 500."""
        error_logger = logging.getLogger("uvicorn.error")
        error_logger.error(
            "UNHANDLED %s at %s %s\n%s",
            type(exc).__name__,
            request.method,
            request.url.path,
            "".join(traceback.format_tb(exc.__traceback__))
        )
        return JSONResponse(status_code=500, content={"detail": "Internal Server Error"})

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials="*" not in settings.allowed_origins,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "Accept"],
        max_age=3600,
    )

    # Health check
    @app.get(HEALTH_API_PATH)
    async def health() -> Dict[str, str]:  # pylint: disable=unused-variable
        return {"message": datetime.now(timezone.utc).isoformat()}

    # Router imports live *inside* create_app() to avoid circular dependency
    # with routers importing `limiter` from this module before it's defined.
    from sidestore_id.routers import auth_routes, review_routes  # noqa: WPS433
    from sidestore_id.utils.auth import get_principal  # noqa: WPS433

    # Every /api route below resolves the principal first; the allowlist in
    # Settings.unprotected_paths decides which ones bypass token checks.
    guarded = [Depends(get_principal)]
    app.include_router(auth_routes.router, dependencies=guarded)
    app.include_router(review_routes.router, dependencies=guarded)

    return app

# The object the ASGI server imports
app = create_app()
