from __future__ import annotations

import os
from typing import List

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.gzip import GZipMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from prometheus_fastapi_instrumentator import Instrumentator

from .config import get_settings
from .observability import configure_logging, init_sentry
from .startup import validate_settings
from .routes import health, menus
from .ratelimit import limiter
from slowapi.errors import RateLimitExceeded
from slowapi import _rate_limit_exceeded_handler

API_PREFIX = "/v1"
MENU_PATH_PREFIX = f"{API_PREFIX}/menus"


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Baseline security headers; menu responses carry health data and are never cached."""

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        response.headers.setdefault("X-Frame-Options", "DENY")
        if request.url.path.startswith(MENU_PATH_PREFIX):
            response.headers["Cache-Control"] = "no-store"
        return response


def create_app() -> FastAPI:
    s = get_settings()
    configure_logging(json_logs=s.log_json, level=s.log_level)
    init_sentry(s)
    validate_settings(s)
    app = FastAPI(title=s.app_name)

    origins: List[str] = s.cors_allowed_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(SecurityHeadersMiddleware)
    # Weekly menus are large JSON documents
    app.add_middleware(GZipMiddleware, minimum_size=1024)

    prefix = API_PREFIX
    app.include_router(health.router, prefix=prefix)
    app.include_router(menus.router, prefix=prefix)

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    Instrumentator().instrument(app).expose(app, include_in_schema=False)

    return app


app = create_app()

if __name__ == "__main__":
    import uvicorn

    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run("menuplan.main:app", host="0.0.0.0", port=port, reload=False)
