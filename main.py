"""
main.py

Application entrypoint for the EasyServe API.
- Initializes structured logging
- Sets up FastAPI application and middlewares
- Registers all API routers
- Integrates rate limiting via SlowAPI
- Adds common security headers
- Configures CORS
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response

from easyserve.admin.routes import router as admin_router
from easyserve.auth.routes import router as auth_router
from easyserve.booking.routes import router as booking_router
from easyserve.catalog.routes import providers_router
from easyserve.catalog.routes import router as catalog_router
from easyserve.core.config import settings
from easyserve.core.limiter import limiter
from easyserve.core.logging import init_logging
from easyserve.core.middleware import LoggingMiddleware
from easyserve.payment.routes import router as payment_router
from easyserve.service_request.routes import router as service_request_router

# -----------------------------
# FastAPI App Initialization
# -----------------------------
init_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.APP_NAME, version="1.0.0", debug=settings.DEBUG)

# -----------------------------
# Middleware Configuration
# -----------------------------
app.state.limiter = limiter


async def rate_limit_exceeded_handler(request: Request, exc: Exception) -> Response:
    return _rate_limit_exceeded_handler(request, exc)  # type: ignore[arg-type]


app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)
app.add_middleware(SlowAPIMiddleware)


# -----------------------------
# Security Headers Middleware
# -----------------------------
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """
    Middleware to add common security headers to responses.
    """

    async def dispatch(
        self, request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ) -> Response:
        response: Response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response


app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(LoggingMiddleware)

# -----------------------------
# CORSMiddleware Configuration
# -----------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# -----------------------------
# Unhandled Errors
# -----------------------------
@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"detail": {"error": "Internal server error", "code": "INTERNAL_ERROR"}},
    )


# -----------------------------
# API Router Registration
# -----------------------------
app.include_router(auth_router)
app.include_router(catalog_router)
app.include_router(providers_router)
app.include_router(service_request_router)
app.include_router(booking_router)
app.include_router(payment_router)
app.include_router(admin_router)


# -----------------------------
# Root Endpoint
# -----------------------------
@app.get("/")
async def home() -> Any:
    return {"name": settings.APP_NAME, "status": "ok"}
