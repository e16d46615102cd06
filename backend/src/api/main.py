"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from api.routers import health, posts, users
from core.config import get_settings
from core.redis import RedisClient, set_redis_client
from schemas.envelope import ApiResponse
from services.exceptions import ServiceError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()
    logging.basicConfig(level=app_settings.log_level)

    # Startup: Connect to Redis
    redis_client = RedisClient(
        url=app_settings.redis_url,
        enabled=app_settings.redis_enabled,
        pool_size=app_settings.redis_pool_size,
        socket_timeout=app_settings.redis_socket_timeout,
    )
    await redis_client.connect()
    set_redis_client(redis_client)

    yield

    # Shutdown: Clean up Redis
    await redis_client.close()
    set_redis_client(None)


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(
        self, request: Request, call_next: RequestResponseEndpoint,
    ) -> Response:
        """Process request and add security headers to response."""
        response = await call_next(request)
        # HSTS: enforce HTTPS for 1 year, including subdomains
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking - API shouldn't be framed
        response.headers["X-Frame-Options"] = "DENY"
        return response


def _envelope_response(
    message: str,
    status_code: int,
    data: Any = None,
    headers: dict[str, str] | None = None,
) -> JSONResponse:
    body = ApiResponse.error(message, status_code, data)
    return JSONResponse(
        status_code=status_code,
        content=body.model_dump(mode="json", by_alias=True),
        headers=headers,
    )


app_settings = get_settings()

app = FastAPI(
    title="Social Graph API",
    description="Follow graph, user profiles and posts.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Render service-layer failures with their status and error code."""
    if exc.status_code >= 500:
        logger.error(
            "service_error",
            extra={"path": request.url.path, "error_code": exc.error_code},
        )
    data = {"errorCode": exc.error_code, **(exc.details or {})}
    return _envelope_response(exc.message, exc.status_code, data)


@app.exception_handler(HTTPException)
async def http_exception_handler(_request: Request, exc: HTTPException) -> JSONResponse:
    """Wrap framework HTTP errors (401s from auth, 404 for unknown routes) in the envelope."""
    message = exc.detail if isinstance(exc.detail, str) else "Request failed"
    return _envelope_response(message, exc.status_code, headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    _request: Request, exc: RequestValidationError,
) -> JSONResponse:
    """Malformed input is a 400 with the field errors attached."""
    errors = [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg", "")}
        for err in exc.errors()
    ]
    return _envelope_response(
        "Validation failed", 400, {"errorCode": "VALIDATION_ERROR", "errors": errors},
    )


# Security headers middleware (runs after CORS, adds headers to responses)
app.add_middleware(SecurityHeadersMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=app_settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(users.router)
app.include_router(posts.router)
