from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncGenerator, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from analyzer.app.api import conversation_router, document_router, image_router
from analyzer.app.core.config import settings
from analyzer.app.core.http_client import init_http_client
from analyzer.app.core.logging import get_log_context, get_logger, setup_logging
from analyzer.app.exceptions import AnalyzerException
from analyzer.app.middleware.rate_limit import get_rate_limiters
from analyzer.app.middleware.request_id import RequestIdMiddleware, get_request_id
from analyzer.app.middleware.request_size import (
    RequestSizeLimitMiddleware,
    SizeLimitedStream,
)
from analyzer.app.providers.factory import get_provider


def _error_body(message: str, error_code: str, **extra: Any) -> Dict[str, Any]:
    body = {
        "error": message,
        "error_code": error_code,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    body.update({k: v for k, v in extra.items() if v is not None})
    return body


def _error_response(
    status_code: int,
    content: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=content, headers=headers)


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    setup_logging()
    logger = get_logger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[dict, None]:
        """Application lifespan context manager.

        Opens the shared HTTP client, builds the inference provider and runs
        the rate window sweeper until shutdown.
        """
        async with init_http_client() as http_client:
            provider = get_provider()
            limiters = get_rate_limiters()
            await limiters.start()

            logger.info(
                "Application startup complete",
                extra={
                    "provider": provider.name,
                    "provider_configured": provider.configured,
                    "debug_mode": settings.debug,
                },
            )

            try:
                yield {"http_client": http_client}
            finally:
                await limiters.stop()

        logger.info("Application shutdown complete")

    app = FastAPI(
        title="Media Analyzer",
        description="Conversation, image and document analysis with per-client rate limiting",
        version="1.0.0",
        lifespan=lifespan,
    )

    # Middleware order: last added = first executed
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
        expose_headers=[
            "X-Request-ID",
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "Retry-After",
        ],
        max_age=600,
    )
    app.add_middleware(
        RequestSizeLimitMiddleware, max_body_size=settings.max_request_body_bytes
    )
    app.add_middleware(RequestIdMiddleware)

    app.include_router(conversation_router)
    app.include_router(image_router)
    app.include_router(document_router)

    @app.get("/health")
    async def health() -> dict[str, Any]:
        """Report provider configuration and live rate window counts."""
        provider = get_provider()
        return {
            "status": "ok",
            "components": {
                "provider": {
                    "name": provider.name,
                    "configured": provider.configured,
                },
                "rate_limits": {
                    "windows": get_rate_limiters().window_counts(),
                },
            },
        }

    @app.exception_handler(AnalyzerException)
    async def analyzer_exception_handler(request: Request, exc: AnalyzerException) -> JSONResponse:
        """Render any AnalyzerException with its status code and error shape."""
        if exc.status_code >= 500:
            logger.error(
                f"{type(exc).__name__}: {exc.message}",
                extra=get_log_context(
                    request_id=get_request_id(request),
                    path=request.url.path,
                    status_code=exc.status_code,
                ),
            )
        return _error_response(
            exc.status_code,
            _error_body(exc.message, exc.error_code, **exc.extra_content()),
            headers=exc.headers(),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Routing errors (404, 405) use the same error shape."""
        # Form parsing re-raises a body overflow as 400; restore the 413
        if isinstance(exc.__cause__, SizeLimitedStream.SizeExceededError):
            return _error_response(
                413, _error_body(str(exc.__cause__), "payload_too_large")
            )
        return _error_response(
            exc.status_code,
            _error_body(str(exc.detail), "http_error"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """Malformed form submissions are client errors (400, not 422)."""
        errors = exc.errors()
        if errors:
            first = errors[0]
            field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
            message = f"Invalid {field}: {first.get('msg', 'invalid value')}"
        else:
            message = "Invalid request"
        return _error_response(400, _error_body(message, "validation_error"))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Global exception handler for unhandled exceptions.

        The traceback is logged server-side and never returned to the client.
        Debug mode returns the exception message only.
        """
        request_id = get_request_id(request)
        logger.exception(
            f"Unhandled exception [request_id={request_id}]",
            extra={
                "request_id": request_id,
                "exception_type": type(exc).__name__,
            },
        )

        message = str(exc) if settings.debug else "Internal server error"
        return _error_response(
            500, _error_body(message, "internal_error", request_id=request_id)
        )

    return app


# Create the application instance
app = create_app()
