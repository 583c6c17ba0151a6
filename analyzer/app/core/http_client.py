"""Shared HTTP client management for connection pooling.

The client is initialized on application startup and shared by the remote
page extractor. Per-call timeouts are applied by callers.
"""

from contextlib import asynccontextmanager
from typing import AsyncGenerator

import httpx

from analyzer.app.core.config import settings


_shared_http_client: httpx.AsyncClient | None = None


def _default_timeout() -> httpx.Timeout:
    return httpx.Timeout(
        connect=settings.httpx_connect_timeout,
        read=settings.httpx_read_timeout,
        write=settings.httpx_write_timeout,
        pool=settings.httpx_pool_timeout,
    )


def _default_limits() -> httpx.Limits:
    return httpx.Limits(
        max_connections=settings.httpx_max_connections,
        max_keepalive_connections=settings.httpx_max_keepalive_connections,
        keepalive_expiry=settings.httpx_keepalive_expiry,
    )


def get_http_client() -> httpx.AsyncClient | None:
    """Get the shared HTTP client, or None outside the application lifespan."""
    return _shared_http_client


@asynccontextmanager
async def init_http_client() -> AsyncGenerator[httpx.AsyncClient, None]:
    """Initialize and yield the shared HTTP client.

    Used in the FastAPI lifespan:

        async with init_http_client():
            yield
    """
    global _shared_http_client

    _shared_http_client = httpx.AsyncClient(
        timeout=_default_timeout(),
        limits=_default_limits(),
        follow_redirects=True,
    )

    try:
        yield _shared_http_client
    finally:
        if _shared_http_client is not None:
            await _shared_http_client.aclose()
            _shared_http_client = None


def create_http_client(**kwargs) -> httpx.AsyncClient:
    """Create a standalone HTTP client with default settings.

    The caller owns the client and must close it:

        async with create_http_client(timeout=10.0) as client:
            ...

    Args:
        **kwargs: ``timeout`` overrides every granular timeout.
    """
    timeout_override = kwargs.get("timeout")
    timeout = (
        httpx.Timeout(timeout_override)
        if timeout_override is not None
        else _default_timeout()
    )
    return httpx.AsyncClient(
        timeout=timeout,
        limits=_default_limits(),
        follow_redirects=True,
    )
