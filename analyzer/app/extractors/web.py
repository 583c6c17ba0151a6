"""Remote page extractor.

Fetches an http(s) URL with a bounded timeout and response size, strips
non-content markup and returns the visible text.
"""

import asyncio
import re
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from analyzer.app.core.config import settings
from analyzer.app.core.http_client import create_http_client, get_http_client
from analyzer.app.core.logging import get_logger
from analyzer.app.exceptions import ExtractionError, ExtractionReason
from analyzer.app.extractors.models import ContentKind, ExtractedContent

logger = get_logger(__name__)

ALLOWED_SCHEMES = ("http", "https")
NON_CONTENT_TAGS = ("script", "style", "nav", "header", "footer")

_WHITESPACE_RE = re.compile(r"\s+")


def validate_url(url: str) -> str:
    """Check that ``url`` is an absolute http(s) URL.

    Runs before any network activity.

    Raises:
        ExtractionError: INVALID_URL with a message suitable for the caller
    """
    url = (url or "").strip()
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError) as e:
        raise ExtractionError(ExtractionReason.INVALID_URL, "Invalid URL format") from e

    if parsed.scheme not in ALLOWED_SCHEMES:
        if not parsed.scheme:
            raise ExtractionError(ExtractionReason.INVALID_URL, "Invalid URL format")
        raise ExtractionError(
            ExtractionReason.INVALID_URL,
            "Invalid URL protocol. Only HTTP and HTTPS are supported.",
        )
    if not parsed.host:
        raise ExtractionError(ExtractionReason.INVALID_URL, "Invalid URL format")
    return url


def html_to_text(html: str | bytes, max_chars: int | None = None) -> str:
    """Visible body text with non-content elements removed and whitespace collapsed."""
    limit = max_chars or settings.text_max_chars
    soup = BeautifulSoup(html, "lxml")
    for tag in soup(list(NON_CONTENT_TAGS)):
        tag.decompose()

    root = soup.body or soup
    text = root.get_text(" ")
    return _WHITESPACE_RE.sub(" ", text).strip()[:limit]


async def _download(
    client: httpx.AsyncClient,
    url: str,
    timeout: float,
    max_bytes: int,
) -> bytes:
    headers = {"User-Agent": settings.fetch_user_agent}
    async with client.stream("GET", url, headers=headers, timeout=timeout) as resp:
        if resp.status_code == 404:
            raise ExtractionError(ExtractionReason.NOT_FOUND, "URL not found")
        if resp.status_code >= 400:
            raise ExtractionError(
                ExtractionReason.FETCH_FAILED,
                "Failed to fetch URL content",
            )

        declared = resp.headers.get("Content-Length")
        if declared and declared.isdigit() and int(declared) > max_bytes:
            raise ExtractionError(
                ExtractionReason.TOO_LARGE,
                "Failed to fetch URL content",
            )

        buf = bytearray()
        async for chunk in resp.aiter_bytes():
            buf.extend(chunk)
            if len(buf) > max_bytes:
                raise ExtractionError(
                    ExtractionReason.TOO_LARGE,
                    "Failed to fetch URL content",
                )
        return bytes(buf)


async def fetch_page_text(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
    max_chars: int | None = None,
) -> ExtractedContent:
    """Fetch ``url`` and return its visible text.

    Uses the shared application client when one is active.

    Raises:
        ExtractionError: INVALID_URL before any request is made;
            CONNECTION_REFUSED, NOT_FOUND, TOO_LARGE or FETCH_FAILED after
    """
    url = validate_url(url)
    timeout = settings.fetch_timeout_seconds
    max_bytes = settings.fetch_max_bytes

    client = client or get_http_client()
    try:
        # httpx timeouts are per phase; the deadline covers the whole fetch
        if client is not None:
            body = await asyncio.wait_for(
                _download(client, url, timeout, max_bytes), timeout=timeout
            )
        else:
            async with create_http_client(timeout=timeout) as own_client:
                body = await asyncio.wait_for(
                    _download(own_client, url, timeout, max_bytes), timeout=timeout
                )
    except ExtractionError:
        raise
    except asyncio.TimeoutError as e:
        logger.warning(f"Fetching {url} exceeded {timeout}s")
        raise ExtractionError(
            ExtractionReason.FETCH_FAILED,
            "Failed to fetch URL content",
        ) from e
    except httpx.ConnectError as e:
        logger.warning(f"Connection refused fetching {url}: {e}")
        raise ExtractionError(
            ExtractionReason.CONNECTION_REFUSED,
            "Cannot connect to the URL",
        ) from e
    except httpx.HTTPError as e:
        logger.warning(f"Failed to fetch {url}: {type(e).__name__}: {e}")
        raise ExtractionError(
            ExtractionReason.FETCH_FAILED,
            "Failed to fetch URL content",
        ) from e

    return ExtractedContent(
        kind=ContentKind.TEXT,
        payload=html_to_text(body, max_chars=max_chars),
        source_name=url,
    )
