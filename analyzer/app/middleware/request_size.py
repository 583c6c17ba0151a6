"""Request body size limit middleware.

Rejects oversized uploads before they are buffered into memory. Enforces
the limit for both Content-Length and chunked transfer encoding.
"""

import json
from datetime import datetime, timezone

from starlette.types import Receive, Scope, Send


class SizeLimitedStream:
    """Wraps the ASGI receive callable and counts body bytes as they arrive."""

    class SizeExceededError(Exception):
        """Raised when request body exceeds size limit."""

    def __init__(self, receive: Receive, max_size: int):
        self._receive = receive
        self._max_size = max_size
        self._bytes_read = 0
        self._body_complete = False

    async def receive(self) -> dict:
        """Receive and enforce size limit.

        Raises:
            SizeExceededError: If body size exceeds max_size
        """
        if self._body_complete:
            return {"type": "http.request", "body": b"", "more_body": False}

        message = await self._receive()

        if message["type"] == "http.request":
            self._bytes_read += len(message.get("body", b""))
            if self._bytes_read > self._max_size:
                raise self.SizeExceededError(
                    f"Request body too large. Maximum allowed: {self._max_size} bytes"
                )
            if not message.get("more_body", False):
                self._body_complete = True

        return message


class RequestSizeLimitMiddleware:
    """ASGI middleware to limit request body size.

    Returns HTTP 413 (Payload Too Large) with the standard JSON error body
    when the limit is exceeded. Raw ASGI so the receive callable is wrapped
    before Starlette's Request is constructed.

    Usage:
        app.add_middleware(RequestSizeLimitMiddleware, max_body_size=25*1024*1024)
    """

    def __init__(self, app, max_body_size: int = 25 * 1024 * 1024):
        self.app = app
        self.max_body_size = max_body_size

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        content_length = None
        for name, value in scope.get("headers", []):
            if name.lower() == b"content-length":
                content_length = value.decode()
                break

        if content_length:
            try:
                if int(content_length) > self.max_body_size:
                    await self._send_413_response(send)
                    return
            except ValueError:
                # Invalid Content-Length, fall through to the stream check
                pass

        size_limited_receive = SizeLimitedStream(receive, self.max_body_size).receive

        try:
            await self.app(scope, size_limited_receive, send)
        except SizeLimitedStream.SizeExceededError as exc:
            await self._send_413_response(send, detail=str(exc))

    async def _send_413_response(self, send: Send, detail: str | None = None) -> None:
        if detail is None:
            detail = (
                f"Request body too large. Maximum allowed: {self.max_body_size} bytes"
            )
        body = json.dumps(
            {
                "error": detail,
                "error_code": "payload_too_large",
                "timestamp": datetime.now(timezone.utc).isoformat(),
            }
        ).encode()

        await send(
            {
                "type": "http.response.start",
                "status": 413,
                "headers": [
                    [b"content-type", b"application/json"],
                    [b"content-length", str(len(body)).encode()],
                ],
            }
        )
        await send({"type": "http.response.body", "body": body})
