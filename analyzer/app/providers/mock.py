"""Mock provider for testing and offline development.

Returns deterministic responses without making external API calls.

Enable by setting environment variable:
    MOCK_PROVIDER=true
"""

import asyncio
import hashlib
from typing import Any, Dict, List, Optional

from analyzer.app.providers.base import BaseProvider

MOCK_TRANSCRIPT = (
    "Thanks for joining the call. Did the build finish overnight? "
    "Yes, it finished at six. I checked the logs this morning. "
    "Can you share the report with the team? Sure, I'll send it after lunch."
)


class MockProvider(BaseProvider):
    """Deterministic inference provider.

    Features:
    - Same input always yields the same output
    - Per-capability failure injection (``fail``)
    - Records every call for assertions in tests
    - Optional fixed delay to exercise concurrency
    """

    name = "mock"

    def __init__(
        self,
        transcript: str = MOCK_TRANSCRIPT,
        delay: float = 0.0,
        configured: bool = True,
    ):
        self.transcript = transcript
        self.delay = delay
        self._configured = configured
        self._failures: Dict[str, Exception] = {}
        self.calls: List[Dict[str, Any]] = []

    @property
    def configured(self) -> bool:
        return self._configured

    def fail(self, capability: str, exc: Exception) -> None:
        """Make every call to ``capability`` raise ``exc``.

        Capabilities: ``transcribe``, ``describe_image``, ``complete``.
        """
        self._failures[capability] = exc

    def clear_failures(self) -> None:
        self._failures.clear()

    def calls_for(self, capability: str) -> List[Dict[str, Any]]:
        return [c for c in self.calls if c["capability"] == capability]

    async def _enter(self, capability: str, **details: Any) -> None:
        self.calls.append({"capability": capability, **details})
        if self.delay:
            await asyncio.sleep(self.delay)
        if capability in self._failures:
            raise self._failures[capability]

    async def transcribe(self, audio: bytes, filename: str, content_type: str) -> str:
        await self._enter("transcribe", filename=filename, content_type=content_type, size=len(audio))
        return self.transcript

    async def describe_image(
        self,
        image: bytes,
        content_type: str,
        prompt: str,
        max_tokens: int = 500,
    ) -> str:
        await self._enter(
            "describe_image",
            content_type=content_type,
            prompt=prompt,
            max_tokens=max_tokens,
            size=len(image),
        )
        digest = hashlib.sha256(image).hexdigest()[:12]
        return f"Mock description of a {content_type} image ({len(image)} bytes, sha256 {digest})."

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        max_tokens: int = 500,
        temperature: Optional[float] = None,
    ) -> str:
        await self._enter(
            "complete",
            messages=messages,
            max_tokens=max_tokens,
            temperature=temperature,
        )
        last_user = next(
            (m.get("content", "") for m in reversed(messages) if m.get("role") == "user"),
            "",
        )
        words = str(last_user).split()
        return f"Mock summary of {len(words)} words: " + " ".join(words[:12])
