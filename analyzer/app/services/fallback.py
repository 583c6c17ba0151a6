"""Ordered fallback chains for pipeline steps.

A chain is a short list of alternative strategies tried in order until
one succeeds. Exhausting the list raises ``FallbackExhausted``.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, List, Tuple, Type

from analyzer.app.core.logging import get_logger
from analyzer.app.exceptions import ExtractionError, FallbackExhausted, GatewayUnavailable

logger = get_logger(__name__)

Attempt = Tuple[str, Callable[[], Awaitable[Any]]]

DEFAULT_RECOVERABLE: Tuple[Type[Exception], ...] = (ExtractionError, GatewayUnavailable)


@dataclass
class FallbackChain:
    """Runs ``attempts`` in order, returning the first successful result.

    Only exceptions listed in ``recoverable`` move the chain on to the next
    attempt; anything else propagates immediately.

    An attempt may also reject a successful-but-unusable result by raising
    one of the recoverable exceptions itself.

    Example:
        >>> chain = FallbackChain("pdf", [
        ...     ("render", render_pages),
        ...     ("text", extract_text),
        ... ])
        >>> result = await chain.run()
    """
    name: str
    attempts: List[Attempt] = field(default_factory=list)
    recoverable: Tuple[Type[Exception], ...] = DEFAULT_RECOVERABLE

    def add(self, label: str, attempt: Callable[[], Awaitable[Any]]) -> "FallbackChain":
        self.attempts.append((label, attempt))
        return self

    async def run(self) -> Any:
        failures: List[Tuple[str, Exception]] = []
        for label, attempt in self.attempts:
            try:
                result = await attempt()
            except self.recoverable as e:
                failures.append((label, e))
                logger.warning(
                    f"{self.name}: strategy '{label}' failed: {type(e).__name__}: {e}"
                )
                continue
            if failures:
                logger.info(f"{self.name}: recovered with strategy '{label}'")
            return result

        # The last strategy's failure is the most specific explanation.
        last_message = str(failures[-1][1]) if failures else None
        raise FallbackExhausted(self.name, failures, message=last_message)
