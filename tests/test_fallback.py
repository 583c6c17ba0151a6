"""Tests for ordered fallback chains."""

import pytest

from analyzer.app.exceptions import (
    ExtractionError,
    ExtractionReason,
    FallbackExhausted,
    GatewayAuthFailure,
    GatewayUnavailable,
    ProcessingError,
)
from analyzer.app.services.fallback import FallbackChain


def returning(value, log=None, label=None):
    async def attempt():
        if log is not None:
            log.append(label)
        return value
    return attempt


def raising(exc, log=None, label=None):
    async def attempt():
        if log is not None:
            log.append(label)
        raise exc
    return attempt


class TestFallbackChain:
    """Tests for FallbackChain.run."""

    @pytest.mark.asyncio
    async def test_first_success_wins(self):
        log = []
        chain = FallbackChain("test", [
            ("first", returning("one", log, "first")),
            ("second", returning("two", log, "second")),
        ])

        assert await chain.run() == "one"
        assert log == ["first"]

    @pytest.mark.asyncio
    async def test_recoverable_failure_moves_on(self):
        log = []
        chain = FallbackChain("test", [
            ("render", raising(ExtractionError(ExtractionReason.RENDER_FAILED), log, "render")),
            ("gateway", raising(GatewayUnavailable(), log, "gateway")),
            ("text", returning("from text", log, "text")),
        ])

        assert await chain.run() == "from text"
        assert log == ["render", "gateway", "text"]

    @pytest.mark.asyncio
    async def test_non_recoverable_failure_propagates(self):
        log = []
        chain = FallbackChain("test", [
            ("auth", raising(GatewayAuthFailure(), log, "auth")),
            ("never", returning("unused", log, "never")),
        ])

        with pytest.raises(GatewayAuthFailure):
            await chain.run()
        assert log == ["auth"]

    @pytest.mark.asyncio
    async def test_exhausted_chain(self):
        chain = FallbackChain("pdf", [
            ("render", raising(ExtractionError(ExtractionReason.RENDER_FAILED, "no pages"))),
            ("text", raising(ExtractionError(ExtractionReason.INSUFFICIENT_TEXT, "too short"))),
        ])

        with pytest.raises(FallbackExhausted) as exc_info:
            await chain.run()

        exc = exc_info.value
        assert isinstance(exc, ProcessingError)
        assert exc.chain == "pdf"
        assert [label for label, _ in exc.failures] == ["render", "text"]
        assert exc.message == "too short"

    @pytest.mark.asyncio
    async def test_empty_chain_is_exhausted(self):
        with pytest.raises(FallbackExhausted) as exc_info:
            await FallbackChain("empty").run()
        assert "tried: none" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_custom_recoverable_and_add(self):
        chain = FallbackChain("custom", recoverable=(ValueError,))
        chain.add("bad", raising(ValueError("nope"))).add("good", returning(42))

        assert await chain.run() == 42
