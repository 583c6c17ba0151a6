"""Inference provider factory.

Builds the process-wide provider from settings once and hands it out as a
FastAPI dependency, so tests can swap it with ``dependency_overrides`` or
``set_provider``.
"""

from typing import Optional

from analyzer.app.core.config import settings
from analyzer.app.core.logging import get_logger
from analyzer.app.providers.base import BaseProvider
from analyzer.app.providers.mock import MockProvider
from analyzer.app.providers.openai import OpenAIProvider

logger = get_logger(__name__)

_provider: Optional[BaseProvider] = None


def create_provider() -> BaseProvider:
    """Create a provider from the current settings."""
    if settings.mock_provider:
        logger.info("Using mock inference provider")
        return MockProvider()

    if not settings.api_key_configured:
        logger.warning(
            "OpenAI API key missing or placeholder; routes will use demo fallbacks"
        )

    return OpenAIProvider(
        api_key=settings.openai_api_key,
        base_url=settings.openai_base_url,
        organization=settings.openai_organization,
        timeout=settings.openai_timeout,
        transcription_model=settings.transcription_model,
        transcription_language=settings.transcription_language or None,
        vision_model=settings.vision_model,
        completion_model=settings.completion_model,
        is_configured=settings.api_key_configured,
    )


def get_provider() -> BaseProvider:
    """Get the shared provider, creating it on first use."""
    global _provider
    if _provider is None:
        _provider = create_provider()
    return _provider


def set_provider(provider: Optional[BaseProvider]) -> None:
    global _provider
    _provider = provider


def reset_provider() -> None:
    """Forget the shared provider (tests)."""
    set_provider(None)
