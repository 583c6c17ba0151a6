"""Inference providers for the analyzer.

This package provides:
- Base provider interface (BaseProvider)
- OpenAI implementation (OpenAIProvider)
- Deterministic offline provider (MockProvider)
- Provider factory (get_provider, set_provider, reset_provider)
"""

from analyzer.app.providers.base import BaseProvider
from analyzer.app.providers.factory import (
    create_provider,
    get_provider,
    reset_provider,
    set_provider,
)
from analyzer.app.providers.mock import MockProvider
from analyzer.app.providers.openai import OpenAIProvider

__all__ = [
    "BaseProvider",
    "MockProvider",
    "OpenAIProvider",
    "create_provider",
    "get_provider",
    "reset_provider",
    "set_provider",
]
