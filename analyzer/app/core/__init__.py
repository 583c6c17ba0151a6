"""Core utilities for the analyzer application."""

from analyzer.app.core.config import Settings, settings
from analyzer.app.core.http_client import get_http_client, init_http_client
from analyzer.app.core.logging import get_log_context, get_logger, setup_logging

__all__ = [
    "Settings",
    "settings",
    "get_http_client",
    "init_http_client",
    "get_log_context",
    "get_logger",
    "setup_logging",
]
