"""Middleware package for the analyzer."""

from analyzer.app.middleware.rate_limit import (
    AdmissionDecision,
    InMemoryRateLimiter,
    LimiterConfig,
    RateLimiterRegistry,
    check_admission,
    get_rate_limiters,
    rate_limit_headers,
    reset_rate_limiters,
)
from analyzer.app.middleware.request_id import RequestIdMiddleware, get_request_id
from analyzer.app.middleware.request_size import RequestSizeLimitMiddleware

__all__ = [
    "AdmissionDecision",
    "InMemoryRateLimiter",
    "LimiterConfig",
    "RateLimiterRegistry",
    "check_admission",
    "get_rate_limiters",
    "rate_limit_headers",
    "reset_rate_limiters",
    "RequestIdMiddleware",
    "get_request_id",
    "RequestSizeLimitMiddleware",
]
