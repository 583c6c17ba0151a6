"""Custom exceptions for the analyzer application."""

from enum import Enum
from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from analyzer.app.middleware.rate_limit import AdmissionDecision


class AnalyzerException(Exception):
    """Base class for analyzer exceptions with HTTP status code.

    Every subclass defines a ``status_code`` and ``error_code`` so the
    exception handlers in ``main`` can render a stable JSON error shape.
    """
    status_code: int = 500
    error_code: str = "internal_error"

    def __init__(self, message: str = "Analyzer error"):
        self.message = message
        super().__init__(message)

    def extra_content(self) -> Dict[str, Any]:
        """Additional fields merged into the JSON error body."""
        return {}

    def headers(self) -> Optional[Dict[str, str]]:
        return None


class ValidationError(AnalyzerException):
    """Bad input shape, type or size. Never retried."""
    status_code = 400
    error_code = "validation_error"


class AdmissionRejected(AnalyzerException):
    """The caller exceeded its admission window for a route class.

    Maps to HTTP 429 with Retry-After and X-RateLimit-* headers.
    """
    status_code = 429
    error_code = "rate_limit_exceeded"

    def __init__(
        self,
        decision: "AdmissionDecision",
        message: str = "Too many requests. Please try again later.",
    ):
        self.decision = decision
        super().__init__(message)

    def extra_content(self) -> Dict[str, Any]:
        return {"retryAfter": self.decision.retry_after}

    def headers(self) -> Dict[str, str]:
        from analyzer.app.middleware.rate_limit import rate_limit_headers

        return rate_limit_headers(self.decision)


class ExtractionReason(str, Enum):
    """Why a content extractor could not produce usable content."""
    DECODE_FAILED = "decode_failed"
    INVALID_DOCUMENT = "invalid_document"
    INVALID_URL = "invalid_url"
    CONNECTION_REFUSED = "connection_refused"
    NOT_FOUND = "not_found"
    FETCH_FAILED = "fetch_failed"
    TOO_LARGE = "too_large"
    INVALID_PDF = "invalid_pdf"
    RENDER_FAILED = "render_failed"
    INSUFFICIENT_TEXT = "insufficient_text"


class ExtractionError(AnalyzerException):
    """A content extractor failed.

    Orchestrators catch this and either fall back or convert it into a
    ``ValidationError`` / ``ProcessingError``; it is not meant to reach
    the client as-is.
    """
    status_code = 422
    error_code = "extraction_failed"

    def __init__(self, reason: ExtractionReason, message: str | None = None):
        self.reason = reason
        super().__init__(message or reason.value.replace("_", " "))


class ProcessingError(AnalyzerException):
    """No usable result could be produced once every fallback was tried."""
    status_code = 500
    error_code = "processing_failed"


class FallbackExhausted(ProcessingError):
    """Every attempt of a fallback chain failed.

    Attributes:
        chain: Name of the chain
        failures: (attempt label, exception) pairs in attempt order
    """

    def __init__(self, chain: str, failures: list, message: str | None = None):
        self.chain = chain
        self.failures = failures
        attempted = ", ".join(label for label, _ in failures) or "none"
        super().__init__(
            message or f"All strategies failed for {chain} (tried: {attempted})"
        )


class GatewayError(AnalyzerException):
    """Base class for inference provider failures."""
    status_code = 502
    error_code = "gateway_error"


class GatewayAuthFailure(GatewayError):
    """The provider rejected our credentials. Fatal, not retried."""
    status_code = 401
    error_code = "gateway_auth_failed"

    def __init__(self, message: str = "Invalid OpenAI API key. Please check your configuration."):
        super().__init__(message)


class GatewayRateLimited(GatewayError):
    """The provider throttled us; distinct from our own admission control."""
    status_code = 429
    error_code = "upstream_rate_limited"
    retry_after: int = 60

    def __init__(
        self,
        message: str = "OpenAI API rate limit exceeded. Please wait a moment and try again.",
    ):
        super().__init__(message)

    def extra_content(self) -> Dict[str, Any]:
        return {"retryAfter": self.retry_after}

    def headers(self) -> Dict[str, str]:
        return {"Retry-After": str(self.retry_after)}


class GatewayUnavailable(GatewayError):
    """Transient provider failure; callers prefer templated fallbacks."""
    status_code = 503
    error_code = "upstream_unavailable"

    def __init__(
        self,
        message: str = "OpenAI service is temporarily unavailable. Please try again later.",
    ):
        super().__init__(message)


class GatewayModelUnavailable(GatewayUnavailable):
    """The requested model is not accessible with the configured key."""
    error_code = "model_unavailable"


class GatewayNotConfigured(GatewayError):
    """No usable API key where a real provider call is unavoidable."""
    status_code = 500
    error_code = "gateway_not_configured"

    def __init__(
        self,
        message: str = (
            "OpenAI API key not configured. "
            "Please add your API key to the environment variables."
        ),
    ):
        super().__init__(message)
