import json
import re
from typing import Annotated, Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Values shipped in example env files; treated the same as an absent key.
PLACEHOLDER_API_KEYS = frozenset({"your-openai-api-key-here", "dummy-key"})


def _parse_cors_origins(raw: Any) -> list[str]:
    if raw is None:
        return []
    if isinstance(raw, list):
        items = [str(v).strip() for v in raw]
        return [v for v in items if v]

    raw = str(raw).strip()
    if not raw or raw == "[]":
        return []
    if raw == "*":
        return ["*"]

    if raw.startswith(("[", '"', "'")):
        try:
            parsed = json.loads(raw)
        except json.JSONDecodeError:
            parsed = None
        if isinstance(parsed, list):
            items = [str(v).strip() for v in parsed]
            return [v for v in items if v]
        if isinstance(parsed, str):
            raw = parsed.strip()
            if not raw or raw == "[]":
                return []
            if raw == "*":
                return ["*"]

    origins: list[str] = []
    for part in (p for p in re.split(r"[,\s]+", raw) if p):
        if part == "*":
            return ["*"]
        if "://" in part:
            origins.append(part)
            continue
        # Browsers send the scheme in the Origin header.
        origins.append(f"http://{part}")
        origins.append(f"https://{part}")

    return list(dict.fromkeys(origins))


class Settings(BaseSettings):
    """Application settings loaded from environment variables.

    All settings can be configured via environment variables or .env file.
    """

    # Debug mode - exception messages (never tracebacks) in 500 responses
    debug: bool = False

    # OpenAI settings
    openai_api_key: str = ""
    openai_base_url: str = "https://api.openai.com/v1"
    openai_organization: str | None = None
    openai_timeout: float = 60.0

    # Models per capability
    transcription_model: str = "whisper-1"
    transcription_language: str = "en"
    vision_model: str = "gpt-4o-mini"
    completion_model: str = "gpt-3.5-turbo"

    # Serve the offline mock provider instead of OpenAI
    mock_provider: bool = False

    # Admission control, one pair per route class
    rate_limit_standard_requests: int = 30
    rate_limit_standard_window_seconds: int = 60
    rate_limit_heavy_requests: int = 5
    rate_limit_heavy_window_seconds: int = 60
    rate_limit_auth_requests: int = 10
    rate_limit_auth_window_seconds: int = 900
    rate_limit_image_requests: int = 10
    rate_limit_image_window_seconds: int = 60

    # Content extraction limits
    text_max_chars: int = 4000
    pdf_text_max_chars: int = 8000
    pdf_max_render_pages: int = 5
    pdf_render_dpi: int = 150
    min_pdf_text_chars: int = 50
    min_document_text_chars: int = 10

    # Remote page fetching
    fetch_timeout_seconds: float = 10.0
    fetch_max_bytes: int = 5_000_000
    fetch_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    )

    # Upload limits
    max_image_bytes: int = 20 * 1024 * 1024
    max_document_bytes: int = 10 * 1024 * 1024
    max_request_body_bytes: int = 25 * 1024 * 1024

    # HTTP client connection pool settings
    httpx_connect_timeout: float = 10.0
    httpx_read_timeout: float = 60.0
    httpx_write_timeout: float = 10.0
    httpx_pool_timeout: float = 5.0
    httpx_keepalive_expiry: float = 30.0
    httpx_max_connections: int = 100
    httpx_max_keepalive_connections: int = 20

    # Logging settings
    log_level: str = "INFO"
    log_format: str = "text"  # text | structured | json

    # Use NoDecode so a bare host list does not crash JSON parsing at startup.
    cors_origins: Annotated[list[str], NoDecode] = ["*"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def decode_cors_origins(cls, v: Any) -> list[str]:
        return _parse_cors_origins(v)

    @field_validator(
        "rate_limit_standard_requests",
        "rate_limit_standard_window_seconds",
        "rate_limit_heavy_requests",
        "rate_limit_heavy_window_seconds",
        "rate_limit_auth_requests",
        "rate_limit_auth_window_seconds",
        "rate_limit_image_requests",
        "rate_limit_image_window_seconds",
    )
    @classmethod
    def validate_rate_limit_positive(cls, v: int) -> int:
        """Validate rate limit values are positive."""
        if v < 1:
            raise ValueError("Rate limit values must be at least 1")
        return v

    @field_validator(
        "text_max_chars",
        "pdf_text_max_chars",
        "pdf_max_render_pages",
        "pdf_render_dpi",
        "fetch_max_bytes",
        "max_image_bytes",
        "max_document_bytes",
        "max_request_body_bytes",
    )
    @classmethod
    def validate_limits_positive(cls, v: int) -> int:
        """Validate size and page limits are positive."""
        if v < 1:
            raise ValueError("limit values must be at least 1")
        return v

    @field_validator("min_pdf_text_chars", "min_document_text_chars")
    @classmethod
    def validate_threshold_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("content thresholds cannot be negative")
        return v

    @field_validator(
        "openai_timeout",
        "fetch_timeout_seconds",
        "httpx_connect_timeout",
        "httpx_read_timeout",
    )
    @classmethod
    def validate_timeout_positive(cls, v: float) -> float:
        """Validate timeout values are positive."""
        if v <= 0:
            raise ValueError("Timeout values must be positive")
        return v

    @property
    def api_key_configured(self) -> bool:
        """True when a usable (non-placeholder) OpenAI key is present."""
        key = self.openai_api_key.strip()
        return bool(key) and key not in PLACEHOLDER_API_KEYS

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Global settings instance
settings = Settings()
