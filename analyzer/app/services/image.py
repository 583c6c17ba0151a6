"""Image pipeline: validated upload -> vision description.

Provider failures degrade to a templated description built from file
metadata, except a credential rejection (fatal) and upstream throttling
(surfaced as 429).
"""

from analyzer.app.core.config import settings
from analyzer.app.core.logging import get_logger
from analyzer.app.exceptions import (
    GatewayAuthFailure,
    GatewayError,
    GatewayModelUnavailable,
    GatewayRateLimited,
    ProcessingError,
    ValidationError,
)
from analyzer.app.providers.base import BaseProvider
from analyzer.app.services.models import AnalysisKind, AnalysisResult

logger = get_logger(__name__)

ALLOWED_IMAGE_TYPES = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
)

IMAGE_PROMPT = (
    "Please provide a detailed description of this image. Include:\n"
    "1. What you see in the image\n"
    "2. Any text visible in the image\n"
    "3. Colors and composition\n"
    "4. The overall context or purpose of the image\n"
    "5. Any notable details or interesting elements"
)


def _size_kb(size: int) -> str:
    return f"{size / 1024:.2f} KB"


def demo_description(content_type: str, size: int) -> str:
    return (
        "Image Analysis (Demo Mode):\n\n"
        f"This is a {content_type} image with a file size of {_size_kb(size)}.\n\n"
        "With a valid OpenAI API key configured, this service would provide:\n"
        "• Detailed visual description of objects, people, and scenes\n"
        "• Text extraction from any visible text in the image\n"
        "• Color analysis and composition details\n"
        "• Context and purpose identification\n"
        "• Notable elements and interesting features\n\n"
        "To enable full image analysis, set OPENAI_API_KEY and restart the service.\n\n"
        "The image has been successfully uploaded and is ready for analysis "
        "once the API is configured."
    )


def model_unavailable_description(filename: str, content_type: str, size: int) -> str:
    return (
        f"Image uploaded successfully: {filename}\n\n"
        "Image Details:\n"
        f"• Type: {content_type}\n"
        f"• Size: {_size_kb(size)}\n\n"
        "Note: The vision model is not available with your current API key. "
        "Please ensure you have access to vision models for full image "
        "analysis capabilities."
    )


def unavailable_description(filename: str, content_type: str, size: int) -> str:
    return (
        f"Image received: {filename}\n\n"
        "Technical Details:\n"
        f"• File Type: {content_type}\n"
        f"• File Size: {_size_kb(size)}\n\n"
        "The image analysis service is temporarily unavailable. "
        "Please try again later or check your API configuration."
    )


def validate_image(content_type: str | None, size: int) -> None:
    if not content_type or content_type.lower() not in ALLOWED_IMAGE_TYPES:
        raise ValidationError(
            "Invalid file type. Please upload an image (JPG, PNG, GIF, or WebP)"
        )
    if size > settings.max_image_bytes:
        limit_mb = settings.max_image_bytes // (1024 * 1024)
        raise ValidationError(
            f"Image too large. Please upload an image smaller than {limit_mb}MB"
        )


async def analyze_image(
    image: bytes,
    filename: str,
    content_type: str | None,
    provider: BaseProvider,
) -> AnalysisResult:
    """Describe an uploaded image.

    Raises:
        ValidationError: Unsupported type or oversized upload
        ProcessingError: The provider rejected our credentials
        GatewayRateLimited: The provider throttled the request
    """
    validate_image(content_type, len(image))
    content_type = content_type.lower()

    def result(text: str, fallback: str | None = None) -> AnalysisResult:
        return AnalysisResult(
            kind=AnalysisKind.IMAGE,
            text=text,
            source_name=filename,
            fallbacks=[fallback] if fallback else [],
        )

    if not provider.configured:
        return result(demo_description(content_type, len(image)), "demo")

    try:
        description = await provider.describe_image(
            image, content_type, IMAGE_PROMPT, max_tokens=500
        )
    except GatewayAuthFailure as e:
        raise ProcessingError(e.message) from e
    except GatewayRateLimited:
        raise
    except GatewayModelUnavailable as e:
        logger.warning(f"Vision model unavailable for {filename}: {e}")
        return result(
            model_unavailable_description(filename, content_type, len(image)),
            "model_unavailable",
        )
    except GatewayError as e:
        logger.warning(f"Image analysis failed for {filename}: {type(e).__name__}: {e}")
        return result(
            unavailable_description(filename, content_type, len(image)),
            "unavailable",
        )

    return result(description or "Unable to analyze image")
