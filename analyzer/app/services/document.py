"""Document pipeline: uploaded file or URL -> summary.

PDFs go through an ordered fallback chain: render pages and analyze them
with the vision model, else summarize the embedded text. Other files and
remote pages are reduced to text and summarized directly.
"""

import asyncio
from enum import Enum
from pathlib import PurePosixPath

from analyzer.app.core.config import settings
from analyzer.app.core.logging import get_logger
from analyzer.app.exceptions import (
    ExtractionError,
    ExtractionReason,
    FallbackExhausted,
    GatewayError,
    GatewayNotConfigured,
    GatewayUnavailable,
    ProcessingError,
    ValidationError,
)
from analyzer.app.extractors import (
    extract_office_text,
    extract_pdf_text,
    extract_plain_text,
    fetch_page_text,
    render_pdf_pages,
    validate_url,
)
from analyzer.app.middleware.rate_limit import HEAVY, STANDARD
from analyzer.app.providers.base import BaseProvider
from analyzer.app.services.fallback import FallbackChain
from analyzer.app.services.models import AnalysisKind, AnalysisResult

logger = get_logger(__name__)

TEXT_EXTENSIONS = frozenset({".txt", ".md", ".csv", ".log"})
OFFICE_EXTENSIONS = frozenset({".doc", ".docx"})

SUMMARY_SYSTEM_PROMPT = "You are a helpful assistant that creates concise, informative summaries."
ANALYST_SYSTEM_PROMPT = (
    "You are an expert document analyst. Create a comprehensive summary based on "
    "the page-by-page analysis provided."
)
PDF_TEXT_SYSTEM_PROMPT = (
    "You are an expert document analyst. Create comprehensive summaries that "
    "capture all key information."
)
TEXT_ONLY_NOTE = "Note: This summary is based on extracted text only."


class SourceType(str, Enum):
    FILE = "file"
    URL = "url"


class DocumentKind(str, Enum):
    PDF = "pdf"
    OFFICE = "office"
    TEXT = "text"


def parse_source_type(raw: str | None) -> SourceType:
    try:
        return SourceType(raw)
    except ValueError:
        raise ValidationError('Invalid request type. Must be "file" or "url".') from None


def detect_document_kind(filename: str, content_type: str | None = None) -> DocumentKind:
    """Pick the extractor for an upload by extension, then by MIME type."""
    suffix = PurePosixPath((filename or "").lower()).suffix
    if suffix == ".pdf":
        return DocumentKind.PDF
    if suffix in OFFICE_EXTENSIONS:
        return DocumentKind.OFFICE
    if suffix in TEXT_EXTENSIONS:
        return DocumentKind.TEXT
    if content_type and content_type.lower().startswith("text/"):
        return DocumentKind.TEXT
    raise ValidationError(
        "Unsupported file type. Supported: PDF, DOC, DOCX, TXT, MD, CSV, LOG"
    )


def rate_class_for(source_type: SourceType, filename: str | None = None) -> str:
    """URLs and PDFs are heavy; every other upload is standard."""
    if source_type is SourceType.URL:
        return HEAVY
    if PurePosixPath((filename or "").lower()).suffix == ".pdf":
        return HEAVY
    return STANDARD


def validate_document_size(size: int) -> None:
    if size > settings.max_document_bytes:
        limit_mb = settings.max_document_bytes // (1024 * 1024)
        raise ValidationError(f"File too large. Maximum size is {limit_mb}MB.")


def _require_configured(provider: BaseProvider) -> None:
    if not provider.configured:
        raise GatewayNotConfigured()


async def _summarize_text(provider: BaseProvider, text: str, source_name: str) -> str:
    summary = await provider.complete(
        [
            {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": (
                    "Please provide a comprehensive summary of the following "
                    f'content from "{source_name}":\n\n{text}'
                ),
            },
        ],
        max_tokens=500,
        temperature=0.5,
    )
    return summary or "Unable to generate summary"


def _page_prompt(page_number: int, filename: str) -> str:
    return (
        f'This is page {page_number} of a PDF document "{filename}". '
        "Please analyze this page and describe:\n"
        "1. The content and layout (text, tables, graphs, images)\n"
        "2. Key information or data presented\n"
        "3. Any important details, dates, or numbers\n"
        "4. If it's a calendar, list important dates\n"
        "5. If it contains graphs or charts, describe the data trends"
    )


def _synthesis_prompt(filename: str, page_count: int, analyzed: int, combined: str) -> str:
    return (
        f'Based on the following page-by-page analysis of the PDF document "{filename}" '
        f"({page_count} total pages, analyzed first {analyzed} pages), provide an "
        f"overall summary:\n\n{combined}\n\n"
        "Please provide:\n"
        "1. Overall document summary\n"
        "2. Key takeaways and important information\n"
        "3. Any critical dates, numbers, or data points\n"
        "4. Document purpose and main conclusions"
    )


async def analyze_pdf_pages(
    provider: BaseProvider,
    images: list[bytes],
    filename: str,
    page_count: int,
) -> str:
    """Vision pass per rendered page plus one synthesis pass."""
    sections = []
    for index, image in enumerate(images, start=1):
        analysis = await provider.describe_image(
            image, "image/png", _page_prompt(index, filename), max_tokens=300
        )
        sections.append(f"**Page {index}:**\n{analysis or f'Unable to analyze page {index}'}")
    combined = "\n\n".join(sections)

    overall = await provider.complete(
        [
            {"role": "system", "content": ANALYST_SYSTEM_PROMPT},
            {
                "role": "user",
                "content": _synthesis_prompt(filename, page_count, len(images), combined),
            },
        ],
        max_tokens=500,
        temperature=0.3,
    ) or "Unable to generate overall summary"

    return (
        f"**Document:** {filename} ({page_count} pages total, analyzed {len(images)} pages)"
        f"\n\n{overall}\n\n---\n\n**Detailed Page Analysis:**\n\n{combined}"
    )


async def summarize_pdf(data: bytes, filename: str, provider: BaseProvider) -> AnalysisResult:
    """Summarize a PDF, preferring visual analysis of rendered pages.

    Raises:
        ProcessingError: Neither rendering nor text extraction produced
            usable content
        GatewayError: The provider failed on the last remaining strategy
    """
    used: list[str] = []

    async def page_images() -> str:
        rendered = await asyncio.to_thread(render_pdf_pages, data, filename)
        if not rendered.images:
            raise ExtractionError(ExtractionReason.RENDER_FAILED, "No pages could be rendered")
        logger.info(f"Converted {len(rendered.images)} pages of {filename} to images")
        used.append("page_images")
        return await analyze_pdf_pages(provider, rendered.images, filename, rendered.page_count)

    async def embedded_text() -> str:
        extracted = await asyncio.to_thread(extract_pdf_text, data, filename)
        text = extracted.text.strip()
        if len(text) < settings.min_pdf_text_chars:
            raise ExtractionError(
                ExtractionReason.INSUFFICIENT_TEXT,
                f"Only {len(text)} characters of embedded text",
            )
        summary = await provider.complete(
            [
                {"role": "system", "content": PDF_TEXT_SYSTEM_PROMPT},
                {
                    "role": "user",
                    "content": f'Please provide a detailed summary of this PDF document "{filename}":\n\n{text}',
                },
            ],
            max_tokens=500,
            temperature=0.3,
        )
        used.append("embedded_text")
        return f"{TEXT_ONLY_NOTE}\n\n{summary or 'Unable to generate summary'}"

    chain = FallbackChain(
        f"pdf {filename}",
        [("page_images", page_images), ("embedded_text", embedded_text)],
        recoverable=(ExtractionError, GatewayUnavailable),
    )
    try:
        summary = await chain.run()
    except FallbackExhausted as e:
        _, last = e.failures[-1]
        if isinstance(last, GatewayError):
            raise last from None
        raise ProcessingError(
            f'Unable to process PDF "{filename}". '
            "The document may be image-based or corrupted."
        ) from e

    return AnalysisResult(
        kind=AnalysisKind.DOCUMENT,
        text=summary,
        source_name=filename,
        fallbacks=["embedded_text"] if "embedded_text" in used else [],
    )


async def summarize_file(
    data: bytes,
    filename: str,
    content_type: str | None,
    provider: BaseProvider,
) -> AnalysisResult:
    """Summarize an uploaded document.

    Raises:
        ValidationError: Unsupported type, unparseable file or no content
        GatewayNotConfigured: No API key is configured
    """
    validate_document_size(len(data))
    kind = detect_document_kind(filename, content_type)

    if kind is DocumentKind.PDF:
        _require_configured(provider)
        return await summarize_pdf(data, filename, provider)

    try:
        if kind is DocumentKind.OFFICE:
            extracted = await asyncio.to_thread(extract_office_text, data, filename)
        else:
            extracted = extract_plain_text(data, filename)
    except ExtractionError as e:
        raise ValidationError(f"Failed to parse file: {e.message}") from e

    _require_configured(provider)
    text = extracted.text
    if len(text.strip()) < settings.min_document_text_chars:
        raise ValidationError("No meaningful content found to summarize")

    return AnalysisResult(
        kind=AnalysisKind.DOCUMENT,
        text=await _summarize_text(provider, text, filename),
        source_name=filename,
    )


async def summarize_url(url: str, provider: BaseProvider) -> AnalysisResult:
    """Fetch a remote page and summarize its visible text.

    Raises:
        ValidationError: Bad URL, or the page could not be fetched
        GatewayNotConfigured: No API key is configured
    """
    try:
        url = validate_url(url)
        extracted = await fetch_page_text(url)
    except ExtractionError as e:
        if e.reason is ExtractionReason.INVALID_URL:
            raise ValidationError(e.message) from e
        raise ValidationError(f"Failed to fetch URL: {e.message}") from e

    _require_configured(provider)
    text = extracted.text
    if len(text.strip()) < settings.min_document_text_chars:
        raise ValidationError("No meaningful content found to summarize")

    return AnalysisResult(
        kind=AnalysisKind.DOCUMENT,
        text=await _summarize_text(provider, text, url),
        source_name=url,
    )
