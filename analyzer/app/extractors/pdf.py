"""PDF extractors backed by PyMuPDF.

Two independent converters: embedded text (the fallback path) and
page rasterization for vision analysis. Both are CPU-bound and
synchronous; orchestrators run them in a worker thread.
"""

import fitz  # PyMuPDF

from analyzer.app.core.config import settings
from analyzer.app.core.logging import get_logger
from analyzer.app.exceptions import ExtractionError, ExtractionReason
from analyzer.app.extractors.models import ContentKind, ExtractedContent

logger = get_logger(__name__)


def _open_pdf(data: bytes, source_name: str) -> fitz.Document:
    try:
        return fitz.open(stream=data, filetype="pdf")
    except (RuntimeError, ValueError) as e:
        logger.warning(f"Could not open PDF {source_name}: {e}")
        raise ExtractionError(
            ExtractionReason.INVALID_PDF,
            "Unable to process this PDF. It may be corrupted.",
        ) from e


def extract_pdf_text(
    data: bytes,
    source_name: str,
    max_chars: int | None = None,
) -> ExtractedContent:
    """Embedded text of every page, truncated to ``max_chars``.

    PDFs carry denser content, so the default limit is larger than the
    plain-text one.
    """
    limit = max_chars or settings.pdf_text_max_chars
    with _open_pdf(data, source_name) as doc:
        page_count = doc.page_count
        pages = [page.get_text("text") for page in doc]

    return ExtractedContent(
        kind=ContentKind.TEXT,
        payload="\n".join(pages)[:limit],
        source_name=source_name,
        page_count=page_count,
    )


def render_pdf_pages(
    data: bytes,
    source_name: str,
    max_pages: int | None = None,
    dpi: int | None = None,
) -> ExtractedContent:
    """Render the first ``max_pages`` pages to PNG.

    A page that fails to render is logged and skipped, so the result may
    hold fewer images than requested. ``page_count`` is always the total
    page count of the document.
    """
    max_pages = max_pages or settings.pdf_max_render_pages
    dpi = dpi or settings.pdf_render_dpi

    images: list[bytes] = []
    with _open_pdf(data, source_name) as doc:
        page_count = doc.page_count
        for index in range(min(page_count, max_pages)):
            try:
                pix = doc.load_page(index).get_pixmap(dpi=dpi, alpha=False)
                images.append(pix.tobytes("png"))
            except Exception as e:
                logger.warning(
                    f"Error converting page {index + 1} of {source_name}: {e}"
                )

    logger.debug(f"Rendered {len(images)}/{page_count} pages of {source_name}")
    return ExtractedContent(
        kind=ContentKind.IMAGE_SET,
        payload=images,
        source_name=source_name,
        page_count=page_count,
        metadata={"dpi": dpi},
    )
