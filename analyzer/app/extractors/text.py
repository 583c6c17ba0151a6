"""Plain text and office document extractors."""

import io
import zipfile

from docx import Document
from docx.opc.exceptions import PackageNotFoundError

from analyzer.app.core.config import settings
from analyzer.app.core.logging import get_logger
from analyzer.app.exceptions import ExtractionError, ExtractionReason
from analyzer.app.extractors.models import ContentKind, ExtractedContent

logger = get_logger(__name__)


def extract_plain_text(
    data: bytes,
    source_name: str,
    max_chars: int | None = None,
) -> ExtractedContent:
    """Decode UTF-8 bytes and truncate to ``max_chars`` characters.

    Raises:
        ExtractionError: DECODE_FAILED if the bytes are not valid UTF-8
    """
    limit = max_chars or settings.text_max_chars
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise ExtractionError(
            ExtractionReason.DECODE_FAILED,
            f"Could not decode {source_name} as UTF-8 text",
        ) from e
    return ExtractedContent(
        kind=ContentKind.TEXT,
        payload=text[:limit],
        source_name=source_name,
    )


def extract_office_text(
    data: bytes,
    source_name: str,
    max_chars: int | None = None,
) -> ExtractedContent:
    """Extract raw text from a Word (OOXML) document.

    Paragraphs come first, then table rows with cells joined by tabs.

    Raises:
        ExtractionError: INVALID_DOCUMENT if the bytes are not a valid
            document package
    """
    limit = max_chars or settings.text_max_chars
    try:
        document = Document(io.BytesIO(data))
    except (PackageNotFoundError, zipfile.BadZipFile, KeyError, ValueError) as e:
        logger.warning(f"Error parsing office document {source_name}: {e}")
        raise ExtractionError(
            ExtractionReason.INVALID_DOCUMENT,
            "Failed to parse Word document",
        ) from e

    blocks = [p.text for p in document.paragraphs if p.text.strip()]
    for table in document.tables:
        for row in table.rows:
            cells = [cell.text.strip() for cell in row.cells]
            if any(cells):
                blocks.append("\t".join(cells))

    return ExtractedContent(
        kind=ContentKind.TEXT,
        payload="\n\n".join(blocks)[:limit],
        source_name=source_name,
    )
