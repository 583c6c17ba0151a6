"""Content extractors: raw bytes or a URL in, normalized text or images out."""

from analyzer.app.extractors.models import ContentKind, ExtractedContent
from analyzer.app.extractors.pdf import extract_pdf_text, render_pdf_pages
from analyzer.app.extractors.text import extract_office_text, extract_plain_text
from analyzer.app.extractors.web import fetch_page_text, html_to_text, validate_url

__all__ = [
    "ContentKind",
    "ExtractedContent",
    "extract_office_text",
    "extract_pdf_text",
    "extract_plain_text",
    "fetch_page_text",
    "html_to_text",
    "render_pdf_pages",
    "validate_url",
]
