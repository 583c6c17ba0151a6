"""Shared fixtures for analyzer tests."""

import io

import fitz
import pytest
from docx import Document
from fastapi.testclient import TestClient

from analyzer.app.middleware.rate_limit import reset_rate_limiters
from analyzer.app.providers.factory import reset_provider, set_provider
from analyzer.app.providers.mock import MockProvider


class FakeClock:
    """Manually advanced replacement for time.time."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_pdf(pages: list[str]) -> bytes:
    """Build a PDF with one text block per page."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_textbox(fitz.Rect(72, 72, 540, 770), text, fontsize=11)
    data = doc.tobytes()
    doc.close()
    return data


def make_docx(paragraphs: list[str], table: list[list[str]] | None = None) -> bytes:
    document = Document()
    for paragraph in paragraphs:
        document.add_paragraph(paragraph)
    if table:
        grid = document.add_table(rows=len(table), cols=len(table[0]))
        for r, row in enumerate(table):
            for c, value in enumerate(row):
                grid.cell(r, c).text = value
    buf = io.BytesIO()
    document.save(buf)
    return buf.getvalue()


@pytest.fixture(autouse=True)
def reset_singletons():
    """Every test starts with fresh rate windows and provider."""
    reset_rate_limiters()
    reset_provider()
    yield
    reset_rate_limiters()
    reset_provider()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mock_provider():
    return MockProvider()


@pytest.fixture
def client(mock_provider):
    """TestClient against a fresh app with the mock provider installed."""
    from analyzer.app.main import create_app

    set_provider(mock_provider)
    with TestClient(create_app()) as test_client:
        yield test_client
