"""Services package for the analyzer.

This package provides:
- Speaker attribution for transcripts
- Ordered fallback chains
- The conversation, image and document pipelines
"""

from analyzer.app.services.conversation import analyze_conversation
from analyzer.app.services.diarization import TranscriptSegment, attribute_speakers
from analyzer.app.services.document import summarize_file, summarize_pdf, summarize_url
from analyzer.app.services.fallback import FallbackChain
from analyzer.app.services.image import analyze_image
from analyzer.app.services.models import AnalysisKind, AnalysisResult

__all__ = [
    "AnalysisKind",
    "AnalysisResult",
    "FallbackChain",
    "TranscriptSegment",
    "analyze_conversation",
    "analyze_image",
    "attribute_speakers",
    "summarize_file",
    "summarize_pdf",
    "summarize_url",
]
