"""Pipeline result models."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from analyzer.app.services.diarization import TranscriptSegment


class AnalysisKind(str, Enum):
    CONVERSATION = "conversation"
    IMAGE = "image"
    DOCUMENT = "document"


@dataclass
class AnalysisResult:
    """Terminal pipeline output returned to the caller, never persisted.

    ``text`` is the summary (conversation, document) or the description
    (image).
    """
    kind: AnalysisKind
    text: str
    source_name: str
    transcript: Optional[str] = None
    segments: Optional[List[TranscriptSegment]] = None
    processed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    fallbacks: List[str] = field(default_factory=list)

    @property
    def processed_at_iso(self) -> str:
        return self.processed_at.isoformat().replace("+00:00", "Z")

    def metadata(self, remaining_requests: Optional[int] = None) -> Dict[str, Any]:
        return {
            "fileName": self.source_name,
            "processedAt": self.processed_at_iso,
            "remainingRequests": remaining_requests,
        }
