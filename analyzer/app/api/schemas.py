"""Response bodies for the analysis endpoints."""

from typing import List, Optional

from pydantic import BaseModel

from analyzer.app.services.models import AnalysisResult


class DiarizedSegment(BaseModel):
    speaker: str
    text: str


class ConversationResponse(BaseModel):
    transcript: str
    diarization: List[DiarizedSegment]
    summary: str

    @classmethod
    def from_result(cls, result: AnalysisResult) -> "ConversationResponse":
        return cls(
            transcript=result.transcript or "",
            diarization=[DiarizedSegment(**s.to_dict()) for s in result.segments or []],
            summary=result.text,
        )


class ImageResponse(BaseModel):
    description: str


class DocumentMetadata(BaseModel):
    fileName: str
    processedAt: str
    remainingRequests: Optional[int] = None


class DocumentResponse(BaseModel):
    summary: str
    metadata: DocumentMetadata

    @classmethod
    def from_result(
        cls, result: AnalysisResult, remaining_requests: Optional[int]
    ) -> "DocumentResponse":
        return cls(
            summary=result.text,
            metadata=DocumentMetadata(**result.metadata(remaining_requests)),
        )


class ErrorResponse(BaseModel):
    """Shape of every error body."""
    error: str
    error_code: str
    timestamp: str
    retryAfter: Optional[int] = None
