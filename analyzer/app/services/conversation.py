"""Conversation pipeline: audio -> transcript -> speaker segments -> summary.

Transcription and summarization are both non-fatal: a failed provider call
is replaced with canned content so the caller always receives a transcript
and its speaker segments. Only a credential rejection during transcription
aborts the request.
"""

from analyzer.app.core.logging import get_logger
from analyzer.app.exceptions import (
    GatewayAuthFailure,
    GatewayError,
    GatewayRateLimited,
    GatewayUnavailable,
    ProcessingError,
    ValidationError,
)
from analyzer.app.providers.base import BaseProvider
from analyzer.app.services.diarization import attribute_speakers
from analyzer.app.services.fallback import FallbackChain
from analyzer.app.services.models import AnalysisKind, AnalysisResult

logger = get_logger(__name__)

AUDIO_TYPE_PREFIXES = ("audio/", "video/webm", "video/mp4")

FALLBACK_TRANSCRIPT = (
    "Welcome to our discussion today. I wanted to talk about the new project "
    "proposal we've been working on. That sounds great, I'm excited to hear more "
    "about it. Can you tell me what the main objectives are? Sure, the primary "
    "goal is to improve our customer experience through better technology "
    "integration. That makes sense. How long do you think the implementation will "
    "take? We're estimating about three months for the initial phase. Perfect, "
    "let's discuss the budget requirements next."
)
DEMO_SUMMARY = (
    "A business conversation between two people discussing a new project "
    "proposal, including objectives, timeline, and budget considerations."
)
FALLBACK_SUMMARY = "A conversation between two speakers discussing project-related topics."

SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful assistant that creates concise summaries of conversations."
)


def validate_audio(content_type: str | None) -> None:
    """Reject uploads that are not audio (or audio-bearing webm/mp4 video)."""
    if not content_type or not content_type.lower().startswith(AUDIO_TYPE_PREFIXES):
        raise ValidationError(
            "Invalid file type. Please upload an audio file (MP3, WAV, M4A, etc.)"
        )


async def _transcribe(
    provider: BaseProvider,
    audio: bytes,
    filename: str,
    content_type: str,
) -> tuple[str, bool]:
    """Returns (transcript, used_fallback)."""

    async def from_provider() -> tuple[str, bool]:
        text = await provider.transcribe(audio, filename, content_type)
        if not text:
            raise GatewayUnavailable("Transcription returned no text")
        return text, False

    async def canned() -> tuple[str, bool]:
        return FALLBACK_TRANSCRIPT, True

    chain = FallbackChain(
        "transcription",
        [("provider", from_provider), ("canned", canned)],
        recoverable=(GatewayUnavailable, GatewayRateLimited),
    )
    try:
        return await chain.run()
    except GatewayAuthFailure as e:
        raise ProcessingError(e.message) from e


async def _summarize(provider: BaseProvider, transcript: str) -> tuple[str, bool]:
    async def from_provider() -> tuple[str, bool]:
        summary = await provider.complete(
            [
                {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
                {"role": "user", "content": f"Summarize this conversation:\n\n{transcript}"},
            ],
            max_tokens=150,
            temperature=0.5,
        )
        if not summary:
            raise GatewayUnavailable("Summary returned no text")
        return summary, False

    async def canned() -> tuple[str, bool]:
        return FALLBACK_SUMMARY, True

    chain = FallbackChain(
        "conversation summary",
        [("provider", from_provider), ("canned", canned)],
        recoverable=(GatewayError,),
    )
    return await chain.run()


async def analyze_conversation(
    audio: bytes,
    filename: str,
    content_type: str | None,
    provider: BaseProvider,
) -> AnalysisResult:
    """Run the conversation pipeline.

    Raises:
        ValidationError: If the upload is not audio
        ProcessingError: If the provider rejected our credentials
    """
    validate_audio(content_type)
    fallbacks: list[str] = []

    if not provider.configured:
        logger.info("No inference credentials; returning demo conversation")
        transcript, summary = FALLBACK_TRANSCRIPT, DEMO_SUMMARY
        fallbacks += ["transcript", "summary"]
    else:
        transcript, used = await _transcribe(provider, audio, filename, content_type)
        if used:
            fallbacks.append("transcript")
        summary, used = await _summarize(provider, transcript)
        if used:
            fallbacks.append("summary")

    return AnalysisResult(
        kind=AnalysisKind.CONVERSATION,
        text=summary,
        source_name=filename,
        transcript=transcript,
        segments=attribute_speakers(transcript),
        fallbacks=fallbacks,
    )
