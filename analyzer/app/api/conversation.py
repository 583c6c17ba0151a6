"""Conversation analysis endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile

from analyzer.app.api.schemas import ConversationResponse
from analyzer.app.core.logging import get_log_context, get_logger
from analyzer.app.exceptions import ValidationError
from analyzer.app.middleware.rate_limit import STANDARD, check_admission, rate_limit_headers
from analyzer.app.middleware.request_id import get_request_id
from analyzer.app.providers.base import BaseProvider
from analyzer.app.providers.factory import get_provider
from analyzer.app.services.conversation import analyze_conversation

logger = get_logger(__name__)
router = APIRouter(prefix="/api/analyze", tags=["analysis"])


@router.post("/conversation", response_model=ConversationResponse)
async def conversation_analysis(
    request: Request,
    response: Response,
    audio: Optional[UploadFile] = File(None),
    provider: BaseProvider = Depends(get_provider),
) -> ConversationResponse:
    """Transcribe an audio upload, split it between two speakers and summarize it."""
    decision = check_admission(request, STANDARD, "conversation")

    if audio is None:
        raise ValidationError("No audio file provided")

    data = await audio.read()
    result = await analyze_conversation(
        data, audio.filename or "audio", audio.content_type, provider
    )

    logger.info(
        f"Conversation analyzed: {len(result.segments or [])} segments",
        extra=get_log_context(
            request_id=get_request_id(request),
            route="conversation",
            rate_class=STANDARD,
            fallbacks=result.fallbacks,
        ),
    )
    response.headers.update(rate_limit_headers(decision))
    return ConversationResponse.from_result(result)
