"""Document summarization endpoint.

Accepts either an uploaded file (``type=file`` plus ``document``) or a
remote page (``type=url`` plus ``url``). The rate class is chosen before
any extraction: URLs and PDFs are charged to the heavy limiter.
"""

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile

from analyzer.app.api.schemas import DocumentResponse
from analyzer.app.core.logging import get_log_context, get_logger
from analyzer.app.exceptions import ValidationError
from analyzer.app.middleware.rate_limit import check_admission, rate_limit_headers
from analyzer.app.middleware.request_id import get_request_id
from analyzer.app.providers.base import BaseProvider
from analyzer.app.providers.factory import get_provider
from analyzer.app.services.document import (
    SourceType,
    parse_source_type,
    rate_class_for,
    summarize_file,
    summarize_url,
)

logger = get_logger(__name__)
router = APIRouter(prefix="/api/analyze", tags=["analysis"])


@router.post("/document", response_model=DocumentResponse)
async def document_summary(
    request: Request,
    response: Response,
    request_type: Optional[str] = Form(None, alias="type"),
    url: Optional[str] = Form(None),
    document: Optional[UploadFile] = File(None),
    provider: BaseProvider = Depends(get_provider),
) -> DocumentResponse:
    """Summarize an uploaded document or a web page."""
    source_type = parse_source_type(request_type)
    rate_class = rate_class_for(source_type, document.filename if document else None)
    decision = check_admission(request, rate_class, "document")

    if source_type is SourceType.URL:
        if not url:
            raise ValidationError("No URL provided")
        result = await summarize_url(url.strip(), provider)
    else:
        if document is None:
            raise ValidationError("No file provided")
        data = await document.read()
        result = await summarize_file(
            data, document.filename or "document", document.content_type, provider
        )

    logger.info(
        f"Document summarized: {result.source_name}",
        extra=get_log_context(
            request_id=get_request_id(request),
            route="document",
            rate_class=rate_class,
            fallbacks=result.fallbacks,
        ),
    )
    response.headers.update(rate_limit_headers(decision))
    return DocumentResponse.from_result(result, decision.remaining)
