"""Image analysis endpoint."""

from typing import Optional

from fastapi import APIRouter, Depends, File, Request, Response, UploadFile

from analyzer.app.api.schemas import ImageResponse
from analyzer.app.core.logging import get_log_context, get_logger
from analyzer.app.exceptions import ValidationError
from analyzer.app.middleware.rate_limit import IMAGE, check_admission, rate_limit_headers
from analyzer.app.middleware.request_id import get_request_id
from analyzer.app.providers.base import BaseProvider
from analyzer.app.providers.factory import get_provider
from analyzer.app.services.image import analyze_image

logger = get_logger(__name__)
router = APIRouter(prefix="/api/analyze", tags=["analysis"])


@router.post("/image", response_model=ImageResponse)
async def image_analysis(
    request: Request,
    response: Response,
    image: Optional[UploadFile] = File(None),
    provider: BaseProvider = Depends(get_provider),
) -> ImageResponse:
    """Describe an uploaded image with the vision model."""
    decision = check_admission(request, IMAGE, "image")

    if image is None:
        raise ValidationError("No image file provided")

    data = await image.read()
    result = await analyze_image(data, image.filename or "image", image.content_type, provider)

    if result.fallbacks:
        logger.info(
            f"Image described from template ({result.fallbacks[0]})",
            extra=get_log_context(
                request_id=get_request_id(request),
                route="image",
                rate_class=IMAGE,
            ),
        )
    response.headers.update(rate_limit_headers(decision))
    return ImageResponse(description=result.text)
