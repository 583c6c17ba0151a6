"""OpenAI API provider implementation.

Compatible with OpenAI and other OpenAI-compatible endpoints that serve
audio transcription and multimodal chat completions.
"""

import base64
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from analyzer.app.core.logging import get_logger
from analyzer.app.exceptions import (
    GatewayAuthFailure,
    GatewayModelUnavailable,
    GatewayNotConfigured,
    GatewayRateLimited,
    GatewayUnavailable,
)
from analyzer.app.providers.base import BaseProvider

logger = get_logger(__name__)


@asynccontextmanager
async def translate_errors(capability: str) -> AsyncIterator[None]:
    """Map OpenAI SDK exceptions onto the gateway error hierarchy."""
    try:
        yield
    except openai.AuthenticationError as e:
        logger.error(f"OpenAI rejected credentials during {capability}: {e}")
        raise GatewayAuthFailure() from e
    except openai.RateLimitError as e:
        logger.warning(f"OpenAI rate limited {capability}: {e}")
        raise GatewayRateLimited() from e
    except openai.APIStatusError as e:
        if e.status_code == 404 or getattr(e, "code", None) == "model_not_found":
            logger.warning(f"Model unavailable for {capability}: {e}")
            raise GatewayModelUnavailable(
                "The requested model is not available with the configured API key."
            ) from e
        logger.warning(f"OpenAI error during {capability} (status {e.status_code}): {e}")
        raise GatewayUnavailable() from e
    except (openai.APIConnectionError, openai.APIError) as e:
        # APITimeoutError is an APIConnectionError
        logger.warning(f"OpenAI unreachable during {capability}: {type(e).__name__}: {e}")
        raise GatewayUnavailable() from e


class OpenAIProvider(BaseProvider):
    """Inference provider backed by the official ``openai`` SDK.

    The SDK client is created on first use. With no usable API key the
    provider reports ``configured = False`` and every call raises
    ``GatewayNotConfigured``.
    """

    name = "openai"

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
        organization: Optional[str] = None,
        timeout: float = 60.0,
        transcription_model: str = "whisper-1",
        transcription_language: Optional[str] = "en",
        vision_model: str = "gpt-4o-mini",
        completion_model: str = "gpt-3.5-turbo",
        is_configured: bool = True,
        client: Optional[AsyncOpenAI] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.organization = organization
        self.timeout = timeout
        self.transcription_model = transcription_model
        self.transcription_language = transcription_language
        self.vision_model = vision_model
        self.completion_model = completion_model
        self._is_configured = is_configured
        self._client = client

    @property
    def configured(self) -> bool:
        return self._is_configured

    def _get_client(self) -> AsyncOpenAI:
        if not self._is_configured:
            raise GatewayNotConfigured()
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                organization=self.organization,
                timeout=self.timeout,
            )
        return self._client

    async def transcribe(self, audio: bytes, filename: str, content_type: str) -> str:
        client = self._get_client()
        kwargs: Dict[str, Any] = {}
        if self.transcription_language:
            kwargs["language"] = self.transcription_language

        async with translate_errors("transcription"):
            result = await client.audio.transcriptions.create(
                file=(filename, audio, content_type),
                model=self.transcription_model,
                **kwargs,
            )
        return (result.text or "").strip()

    async def describe_image(
        self,
        image: bytes,
        content_type: str,
        prompt: str,
        max_tokens: int = 500,
    ) -> str:
        client = self._get_client()
        data_url = f"data:{content_type};base64,{base64.b64encode(image).decode('ascii')}"
        messages = [
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": prompt},
                    {
                        "type": "image_url",
                        "image_url": {"url": data_url, "detail": "high"},
                    },
                ],
            }
        ]

        async with translate_errors("vision"):
            response = await client.chat.completions.create(
                model=self.vision_model,
                messages=messages,
                max_tokens=max_tokens,
            )
        return self._first_choice_text(response)

    async def complete(
        self,
        messages: List[Dict[str, Any]],
        max_tokens: int = 500,
        temperature: Optional[float] = None,
    ) -> str:
        client = self._get_client()
        kwargs: Dict[str, Any] = {}
        if temperature is not None:
            kwargs["temperature"] = temperature

        async with translate_errors("completion"):
            response = await client.chat.completions.create(
                model=self.completion_model,
                messages=messages,
                max_tokens=max_tokens,
                **kwargs,
            )
        return self._first_choice_text(response)

    @staticmethod
    def _first_choice_text(response: Any) -> str:
        if not response.choices:
            return ""
        return (response.choices[0].message.content or "").strip()
