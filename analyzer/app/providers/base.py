from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class BaseProvider(ABC):
    """Base class for inference providers.

    A provider exposes three capabilities: speech-to-text, vision-to-text
    and text completion. Implementations translate their own failures into
    the ``GatewayError`` hierarchy so orchestrators never see SDK types.
    """

    name: str = "base"

    @property
    def configured(self) -> bool:
        """Whether real calls can be made (credentials present)."""
        return True

    @abstractmethod
    async def transcribe(
        self,
        audio: bytes,
        filename: str,
        content_type: str,
    ) -> str:
        """Transcribe an audio recording.

        Args:
            audio: Raw audio bytes
            filename: Original file name (providers sniff the format from it)
            content_type: MIME type of the upload

        Returns:
            The transcript text
        """

    @abstractmethod
    async def describe_image(
        self,
        image: bytes,
        content_type: str,
        prompt: str,
        max_tokens: int = 500,
    ) -> str:
        """Describe an image following ``prompt``.

        Returns:
            The model's description, or an empty string if it returned none
        """

    @abstractmethod
    async def complete(
        self,
        messages: List[Dict[str, Any]],
        max_tokens: int = 500,
        temperature: Optional[float] = None,
    ) -> str:
        """Run a chat completion and return the first choice's text.

        Returns:
            Completion text, or an empty string if the model returned none
        """
