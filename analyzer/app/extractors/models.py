"""Content extractor data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Union


class ContentKind(str, Enum):
    TEXT = "text"
    IMAGE_SET = "image_set"


@dataclass
class ExtractedContent:
    """Normalized output of exactly one content extractor.

    ``payload`` is a string for TEXT and an ordered list of PNG blobs for
    IMAGE_SET. ``page_count`` is only set for PDF sources and may exceed the
    number of rendered images.
    """
    kind: ContentKind
    payload: Union[str, List[bytes]]
    source_name: str
    page_count: Optional[int] = None
    metadata: dict = field(default_factory=dict)

    @property
    def text(self) -> str:
        if self.kind is not ContentKind.TEXT:
            raise TypeError("image content has no text payload")
        return self.payload  # type: ignore[return-value]

    @property
    def images(self) -> List[bytes]:
        if self.kind is not ContentKind.IMAGE_SET:
            raise TypeError("text content has no image payload")
        return self.payload  # type: ignore[return-value]
