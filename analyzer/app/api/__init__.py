"""API endpoints package for the analyzer."""

from analyzer.app.api.conversation import router as conversation_router
from analyzer.app.api.document import router as document_router
from analyzer.app.api.image import router as image_router

__all__ = [
    "conversation_router",
    "document_router",
    "image_router",
]
