# product_visuals/services/clients/__init__.py
from .base import GeneratedImage, ImageGenerationAdapter
from .factory import get_ai_client
from .mock_ai_client import MockAIClient

__all__ = [
    "GeneratedImage",
    "ImageGenerationAdapter",
    "MockAIClient",
    "get_ai_client",
]
