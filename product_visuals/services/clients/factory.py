# product_visuals/services/clients/factory.py
from __future__ import annotations
from typing import Any

from product_visuals.data.settings import settings

from .base import ImageGenerationAdapter
from .mock_ai_client import MockAIClient

_CLIENT_NAMES = ("mock", "google")


def _create_client_instance(client_name: str, **kwargs: Any) -> ImageGenerationAdapter:
    if client_name == "mock":
        return MockAIClient(**kwargs)
    if client_name == "google":
        from .google_ai_client import GoogleGeminiClient
        return GoogleGeminiClient(**kwargs)
    raise ValueError(
        f"Unknown client type specified in config: '{client_name}'. Expected one of {_CLIENT_NAMES}."
    )


def get_ai_client(client_name: str | None = None, **kwargs: Any) -> ImageGenerationAdapter:
    """Creates the image generation adapter named in settings (GENERATION__CLIENT) or by the caller."""
    name = (client_name or settings.generation.client).lower()
    return _create_client_instance(name, **kwargs)
