# product_visuals/services/clients/base.py
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, Field


class GeneratedImage(BaseModel):
    """Standardized image returned by every adapter."""
    mime_type: str = "image/png"
    data: bytes
    response_payload: dict[str, Any] = Field(default_factory=dict)


class ImageGenerationAdapter(ABC):
    """
    Per-shot image generation capability.

    Implementations raise GenerationTimeoutError, SafetyFilteredError or
    ProviderError. Anything else escaping `generate` is treated by the caller
    as a provider error.
    """
    name: str = "adapter"

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        negative_prompt: str,
        reference_images: list[str],
        aspect_ratio: str,
        resolution: str,
    ) -> GeneratedImage:
        ...

    async def close(self) -> None:
        return None
