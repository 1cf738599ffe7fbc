# product_visuals/services/clients/mock_ai_client.py
from __future__ import annotations
import asyncio
import hashlib
import io
from collections.abc import Callable

import structlog
from PIL import Image

from .base import GeneratedImage, ImageGenerationAdapter

logger = structlog.get_logger(__name__)

ASPECT_SIZES = {
    "1:1": (512, 512),
    "4:5": (512, 640),
    "9:16": (432, 768),
    "16:9": (768, 432),
}


class MockAIClient(ImageGenerationAdapter):
    """
    Offline adapter that returns a solid PNG whose color is derived from the
    prompt. `fail_when` may return an exception to raise for a given prompt.
    """
    name = "mock"

    def __init__(
        self,
        delay_s: float = 0.5,
        fail_when: Callable[[str], Exception | None] | None = None,
    ) -> None:
        self.delay_s = delay_s
        self.fail_when = fail_when
        self.calls: list[dict] = []

    async def generate(
        self,
        prompt: str,
        negative_prompt: str,
        reference_images: list[str],
        aspect_ratio: str,
        resolution: str,
    ) -> GeneratedImage:
        self.calls.append({
            "prompt": prompt,
            "negative_prompt": negative_prompt,
            "reference_images": list(reference_images),
            "aspect_ratio": aspect_ratio,
            "resolution": resolution,
        })
        logger.info("MOCK Images: Simulating image generation...", aspect_ratio=aspect_ratio)
        if self.delay_s:
            await asyncio.sleep(self.delay_s)

        if self.fail_when and (error := self.fail_when(prompt)) is not None:
            raise error

        digest = hashlib.sha256(prompt.encode()).digest()
        img = Image.new("RGB", ASPECT_SIZES.get(aspect_ratio, (512, 512)), tuple(digest[:3]))
        buffer = io.BytesIO()
        img.save(buffer, format="PNG")
        return GeneratedImage(
            mime_type="image/png",
            data=buffer.getvalue(),
            response_payload={"mock_data": True, "resolution": resolution},
        )
