# File: product_visuals/services/image_generation_service.py
import asyncio
import time

import structlog
from pydantic import BaseModel

from product_visuals.dto.shot_spec import ShotSpec
from product_visuals.errors import GenerationTimeoutError, ImageGenerationError, ProviderError
from product_visuals.services.clients.base import ImageGenerationAdapter

logger = structlog.get_logger(__name__)


class GenerationResult(BaseModel):
    image_bytes: bytes
    content_type: str
    generation_time_ms: int


async def _call_adapter(adapter: ImageGenerationAdapter, shot: ShotSpec, reference_images: list[str]):
    # Timeouts inside the adapter (e.g. a reference download) are provider errors, not the shot deadline.
    try:
        return await adapter.generate(
            prompt=shot.prompt,
            negative_prompt=shot.negative_prompt,
            reference_images=reference_images,
            aspect_ratio=shot.aspect_ratio,
            resolution=shot.resolution,
        )
    except asyncio.TimeoutError as e:
        raise ProviderError(f"Adapter request timed out: {str(e) or type(e).__name__}") from e


async def generate_shot(
    adapter: ImageGenerationAdapter,
    shot: ShotSpec,
    reference_images: list[str],
    *,
    timeout_s: float,
) -> GenerationResult:
    """
    Runs one adapter call under its own timeout.

    Always raises an ImageGenerationError subclass on failure: the shot
    deadline becomes GenerationTimeoutError and unexpected adapter exceptions become
    ProviderError, so callers only need to handle one family.
    """
    log = logger.bind(shot_kind=shot.kind.value, adapter=adapter.name)
    start_time = time.monotonic()

    try:
        log.info("Sending request to image generation adapter", references=len(reference_images))
        image = await asyncio.wait_for(_call_adapter(adapter, shot, reference_images), timeout=timeout_s)
    except asyncio.TimeoutError as e:
        log.warning("Image generation timed out", timeout_s=timeout_s)
        raise GenerationTimeoutError(f"Generation timed out after {timeout_s:g}s") from e
    except ImageGenerationError as e:
        log.warning("Image generation failed", error_kind=e.kind, error=str(e))
        raise
    except Exception as e:
        log.exception("An error occurred during image generation")
        raise ProviderError(str(e) or type(e).__name__) from e

    elapsed_ms = int((time.monotonic() - start_time) * 1000)
    if not image.data:
        raise ProviderError("Adapter response is missing image data.")

    log.info("Image generation successful", generation_time_ms=elapsed_ms, size=len(image.data))
    return GenerationResult(
        image_bytes=image.data,
        content_type=image.mime_type or "image/png",
        generation_time_ms=elapsed_ms,
    )
