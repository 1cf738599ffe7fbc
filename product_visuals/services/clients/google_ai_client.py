# product_visuals/services/clients/google_ai_client.py
from __future__ import annotations
import asyncio
import json
from typing import Any, Iterable, List

import aiohttp
import structlog

from product_visuals.data.settings import settings
from product_visuals.errors import ProviderError, SafetyFilteredError
from product_visuals.services.utils.http_client import http_client

from .base import GeneratedImage, ImageGenerationAdapter

# Google Gen AI SDK (Vertex AI backend)
from google import genai
from google.genai import errors as genai_errors
from google.genai import types
from google.genai.types import Modality

from google.oauth2.service_account import Credentials

logger = structlog.get_logger(__name__)

SAFETY_FINISH_REASONS = frozenset({
    "SAFETY", "IMAGE_SAFETY", "PROHIBITED_CONTENT", "IMAGE_PROHIBITED_CONTENT", "BLOCKLIST", "SPII",
})


def _reason_name(reason: Any) -> str:
    return str(getattr(reason, "name", reason) or "UNKNOWN").upper()


def _serialize_response(resp: Any) -> dict:
    """Small logging payload; inline image bytes are redacted."""
    if not resp:
        return {}
    out: dict[str, Any] = {"candidates": []}
    for c in getattr(resp, "candidates", None) or []:
        parts = []
        for p in getattr(getattr(c, "content", None), "parts", None) or []:
            inline = getattr(p, "inline_data", None)
            if inline is not None:
                parts.append({"inline_data": f"<redacted {len(inline.data or b'')} bytes>"})
            elif getattr(p, "text", None):
                parts.append({"text": p.text[:200]})
        out["candidates"].append({"finish_reason": _reason_name(getattr(c, "finish_reason", None)), "parts": parts})
    return out


async def _fetch_images_as_parts(urls: Iterable[str]) -> List[types.Part]:
    """Download reference images and wrap them as inline parts."""
    async def fetch(url: str) -> types.Part:
        data, mime = await http_client.fetch_bytes(url)
        return types.Part.from_bytes(data=data, mime_type=mime)

    return list(await asyncio.gather(*(fetch(u) for u in urls)))


def _pick_best_inline_image(parts: List[Any]) -> tuple[bytes, str] | None:
    """Return the largest inline image (bytes, mime) from parts."""
    best: tuple[int, bytes, str] | None = None
    for p in parts or []:
        inline = getattr(p, "inline_data", None)
        if inline and getattr(inline, "data", None):
            data: bytes = inline.data
            mime = getattr(inline, "mime_type", None) or "image/png"
            if best is None or len(data) > best[0]:
                best = (len(data), data, mime)
    if best:
        _, data, mime = best
        return data, mime
    return None


class GoogleGeminiClient(ImageGenerationAdapter):
    """
    Gemini image generation on Vertex AI via google-genai.

    Gemini has no separate negative prompt field, so the negative terms are
    sent as an "Avoid:" instruction after the main prompt.
    """
    name = "google"

    def __init__(self, model: str | None = None) -> None:
        google = settings.google
        if not all([google.project_id, google.location, google.service_account_creds_json]):
            raise RuntimeError(
                "Missing Google Cloud configuration. "
                "Set GOOGLE__PROJECT_ID, GOOGLE__LOCATION, GOOGLE__SERVICE_ACCOUNT_CREDS_JSON."
            )
        self.model = model or google.model

        try:
            creds_info = json.loads(google.service_account_creds_json.get_secret_value())
            scoped_creds = Credentials.from_service_account_info(creds_info).with_scopes(
                ["https://www.googleapis.com/auth/cloud-platform"]
            )
            self._client = genai.Client(
                vertexai=True,
                project=google.project_id,
                location=google.location,
                credentials=scoped_creds,
            )
            logger.info("GenAI client initialized (Vertex AI backend).", model=self.model)
        except Exception:
            logger.exception("Failed to initialize Google Gen AI client.")
            raise

    def _config(self, aspect_ratio: str, resolution: str) -> types.GenerateContentConfig:
        image_config = types.ImageConfig(aspect_ratio=aspect_ratio)
        if settings.google.send_image_size:
            image_config = types.ImageConfig(aspect_ratio=aspect_ratio, image_size=resolution)
        return types.GenerateContentConfig(
            temperature=settings.google.temperature,
            candidate_count=1,
            response_modalities=[Modality.TEXT, Modality.IMAGE],
            image_config=image_config,
        )

    async def generate(
        self,
        prompt: str,
        negative_prompt: str,
        reference_images: list[str],
        aspect_ratio: str,
        resolution: str,
    ) -> GeneratedImage:
        log = logger.bind(model=self.model, aspect_ratio=aspect_ratio, resolution=resolution)

        contents: List[Any] = [prompt]
        if negative_prompt:
            contents.append(f"Avoid: {negative_prompt}")
        if reference_images:
            try:
                contents.extend(await _fetch_images_as_parts(reference_images))
            except aiohttp.ClientError as e:
                raise ProviderError(f"Could not download reference image: {e}") from e

        log.info("Calling Gemini for image generation.", references=len(reference_images))
        try:
            response = await self._client.aio.models.generate_content(
                model=self.model,
                contents=contents,
                config=self._config(aspect_ratio, resolution),
            )
        except genai_errors.APIError as e:
            log.error("Gemini API error during image generation", error=str(e))
            raise ProviderError(f"Gemini API error: {e}") from e

        feedback = getattr(response, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None)
        if block_reason:
            log.warning("Prompt blocked by safety filter", reason=_reason_name(block_reason))
            raise SafetyFilteredError(f"Prompt blocked: {_reason_name(block_reason)}")

        if not response or not getattr(response, "candidates", None):
            log.error("Empty or invalid response from Gemini.", payload=str(response))
            raise ProviderError("Gemini returned an empty or invalid response.")

        candidate = response.candidates[0]
        parts = getattr(getattr(candidate, "content", None), "parts", None) or []
        picked = _pick_best_inline_image(parts)

        if not picked:
            reason = _reason_name(getattr(candidate, "finish_reason", None))
            log.error("No inline image in response.", reason=reason, payload=_serialize_response(response))
            if reason in SAFETY_FINISH_REASONS:
                raise SafetyFilteredError(f"Image rejected by safety filter: {reason}")
            raise ProviderError(f"No inline image in response. Finish reason: {reason}")

        data, mime_type = picked
        return GeneratedImage(mime_type=mime_type, data=data, response_payload=_serialize_response(response))
