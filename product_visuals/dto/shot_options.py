# File: product_visuals/dto/shot_options.py

from pydantic import BaseModel, Field, field_validator

from product_visuals.data.constants import ASPECT_RATIOS, Resolution, Subject
from product_visuals.data.settings import settings


class SoloOptions(BaseModel):
    subject: Subject = Subject.ADULT


class FlatLayOptions(BaseModel):
    size: Subject = Subject.ADULT


class ShotOptions(BaseModel):
    """
    Per-request overrides for the shot catalog. Every field has a default,
    so an empty payload is a valid request.
    """
    solo: SoloOptions = Field(default_factory=SoloOptions)
    flatlay_front: FlatLayOptions = Field(default_factory=FlatLayOptions)
    flatlay_back: FlatLayOptions = Field(default_factory=FlatLayOptions)
    resolution: Resolution = Field(default_factory=lambda: Resolution(settings.generation.default_resolution))
    aspect_ratio: str = Field(default_factory=lambda: settings.generation.default_aspect_ratio)

    @field_validator("resolution", mode="before")
    @classmethod
    def _normalize_resolution(cls, v):
        if isinstance(v, str):
            return v.strip().upper() or Resolution.UHD_4K.value
        return v

    @field_validator("aspect_ratio")
    @classmethod
    def _check_aspect_ratio(cls, v: str) -> str:
        if v not in ASPECT_RATIOS:
            raise ValueError(f"Aspect ratio must be one of: {', '.join(ASPECT_RATIOS)}")
        return v

    @field_validator("solo", "flatlay_front", "flatlay_back", mode="before")
    @classmethod
    def _reject_product_subject(cls, v):
        if isinstance(v, dict) and Subject.PRODUCT.value in v.values():
            raise ValueError("Per-shot subject must be 'adult' or 'kid'.")
        return v

    @classmethod
    def from_model_type(cls, model_type: str | None = None, **kwargs) -> "ShotOptions":
        """Builds options from the legacy single `model_type` switch."""
        subject = Subject(model_type or Subject.ADULT.value)
        return cls(
            solo=SoloOptions(subject=subject),
            flatlay_front=FlatLayOptions(size=subject),
            flatlay_back=FlatLayOptions(size=subject),
            **kwargs,
        )
