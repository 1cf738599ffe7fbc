# File: product_visuals/dto/shot_spec.py

from pydantic import BaseModel, ConfigDict

from product_visuals.data.constants import ShotKind, Subject


class CameraSettings(BaseModel):
    model_config = ConfigDict(frozen=True)

    focal_length_mm: int
    aperture: float
    focus: str
    angle: str | None = None


class ShotSpec(BaseModel):
    """A ready-to-send generation instruction for one shot. Never mutated."""
    model_config = ConfigDict(frozen=True)

    visual_id: str
    kind: ShotKind
    subject: Subject
    display_name: str
    prompt: str
    negative_prompt: str
    camera: CameraSettings
    camera_lighting: str
    resolution: str
    aspect_ratio: str
    has_human_subject: bool


class SynthesisResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    visual_id: str
    shots: tuple[ShotSpec, ...]
    shared_negative_prompt: str

    def by_kind(self, kind: ShotKind) -> ShotSpec:
        for shot in self.shots:
            if shot.kind is kind:
                return shot
        raise KeyError(kind)
