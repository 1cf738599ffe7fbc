# product_visuals/services/prompting/camera.py
from product_visuals.data.constants import ShotKind
from product_visuals.dto.scene import Scene
from product_visuals.dto.shot_spec import CameraSettings

DEFAULT_LIGHTING = "Soft diffused studio lighting"
DEFAULT_TEMPERATURE = "warm tones"

SHOT_CAMERAS: dict[ShotKind, CameraSettings] = {
    ShotKind.DUO: CameraSettings(focal_length_mm=85, aperture=2.8, focus="subjects", angle="eye-level"),
    ShotKind.SOLO: CameraSettings(focal_length_mm=85, aperture=2.0, focus="subject", angle="eye-level"),
    ShotKind.FLATLAY_FRONT: CameraSettings(focal_length_mm=50, aperture=8.0, focus="entire garment", angle="front-facing straight-on"),
    ShotKind.FLATLAY_BACK: CameraSettings(focal_length_mm=50, aperture=8.0, focus="entire garment", angle="front-facing straight-on"),
    ShotKind.CLOSEUP_FRONT: CameraSettings(focal_length_mm=100, aperture=4.0, focus="logo/texture detail", angle="macro"),
    ShotKind.CLOSEUP_BACK: CameraSettings(focal_length_mm=100, aperture=4.0, focus="patch/branding detail", angle="macro"),
}

GENERIC_CAMERA = CameraSettings(focal_length_mm=50, aperture=5.6, focus="subject")

DISPLAY_NAMES: dict[ShotKind, str] = {
    ShotKind.DUO: "DUO (Father + Son)",
    ShotKind.SOLO: "SOLO {subject} Model",
    ShotKind.FLATLAY_FRONT: "Flat Lay Front ({size} Size)",
    ShotKind.FLATLAY_BACK: "Flat Lay Back ({size} Size)",
    ShotKind.CLOSEUP_FRONT: "Close Up Front",
    ShotKind.CLOSEUP_BACK: "Close Up Back",
}


def camera_for(kind: ShotKind | str) -> CameraSettings:
    try:
        return SHOT_CAMERAS[ShotKind(kind)]
    except (KeyError, ValueError):
        return GENERIC_CAMERA


def _aperture(value: float) -> str:
    return f"f/{value:g}"


def camera_lighting(kind: ShotKind | str, scene: Scene) -> str:
    """
    Shot-specific camera and lighting description. The scene sets the base
    light type and temperature; angle, focal length and light direction
    follow the shot kind. Kinds without a template get the generic one.
    """
    light_type = scene.lighting.type or DEFAULT_LIGHTING
    temperature = scene.lighting.temperature or DEFAULT_TEMPERATURE
    quality = scene.quality

    try:
        kind = ShotKind(kind)
    except ValueError:
        return f"{light_type}, {temperature}. {quality or '8K photography'}"

    camera = SHOT_CAMERAS[kind]
    lens = f"{camera.focal_length_mm}mm lens, {_aperture(camera.aperture)}"

    match kind:
        case ShotKind.DUO:
            return (
                f"{lens}, eye-level angle. {light_type}, {temperature}. "
                f"Full-body framing, two subjects centered. {quality or '8K editorial fashion photography'}"
            )
        case ShotKind.SOLO:
            return (
                f"{lens}, eye-level angle. {light_type}, {temperature}. "
                f"Full-body framing, single subject centered. {quality or '8K editorial fashion photography'}"
            )
        case ShotKind.FLATLAY_FRONT | ShotKind.FLATLAY_BACK:
            return (
                f"{lens}, front-facing straight-on angle. Even flat lighting with minimal shadows "
                f"to show garment details clearly, {temperature}. {quality or '8K product photography'}"
            )
        case ShotKind.CLOSEUP_FRONT | ShotKind.CLOSEUP_BACK:
            return (
                f"{camera.focal_length_mm}mm macro lens, {_aperture(camera.aperture)}, close-range angle. "
                f"Directional raking light to reveal fabric texture and stitching details, {temperature}. "
                f"Shallow depth of field. {quality or '8K macro product photography'}"
            )
