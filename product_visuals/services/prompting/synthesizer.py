# product_visuals/services/prompting/synthesizer.py
from uuid import uuid4

import structlog

from product_visuals.data.constants import HUMAN_SHOT_KINDS, SHOT_CATALOG, ShotKind, Subject
from product_visuals.dto.product import Product, ProductAttributes
from product_visuals.dto.scene import Scene
from product_visuals.dto.shot_options import ShotOptions
from product_visuals.dto.shot_spec import ShotSpec, SynthesisResult
from product_visuals.errors import SceneNotAnalyzedError
from product_visuals.services.prompting import shots
from product_visuals.services.prompting.camera import DISPLAY_NAMES, camera_for, camera_lighting
from product_visuals.services.prompting.negative import negative_prompt, shared_negative_prompt
from product_visuals.services.prompting.rules import resolution_suffix

logger = structlog.get_logger(__name__)


def _subject_for(kind: ShotKind, options: ShotOptions) -> Subject:
    match kind:
        case ShotKind.DUO:
            return Subject.ADULT
        case ShotKind.SOLO:
            return options.solo.subject
        case ShotKind.FLATLAY_FRONT:
            return options.flatlay_front.size
        case ShotKind.FLATLAY_BACK:
            return options.flatlay_back.size
        case ShotKind.CLOSEUP_FRONT | ShotKind.CLOSEUP_BACK:
            return Subject.PRODUCT


def _visual_id(position: int, kind: ShotKind, subject: Subject) -> str:
    if kind is ShotKind.DUO:
        return f"visual_{position}_duo_family"
    return f"visual_{position}_{kind.value}_{subject.value}"


def _display_name(kind: ShotKind, subject: Subject) -> str:
    label = "Kid" if subject is Subject.KID else "Adult"
    return DISPLAY_NAMES[kind].format(subject=label, size=label)


def _prompt_body(kind: ShotKind, subject: Subject, ctx: shots.ShotContext) -> str:
    match kind:
        case ShotKind.DUO:
            return shots.build_duo(ctx)
        case ShotKind.SOLO:
            return shots.build_solo(ctx, subject)
        case ShotKind.FLATLAY_FRONT:
            return shots.build_flatlay_front(ctx, subject)
        case ShotKind.FLATLAY_BACK:
            return shots.build_flatlay_back(ctx, subject)
        case ShotKind.CLOSEUP_FRONT:
            return shots.build_closeup_front(ctx)
        case ShotKind.CLOSEUP_BACK:
            return shots.build_closeup_back(ctx)


def synthesize_from_attributes(
    attributes: ProductAttributes,
    scene: Scene,
    shot_options: ShotOptions | None = None,
) -> SynthesisResult:
    """
    Builds the full shot catalog for already resolved product attributes.
    Raises SceneNotAnalyzedError when the scene has no background yet.
    """
    if not scene.is_analyzed:
        raise SceneNotAnalyzedError(scene.id)

    options = shot_options or ShotOptions()
    suffix = resolution_suffix(options.resolution)
    ctx = shots.ShotContext.build(attributes, scene)

    log = logger.bind(
        product=attributes.general_info.product_name,
        scene=scene.name or scene.id,
        resolution=options.resolution.value,
    )

    specs = []
    for position, kind in enumerate(SHOT_CATALOG, start=1):
        subject = _subject_for(kind, options)
        specs.append(
            ShotSpec(
                visual_id=_visual_id(position, kind, subject),
                kind=kind,
                subject=subject,
                display_name=_display_name(kind, subject),
                prompt=_prompt_body(kind, subject, ctx) + suffix,
                negative_prompt=negative_prompt(kind, subject, attributes),
                camera=camera_for(kind),
                camera_lighting=camera_lighting(kind, scene),
                resolution=options.resolution.value,
                aspect_ratio=options.aspect_ratio,
                has_human_subject=kind in HUMAN_SHOT_KINDS,
            )
        )

    log.info(
        "Shot prompts synthesized",
        shots=len(specs),
        bottom=ctx.is_bottom,
        footwear=ctx.footwear,
        zipper=ctx.zipper_present,
    )
    return SynthesisResult(
        visual_id=uuid4().hex,
        shots=tuple(specs),
        shared_negative_prompt=shared_negative_prompt(),
    )


def synthesize(product: Product, scene: Scene, shot_options: ShotOptions | None = None) -> SynthesisResult:
    """Raises ProductNotAnalyzedError if the product has neither final nor analyzed attributes."""
    attributes = product.effective_attributes()
    return synthesize_from_attributes(attributes, scene, shot_options)
