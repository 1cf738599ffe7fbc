# product_visuals/services/prompting/shots.py
"""
Prompt builders for the six catalog shots.

Every builder puts the subject description first, then apparel, environment
and technical parts. Human shots are wrapped in a floor prefix/suffix that
pins the background to the scene reference image. The resolution suffix is
not added here; the synthesizer appends it last.
"""
from dataclasses import dataclass

import structlog

from product_visuals.data.constants import ShotKind, Subject
from product_visuals.dto.product import ProductAttributes
from product_visuals.dto.scene import Scene
from product_visuals.services.prompting import rules
from product_visuals.services.prompting.camera import camera_lighting
from product_visuals.services.prompting.identity import identity_block

logger = structlog.get_logger(__name__)

PLAIN_TOP_ATTIRE = "Wearing a plain white t-shirt on upper body, fully clothed top."
CLEAN_IMAGE_RULE = (
    "CLEAN IMAGE ONLY: The entire image must be a clean photograph with NO black corners, NO dark patches, "
    "NO overlays, NO UI elements, NO stamps, NO badges anywhere in the frame. Every pixel must be part of the scene."
)
PANTS_NAME_TOKENS = ("pant", "trouser", "jean", "jogger", "short", "bottom")
DEFAULT_BACKDROP = "elegant studio backdrop"
DEFAULT_MOOD = "editorial elegance"


@dataclass(frozen=True)
class ShotContext:
    """Values resolved once per synthesis and shared by all builders."""
    attributes: ProductAttributes
    scene: Scene
    is_bottom: bool
    footwear: str
    pants: str
    zipper_present: bool
    zipper_text: str
    logo_text: str

    @classmethod
    def build(cls, attributes: ProductAttributes, scene: Scene) -> "ShotContext":
        category = attributes.general_info.category
        is_bottom = rules.is_bottom_garment(category)
        if is_bottom:
            logger.info("Product is a bottom garment, scene pants skipped", category=category)
        return cls(
            attributes=attributes,
            scene=scene,
            is_bottom=is_bottom,
            footwear=rules.resolve_footwear(scene.styling.footwear, category),
            pants=rules.resolve_pants(scene.styling.pants),
            zipper_present=rules.has_zipper(attributes),
            zipper_text=rules.zipper_clause(attributes),
            logo_text=rules.logo_clause(attributes.design_front),
        )

    def free_text(self, text: str | None) -> str:
        return rules.guard_zipper_mention(text, self.zipper_present)

    @property
    def product_name(self) -> str:
        return self.attributes.general_info.product_name

    @property
    def fabric(self) -> str:
        return self.free_text(self.attributes.visual_specs.fabric_texture)

    @property
    def base_attire(self) -> str:
        attire = f"Wearing {self.attributes.visual_specs.color_name} {self.product_name}"
        if self.is_bottom:
            return f"{PLAIN_TOP_ATTIRE} {attire}"
        return attire

    def styling(self, footwear: str) -> str:
        if self.is_bottom:
            return footwear
        return f"Wearing {self.pants}, {footwear}"

    def props_instruction(self) -> str:
        left = ", ".join(i for i in self.scene.ground.left_items if i)
        right = ", ".join(i for i in self.scene.ground.right_items if i)
        if not left and not right:
            return (
                "NO PROPS: clean empty space on both sides. Do NOT add any objects, decorations, "
                "or elements to the scene."
            )
        return f"Props: {left or 'nothing'} on the left, {right or 'nothing'} on the right."

    def scene_text(self) -> str:
        scene = self.scene
        return (
            f"SCENE FROM REFERENCE: {scene.background.type} wall ({scene.background.hex}), "
            f"{scene.floor.type} floor ({scene.floor.hex}). WALL-TO-FLOOR TRANSITION: Replicate the EXACT same "
            "smooth transition from the scene reference image, the wall must blend into the floor with NO visible "
            "fold, NO crease, NO hard line, NO sharp corner. Copy the infinity cove curve of the reference exactly. "
            f"{self.props_instruction()} Lighting: {scene.lighting.type}, {scene.lighting.temperature}. "
            f"Mood: {scene.mood}. COPY this exact room from the scene reference photo."
        )

    def floor_prefix(self) -> str:
        bg, floor = self.scene.background, self.scene.floor
        return (
            "COPY THE EXACT BACKGROUND AND FLOOR FROM THE SCENE REFERENCE IMAGE. "
            f"Wall: {bg.type} ({bg.hex}). Floor: {floor.type} ({floor.hex}). The generated background and floor "
            "must be a PIXEL-PERFECT COPY of the scene reference photo. WALL-TO-FLOOR TRANSITION: the point where "
            "wall meets floor is a smooth, gradual curve with NO fold, NO crease, NO hard edge. Do NOT create any "
            "visible line, fold, or sharp corner where wall meets floor. This is the #1 quality requirement."
        )

    def floor_suffix(self) -> str:
        bg, floor = self.scene.background, self.scene.floor
        return (
            "FINAL CHECK, WALL-TO-FLOOR JUNCTION: Compare the generated image against the scene reference "
            "(LAST image). The transition where the wall meets the floor MUST be smooth and identical to the "
            "reference, NO fold, NO crease, NO visible hard line. If the reference shows a curved infinity cove, "
            f"the image must show the SAME curve. Wall={bg.type} ({bg.hex}), Floor={floor.type} ({floor.hex})."
        )

    def size_description(self, size: Subject) -> str:
        return "Child-size (5-year-old)" if size is Subject.KID else "Adult-size"

    def is_pants_name(self) -> bool:
        name = (self.product_name or "").lower()
        return any(token in name for token in PANTS_NAME_TOKENS)

    def texture_phrase(self, sep: str = ", ") -> str:
        reinforcement = rules.texture_reinforcement(self.attributes.visual_specs.fabric_texture)
        return f"{sep}{reinforcement}" if reinforcement else ""

    def wall_only_environment(self) -> str:
        backdrop = self.scene.background.type or DEFAULT_BACKDROP
        return (
            f"Background: ONLY the {backdrop} wall ({self.scene.background.hex or '#FFFFFF'}) is visible behind "
            "the hanging garment. The entire frame shows ONLY the wall surface, there is NO floor visible in this "
            f"shot. Mood: {self.scene.mood or DEFAULT_MOOD}."
        )

    def bokeh_environment(self) -> str:
        bg = self.scene.background
        return (
            f"Background: {bg.type} ({bg.hex}) with soft bokeh blur. "
            "Shallow depth of field keeping garment details razor-sharp."
        )


def build_duo(ctx: ShotContext) -> str:
    if ctx.is_bottom:
        clothing_rule = (
            "BOTH MUST be wearing PLAIN WHITE CREW-NECK T-SHIRTS on upper body, shirts cover entire torso "
            "from neck to waist. ZERO bare skin on chest or stomach. NEVER shirtless."
        )
    else:
        clothing_rule = "BOTH FULLY CLOTHED, NEVER SHIRTLESS."
    subject = (
        "Father and son wearing matching outfits. Adult male in his 30s (athletic build, light stubble beard) "
        f"with his 5-year-old son. {clothing_rule} Both smiling naturally, relaxed family pose. "
        "Fashion editorial. Both looking at camera."
    )

    identity = identity_block(ctx.attributes, front=True, back=False)
    if ctx.is_bottom:
        apparel = rules.sentences(
            "Both wearing: Upper body, plain white t-shirt (MANDATORY, NEVER shirtless)",
            f"Lower body, {ctx.base_attire}",
            f"Fabric: {ctx.fabric}",
            identity,
            ctx.zipper_text,
        )
    else:
        apparel = rules.sentences(f"Both {ctx.base_attire}", f"Fabric: {ctx.fabric}", identity, ctx.zipper_text)

    styling = rules.duo_safe_styling(ctx.styling(ctx.footwear))
    environment = rules.sentences(styling, ctx.scene_text())
    technical = rules.sentences(
        camera_lighting(ShotKind.DUO, ctx.scene),
        "Real human skin texture, natural poses. The environment MUST be identical to the scene reference image "
        "provided. Do NOT add any objects, furniture, or decorations that are not in the scene reference image",
    )
    return " ".join([ctx.floor_prefix(), subject, apparel, environment, technical, ctx.floor_suffix()])


def build_solo(ctx: ShotContext, subject_type: Subject) -> str:
    is_kid = subject_type is Subject.KID
    if ctx.is_bottom:
        wearing = "wearing a plain white t-shirt on upper body and the product on lower body"
        clothing_rule = (
            "MUST be wearing a PLAIN WHITE CREW-NECK T-SHIRT on upper body, shirt covers entire torso from neck "
            "to waist. ZERO bare skin on chest or stomach. NEVER shirtless."
        )
    else:
        wearing = "wearing the product garment described below"
        clothing_rule = "FULLY CLOTHED. The model is wearing the PRODUCT GARMENT described below."

    if is_kid:
        subject = (
            f"KIDS FASHION. Subject: SINGLE 5-YEAR-OLD BOY {wearing}. Small child size. (NO ADULTS, NO OLDER KIDS). "
            f"{clothing_rule} Playful editorial expression, natural child pose."
        )
    else:
        subject = (
            f"Subject: SINGLE ADULT MALE MODEL {wearing}. Age 30s. Full adult size. (NO KIDS). "
            f"{clothing_rule} Athletic build, confident gaze, light stubble beard."
        )

    identity = identity_block(ctx.attributes, front=True, back=False)
    if ctx.is_bottom:
        apparel = rules.sentences(
            "Upper body: plain white t-shirt (MANDATORY, model is NEVER shirtless)",
            f"Lower body: {ctx.base_attire}",
            f"Fabric: {ctx.fabric}",
            identity,
            ctx.logo_text,
            ctx.zipper_text,
        )
    else:
        apparel = rules.sentences(ctx.base_attire, f"Fabric: {ctx.fabric}", identity, ctx.logo_text, ctx.zipper_text)

    styling = ctx.styling(rules.solo_safe_footwear(ctx.footwear))
    environment = rules.sentences(styling, ctx.scene_text(), "Standing naturally")
    pose = "Natural child pose" if is_kid else "Real human skin texture, natural pose"
    technical = rules.sentences(
        camera_lighting(ShotKind.SOLO, ctx.scene),
        pose,
        "The environment MUST be identical to the scene reference image provided",
    )
    return " ".join(
        [ctx.floor_prefix(), subject, apparel, environment, technical, CLEAN_IMAGE_RULE, ctx.floor_suffix()]
    )


def _flatlay_helpers(kind: ShotKind, ctx: ShotContext) -> str:
    return (
        "Clean minimalist product display. Pristine garment condition. Single garment only. Still life product "
        f"photography. Wall-only background, no floor in frame. {camera_lighting(kind, ctx.scene)}"
    )


def build_flatlay_front(ctx: ShotContext, size: Subject) -> str:
    name = ctx.product_name
    color = rules.color_weighting(ctx.attributes.visual_specs.color_name, ShotKind.FLATLAY_FRONT)
    backdrop = ctx.scene.background.type or DEFAULT_BACKDROP
    prefix = f"PRODUCT-ONLY PHOTOGRAPH of a single {ctx.size_description(size)} {color} {name}"

    if ctx.is_pants_name():
        description = (
            f"{prefix} folded neatly over a wooden hanger bar. The hanger hangs from a small metal wall hook "
            f"against a {backdrop}. Front view, centered composition. The pants are FLAT and EMPTY, just fabric "
            "draped over the hanger with natural folds. Waistband visible at top, legs hanging down."
        )
    else:
        description = (
            f"{prefix} hanging on a wooden hanger from a small metal wall hook against a {backdrop}. "
            "Front view, centered composition. The garment hangs FLAT and EMPTY with natural drape, sleeves "
            "relaxed at sides, fabric falling under its own weight. Full garment visible from collar to hem."
        )

    product_data = rules.sentences(
        f"Fabric: {ctx.fabric}{ctx.texture_phrase()}",
        identity_block(ctx.attributes, front=True, back=False),
        ctx.logo_text,
    )
    return " ".join([description, product_data, ctx.wall_only_environment(), _flatlay_helpers(ShotKind.FLATLAY_FRONT, ctx)])


def build_flatlay_back(ctx: ShotContext, size: Subject) -> str:
    name = ctx.product_name
    design_back = ctx.attributes.design_back
    color = rules.color_weighting(ctx.attributes.visual_specs.color_name, ShotKind.FLATLAY_BACK)
    backdrop = ctx.scene.background.type or DEFAULT_BACKDROP
    prefix = f"PRODUCT-ONLY PHOTOGRAPH of a single {ctx.size_description(size)} {color} {name}"

    if ctx.is_pants_name():
        description = (
            f"{prefix} folded neatly over a wooden hanger bar, turned to show the BACK side. The hanger hangs from "
            f"a small metal wall hook against a {backdrop}. Back view, centered composition. The pants are FLAT "
            "and EMPTY, just fabric draped over the hanger. Back pockets and waistband clearly visible."
        )
    else:
        description = (
            f"{prefix} hanging on a wooden hanger from a small metal wall hook against a {backdrop}. BACK VIEW, "
            "centered composition. The garment hangs FLAT and EMPTY with natural drape, turned to show the rear "
            "side. Back details clearly visible from shoulders to hem."
        )

    patch_text = ctx.free_text(design_back.patch_detail)
    patch = f"Visible patch: {patch_text}" if design_back.has_patch and patch_text else ""
    technique_text = ctx.free_text(design_back.technique)
    technique = f"Technique: {technique_text}" if technique_text else ""
    product_data = rules.sentences(
        ctx.free_text(design_back.description),
        patch,
        technique,
        f"Fabric: {ctx.fabric}{ctx.texture_phrase()}",
        identity_block(ctx.attributes, front=False, back=True),
    )
    return " ".join([description, product_data, ctx.wall_only_environment(), _flatlay_helpers(ShotKind.FLATLAY_BACK, ctx)])


def _macro_helpers(kind: ShotKind, ctx: ShotContext, subject: str) -> str:
    return (
        f"Macro product photography. Extreme close-up still life. {subject}. Single garment only. "
        f"{camera_lighting(kind, ctx.scene)}"
    )


def _geometry_phrase(shape: str, what: str) -> str:
    shape = shape.lower()
    if "square" in shape:
        return f"Focus on the SQUARE {what} with sharp corners"
    if "rectang" in shape:
        return f"Focus on the RECTANGULAR {what} with sharp corners"
    return ""


def build_closeup_front(ctx: ShotContext) -> str:
    attributes = ctx.attributes
    garment = attributes.garment_details
    design_front = attributes.design_front
    color = rules.color_weighting(attributes.visual_specs.color_name, ShotKind.CLOSEUP_FRONT)

    hardware = []
    closure = ctx.free_text(garment.closure_details)
    if closure:
        hardware.append(f"closure: {closure}")
    finish = ctx.free_text(garment.hardware_finish)
    if finish:
        hardware.append(f"hardware: {finish}")

    geometry = pocket_spec = pocket_details = pocket_pattern = ""
    pocket = garment.chest_pocket()
    if pocket:
        material = pocket.material or "leather"
        shape = pocket.shape or "square"
        extras = "".join(
            [f", {pocket.color.upper()} color" if pocket.color else "", f", {pocket.size}" if pocket.size else ""]
        )
        pocket_spec = f"POCKET SPECIFICATION: {shape.upper()} shape, {material.upper()} material{extras}"
        pocket_details = f"VISIBLE CHEST POCKET: {material} {shape} pocket" + "".join(
            [f", {pocket.color} color" if pocket.color else "", f", {pocket.size}" if pocket.size else ""]
        )
        if pocket.special_features:
            pocket_pattern = f"POCKET DETAIL: {ctx.free_text(pocket.special_features)}"
        geometry = _geometry_phrase(shape, "pocket patch")
        logger.debug("Close-up front pocket", material=material, shape=shape)

    focus = "pocket patches, embossing patterns, buttons, stitching"
    focus += ", and logo" if design_front.has_logo else ""

    description = (
        f"EXTREME CLOSE-UP MACRO PRODUCT PHOTOGRAPH of {color} {ctx.product_name} fabric and front details. "
        "The garment is laid flat on a surface. Camera positioned very close to the front chest area, capturing "
        "fabric texture, stitching, pocket patch, and material details in sharp focus. Shallow depth of field. "
        "Only the garment fabric fills the frame."
    )
    front_description = ctx.free_text(design_front.description)
    micro = ctx.free_text(design_front.micro_details)
    product_data = "FRONT DETAILS IN FOCUS: " + rules.sentences(
        front_description,
        geometry,
        pocket_spec,
        pocket_details,
        pocket_pattern,
        f"Micro details: {micro}" if micro else "",
        identity_block(attributes, front=True, back=False),
        ctx.logo_text,
        f"Hardware details: {'; '.join(hardware)}" if hardware else "",
        f"Fabric texture: {ctx.fabric}",
        f"Sharp macro focus on {focus}",
        "Pocket patch must EXACTLY match reference images",
    )
    return " ".join([
        description,
        product_data,
        ctx.bokeh_environment(),
        _macro_helpers(ShotKind.CLOSEUP_FRONT, ctx, "Fabric texture detail"),
    ])


def build_closeup_back(ctx: ShotContext) -> str:
    attributes = ctx.attributes
    design_back = attributes.design_back
    color = rules.color_weighting(attributes.visual_specs.color_name, ShotKind.CLOSEUP_BACK)

    patch_detail = ctx.free_text(design_back.patch_detail) or "rear branding"
    patch_shape = design_back.patch_shape or "square"
    patch_color = design_back.patch_color or ""
    technique = ctx.free_text(design_back.technique)

    yoke = f"Leather yoke panel across upper back area in {color}" if design_back.yoke_material else ""
    shape_text = f"{patch_detail} {design_back.description} {patch_shape}".lower()
    if "square" in shape_text:
        geometry = "Focus on the SQUARE leather patch with sharp corners"
    elif "rectang" in shape_text:
        geometry = "Focus on the RECTANGULAR leather patch with sharp corners"
    else:
        geometry = ""
    patch_spec = f"PATCH SPECIFICATION: {patch_shape.upper()} shape" + (
        f", {patch_color.upper()} color" if patch_color else ""
    )

    focus = "back patch, embossing patterns"
    focus += ", and logo" if design_back.has_logo else ""

    description = (
        f"EXTREME CLOSE-UP MACRO PRODUCT PHOTOGRAPH of {color} {ctx.product_name} back details. The garment is "
        "laid flat on a surface, showing the back side. Camera positioned very close to the upper back area, "
        "capturing back patch, yoke, fabric texture, stitching, and label details in sharp focus. Shallow depth "
        "of field. Only the garment fabric fills the frame."
    )
    product_data = "BACK DETAILS IN FOCUS: " + rules.sentences(
        yoke,
        geometry,
        patch_spec,
        f"{patch_detail} prominently visible and sharp",
        f"Patch must be {patch_color.upper() or 'exact color from reference'}, {patch_shape.upper()} shaped",
        f"Fabric: {ctx.fabric}{ctx.texture_phrase('. ')}",
        f"Technique: {technique}" if technique else "",
        identity_block(attributes, front=False, back=True),
        "Shoulder seams, collar back, and stitching details visible",
        f"Sharp macro focus on {focus}",
    )
    return " ".join([
        description,
        product_data,
        ctx.bokeh_environment(),
        _macro_helpers(ShotKind.CLOSEUP_BACK, ctx, "Back fabric texture detail"),
    ])
