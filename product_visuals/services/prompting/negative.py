# product_visuals/services/prompting/negative.py
from product_visuals.data.constants import HUMAN_SHOT_KINDS, ShotKind, Subject
from product_visuals.dto.product import ProductAttributes
from product_visuals.services.prompting import rules

ANTI_COLLAGE_TERMS = (
    "collage", "split screen", "inset image", "picture in picture", "multiple views", "overlay",
    "montage", "composite image", "promotional material", "text blocks", "watermarks", "border",
    "frame", "padding", "white background",
)
QUALITY_TERMS = (
    "text", "watermark", "blurry", "low quality", "distorted", "extra limbs", "bad anatomy",
    "mannequin", "ghost mannequin", "floating clothes", "3d render", "artificial face",
    "deformed hands", "extra fingers",
)
ANTI_ARTIFACT_TERMS = (
    "black corner", "dark corner", "black patch", "black rectangle", "black square", "black bar",
    "black border", "vignette", "dark edge", "corner artifact", "black overlay", "UI element",
    "logo overlay", "stamp", "badge", "label", "tag", "sticker",
)
BASE_NEGATIVE_TERMS = ANTI_COLLAGE_TERMS + QUALITY_TERMS + ANTI_ARTIFACT_TERMS

ANTI_NUDITY_TERMS = (
    "shirtless", "naked torso", "bare chest", "bare skin", "abs showing", "muscles exposed",
    "underwear model", "swimwear", "skin showing", "topless", "navel", "exposed torso", "no shirt",
)
SECOND_PERSON_TERMS = (
    "two people", "two subjects", "father and son", "parent", "family", "group", "couple",
    "second person", "crowd", "background people", "multiple people", "holding hands",
    "looking at each other", "double body", "twin", "clone",
)
NOT_ADULT_TERMS = (
    "adult", "man", "father", "male model", "beard", "stubble", "mustache", "facial hair",
    "mature man", "wrinkles", "tall", "muscular", "hairy chest",
)
NOT_KID_TERMS = ("child", "kid", "toddler", "baby", "small size", "son", "daughter")

COLOR_SHIFT_TERMS = ("wrong color", "color shift", "faded color", "washed out")
PRODUCT_CLUTTER_TERMS = (
    "multiple garments", "cluttered", "busy background", "double logo", "duplicate text",
    "blurry details", "distorted letters", "extra branding", "messy stitching", "bad focus",
    "ghosting", "motion blur",
)
WIDE_SHOT_TERMS = ("full body shot", "wide shot", "distance shot")
NO_FACE_TERMS = ("full face visible",)
ROUND_GEOMETRY_TERMS = (
    "circular patch", "round patch", "oval patch", "curved edges", "rounded corners", "sphere shaped patch",
)


def join_terms(terms) -> str:
    seen: set[str] = set()
    out = []
    for term in terms:
        if term not in seen:
            seen.add(term)
            out.append(term)
    return ", ".join(out)


def shared_negative_prompt() -> str:
    """Base list plus anti-nudity: the prompt every human shot starts from."""
    return join_terms(BASE_NEGATIVE_TERMS + ANTI_NUDITY_TERMS)


def negative_terms(kind: ShotKind, subject: Subject, attributes: ProductAttributes) -> list[str]:
    terms = list(BASE_NEGATIVE_TERMS)

    if kind in HUMAN_SHOT_KINDS:
        terms.extend(ANTI_NUDITY_TERMS)
        if kind is ShotKind.SOLO:
            terms.extend(SECOND_PERSON_TERMS)
            terms.extend(NOT_ADULT_TERMS if subject is Subject.KID else NOT_KID_TERMS)
        return terms

    specs = attributes.visual_specs
    terms.extend(rules.material_bias_terms(specs.fabric_texture, specs.color_name))
    terms.extend(COLOR_SHIFT_TERMS)
    terms.extend(PRODUCT_CLUTTER_TERMS)

    match kind:
        case ShotKind.CLOSEUP_FRONT:
            terms.extend(WIDE_SHOT_TERMS)
            terms.extend(NO_FACE_TERMS)
        case ShotKind.CLOSEUP_BACK:
            terms.extend(WIDE_SHOT_TERMS)
            back = attributes.design_back
            if rules.is_square_geometry(back.patch_detail, back.description, back.patch_shape):
                terms.extend(ROUND_GEOMETRY_TERMS)
        case ShotKind.FLATLAY_FRONT | ShotKind.FLATLAY_BACK:
            pass

    return terms


def negative_prompt(kind: ShotKind, subject: Subject, attributes: ProductAttributes) -> str:
    return join_terms(negative_terms(kind, subject, attributes))
