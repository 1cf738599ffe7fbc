# product_visuals/services/prompting/rules.py
"""
Brand-guardian and hallucination-guard rules.

Every function here is pure and keyword based, so each one can be tested on
its own and composed by the synthesizer in a fixed order.
"""
import re

import structlog

from product_visuals.data.constants import Resolution, ShotKind
from product_visuals.dto.product import DesignFront, ProductAttributes

logger = structlog.get_logger(__name__)

BOTTOM_KEYWORDS = (
    "pant", "trouser", "jean", "jogger", "short", "leg",
    "bottom", "skirt", "chino", "sweatpant", "cargo",
)

# Footwear families are checked in this order; the first match wins.
# "track pants" stays in the casual-pants family.
ATHLETIC_KEYWORDS = ("sweatpant", "jogger", "tracksuit", "athletic", "sport", "hoodie")
OUTERWEAR_KEYWORDS = ("jacket", "coat", "outerwear", "blazer", "parka", "bomber", "trucker", "leather")
CASUAL_PANTS_KEYWORDS = ("chino", "trouser", "pant", "jean", "denim")

ATHLETIC_FOOTWEAR = "Clean white premium leather sneakers"
OUTERWEAR_FOOTWEAR = "Stylish leather Chelsea boots in matching tones"
CASUAL_PANTS_FOOTWEAR = "Minimalist white leather sneakers"
DEFAULT_FOOTWEAR = "Fashionable footwear matching the outfit style"
SOLO_SAFE_FOOTWEAR = "black leather dress shoes"

DEFAULT_PANTS = "Black chino pants (#1A1A1A)"

# Words that imply a second person in styling text written for a duo scene.
SECOND_SUBJECT_PATTERN = re.compile(r"\b(child|children|kid|kids|father|son|parent)\b", re.IGNORECASE)

ZIPPER_TOKENS = ("zipper", "zip")
ZIPPER_CLAUSE = " Straight leg fit, visible ankle zippers."

SUEDE_BIAS_COLORS = ("beige", "tan", "camel", "sand", "khaki", "cream", "ivory")

RESOLUTION_SUFFIXES = {
    Resolution.UHD_4K: ", 8k resolution, ultra-sharp focus, highly detailed texture, wallpaper quality, hasselblad x2d photography",
    Resolution.QHD_2K: ", high quality, professional photography",
}

PRODUCT_ONLY_KINDS = frozenset({
    ShotKind.FLATLAY_FRONT, ShotKind.FLATLAY_BACK, ShotKind.CLOSEUP_FRONT, ShotKind.CLOSEUP_BACK,
})


def _contains_any(text: str, keywords: tuple[str, ...]) -> bool:
    return any(keyword in text for keyword in keywords)


def is_bottom_garment(category: str | None) -> bool:
    """True for pants, shorts, skirts and the like."""
    if not category:
        return False
    return _contains_any(category.lower().strip(), BOTTOM_KEYWORDS)


def resolve_footwear(scene_footwear: str | None, category: str | None) -> str:
    """
    Scene footwear wins when it is explicit; otherwise footwear is matched to
    the product category family.
    """
    existing = (scene_footwear or "").strip()
    if existing and existing.lower() != "barefoot":
        logger.debug("Footwear from scene", footwear=existing)
        return existing

    normalized = (category or "").lower()
    if _contains_any(normalized, ATHLETIC_KEYWORDS):
        footwear = ATHLETIC_FOOTWEAR
    elif _contains_any(normalized, OUTERWEAR_KEYWORDS):
        footwear = OUTERWEAR_FOOTWEAR
    elif _contains_any(normalized, CASUAL_PANTS_KEYWORDS):
        footwear = CASUAL_PANTS_FOOTWEAR
    else:
        footwear = DEFAULT_FOOTWEAR

    logger.debug("Footwear matched to category", category=category, footwear=footwear)
    return footwear


def solo_safe_footwear(footwear: str) -> str:
    """Single-subject shots must not carry footwear text that names a second person."""
    if SECOND_SUBJECT_PATTERN.search(footwear or ""):
        return SOLO_SAFE_FOOTWEAR
    return footwear


def duo_safe_styling(styling: str) -> str:
    """Rewrites "Child in X, father in Y" into neutral two-model wording."""
    if not styling or not SECOND_SUBJECT_PATTERN.search(styling):
        return styling
    out = re.sub(r"\bchild\s+in\s+", "One model in ", styling, flags=re.IGNORECASE)
    out = re.sub(r"\b(father|son)\s+in\s+", "one in ", out, flags=re.IGNORECASE)
    return out


def resolve_pants(scene_pants: str | None) -> str:
    if not scene_pants or not scene_pants.strip():
        return DEFAULT_PANTS
    return scene_pants


def has_zipper(attributes: ProductAttributes) -> bool:
    closure = (attributes.garment_details.bottom_termination or "").lower()
    return _contains_any(closure, ZIPPER_TOKENS)


def zipper_clause(attributes: ProductAttributes) -> str:
    return ZIPPER_CLAUSE if has_zipper(attributes) else ""


def guard_zipper_mention(text: str | None, zipper_present: bool) -> str:
    """Drops free text that talks about zippers when the closure field does not."""
    if not text:
        return ""
    if not zipper_present and _contains_any(text.lower(), ZIPPER_TOKENS):
        return ""
    return text


def logo_clause(design: DesignFront) -> str:
    if not design.has_logo:
        return ""
    out = f"Visible logo: {design.logo_text} ({design.logo_type})"
    if design.font_family:
        out += f", {design.font_family} font"
    if design.size_relative_pct:
        out += f". Size: {design.size_relative_pct}"
    return out + "."


def color_weighting(color_name: str, kind: ShotKind) -> str:
    """Product-only shots get a weighted color token, e.g. "(DEEP BURGUNDY SUEDE:1.5)"."""
    if kind in PRODUCT_ONLY_KINDS and color_name:
        return f"({color_name}:1.5)"
    return color_name


def texture_reinforcement(fabric_texture: str | None) -> str:
    texture = (fabric_texture or "").lower()
    if "suede" in texture or "nubuck" in texture:
        if "matte" not in texture and "napped" not in texture:
            return "matte finish, soft napped texture, light-absorbing surface"
        return ""
    if "velvet" in texture or "velour" in texture:
        return "plush velvet texture, light-absorbing, soft sheen"
    if "corduroy" in texture:
        return "vertical corduroy ridges, matte cotton texture"
    return ""


def material_bias_terms(material: str | None, actual_color: str | None) -> list[str]:
    """
    Negative terms against the colors a material tends to drift to.
    Colors already implied by the product's own color are never blocked.
    """
    material_lower = (material or "").lower()
    color_lower = (actual_color or "").lower()

    if "suede" in material_lower or "nubuck" in material_lower:
        blocked = [c for c in SUEDE_BIAS_COLORS if c not in color_lower]
        if blocked:
            return [f"{c} color" for c in blocked] + ["wrong color"]
        return []

    if "leather" in material_lower and "black" not in color_lower:
        return ["black leather", "dark leather", "shiny leather"]

    return []


def is_square_geometry(*texts: str | None) -> bool:
    combined = " ".join(t for t in texts if t).lower()
    return "square" in combined or "rectang" in combined


def resolution_suffix(resolution: str | Resolution | None) -> str:
    """Two-level quality suffix: 4K is high-fidelity, anything else is standard."""
    value = str(getattr(resolution, "value", resolution) or Resolution.UHD_4K.value).strip().upper()
    if value == Resolution.UHD_4K.value:
        return RESOLUTION_SUFFIXES[Resolution.UHD_4K]
    return RESOLUTION_SUFFIXES[Resolution.QHD_2K]


def sentences(*parts: str | None) -> str:
    """Joins prompt fragments, skipping empty ones and closing each with a period."""
    out = []
    for part in parts:
        text = (part or "").strip()
        if not text or text == ".":
            continue
        if text[-1] not in ".!?":
            text += "."
        out.append(text)
    return " ".join(out)
