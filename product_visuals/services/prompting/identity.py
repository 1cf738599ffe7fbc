# product_visuals/services/prompting/identity.py
import structlog

from product_visuals.dto.product import PocketItem, ProductAttributes
from product_visuals.services.prompting.rules import guard_zipper_mention, has_zipper

logger = structlog.get_logger(__name__)

IDENTITY_LOCK = (
    "CRITICAL: All pocket patches, embossing patterns, monograms, and design details must EXACTLY "
    "match the reference product images. Copy the EXACT pattern from reference, do not invent new patterns."
)


def chest_pocket_text(pocket: PocketItem) -> str:
    material = pocket.material or "leather"
    shape = pocket.shape or "square"
    out = f"CHEST POCKET: {material} {shape} pocket"
    if pocket.color:
        out += f" in {pocket.color}"
    if pocket.special_features:
        out += f". POCKET PATTERN: {pocket.special_features}"
    return out


def identity_block(attributes: ProductAttributes, front: bool = True, back: bool = False) -> str:
    """
    Compact description of the construction details that make the product
    recognizable: chest pocket, back patch, technique and seams.

    The same block is repeated in every shot so that separately generated
    images stay consistent with each other. Returns an empty string when the
    product has no such details.
    """
    zipper_present = has_zipper(attributes)
    design_front = attributes.design_front
    design_back = attributes.design_back
    garment = attributes.garment_details

    parts: list[str] = []
    if front:
        parts.append(design_front.description)
        if design_front.micro_details:
            parts.append(f"Details: {design_front.micro_details}")
        pocket = garment.chest_pocket()
        if pocket:
            logger.debug("Identity block uses chest pocket", pocket=pocket.name, pattern=pocket.special_features)
            parts.append(chest_pocket_text(pocket))

    if back:
        if design_back.has_patch and design_back.patch_detail:
            parts.append(f"Back: {design_back.patch_detail}")
        if design_back.technique:
            parts.append(f"Technique: {design_back.technique}")

    if garment.seam_architecture:
        parts.append(f"Construction: {garment.seam_architecture}")

    details = [guard_zipper_mention(p, zipper_present).strip().rstrip(".") for p in parts]
    details = [d for d in details if d]
    if not details:
        return ""
    return f"{'. '.join(details)}. {IDENTITY_LOCK}"
