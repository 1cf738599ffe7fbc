from .identity import identity_block
from .rules import (
    is_bottom_garment,
    resolve_footwear,
    resolve_pants,
    resolution_suffix,
    solo_safe_footwear,
    zipper_clause,
)
from .synthesizer import synthesize, synthesize_from_attributes

__all__ = [
    "identity_block",
    "is_bottom_garment",
    "resolve_footwear",
    "resolve_pants",
    "resolution_suffix",
    "solo_safe_footwear",
    "synthesize",
    "synthesize_from_attributes",
    "zipper_clause",
]
