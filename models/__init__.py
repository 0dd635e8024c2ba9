"""Model package exports."""

from models.taxonomy import *  # noqa: F401,F403
from models.capsule import (
    AiAssisted,
    Capsule,
    CapsuleItem,
    Combination,
    CombinationDraft,
    Deterministic,
    GenerationResult,
    GenerationStrategy,
)
from models.wardrobe_item import WardrobeItem, from_raw_metadata

__all__ = [
    "WardrobeItem",
    "from_raw_metadata",
    "Capsule",
    "CapsuleItem",
    "Combination",
    "CombinationDraft",
    "GenerationResult",
    "GenerationStrategy",
    "Deterministic",
    "AiAssisted",
]
