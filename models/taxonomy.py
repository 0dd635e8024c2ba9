"""Canonical taxonomy definitions for wardrobe items and capsules.

This module centralises the canonical labels for clothing categories, the
generation buckets they feed into, seasons, and the enumerations the AI
stylist is allowed to answer with. Helper functions keep validation logic
consistent across the store, the engine and the HTTP layer.
"""

from typing import Dict, List, Optional


def _normalize_key(value: str) -> str:
    """Normalise a free-form string into a taxonomy key."""

    return value.strip().lower().replace(" ", "_")


CATEGORIES: List[str] = [
    "top",
    "bottom",
    "dress",
    "outerwear",
    "shoes",
    "accessory",
    "bag",
    "jewelry",
    "hat",
    "other",
]

# Buckets the deterministic generator partitions a capsule into, in the order
# the generator consumes them.
BUCKETS: List[str] = ["tops", "bottoms", "dresses", "outerwear", "shoes", "accessories"]

# Category -> bucket. Categories missing here (``other``) never take part in
# generation.
CATEGORY_BUCKETS: Dict[str, str] = {
    "top": "tops",
    "bottom": "bottoms",
    "dress": "dresses",
    "outerwear": "outerwear",
    "shoes": "shoes",
    "accessory": "accessories",
    "bag": "accessories",
    "jewelry": "accessories",
    "hat": "accessories",
}

SEASONS: List[str] = ["spring", "summer", "fall", "winter", "all_season"]

AI_OCCASIONS: List[str] = ["casual", "formal", "festa", "trabalho"]
AI_SEASONS: List[str] = ["verão", "inverno", "primavera", "outono", "todas"]


def validate_category(value: str) -> str:
    """Validate and normalise a category value.

    Raises a :class:`ValueError` if the category is not part of the canonical
    taxonomy.
    """

    key = _normalize_key(value)
    if key not in CATEGORIES:
        raise ValueError(f"Unsupported category '{value}'. Allowed: {sorted(CATEGORIES)}")
    return key


def validate_season(value: Optional[str]) -> Optional[str]:
    """Validate an optional season label, keeping ``None`` as unknown."""

    if value is None or not str(value).strip():
        return None
    key = _normalize_key(str(value))
    if key not in SEASONS:
        raise ValueError(f"Unsupported season '{value}'. Allowed: {SEASONS}")
    return key


def bucket_for_category(category: str) -> Optional[str]:
    """Return the generation bucket for a category, or None when excluded."""

    return CATEGORY_BUCKETS.get(_normalize_key(category))


__all__ = [
    "CATEGORIES",
    "BUCKETS",
    "CATEGORY_BUCKETS",
    "SEASONS",
    "AI_OCCASIONS",
    "AI_SEASONS",
    "validate_category",
    "validate_season",
    "bucket_for_category",
]
