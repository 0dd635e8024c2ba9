"""Wardrobe item data model and helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

from models.taxonomy import validate_category, validate_season


def _clean_optional(value: Any) -> Optional[str]:
    """Strip a loose string value, mapping blanks to None."""

    if value is None:
        return None
    text = str(value).strip()
    return text or None


@dataclass
class WardrobeItem:
    """Represents an item in the user's wardrobe.

    ``item_id`` is assigned by the store on creation and never changes
    afterwards; capsules only hold references to it.
    """

    user_id: str
    name: str
    category: str
    color: Optional[str] = None
    brand: Optional[str] = None
    season: Optional[str] = None
    item_id: Optional[int] = None

    def __post_init__(self) -> None:
        self.name = str(self.name).strip()
        if not self.name:
            raise ValueError("WardrobeItem name cannot be empty")
        self.category = validate_category(self.category)
        self.color = _clean_optional(self.color)
        self.brand = _clean_optional(self.brand)
        self.season = validate_season(self.season)
        if self.item_id is not None:
            self.item_id = int(self.item_id)


def from_raw_metadata(metadata: Dict[str, Any]) -> WardrobeItem:
    """Factory to build a :class:`WardrobeItem` from loose request metadata."""

    required_fields = ["user_id", "name", "category"]
    missing = [field for field in required_fields if not metadata.get(field)]
    if missing:
        raise ValueError(f"Missing required fields for WardrobeItem: {missing}")

    return WardrobeItem(
        item_id=metadata.get("item_id"),
        user_id=str(metadata["user_id"]),
        name=str(metadata["name"]),
        category=str(metadata["category"]),
        color=metadata.get("color"),
        brand=metadata.get("brand"),
        season=metadata.get("season"),
    )


__all__ = ["WardrobeItem", "from_raw_metadata"]
