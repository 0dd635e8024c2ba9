"""Category grouping and item-count checks shared by both generators."""
from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from logic.exceptions import PreconditionNotMet
from models.taxonomy import BUCKETS, bucket_for_category
from models.wardrobe_item import WardrobeItem

MIN_COMBINATION_ITEMS = 2
MAX_ACCESSORY_VARIANTS = 2


def partition_by_bucket(items: Iterable[WardrobeItem]) -> Dict[str, List[WardrobeItem]]:
    """Group items into generation buckets, preserving input order.

    Items whose category has no bucket are left out.
    """

    grouped: Dict[str, List[WardrobeItem]] = {bucket: [] for bucket in BUCKETS}
    for item in items:
        bucket = bucket_for_category(item.category)
        if bucket is not None:
            grouped[bucket].append(item)
    return grouped


def usable_item_count(grouped: Dict[str, List[WardrobeItem]]) -> int:
    return sum(len(values) for values in grouped.values())


def require_minimum_items(count: int, action: str) -> None:
    """Raise :class:`PreconditionNotMet` when fewer than two items are usable."""

    if count < MIN_COMBINATION_ITEMS:
        raise PreconditionNotMet(f"Need at least {MIN_COMBINATION_ITEMS} items to {action}")


def capsule_item_ids(items: Sequence[WardrobeItem]) -> set[int]:
    return {int(item.item_id) for item in items if item.item_id is not None}


__all__ = [
    "MIN_COMBINATION_ITEMS",
    "MAX_ACCESSORY_VARIANTS",
    "partition_by_bucket",
    "usable_item_count",
    "require_minimum_items",
    "capsule_item_ids",
]
