"""Deterministic enumeration of capsule outfit combinations.

Items are partitioned once into category buckets and then expanded in a fixed
order: every top/bottom pair first, then every dress. Emission order matters
because five-piece looks are named after the running total of combinations
produced so far in the whole run ("Look completo N"), so the running total is
threaded through each step explicitly instead of being read from shared state.
"""
from __future__ import annotations

import logging
from itertools import product
from typing import Dict, List, Sequence

from logic.categories import (
    MAX_ACCESSORY_VARIANTS,
    partition_by_bucket,
    require_minimum_items,
    usable_item_count,
)
from models.capsule import CombinationDraft
from models.wardrobe_item import WardrobeItem

logger = logging.getLogger(__name__)

FULL_LOOK_NAME = "Look completo {ordinal}"


def _draft(pieces: Sequence[WardrobeItem], name: str | None = None) -> CombinationDraft:
    return CombinationDraft(
        name=name or " + ".join(piece.name for piece in pieces),
        item_ids=[int(piece.item_id) for piece in pieces],
    )


def _top_bottom_looks(
    top: WardrobeItem,
    bottom: WardrobeItem,
    grouped: Dict[str, List[WardrobeItem]],
    emitted: int,
) -> List[CombinationDraft]:
    """Expand one top/bottom pair.

    ``emitted`` is the number of combinations produced before this pair and
    feeds the "Look completo" ordinals.
    """

    shoes = grouped["shoes"]
    outerwear = grouped["outerwear"]
    accessories = grouped["accessories"][:MAX_ACCESSORY_VARIANTS]
    looks: List[CombinationDraft] = []

    if not shoes and not outerwear and not accessories:
        looks.append(_draft([top, bottom]))

    for shoe in shoes:
        if not outerwear and not accessories:
            looks.append(_draft([top, bottom, shoe]))

        for outer in outerwear:
            looks.append(
                CombinationDraft(
                    name=" + ".join([top.name, bottom.name, outer.name, shoe.name]),
                    item_ids=[int(top.item_id), int(bottom.item_id), int(shoe.item_id), int(outer.item_id)],
                )
            )
            for accessory in accessories:
                ordinal = emitted + len(looks) + 1
                looks.append(
                    _draft(
                        [top, bottom, shoe, outer, accessory],
                        name=FULL_LOOK_NAME.format(ordinal=ordinal),
                    )
                )

        if not outerwear:
            for accessory in accessories:
                looks.append(_draft([top, bottom, shoe, accessory]))

    return looks


def _dress_looks(dress: WardrobeItem, grouped: Dict[str, List[WardrobeItem]]) -> List[CombinationDraft]:
    shoes = grouped["shoes"]
    outerwear = grouped["outerwear"]
    accessories = grouped["accessories"][:MAX_ACCESSORY_VARIANTS]
    looks: List[CombinationDraft] = []

    # A dress is a complete outfit on its own.
    if not shoes and not outerwear and not accessories:
        looks.append(_draft([dress]))

    for shoe in shoes:
        if not outerwear and not accessories:
            looks.append(_draft([dress, shoe]))
        for outer in outerwear:
            looks.append(
                CombinationDraft(
                    name=" + ".join([dress.name, outer.name, shoe.name]),
                    item_ids=[int(dress.item_id), int(shoe.item_id), int(outer.item_id)],
                )
            )
        for accessory in accessories:
            looks.append(_draft([dress, shoe, accessory]))

    return looks


def enumerate_combinations(grouped: Dict[str, List[WardrobeItem]]) -> List[CombinationDraft]:
    """Expand already partitioned buckets: top/bottom pairs first, then dresses."""

    combinations: List[CombinationDraft] = []
    for top, bottom in product(grouped["tops"], grouped["bottoms"]):
        combinations.extend(_top_bottom_looks(top, bottom, grouped, emitted=len(combinations)))
    for dress in grouped["dresses"]:
        combinations.extend(_dress_looks(dress, grouped))
    return combinations


def generate_combinations(items: Sequence[WardrobeItem]) -> List[CombinationDraft]:
    """Enumerate every outfit the category rules allow, in a stable order.

    Raises :class:`logic.exceptions.PreconditionNotMet` when fewer than two
    items remain after excluding uncategorised pieces.
    """

    grouped = partition_by_bucket(items)
    require_minimum_items(usable_item_count(grouped), "generate combinations")

    combinations = enumerate_combinations(grouped)
    logger.info(
        "Generated %s combinations from %s usable items",
        len(combinations),
        usable_item_count(grouped),
    )
    return combinations


__all__ = ["generate_combinations", "enumerate_combinations", "FULL_LOOK_NAME"]
