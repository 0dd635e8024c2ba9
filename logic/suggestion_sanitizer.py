"""Sanitisation of combinations proposed by the AI stylist."""
from __future__ import annotations

import logging
from typing import List, Sequence

from logic.categories import MIN_COMBINATION_ITEMS, capsule_item_ids
from logic.validation import ProposedCombination
from models.capsule import CombinationDraft, GenerationResult
from models.wardrobe_item import WardrobeItem

logger = logging.getLogger(__name__)

DESCRIPTION_SEPARATOR = " • "


def _filter_item_ids(item_ids: Sequence[int], allowed: set[int]) -> List[int]:
    """Keep ids that belong to the capsule, in proposed order."""

    return [item_id for item_id in item_ids if item_id in allowed]


def describe(proposal: ProposedCombination) -> str:
    return DESCRIPTION_SEPARATOR.join([proposal.occasion, proposal.season, proposal.description])


def sanitize_suggestions(
    items: Sequence[WardrobeItem], proposed: Sequence[ProposedCombination]
) -> GenerationResult:
    """Drop ids outside the capsule and any proposal left with fewer than two.

    Dropping is not an error: the caller reads it from
    ``GenerationResult.dropped_count``.
    """

    allowed = capsule_item_ids(items)
    survivors: List[CombinationDraft] = []
    for proposal in proposed:
        valid_ids = _filter_item_ids(proposal.item_ids, allowed)
        if len(valid_ids) < MIN_COMBINATION_ITEMS:
            logger.info(
                "Dropping AI combination '%s': %s of %s ids belong to the capsule",
                proposal.name,
                len(valid_ids),
                len(proposal.item_ids),
            )
            continue
        survivors.append(
            CombinationDraft(name=proposal.name, item_ids=valid_ids, ai_description=describe(proposal))
        )
    return GenerationResult(combinations=survivors, proposed_count=len(proposed))


__all__ = ["sanitize_suggestions", "describe", "DESCRIPTION_SEPARATOR"]
