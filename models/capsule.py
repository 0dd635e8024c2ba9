"""Capsule, membership and combination schemas."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Union


@dataclass
class Capsule:
    """A themed subset of a user's wardrobe.

    ``total_items`` and ``total_combinations`` are cached counts maintained by
    the store; they are recomputed after every membership or combination
    change.
    """

    user_id: str
    name: str
    description: Optional[str] = None
    occasion: Optional[str] = None
    season: Optional[str] = None
    color_palette: List[str] = field(default_factory=list)
    total_items: int = 0
    total_combinations: int = 0
    is_active: bool = True
    capsule_id: Optional[int] = None
    created_at: Optional[str] = None


@dataclass
class CapsuleItem:
    membership_id: int
    capsule_id: int
    item_id: int
    added_at: str


@dataclass
class Combination:
    """A stored outfit built from items of one capsule."""

    combination_id: int
    capsule_id: int
    name: str
    item_ids: List[int]
    ai_description: Optional[str] = None
    is_favorite: bool = False
    times_worn: int = 0
    created_at: Optional[str] = None


@dataclass(frozen=True)
class CombinationDraft:
    """A generated combination that has not been persisted yet."""

    name: str
    item_ids: List[int]
    ai_description: Optional[str] = None


@dataclass(frozen=True)
class GenerationResult:
    """Output of one generation run.

    ``proposed_count`` is what the generator considered; for AI runs it is the
    number of suggestions received, so ``dropped_count`` exposes how many were
    discarded during sanitisation.
    """

    combinations: List[CombinationDraft]
    proposed_count: int

    @property
    def surviving_count(self) -> int:
        return len(self.combinations)

    @property
    def dropped_count(self) -> int:
        return self.proposed_count - self.surviving_count


@dataclass(frozen=True)
class Deterministic:
    """Enumerate every combination allowed by the category rules."""


@dataclass(frozen=True)
class AiAssisted:
    """Sanitise the raw payload returned by the AI stylist."""

    raw_payload: object


GenerationStrategy = Union[Deterministic, AiAssisted]


__all__ = [
    "Capsule",
    "CapsuleItem",
    "Combination",
    "CombinationDraft",
    "GenerationResult",
    "Deterministic",
    "AiAssisted",
    "GenerationStrategy",
]
