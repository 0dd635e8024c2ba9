"""Dispatch from a generation strategy to the generator that implements it."""
from __future__ import annotations

from typing import Sequence

from logic.combination_generator import generate_combinations
from logic.suggestion_sanitizer import sanitize_suggestions
from logic.validation import parse_suggestion_payload
from models.capsule import AiAssisted, Deterministic, GenerationResult, GenerationStrategy
from models.wardrobe_item import WardrobeItem


def resolve_strategy(items: Sequence[WardrobeItem], strategy: GenerationStrategy) -> GenerationResult:
    """Run the generator selected by ``strategy`` over the capsule items."""

    if isinstance(strategy, Deterministic):
        combinations = generate_combinations(items)
        return GenerationResult(combinations=combinations, proposed_count=len(combinations))
    if isinstance(strategy, AiAssisted):
        payload = parse_suggestion_payload(strategy.raw_payload)
        return sanitize_suggestions(items, payload.combinations)
    raise TypeError(f"Unsupported generation strategy: {strategy!r}")


__all__ = ["resolve_strategy"]
