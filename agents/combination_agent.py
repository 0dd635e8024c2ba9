"""Regeneration workflow for capsule combinations."""
from __future__ import annotations

import logging
from typing import Callable, List, Optional

from capsule_app.logging_config import get_logger, log_event, operation_context
from logic import prompts
from logic.categories import require_minimum_items
from logic.exceptions import CapsuleError, OwnershipViolation
from logic.strategy import resolve_strategy
from models.capsule import AiAssisted, Deterministic, GenerationResult, GenerationStrategy
from models.wardrobe_item import WardrobeItem
from tools.capsule_store import CapsuleStore
from tools.locks import KeyedLock
from tools.observability import instrument_operation
from tools.suggestion_client import SuggestionClient, SuggestionRequest

logger = get_logger(__name__)

StrategyBuilder = Callable[[List[WardrobeItem]], GenerationStrategy]


class CombinationAgent:
    """Replaces a capsule's combinations with a freshly generated set.

    Both generators share one routine: check ownership, take the capsule's
    lock, load its items, build the strategy, generate, then swap the stored
    set and counter in a single store transaction. Nothing is written when any
    step before the swap fails.
    """

    def __init__(
        self,
        store: CapsuleStore,
        suggestion_client: Optional[SuggestionClient] = None,
        locks: Optional[KeyedLock] = None,
    ) -> None:
        self.store = store
        self.suggestion_client = suggestion_client
        self.locks = locks if locks is not None else KeyedLock()

    @instrument_operation("generate_combinations")
    def generate_combinations(self, user_id: str, capsule_id: int) -> GenerationResult:
        """Enumerate every rule-based combination and store them."""

        return self._regenerate(user_id, capsule_id, "deterministic", lambda _items: Deterministic())

    @instrument_operation("generate_ai_suggestions")
    def generate_ai_suggestions(self, user_id: str, capsule_id: int) -> GenerationResult:
        """Ask the AI stylist for combinations, sanitise them and store the survivors."""

        return self._regenerate(user_id, capsule_id, "ai_assisted", self._request_ai_proposal)

    def _request_ai_proposal(self, items: List[WardrobeItem]) -> AiAssisted:
        require_minimum_items(len(items), "generate AI suggestions")
        if self.suggestion_client is None:
            raise RuntimeError("No AI stylist client configured")
        request = SuggestionRequest(
            system_instruction=prompts.system_instruction(),
            user_prompt=prompts.user_prompt(items),
            response_schema=prompts.response_schema(),
        )
        log_event(logger, logging.INFO, "stylist_call_issued", item_count=len(items))
        return AiAssisted(raw_payload=self.suggestion_client.complete(request))

    def _regenerate(
        self, user_id: str, capsule_id: int, mode: str, build_strategy: StrategyBuilder
    ) -> GenerationResult:
        with operation_context("agent:combinations.regenerate", capsule_id=capsule_id) as correlation_id:
            log_event(
                logger,
                logging.INFO,
                "regeneration_started",
                correlation_id=correlation_id,
                user_id=user_id,
                capsule_id=capsule_id,
                mode=mode,
            )
            if self.store.get_capsule(user_id, capsule_id) is None:
                raise OwnershipViolation("Capsule not found")

            with self.locks.hold(capsule_id):
                try:
                    if self.store.get_capsule(user_id, capsule_id) is None:
                        raise OwnershipViolation("Capsule not found")
                    items = self.store.list_capsule_items(user_id, capsule_id)
                    log_event(
                        logger,
                        logging.INFO,
                        "capsule_items_loaded",
                        capsule_id=capsule_id,
                        item_count=len(items),
                    )
                    result = resolve_strategy(items, build_strategy(items))
                    if result.dropped_count:
                        log_event(
                            logger,
                            logging.WARNING,
                            "ai_combinations_dropped",
                            capsule_id=capsule_id,
                            proposed=result.proposed_count,
                            surviving=result.surviving_count,
                            dropped=result.dropped_count,
                        )
                    persisted = self.store.replace_combinations(capsule_id, result.combinations)
                except CapsuleError as exc:
                    log_event(
                        logger,
                        logging.WARNING,
                        "regeneration_failed",
                        capsule_id=capsule_id,
                        mode=mode,
                        error_kind=type(exc).__name__,
                        reason=str(exc),
                    )
                    raise

            log_event(
                logger,
                logging.INFO,
                "combinations_persisted",
                capsule_id=capsule_id,
                mode=mode,
                proposed=result.proposed_count,
                count=persisted,
            )
            return result


__all__ = ["CombinationAgent"]
