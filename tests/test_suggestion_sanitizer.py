"""AI suggestion parsing and sanitisation tests."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from logic.exceptions import ExternalResponseInvalid
from logic.strategy import resolve_strategy
from logic.suggestion_sanitizer import sanitize_suggestions
from logic.validation import ProposedCombination, parse_suggestion_payload
from models.capsule import AiAssisted, Deterministic
from models.wardrobe_item import WardrobeItem


@pytest.fixture()
def capsule_items() -> list[WardrobeItem]:
    return [
        WardrobeItem(user_id="user-1", item_id=1, category="top", name="Blusa Branca"),
        WardrobeItem(user_id="user-1", item_id=2, category="bottom", name="Calça Jeans"),
        WardrobeItem(user_id="user-1", item_id=3, category="shoes", name="Tênis Branco"),
    ]


def _proposal(item_ids: list[int], name: str = "Look", **overrides: str) -> ProposedCombination:
    fields = {
        "name": name,
        "itemIds": item_ids,
        "occasion": "casual",
        "season": "verão",
        "description": "Combinação leve",
    }
    fields.update(overrides)
    return ProposedCombination.model_validate(fields)


def test_combination_left_with_one_known_item_is_dropped(capsule_items: list[WardrobeItem]) -> None:
    result = sanitize_suggestions(capsule_items, [_proposal([1, 999])])

    assert result.combinations == []
    assert result.surviving_count == 0
    assert result.proposed_count == 1
    assert result.dropped_count == 1


def test_unknown_ids_are_filtered_and_description_composed(capsule_items: list[WardrobeItem]) -> None:
    result = sanitize_suggestions(
        capsule_items,
        [_proposal([3, 999, 1], name="Casual Chic", occasion="trabalho", season="todas", description="Versátil")],
    )

    assert len(result.combinations) == 1
    combo = result.combinations[0]
    assert combo.name == "Casual Chic"
    assert combo.item_ids == [3, 1]
    assert combo.ai_description == "trabalho • todas • Versátil"
    assert result.dropped_count == 0


def test_repeated_member_ids_are_kept_as_proposed(capsule_items: list[WardrobeItem]) -> None:
    result = sanitize_suggestions(capsule_items, [_proposal([1, 1]), _proposal([1, 2, 2, 999])])

    assert [combo.item_ids for combo in result.combinations] == [[1, 1], [1, 2, 2]]
    assert result.surviving_count == 2
    assert result.dropped_count == 0


def test_non_integral_ids_are_dropped_individually(capsule_items: list[WardrobeItem]) -> None:
    raw = json.dumps(
        {
            "combinations": [
                {
                    "name": "Misto",
                    "itemIds": [1, 1.5, "2", True, 2.0, 3],
                    "occasion": "casual",
                    "season": "todas",
                    "description": "d",
                }
            ]
        }
    )

    payload = parse_suggestion_payload(raw)
    result = sanitize_suggestions(capsule_items, payload.combinations)

    assert payload.combinations[0].item_ids == [1, 2, 3]
    assert [combo.item_ids for combo in result.combinations] == [[1, 2, 3]]


def test_surviving_and_proposed_counts_diverge(capsule_items: list[WardrobeItem]) -> None:
    proposals = [_proposal([1, 2, 3]), _proposal([1, 2]), _proposal([42, 43]), _proposal([])]

    result = sanitize_suggestions(capsule_items, proposals)

    assert result.proposed_count == 4
    assert result.surviving_count == 2
    assert result.dropped_count == 2


def test_parse_accepts_wire_format() -> None:
    raw = json.dumps(
        {
            "combinations": [
                {
                    "name": "Básico Versátil",
                    "itemIds": [1, 2],
                    "occasion": "trabalho",
                    "season": "todas",
                    "description": "Look simples",
                }
            ]
        }
    )

    payload = parse_suggestion_payload(raw)

    assert payload.combinations[0].item_ids == [1, 2]
    assert payload.combinations[0].name == "Básico Versátil"


@pytest.mark.parametrize(
    "raw",
    [
        None,
        "",
        b'{"combinations": []}',
        {"combinations": []},
        "not json at all",
        '{"suggestions": []}',
        '{"combinations": [{"name": "x", "itemIds": "1,2"}]}',
    ],
)
def test_parse_rejects_missing_or_malformed_payloads(raw: object) -> None:
    with pytest.raises(ExternalResponseInvalid):
        parse_suggestion_payload(raw)


def test_resolve_strategy_dispatches_on_variant(capsule_items: list[WardrobeItem]) -> None:
    raw = json.dumps(
        {
            "combinations": [
                {"name": "A", "itemIds": [1, 2], "occasion": "casual", "season": "todas", "description": "d"},
                {"name": "B", "itemIds": [7, 8], "occasion": "festa", "season": "inverno", "description": "d"},
            ]
        }
    )

    deterministic = resolve_strategy(capsule_items, Deterministic())
    ai_assisted = resolve_strategy(capsule_items, AiAssisted(raw_payload=raw))

    assert [combo.name for combo in deterministic.combinations] == ["Blusa Branca + Calça Jeans + Tênis Branco"]
    assert deterministic.dropped_count == 0
    assert [combo.name for combo in ai_assisted.combinations] == ["A"]
    assert ai_assisted.proposed_count == 2
