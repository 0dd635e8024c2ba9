"""Regeneration workflow tests with a recording AI stylist double."""

from __future__ import annotations

import json
import sys
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional

import pytest

sys.path.append(str(Path(__file__).resolve().parents[1]))

from agents.capsule_manager import CapsuleManager
from agents.combination_agent import CombinationAgent
from logic.exceptions import ExternalResponseInvalid, OwnershipViolation, PersistenceFailure, PreconditionNotMet
from tools.capsule_store import SQLiteCapsuleStore
from tools.locks import KeyedLock
from tools.suggestion_client import SuggestionClient, SuggestionRequest


class RecordingClient(SuggestionClient):
    def __init__(self, payload: Optional[str]) -> None:
        self.payload = payload
        self.requests: List[SuggestionRequest] = []

    def complete(self, request: SuggestionRequest) -> Optional[str]:
        self.requests.append(request)
        return self.payload


def _payload(*combinations: Dict[str, object]) -> str:
    return json.dumps({"combinations": list(combinations)}, ensure_ascii=False)


@pytest.fixture()
def store(tmp_path: Path) -> SQLiteCapsuleStore:
    return SQLiteCapsuleStore(tmp_path / "capsules.db")


@pytest.fixture()
def manager(store: SQLiteCapsuleStore) -> CapsuleManager:
    return CapsuleManager(store)


@pytest.fixture()
def capsule_id(manager: CapsuleManager) -> int:
    ids = [
        manager.add_wardrobe_item(
            "ana", {"name": "Blusa Branca", "category": "top", "color": "branco", "brand": "Zara", "season": "summer"}
        )["item_id"],
        manager.add_wardrobe_item(
            "ana", {"name": "Calça Jeans", "category": "bottom", "color": "azul", "brand": "Levi's"}
        )["item_id"],
        manager.add_wardrobe_item("ana", {"name": "Tênis Branco", "category": "shoes", "brand": "Nike"})["item_id"],
    ]
    capsule = manager.create_capsule("ana", "Fim de semana")
    manager.add_items("ana", capsule["capsule_id"], ids)
    return capsule["capsule_id"]


def test_deterministic_regeneration_persists_and_counts(
    store: SQLiteCapsuleStore, manager: CapsuleManager, capsule_id: int
) -> None:
    agent = CombinationAgent(store)

    result = agent.generate_combinations("ana", capsule_id)

    assert [combo.name for combo in result.combinations] == ["Blusa Branca + Calça Jeans + Tênis Branco"]
    stored = manager.get_combinations("ana", capsule_id)
    assert [c["name"] for c in stored] == ["Blusa Branca + Calça Jeans + Tênis Branco"]
    assert [item["name"] for item in stored[0]["items"]] == ["Blusa Branca", "Calça Jeans", "Tênis Branco"]
    capsule = store.get_capsule("ana", capsule_id)
    assert capsule.total_combinations == store.count_combinations(capsule_id) == 1


def test_regeneration_replaces_instead_of_appending(store: SQLiteCapsuleStore, capsule_id: int) -> None:
    agent = CombinationAgent(store)

    agent.generate_combinations("ana", capsule_id)
    agent.generate_combinations("ana", capsule_id)

    assert store.count_combinations(capsule_id) == 1
    assert store.get_capsule("ana", capsule_id).total_combinations == 1


def test_ai_suggestions_are_sanitised_and_stored(store: SQLiteCapsuleStore, capsule_id: int) -> None:
    items = store.list_capsule_items("ana", capsule_id)
    top, bottom, shoes = (item.item_id for item in items)
    client = RecordingClient(
        _payload(
            {
                "name": "Look Casual Chic",
                "itemIds": [top, bottom, shoes],
                "occasion": "casual",
                "season": "verão",
                "description": "Combinação perfeita para um dia casual",
            },
            {
                "name": "Básico Versátil",
                "itemIds": [top, bottom],
                "occasion": "trabalho",
                "season": "todas",
                "description": "Look simples",
            },
            {
                "name": "Inventado",
                "itemIds": [top, 999],
                "occasion": "festa",
                "season": "inverno",
                "description": "Peça inexistente",
            },
        )
    )
    agent = CombinationAgent(store, suggestion_client=client)

    result = agent.generate_ai_suggestions("ana", capsule_id)

    assert result.proposed_count == 3
    assert result.surviving_count == 2
    assert result.dropped_count == 1
    stored = store.list_combinations(capsule_id)
    assert [(c.name, c.item_ids) for c in stored] == [
        ("Look Casual Chic", [top, bottom, shoes]),
        ("Básico Versátil", [top, bottom]),
    ]
    assert stored[0].ai_description == "casual • verão • Combinação perfeita para um dia casual"
    assert store.get_capsule("ana", capsule_id).total_combinations == 2


def test_ai_request_lists_capsule_items(store: SQLiteCapsuleStore, capsule_id: int) -> None:
    client = RecordingClient(_payload())
    agent = CombinationAgent(store, suggestion_client=client)

    agent.generate_ai_suggestions("ana", capsule_id)

    assert len(client.requests) == 1
    request = client.requests[0]
    top_id = store.list_capsule_items("ana", capsule_id)[0].item_id
    assert "estilista profissional" in request.system_instruction
    assert (
        f"1. Blusa Branca (ID: {top_id}, Categoria: top, Cor: branco, Marca: Zara, Estação: summer)"
        in request.user_prompt
    )
    assert "Cor: não especificada" in request.user_prompt
    assert "até 8 combinações" in request.user_prompt
    assert request.response_schema["required"] == ["combinations"]


def test_all_ai_suggestions_invalid_stores_nothing(store: SQLiteCapsuleStore, capsule_id: int) -> None:
    top_id = store.list_capsule_items("ana", capsule_id)[0].item_id
    client = RecordingClient(
        _payload({"name": "Invalid", "itemIds": [top_id, 999], "occasion": "casual", "season": "verão", "description": "x"})
    )
    agent = CombinationAgent(store)
    agent.generate_combinations("ana", capsule_id)
    agent.suggestion_client = client

    result = agent.generate_ai_suggestions("ana", capsule_id)

    assert result.surviving_count == 0
    assert result.dropped_count == 1
    assert store.count_combinations(capsule_id) == 0
    assert store.get_capsule("ana", capsule_id).total_combinations == 0


def test_single_item_capsule_fails_before_calling_stylist(
    store: SQLiteCapsuleStore, manager: CapsuleManager
) -> None:
    item_id = manager.add_wardrobe_item("ana", {"name": "Blusa", "category": "top"})["item_id"]
    capsule = manager.create_capsule("ana", "Mínima")
    manager.add_items("ana", capsule["capsule_id"], [item_id])
    client = RecordingClient(_payload())
    agent = CombinationAgent(store, suggestion_client=client)

    with pytest.raises(PreconditionNotMet, match="Need at least 2 items to generate AI suggestions"):
        agent.generate_ai_suggestions("ana", capsule["capsule_id"])
    with pytest.raises(PreconditionNotMet, match="Need at least 2 items to generate combinations"):
        agent.generate_combinations("ana", capsule["capsule_id"])

    assert client.requests == []
    assert store.count_combinations(capsule["capsule_id"]) == 0


@pytest.mark.parametrize("payload", [None, "", "{not json", '{"combinations": "nope"}'])
def test_invalid_stylist_payload_keeps_previous_set(
    store: SQLiteCapsuleStore, capsule_id: int, payload: Optional[str]
) -> None:
    agent = CombinationAgent(store, suggestion_client=RecordingClient(payload))
    agent.generate_combinations("ana", capsule_id)

    with pytest.raises(ExternalResponseInvalid):
        agent.generate_ai_suggestions("ana", capsule_id)

    assert [c.name for c in store.list_combinations(capsule_id)] == ["Blusa Branca + Calça Jeans + Tênis Branco"]
    assert store.get_capsule("ana", capsule_id).total_combinations == 1


def test_foreign_capsule_is_reported_as_missing(store: SQLiteCapsuleStore, capsule_id: int) -> None:
    client = RecordingClient(_payload())
    agent = CombinationAgent(store, suggestion_client=client)

    with pytest.raises(OwnershipViolation, match="Capsule not found"):
        agent.generate_combinations("bruno", capsule_id)
    with pytest.raises(OwnershipViolation, match="Capsule not found"):
        agent.generate_ai_suggestions("bruno", capsule_id)

    assert client.requests == []
    assert store.count_combinations(capsule_id) == 0


def test_concurrent_regeneration_leaves_consistent_counter(store: SQLiteCapsuleStore, capsule_id: int) -> None:
    agent = CombinationAgent(store, locks=KeyedLock())
    errors: List[BaseException] = []

    def run() -> None:
        try:
            agent.generate_combinations("ana", capsule_id)
        except BaseException as exc:  # noqa: BLE001
            errors.append(exc)

    threads = [threading.Thread(target=run) for _ in range(6)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert errors == []
    assert store.count_combinations(capsule_id) == 1
    assert store.get_capsule("ana", capsule_id).total_combinations == 1


def test_keyed_lock_reuses_lock_per_key() -> None:
    locks = KeyedLock()

    with locks.hold(7):
        with locks.hold(7):
            pass
    with locks.hold(8):
        pass

    assert len(locks) == 2


class MutatingClient(SuggestionClient):
    """Runs a capsule mutation on another thread while the stylist call is in flight."""

    def __init__(self, mutation: Callable[[], object], payload: str) -> None:
        self.mutation = mutation
        self.payload = payload
        self.worker: Optional[threading.Thread] = None
        self.blocked_during_call = False

    def complete(self, request: SuggestionRequest) -> Optional[str]:
        self.worker = threading.Thread(target=self.mutation)
        self.worker.start()
        self.worker.join(timeout=0.2)
        self.blocked_during_call = self.worker.is_alive()
        return self.payload


def _full_look(top: int, bottom: int, shoes: int) -> str:
    return _payload(
        {"name": "Completo", "itemIds": [top, bottom, shoes], "occasion": "casual", "season": "todas", "description": "a"},
        {"name": "Básico", "itemIds": [top, bottom], "occasion": "casual", "season": "todas", "description": "b"},
    )


def _assert_combinations_reference_members(store: SQLiteCapsuleStore, capsule_id: int) -> None:
    members = {m.item_id for m in store.list_memberships(capsule_id)}
    for combination in store.list_combinations(capsule_id):
        assert set(combination.item_ids) <= members
    capsule = store.recount_capsule(capsule_id)
    assert capsule.total_combinations == store.count_combinations(capsule_id)


def test_item_removal_waits_for_ai_regeneration(store: SQLiteCapsuleStore, capsule_id: int) -> None:
    locks = KeyedLock()
    manager = CapsuleManager(store, locks=locks)
    top, bottom, shoes = (item.item_id for item in store.list_capsule_items("ana", capsule_id))
    client = MutatingClient(lambda: manager.remove_item("ana", capsule_id, shoes), _full_look(top, bottom, shoes))
    agent = CombinationAgent(store, suggestion_client=client, locks=locks)

    result = agent.generate_ai_suggestions("ana", capsule_id)
    client.worker.join()

    assert client.blocked_during_call is True
    assert result.surviving_count == 2
    assert [c.item_ids for c in store.list_combinations(capsule_id)] == [[top, bottom]]
    assert {m.item_id for m in store.list_memberships(capsule_id)} == {top, bottom}
    _assert_combinations_reference_members(store, capsule_id)


def test_capsule_deletion_waits_for_ai_regeneration(store: SQLiteCapsuleStore, capsule_id: int) -> None:
    locks = KeyedLock()
    manager = CapsuleManager(store, locks=locks)
    top, bottom, shoes = (item.item_id for item in store.list_capsule_items("ana", capsule_id))
    client = MutatingClient(lambda: manager.delete_capsule("ana", capsule_id), _full_look(top, bottom, shoes))
    agent = CombinationAgent(store, suggestion_client=client, locks=locks)

    agent.generate_ai_suggestions("ana", capsule_id)
    client.worker.join()

    assert client.blocked_during_call is True
    assert store.get_capsule("ana", capsule_id) is None
    assert store.count_combinations(capsule_id) == 0
    assert store.count_capsule_items(capsule_id) == 0


def test_wardrobe_item_deletion_waits_for_ai_regeneration(store: SQLiteCapsuleStore, capsule_id: int) -> None:
    locks = KeyedLock()
    manager = CapsuleManager(store, locks=locks)
    top, bottom, shoes = (item.item_id for item in store.list_capsule_items("ana", capsule_id))
    client = MutatingClient(lambda: manager.delete_wardrobe_item("ana", shoes), _full_look(top, bottom, shoes))
    agent = CombinationAgent(store, suggestion_client=client, locks=locks)

    agent.generate_ai_suggestions("ana", capsule_id)
    client.worker.join()

    assert client.blocked_during_call is True
    assert store.get_item("ana", shoes) is None
    assert [c.item_ids for c in store.list_combinations(capsule_id)] == [[top, bottom]]
    _assert_combinations_reference_members(store, capsule_id)


def test_membership_change_under_the_same_lock_holder_is_not_persisted(
    store: SQLiteCapsuleStore, capsule_id: int
) -> None:
    locks = KeyedLock()
    manager = CapsuleManager(store, locks=locks)
    top, bottom, shoes = (item.item_id for item in store.list_capsule_items("ana", capsule_id))

    class InlineRemovalClient(SuggestionClient):
        def complete(self, request: SuggestionRequest) -> Optional[str]:
            manager.remove_item("ana", capsule_id, shoes)
            return _full_look(top, bottom, shoes)

    agent = CombinationAgent(store, suggestion_client=InlineRemovalClient(), locks=locks)
    agent.generate_combinations("ana", capsule_id)

    with pytest.raises(PersistenceFailure, match="membership changed"):
        agent.generate_ai_suggestions("ana", capsule_id)

    assert store.list_combinations(capsule_id) == []
    _assert_combinations_reference_members(store, capsule_id)


def test_hold_many_acquires_each_key_once() -> None:
    locks = KeyedLock()

    with locks.hold_many([3, 1, 3]):
        with locks.hold(1):
            pass

    assert len(locks) == 2
