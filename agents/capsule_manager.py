"""Capsule and wardrobe management on top of the capsule store."""
from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict, List, Optional, Sequence

from logic.exceptions import OwnershipViolation
from models.capsule import Capsule
from models.wardrobe_item import from_raw_metadata
from tools.capsule_store import CapsuleStore
from tools.locks import KeyedLock
from tools.observability import instrument_operation


class CapsuleManager:
    """Owner-scoped CRUD for wardrobe items, capsules and their membership.

    Every capsule lookup is filtered by the requesting user; a capsule owned by
    someone else is reported exactly like a missing one. Writes that change a
    capsule's membership hold the same per-capsule lock as regeneration.
    """

    def __init__(self, store: CapsuleStore, locks: Optional[KeyedLock] = None) -> None:
        self.store = store
        self.locks = locks if locks is not None else KeyedLock()

    def require_capsule(self, user_id: str, capsule_id: int) -> Capsule:
        capsule = self.store.get_capsule(user_id, capsule_id)
        if capsule is None:
            raise OwnershipViolation("Capsule not found")
        return capsule

    @instrument_operation("add_wardrobe_item")
    def add_wardrobe_item(self, user_id: str, item_data: Dict[str, Any]) -> Dict[str, Any]:
        item = from_raw_metadata({**item_data, "user_id": user_id})
        return asdict(self.store.create_item(item))

    @instrument_operation("list_wardrobe_items")
    def list_wardrobe_items(self, user_id: str) -> List[Dict[str, Any]]:
        return [asdict(item) for item in self.store.list_items_for_user(user_id)]

    @instrument_operation("delete_wardrobe_item")
    def delete_wardrobe_item(self, user_id: str, item_id: int) -> Dict[str, Any]:
        if self.store.get_item(user_id, item_id) is None:
            raise OwnershipViolation("Item not found")
        with self.locks.hold_many(self.store.capsule_ids_for_item(item_id)):
            deleted = self.store.delete_item(user_id, item_id)
        if not deleted:
            raise OwnershipViolation("Item not found")
        return {"success": True}

    @instrument_operation("create_capsule")
    def create_capsule(
        self,
        user_id: str,
        name: str,
        description: Optional[str] = None,
        occasion: Optional[str] = None,
        season: Optional[str] = None,
        color_palette: Optional[Sequence[str]] = None,
    ) -> Dict[str, Any]:
        capsule = self.store.create_capsule(
            Capsule(
                user_id=user_id,
                name=name,
                description=description,
                occasion=occasion,
                season=season,
                color_palette=list(color_palette or []),
            )
        )
        return asdict(capsule)

    @instrument_operation("list_capsules")
    def list_capsules(self, user_id: str) -> List[Dict[str, Any]]:
        return [asdict(capsule) for capsule in self.store.list_capsules(user_id)]

    @instrument_operation("get_capsule")
    def get_capsule(self, user_id: str, capsule_id: int) -> Dict[str, Any]:
        """Return the capsule together with its membership edges and items."""

        capsule = self.require_capsule(user_id, capsule_id)
        items_by_id = {item.item_id: item for item in self.store.list_capsule_items(user_id, capsule_id)}
        items = [
            {
                "membership_id": membership.membership_id,
                "item_id": membership.item_id,
                "added_at": membership.added_at,
                "item": asdict(items_by_id[membership.item_id]),
            }
            for membership in self.store.list_memberships(capsule_id)
            if membership.item_id in items_by_id
        ]
        return {**asdict(capsule), "items": items}

    @instrument_operation("delete_capsule")
    def delete_capsule(self, user_id: str, capsule_id: int) -> Dict[str, Any]:
        with self.locks.hold(capsule_id):
            deleted = self.store.delete_capsule(user_id, capsule_id)
        if not deleted:
            raise OwnershipViolation("Capsule not found")
        return {"success": True}

    @instrument_operation("add_capsule_items")
    def add_items(self, user_id: str, capsule_id: int, item_ids: Sequence[int]) -> Dict[str, Any]:
        self.require_capsule(user_id, capsule_id)
        for item_id in item_ids:
            if self.store.get_item(user_id, item_id) is None:
                raise OwnershipViolation("Item not found")
        with self.locks.hold(capsule_id):
            self.require_capsule(user_id, capsule_id)
            added = self.store.add_items(capsule_id, list(item_ids))
            capsule = self.store.get_capsule(user_id, capsule_id)
        return {"success": True, "added": added, "total_items": capsule.total_items}

    def add_item(self, user_id: str, capsule_id: int, item_id: int) -> Dict[str, Any]:
        return self.add_items(user_id, capsule_id, [item_id])

    @instrument_operation("remove_capsule_item")
    def remove_item(self, user_id: str, capsule_id: int, item_id: int) -> Dict[str, Any]:
        with self.locks.hold(capsule_id):
            self.require_capsule(user_id, capsule_id)
            removed = self.store.remove_item(capsule_id, item_id)
            capsule = self.store.get_capsule(user_id, capsule_id)
        return {
            "success": removed,
            "total_items": capsule.total_items,
            "total_combinations": capsule.total_combinations,
        }

    @instrument_operation("get_combinations")
    def get_combinations(self, user_id: str, capsule_id: int) -> List[Dict[str, Any]]:
        """List stored combinations, each expanded with its item details."""

        self.require_capsule(user_id, capsule_id)
        items_by_id = {item.item_id: item for item in self.store.list_capsule_items(user_id, capsule_id)}
        return [
            {
                **asdict(combination),
                "items": [asdict(items_by_id[i]) for i in combination.item_ids if i in items_by_id],
            }
            for combination in self.store.list_combinations(capsule_id)
        ]


__all__ = ["CapsuleManager"]
