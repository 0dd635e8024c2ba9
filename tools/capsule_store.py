"""Capsule storage abstractions and SQLite implementation."""
from __future__ import annotations

import contextlib
import json
import sqlite3
from dataclasses import replace
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

from logic.exceptions import OwnershipViolation, PersistenceFailure
from models.capsule import Capsule, CapsuleItem, Combination, CombinationDraft
from models.wardrobe_item import WardrobeItem


class CapsuleStore:
    """Persistence interface for wardrobe items, capsules and combinations."""

    def create_item(self, item: WardrobeItem) -> WardrobeItem:
        raise NotImplementedError

    def get_item(self, user_id: str, item_id: int) -> Optional[WardrobeItem]:
        raise NotImplementedError

    def list_items_for_user(self, user_id: str) -> List[WardrobeItem]:
        raise NotImplementedError

    def delete_item(self, user_id: str, item_id: int) -> bool:
        raise NotImplementedError

    def create_capsule(self, capsule: Capsule) -> Capsule:
        raise NotImplementedError

    def get_capsule(self, user_id: str, capsule_id: int) -> Optional[Capsule]:
        raise NotImplementedError

    def list_capsules(self, user_id: str) -> List[Capsule]:
        raise NotImplementedError

    def delete_capsule(self, user_id: str, capsule_id: int) -> bool:
        raise NotImplementedError

    def add_items(self, capsule_id: int, item_ids: Sequence[int]) -> int:
        raise NotImplementedError

    def remove_item(self, capsule_id: int, item_id: int) -> bool:
        raise NotImplementedError

    def list_capsule_items(self, user_id: str, capsule_id: int) -> List[WardrobeItem]:
        raise NotImplementedError

    def list_memberships(self, capsule_id: int) -> List[CapsuleItem]:
        raise NotImplementedError

    def capsule_ids_for_item(self, item_id: int) -> List[int]:
        raise NotImplementedError

    def list_combinations(self, capsule_id: int) -> List[Combination]:
        raise NotImplementedError

    def replace_combinations(self, capsule_id: int, drafts: Sequence[CombinationDraft]) -> int:
        raise NotImplementedError

    def recount_capsule(self, capsule_id: int) -> Optional[Capsule]:
        raise NotImplementedError

    def count_capsule_items(self, capsule_id: int) -> int:
        raise NotImplementedError

    def count_combinations(self, capsule_id: int) -> int:
        raise NotImplementedError


class SQLiteCapsuleStore(CapsuleStore):
    """Local SQLite-backed store.

    Every write runs in a single transaction; a failure rolls the whole write
    back and surfaces as :class:`PersistenceFailure`.
    """

    def __init__(self, database_path: str | Path = "data/capsules.db") -> None:
        self.database_path = Path(database_path)
        if self.database_path.parent and not self.database_path.parent.exists():
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.database_path, timeout=30)
        conn.row_factory = sqlite3.Row
        return conn

    @contextlib.contextmanager
    def _transaction(self, immediate: bool = False) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            with conn:
                if immediate:
                    conn.execute("BEGIN IMMEDIATE")
                yield conn
        except sqlite3.Error as exc:
            raise PersistenceFailure(f"Capsule store write failed: {exc}") from exc
        finally:
            conn.close()

    @contextlib.contextmanager
    def _reader(self) -> Iterator[sqlite3.Connection]:
        conn = self._connect()
        try:
            yield conn
        finally:
            conn.close()

    def _ensure_tables(self) -> None:
        with self._transaction() as conn:
            conn.executescript(
                """
                CREATE TABLE IF NOT EXISTS wardrobe_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    category TEXT NOT NULL,
                    color TEXT,
                    brand TEXT,
                    season TEXT,
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                );
                CREATE TABLE IF NOT EXISTS capsules (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    user_id TEXT NOT NULL,
                    name TEXT NOT NULL,
                    description TEXT,
                    occasion TEXT,
                    season TEXT,
                    color_palette TEXT,
                    total_items INTEGER NOT NULL DEFAULT 0,
                    total_combinations INTEGER NOT NULL DEFAULT 0,
                    is_active INTEGER NOT NULL DEFAULT 1,
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                );
                CREATE TABLE IF NOT EXISTS capsule_items (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    capsule_id INTEGER NOT NULL,
                    item_id INTEGER NOT NULL,
                    added_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP,
                    UNIQUE (capsule_id, item_id)
                );
                CREATE TABLE IF NOT EXISTS capsule_combinations (
                    id INTEGER PRIMARY KEY AUTOINCREMENT,
                    capsule_id INTEGER NOT NULL,
                    name TEXT NOT NULL,
                    item_ids TEXT NOT NULL,
                    ai_description TEXT,
                    is_favorite INTEGER NOT NULL DEFAULT 0,
                    times_worn INTEGER NOT NULL DEFAULT 0,
                    created_at TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
                );
                CREATE INDEX IF NOT EXISTS idx_capsule_items_capsule ON capsule_items (capsule_id);
                CREATE INDEX IF NOT EXISTS idx_combinations_capsule ON capsule_combinations (capsule_id);
                """
            )

    @staticmethod
    def _serialise_list(values: Optional[Iterable[object]]) -> str:
        return json.dumps(list(values or []), ensure_ascii=False)

    @staticmethod
    def _deserialise_list(raw: str) -> List[object]:
        return json.loads(raw) if raw else []

    @staticmethod
    def _row_to_item(row: sqlite3.Row) -> WardrobeItem:
        return WardrobeItem(
            item_id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            category=row["category"],
            color=row["color"],
            brand=row["brand"],
            season=row["season"],
        )

    def _row_to_capsule(self, row: sqlite3.Row) -> Capsule:
        return Capsule(
            capsule_id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            description=row["description"],
            occasion=row["occasion"],
            season=row["season"],
            color_palette=[str(c) for c in self._deserialise_list(row["color_palette"])],
            total_items=row["total_items"],
            total_combinations=row["total_combinations"],
            is_active=bool(row["is_active"]),
            created_at=row["created_at"],
        )

    def _row_to_combination(self, row: sqlite3.Row) -> Combination:
        return Combination(
            combination_id=row["id"],
            capsule_id=row["capsule_id"],
            name=row["name"],
            item_ids=[int(x) for x in self._deserialise_list(row["item_ids"])],
            ai_description=row["ai_description"],
            is_favorite=bool(row["is_favorite"]),
            times_worn=row["times_worn"],
            created_at=row["created_at"],
        )

    @staticmethod
    def _recount(conn: sqlite3.Connection, capsule_id: int) -> None:
        conn.execute(
            """
            UPDATE capsules SET
                total_items = (SELECT COUNT(*) FROM capsule_items WHERE capsule_id = :id),
                total_combinations = (SELECT COUNT(*) FROM capsule_combinations WHERE capsule_id = :id)
            WHERE id = :id
            """,
            {"id": capsule_id},
        )

    def _delete_combinations_with_item(self, conn: sqlite3.Connection, capsule_id: int, item_id: int) -> int:
        rows = conn.execute(
            "SELECT id, item_ids FROM capsule_combinations WHERE capsule_id = ?",
            (capsule_id,),
        ).fetchall()
        stale = [(row["id"],) for row in rows if item_id in self._deserialise_list(row["item_ids"])]
        conn.executemany("DELETE FROM capsule_combinations WHERE id = ?", stale)
        return len(stale)

    # Wardrobe items

    def create_item(self, item: WardrobeItem) -> WardrobeItem:
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO wardrobe_items (user_id, name, category, color, brand, season)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (item.user_id, item.name, item.category, item.color, item.brand, item.season),
            )
            item_id = cursor.lastrowid
        return replace(item, item_id=item_id)

    def get_item(self, user_id: str, item_id: int) -> Optional[WardrobeItem]:
        with self._reader() as conn:
            row = conn.execute(
                "SELECT * FROM wardrobe_items WHERE user_id = ? AND id = ?",
                (user_id, item_id),
            ).fetchone()
            return self._row_to_item(row) if row else None

    def list_items_for_user(self, user_id: str) -> List[WardrobeItem]:
        with self._reader() as conn:
            rows = conn.execute(
                "SELECT * FROM wardrobe_items WHERE user_id = ? ORDER BY id",
                (user_id,),
            ).fetchall()
            return [self._row_to_item(row) for row in rows]

    def delete_item(self, user_id: str, item_id: int) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM wardrobe_items WHERE user_id = ? AND id = ?",
                (user_id, item_id),
            )
            if cursor.rowcount == 0:
                return False
            capsule_ids = [
                row["capsule_id"]
                for row in conn.execute(
                    "SELECT capsule_id FROM capsule_items WHERE item_id = ?", (item_id,)
                ).fetchall()
            ]
            conn.execute("DELETE FROM capsule_items WHERE item_id = ?", (item_id,))
            for capsule_id in capsule_ids:
                self._delete_combinations_with_item(conn, capsule_id, item_id)
                self._recount(conn, capsule_id)
            return True

    # Capsules

    def create_capsule(self, capsule: Capsule) -> Capsule:
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO capsules (user_id, name, description, occasion, season, color_palette, is_active)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    capsule.user_id,
                    capsule.name,
                    capsule.description,
                    capsule.occasion,
                    capsule.season,
                    self._serialise_list(capsule.color_palette),
                    int(capsule.is_active),
                ),
            )
            capsule_id = cursor.lastrowid
        return self._get_capsule_by_id(capsule_id)

    def _get_capsule_by_id(self, capsule_id: int) -> Optional[Capsule]:
        with self._reader() as conn:
            row = conn.execute("SELECT * FROM capsules WHERE id = ?", (capsule_id,)).fetchone()
            return self._row_to_capsule(row) if row else None

    def get_capsule(self, user_id: str, capsule_id: int) -> Optional[Capsule]:
        with self._reader() as conn:
            row = conn.execute(
                "SELECT * FROM capsules WHERE id = ? AND user_id = ?",
                (capsule_id, user_id),
            ).fetchone()
            return self._row_to_capsule(row) if row else None

    def list_capsules(self, user_id: str) -> List[Capsule]:
        with self._reader() as conn:
            rows = conn.execute(
                "SELECT * FROM capsules WHERE user_id = ? ORDER BY id",
                (user_id,),
            ).fetchall()
            return [self._row_to_capsule(row) for row in rows]

    def delete_capsule(self, user_id: str, capsule_id: int) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM capsules WHERE id = ? AND user_id = ?",
                (capsule_id, user_id),
            )
            if cursor.rowcount == 0:
                return False
            conn.execute("DELETE FROM capsule_items WHERE capsule_id = ?", (capsule_id,))
            conn.execute("DELETE FROM capsule_combinations WHERE capsule_id = ?", (capsule_id,))
            return True

    # Membership

    def add_items(self, capsule_id: int, item_ids: Sequence[int]) -> int:
        with self._transaction() as conn:
            added = 0
            for item_id in item_ids:
                cursor = conn.execute(
                    "INSERT OR IGNORE INTO capsule_items (capsule_id, item_id) VALUES (?, ?)",
                    (capsule_id, item_id),
                )
                added += cursor.rowcount
            self._recount(conn, capsule_id)
            return added

    def remove_item(self, capsule_id: int, item_id: int) -> bool:
        with self._transaction() as conn:
            cursor = conn.execute(
                "DELETE FROM capsule_items WHERE capsule_id = ? AND item_id = ?",
                (capsule_id, item_id),
            )
            removed = cursor.rowcount > 0
            if removed:
                self._delete_combinations_with_item(conn, capsule_id, item_id)
            self._recount(conn, capsule_id)
            return removed

    def list_capsule_items(self, user_id: str, capsule_id: int) -> List[WardrobeItem]:
        with self._reader() as conn:
            rows = conn.execute(
                """
                SELECT wi.* FROM capsule_items ci
                INNER JOIN wardrobe_items wi ON wi.id = ci.item_id
                WHERE ci.capsule_id = ? AND wi.user_id = ?
                ORDER BY ci.id
                """,
                (capsule_id, user_id),
            ).fetchall()
            return [self._row_to_item(row) for row in rows]

    def list_memberships(self, capsule_id: int) -> List[CapsuleItem]:
        with self._reader() as conn:
            rows = conn.execute(
                "SELECT * FROM capsule_items WHERE capsule_id = ? ORDER BY id",
                (capsule_id,),
            ).fetchall()
            return [
                CapsuleItem(
                    membership_id=row["id"],
                    capsule_id=row["capsule_id"],
                    item_id=row["item_id"],
                    added_at=row["added_at"],
                )
                for row in rows
            ]

    def capsule_ids_for_item(self, item_id: int) -> List[int]:
        with self._reader() as conn:
            rows = conn.execute(
                "SELECT DISTINCT capsule_id FROM capsule_items WHERE item_id = ? ORDER BY capsule_id",
                (item_id,),
            ).fetchall()
            return [row["capsule_id"] for row in rows]

    # Combinations

    def list_combinations(self, capsule_id: int) -> List[Combination]:
        with self._reader() as conn:
            rows = conn.execute(
                "SELECT * FROM capsule_combinations WHERE capsule_id = ? ORDER BY id",
                (capsule_id,),
            ).fetchall()
            return [self._row_to_combination(row) for row in rows]

    def replace_combinations(self, capsule_id: int, drafts: Sequence[CombinationDraft]) -> int:
        """Swap the capsule's combinations for ``drafts`` in one transaction.

        The capsule and the membership of every draft id are re-read under the
        write lock; if either changed since the drafts were built nothing is
        written.
        """

        with self._transaction(immediate=True) as conn:
            if conn.execute("SELECT 1 FROM capsules WHERE id = ?", (capsule_id,)).fetchone() is None:
                raise OwnershipViolation("Capsule not found")
            members = {
                row["item_id"]
                for row in conn.execute(
                    "SELECT item_id FROM capsule_items WHERE capsule_id = ?", (capsule_id,)
                ).fetchall()
            }
            stale = sorted({i for draft in drafts for i in draft.item_ids} - members)
            if stale:
                raise PersistenceFailure(
                    f"Capsule membership changed during generation; items {stale} are no longer in it"
                )
            conn.execute("DELETE FROM capsule_combinations WHERE capsule_id = ?", (capsule_id,))
            conn.executemany(
                """
                INSERT INTO capsule_combinations (capsule_id, name, item_ids, ai_description)
                VALUES (?, ?, ?, ?)
                """,
                [
                    (capsule_id, draft.name, self._serialise_list(draft.item_ids), draft.ai_description)
                    for draft in drafts
                ],
            )
            conn.execute(
                "UPDATE capsules SET total_combinations = ? WHERE id = ?",
                (len(drafts), capsule_id),
            )
        return len(drafts)

    # Counters

    def recount_capsule(self, capsule_id: int) -> Optional[Capsule]:
        with self._transaction() as conn:
            self._recount(conn, capsule_id)
        return self._get_capsule_by_id(capsule_id)

    def count_capsule_items(self, capsule_id: int) -> int:
        with self._reader() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS total FROM capsule_items WHERE capsule_id = ?", (capsule_id,)
            ).fetchone()
            return int(row["total"])

    def count_combinations(self, capsule_id: int) -> int:
        with self._reader() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS total FROM capsule_combinations WHERE capsule_id = ?", (capsule_id,)
            ).fetchone()
            return int(row["total"])


__all__ = ["CapsuleStore", "SQLiteCapsuleStore"]
