"""Wardrobe storage abstractions with SQLite and in-memory implementations."""
from __future__ import annotations

import json
import logging
import sqlite3
import threading
from datetime import date
from pathlib import Path
from typing import Any, Dict, List, Optional

from models.wardrobe_item import WardrobeItem, from_raw_metadata

LOGGER = logging.getLogger(__name__)


def load_items(records: List[Dict[str, Any]]) -> List[WardrobeItem]:
    """Build items from raw records, skipping any that fail validation."""

    items = []
    for raw in records:
        try:
            items.append(from_raw_metadata(raw))
        except (ValueError, TypeError) as exc:
            LOGGER.warning("Skipping wardrobe entry due to validation error: %s", exc)
    return items


def _apply_wear(record: Dict[str, Any], worn_on: date, cost: Optional[float]) -> Dict[str, Any]:
    usage = dict(record.get("usage") or {})
    wears = int(usage.get("total_wears", 0) or 0) + 1
    usage["total_wears"] = wears
    usage["last_worn"] = worn_on.isoformat()
    if cost is not None:
        usage["cost_per_wear"] = round(cost / wears, 2)
    elif usage.get("cost_per_wear"):
        previous = float(usage["cost_per_wear"]) * (wears - 1)
        usage["cost_per_wear"] = round(previous / wears, 2)
    updated = dict(record)
    updated["usage"] = usage
    return updated


def favorite_key(record: Dict[str, Any]) -> str:
    """Order-independent key for a saved outfit."""

    return "|".join(sorted(str(item_id) for item_id in record.get("item_ids", [])))


class WardrobeStore:
    """Wardrobe items, the wear event that mutates them and saved favorite outfits."""

    def list_items_for_user(self, user_id: str) -> List[WardrobeItem]:
        raise NotImplementedError

    def save_item(self, user_id: str, item: WardrobeItem) -> WardrobeItem:
        raise NotImplementedError

    def record_wear(self, user_id: str, item_id: str, worn_on: date, purchase_price: Optional[float] = None) -> bool:
        raise NotImplementedError

    def save_favorite(self, user_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def list_favorites(self, user_id: str) -> List[Dict[str, Any]]:
        raise NotImplementedError


class SQLiteWardrobeStore(WardrobeStore):
    """Local SQLite-backed store for wardrobe items."""

    def __init__(self, database_path: str | Path = "data/wardrobe.db") -> None:
        self.database_path = Path(database_path)
        if self.database_path.parent and not self.database_path.parent.exists():
            self.database_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_tables()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self.database_path)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_tables(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS wardrobe_items (
                    user_id TEXT NOT NULL,
                    item_id TEXT NOT NULL,
                    category TEXT,
                    payload TEXT NOT NULL,
                    PRIMARY KEY (user_id, item_id)
                );
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS favorite_outfits (
                    user_id TEXT NOT NULL,
                    outfit_key TEXT NOT NULL,
                    saved_at TEXT NOT NULL,
                    payload TEXT NOT NULL,
                    PRIMARY KEY (user_id, outfit_key)
                );
                """
            )

    def save_item(self, user_id: str, item: WardrobeItem) -> WardrobeItem:
        self.save_record(user_id, item.to_dict())
        return item

    def save_record(self, user_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Store a raw record as-is; validation happens when items are read."""

        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO wardrobe_items (user_id, item_id, category, payload) VALUES (?, ?, ?, ?)",
                (user_id, str(record.get("item_id", "")), record.get("category"), json.dumps(record)),
            )
        return record

    def _records(self, user_id: str) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            cursor = conn.execute(
                "SELECT payload FROM wardrobe_items WHERE user_id = ? ORDER BY item_id",
                (user_id,),
            )
            return [json.loads(row["payload"]) for row in cursor.fetchall()]

    def list_items_for_user(self, user_id: str) -> List[WardrobeItem]:
        return load_items(self._records(user_id))

    def record_wear(self, user_id: str, item_id: str, worn_on: date, purchase_price: Optional[float] = None) -> bool:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT payload FROM wardrobe_items WHERE user_id = ? AND item_id = ?",
                (user_id, item_id),
            ).fetchone()
            if not row:
                return False
            updated = _apply_wear(json.loads(row["payload"]), worn_on, purchase_price)
            conn.execute(
                "UPDATE wardrobe_items SET payload = ? WHERE user_id = ? AND item_id = ?",
                (json.dumps(updated), user_id, item_id),
            )
        return True

    def save_favorite(self, user_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Saving the same set of items again replaces the earlier favorite."""

        with self._connect() as conn:
            conn.execute(
                "INSERT OR REPLACE INTO favorite_outfits (user_id, outfit_key, saved_at, payload) VALUES (?, ?, ?, ?)",
                (user_id, favorite_key(record), str(record.get("saved_at", "")), json.dumps(record)),
            )
        return record

    def list_favorites(self, user_id: str) -> List[Dict[str, Any]]:
        with self._connect() as conn:
            cursor = conn.execute(
                "SELECT payload FROM favorite_outfits WHERE user_id = ? ORDER BY saved_at, outfit_key",
                (user_id,),
            )
            return [json.loads(row["payload"]) for row in cursor.fetchall()]


class InMemoryWardrobeStore(WardrobeStore):
    """Dictionary-backed store for tests and local demos."""

    def __init__(self, records: Dict[str, List[Dict[str, Any]]] | None = None) -> None:
        self._records: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._favorites: Dict[str, Dict[str, Dict[str, Any]]] = {}
        self._lock = threading.Lock()
        for user_id, user_records in (records or {}).items():
            for record in user_records:
                self.save_record(user_id, record)

    def save_record(self, user_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            self._records.setdefault(user_id, {})[str(record.get("item_id", ""))] = dict(record)
        return record

    def save_item(self, user_id: str, item: WardrobeItem) -> WardrobeItem:
        self.save_record(user_id, item.to_dict())
        return item

    def list_items_for_user(self, user_id: str) -> List[WardrobeItem]:
        with self._lock:
            records = [self._records[user_id][key] for key in sorted(self._records.get(user_id, {}))]
        return load_items(records)

    def record_wear(self, user_id: str, item_id: str, worn_on: date, purchase_price: Optional[float] = None) -> bool:
        with self._lock:
            record = self._records.get(user_id, {}).get(item_id)
            if record is None:
                return False
            self._records[user_id][item_id] = _apply_wear(record, worn_on, purchase_price)
        return True

    def save_favorite(self, user_id: str, record: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            self._favorites.setdefault(user_id, {})[favorite_key(record)] = dict(record)
        return record

    def list_favorites(self, user_id: str) -> List[Dict[str, Any]]:
        with self._lock:
            favorites = list(self._favorites.get(user_id, {}).items())
        favorites.sort(key=lambda entry: (str(entry[1].get("saved_at", "")), entry[0]))
        return [dict(record) for _, record in favorites]


__all__ = ["WardrobeStore", "SQLiteWardrobeStore", "InMemoryWardrobeStore", "favorite_key", "load_items"]
