"""Preference store: the key-value view the core reads customizations from.

Handlers and the overlay receive a store instance; nothing in the core reaches
for a process-wide singleton. ``SqlitePreferenceStore`` persists to the local
database, ``MemoryPreferenceStore`` backs tests and ephemeral sessions.
"""

from __future__ import annotations

import json
import threading
from typing import Any

from qsearch.db import Database
from qsearch.util.time import now_iso

PINNED = "pinned"
EXCLUDED = "excluded"


class PreferenceStore:
    def get_keys(self, domain: str, kind: str) -> set[str]:
        raise NotImplementedError

    def add_key(self, domain: str, kind: str, key: str) -> None:
        raise NotImplementedError

    def remove_key(self, domain: str, kind: str, key: str) -> None:
        raise NotImplementedError

    def clear_keys(self, domain: str, kind: str) -> None:
        raise NotImplementedError

    def get_nicknames(self, domain: str) -> dict[str, str]:
        raise NotImplementedError

    def set_nickname(self, domain: str, key: str, nickname: str | None) -> None:
        raise NotImplementedError

    def get_value(self, key: str) -> str | None:
        raise NotImplementedError

    def set_value(self, key: str, value: str | None) -> None:
        raise NotImplementedError

    def get_bool(self, key: str, default: bool = False) -> bool:
        raw = self.get_value(key)
        if raw is None:
            return default
        return raw == "1"

    def set_bool(self, key: str, value: bool) -> None:
        self.set_value(key, "1" if value else "0")

    def get_json(self, key: str, default: Any = None) -> Any:
        raw = self.get_value(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            return default

    def set_json(self, key: str, value: Any) -> None:
        self.set_value(key, json.dumps(value))


class MemoryPreferenceStore(PreferenceStore):
    def __init__(self) -> None:
        self._keys: dict[tuple[str, str], set[str]] = {}
        self._nicknames: dict[str, dict[str, str]] = {}
        self._values: dict[str, str] = {}
        self._lock = threading.Lock()

    def get_keys(self, domain: str, kind: str) -> set[str]:
        with self._lock:
            return set(self._keys.get((domain, kind), set()))

    def add_key(self, domain: str, kind: str, key: str) -> None:
        with self._lock:
            self._keys.setdefault((domain, kind), set()).add(key)

    def remove_key(self, domain: str, kind: str, key: str) -> None:
        with self._lock:
            self._keys.get((domain, kind), set()).discard(key)

    def clear_keys(self, domain: str, kind: str) -> None:
        with self._lock:
            self._keys.pop((domain, kind), None)

    def get_nicknames(self, domain: str) -> dict[str, str]:
        with self._lock:
            return dict(self._nicknames.get(domain, {}))

    def set_nickname(self, domain: str, key: str, nickname: str | None) -> None:
        with self._lock:
            bucket = self._nicknames.setdefault(domain, {})
            if nickname is None:
                bucket.pop(key, None)
            else:
                bucket[key] = nickname

    def get_value(self, key: str) -> str | None:
        with self._lock:
            return self._values.get(key)

    def set_value(self, key: str, value: str | None) -> None:
        with self._lock:
            if value is None:
                self._values.pop(key, None)
            else:
                self._values[key] = value


class SqlitePreferenceStore(PreferenceStore):
    def __init__(self, db: Database):
        self.db = db

    def get_keys(self, domain: str, kind: str) -> set[str]:
        with self.db.connect() as conn:
            rows = conn.execute(
                "SELECT item_key FROM customization_keys WHERE domain = ? AND kind = ?",
                (domain, kind),
            ).fetchall()
        return {str(r["item_key"]) for r in rows}

    def add_key(self, domain: str, kind: str, key: str) -> None:
        with self.db.connect() as conn:
            conn.execute(
                "INSERT OR IGNORE INTO customization_keys(domain, kind, item_key, created_at) VALUES(?, ?, ?, ?)",
                (domain, kind, key, now_iso()),
            )

    def remove_key(self, domain: str, kind: str, key: str) -> None:
        with self.db.connect() as conn:
            conn.execute(
                "DELETE FROM customization_keys WHERE domain = ? AND kind = ? AND item_key = ?",
                (domain, kind, key),
            )

    def clear_keys(self, domain: str, kind: str) -> None:
        with self.db.connect() as conn:
            conn.execute("DELETE FROM customization_keys WHERE domain = ? AND kind = ?", (domain, kind))

    def get_nicknames(self, domain: str) -> dict[str, str]:
        with self.db.connect() as conn:
            rows = conn.execute(
                "SELECT item_key, nickname FROM nicknames WHERE domain = ?",
                (domain,),
            ).fetchall()
        return {str(r["item_key"]): str(r["nickname"]) for r in rows}

    def set_nickname(self, domain: str, key: str, nickname: str | None) -> None:
        with self.db.connect() as conn:
            if nickname is None:
                conn.execute("DELETE FROM nicknames WHERE domain = ? AND item_key = ?", (domain, key))
                return
            conn.execute(
                """
                INSERT INTO nicknames(domain, item_key, nickname, updated_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(domain, item_key) DO UPDATE SET
                  nickname=excluded.nickname,
                  updated_at=excluded.updated_at
                """,
                (domain, key, nickname, now_iso()),
            )

    def get_value(self, key: str) -> str | None:
        with self.db.connect() as conn:
            row = conn.execute("SELECT value FROM preferences WHERE key = ?", (key,)).fetchone()
        return None if row is None else str(row["value"])

    def set_value(self, key: str, value: str | None) -> None:
        with self.db.connect() as conn:
            if value is None:
                conn.execute("DELETE FROM preferences WHERE key = ?", (key,))
                return
            conn.execute(
                """
                INSERT INTO preferences(key, value, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(key) DO UPDATE SET
                  value=excluded.value,
                  updated_at=excluded.updated_at
                """,
                (key, value, now_iso()),
            )
