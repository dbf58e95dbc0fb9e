"""Recent-activity ledger: queries and opened results, newest first."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
import json
import logging
import threading
from typing import Any

from qsearch.store import PreferenceStore

logger = logging.getLogger(__name__)

RECENT_KEY = "recent.entries"
DEFAULT_CAPACITY = 10


class RecentKind(str, Enum):
    QUERY = "query"
    CONTACT = "contact"
    FILE = "file"
    SETTING = "setting"
    APP_SHORTCUT = "app_shortcut"


# Serialized field holding each kind's value.
_FIELDS: dict[RecentKind, str] = {
    RecentKind.QUERY: "query",
    RecentKind.CONTACT: "contact_id",
    RecentKind.FILE: "file_uri",
    RecentKind.SETTING: "setting_id",
    RecentKind.APP_SHORTCUT: "shortcut_key",
}


@dataclass(frozen=True, slots=True)
class RecentEntry:
    kind: RecentKind
    value: str

    @classmethod
    def query(cls, text: str) -> "RecentEntry":
        return cls(RecentKind.QUERY, text.strip())

    @classmethod
    def contact(cls, contact_id: int) -> "RecentEntry":
        return cls(RecentKind.CONTACT, str(contact_id))

    @classmethod
    def file(cls, uri: str) -> "RecentEntry":
        return cls(RecentKind.FILE, uri)

    @classmethod
    def setting(cls, setting_id: str) -> "RecentEntry":
        return cls(RecentKind.SETTING, setting_id)

    @classmethod
    def app_shortcut(cls, shortcut_key: str) -> "RecentEntry":
        return cls(RecentKind.APP_SHORTCUT, shortcut_key)

    @property
    def stable_key(self) -> str:
        if self.kind == RecentKind.QUERY:
            return f"query:{self.value.strip()}"
        return f"{self.kind.value}:{self.value}"

    def to_json(self) -> str:
        payload: dict[str, Any] = {"type": self.kind.value}
        if self.kind == RecentKind.CONTACT:
            payload[_FIELDS[self.kind]] = int(self.value)
        elif self.kind == RecentKind.QUERY:
            payload[_FIELDS[self.kind]] = self.value.strip()
        else:
            payload[_FIELDS[self.kind]] = self.value
        return json.dumps(payload, ensure_ascii=False)

    @classmethod
    def from_raw(cls, raw: str) -> "RecentEntry | None":
        """Parse a persisted entry; anything unreadable comes back as a query."""
        trimmed = raw.strip()
        if not trimmed:
            return None
        parsed = _parse(trimmed)
        if parsed is None:
            logger.debug("recovering unreadable recent entry as query: %r", trimmed)
            return cls(RecentKind.QUERY, trimmed)
        return parsed


def _parse(text: str) -> RecentEntry | None:
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    try:
        kind = RecentKind(data.get("type"))
    except ValueError:
        return None

    value = data.get(_FIELDS[kind])
    if kind == RecentKind.CONTACT:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            return None
        return RecentEntry(kind, str(value))
    if not isinstance(value, str) or not value.strip():
        return None
    return RecentEntry(kind, value.strip() if kind == RecentKind.QUERY else value)


class RecentLedger:
    def __init__(self, store: PreferenceStore, capacity: int = DEFAULT_CAPACITY, enabled: bool = True):
        self.store = store
        self.capacity = capacity
        self.enabled = enabled
        self._lock = threading.Lock()

    def _load(self) -> list[RecentEntry]:
        raw = self.store.get_json(RECENT_KEY, default=[])
        if not isinstance(raw, list):
            return []
        entries: list[RecentEntry] = []
        for item in raw:
            if not isinstance(item, str):
                continue
            entry = RecentEntry.from_raw(item)
            if entry is not None:
                entries.append(entry)
        return entries

    def _save(self, entries: list[RecentEntry]) -> None:
        self.store.set_json(RECENT_KEY, [e.to_json() for e in entries])

    def entries(self) -> list[RecentEntry]:
        return self._load()

    def record(self, entry: RecentEntry) -> bool:
        if not self.enabled:
            return False
        if entry.kind == RecentKind.QUERY and not entry.value.strip():
            return False
        with self._lock:
            current = [e for e in self._load() if e.stable_key != entry.stable_key]
            current.insert(0, entry)
            self._save(current[: self.capacity])
        return True

    def delete(self, entry: RecentEntry) -> None:
        with self._lock:
            self._save([e for e in self._load() if e.stable_key != entry.stable_key])

    def clear(self) -> None:
        with self._lock:
            self._save([])
