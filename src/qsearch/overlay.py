from __future__ import annotations

from contextlib import ExitStack, contextmanager
from dataclasses import dataclass, field
import logging
import threading
from typing import Iterator

from qsearch.models import CustomizationState
from qsearch.store import EXCLUDED, PINNED, PreferenceStore

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class _KeyLock:
    lock: threading.Lock = field(default_factory=threading.Lock)
    users: int = 0


class CustomizationOverlay:
    """Pin / exclude / nickname overrides for one domain.

    Source entities are never touched; the overlay only writes to the store.
    Read-modify-write on a key is serialized so an exclude issued after a pin
    on the same key always ends with the key excluded and unpinned. Key locks
    exist only while someone holds or waits on them.
    """

    def __init__(self, store: PreferenceStore, domain: str):
        self.store = store
        self.domain = domain
        self._guard = threading.Lock()
        self._locks: dict[str, _KeyLock] = {}

    @contextmanager
    def _locked(self, key: str) -> Iterator[None]:
        with self._guard:
            entry = self._locks.get(key)
            if entry is None:
                entry = self._locks[key] = _KeyLock()
            entry.users += 1
        try:
            with entry.lock:
                yield
        finally:
            with self._guard:
                entry.users -= 1
                if entry.users == 0:
                    del self._locks[key]

    def held_key_count(self) -> int:
        with self._guard:
            return len(self._locks)

    def snapshot(self) -> CustomizationState:
        return CustomizationState(
            pinned=self.store.get_keys(self.domain, PINNED),
            excluded=self.store.get_keys(self.domain, EXCLUDED),
            nicknames=self.store.get_nicknames(self.domain),
        )

    def pin(self, key: str) -> bool:
        with self._locked(key):
            if key in self.store.get_keys(self.domain, EXCLUDED):
                logger.debug("refusing to pin excluded %s key %s", self.domain, key)
                return False
            self.store.add_key(self.domain, PINNED, key)
        return True

    def unpin(self, key: str) -> None:
        with self._locked(key):
            self.store.remove_key(self.domain, PINNED, key)

    def exclude(self, key: str) -> None:
        with self._locked(key):
            self.store.add_key(self.domain, EXCLUDED, key)
            self.store.remove_key(self.domain, PINNED, key)

    def include(self, key: str) -> None:
        with self._locked(key):
            self.store.remove_key(self.domain, EXCLUDED, key)

    def set_nickname(self, key: str, nickname: str | None) -> None:
        text = nickname.strip() if nickname else ""
        with self._locked(key):
            self.store.set_nickname(self.domain, key, text or None)

    def clear_all_excluded(self) -> None:
        # Sorted acquisition; every other path holds at most one key lock.
        with ExitStack() as stack:
            for key in sorted(self.store.get_keys(self.domain, EXCLUDED)):
                stack.enter_context(self._locked(key))
            self.store.clear_keys(self.domain, EXCLUDED)

    def is_pinned(self, key: str) -> bool:
        return key in self.store.get_keys(self.domain, PINNED)

    def is_excluded(self, key: str) -> bool:
        return key in self.store.get_keys(self.domain, EXCLUDED)

    def nickname(self, key: str) -> str | None:
        return self.store.get_nicknames(self.domain).get(key)
