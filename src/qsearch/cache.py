from __future__ import annotations

import itertools
import logging
import threading
from typing import Callable, Generic, Iterable, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CandidateCache(Generic[T]):
    """Wholesale-replaced candidate list for one domain.

    Refreshes take a ticket when issued. A refresh result is applied only if no
    later-issued refresh has been applied already, so a slow stale load can
    never overwrite a newer one that finished first.
    """

    def __init__(self, name: str, normalize: Callable[[list[T]], list[T]] | None = None):
        self.name = name
        self._normalize = normalize
        self._items: tuple[T, ...] = ()
        self._tickets = itertools.count(1)
        self._applied_ticket = 0
        self._lock = threading.Lock()

    @property
    def items(self) -> tuple[T, ...]:
        return self._items

    def is_loaded(self) -> bool:
        return bool(self._items)

    def begin_refresh(self) -> int:
        with self._lock:
            return next(self._tickets)

    def complete_refresh(self, ticket: int, items: Iterable[T]) -> bool:
        loaded = list(items)
        if self._normalize is not None:
            loaded = self._normalize(loaded)
        with self._lock:
            if ticket <= self._applied_ticket:
                logger.debug("dropping stale %s refresh ticket=%s applied=%s", self.name, ticket, self._applied_ticket)
                return False
            self._items = tuple(loaded)
            self._applied_ticket = ticket
        return True

    def refresh(self, loader: Callable[[], Iterable[T]]) -> bool:
        ticket = self.begin_refresh()
        try:
            items = loader()
        except Exception:
            logger.exception("failed to load %s candidates; keeping previous cache", self.name)
            return False
        return self.complete_refresh(ticket, items)

    def replace(self, items: Iterable[T]) -> None:
        self.complete_refresh(self.begin_refresh(), items)

    def clear(self) -> None:
        self.replace(())
