from __future__ import annotations

from typing import Iterable

from qsearch.handlers.base import SearchHandler
from qsearch.models import AppShortcut, Domain
from qsearch.overlay import CustomizationOverlay
from qsearch.rank.priority import MIN_QUERY_LENGTH


class AppShortcutSearchHandler(SearchHandler[AppShortcut]):
    domain = Domain.SHORTCUTS

    def __init__(
        self,
        overlay: CustomizationOverlay,
        limit: int = 6,
        min_query_length: int = MIN_QUERY_LENGTH,
        disabled_keys: Iterable[str] = (),
    ):
        super().__init__(overlay, limit, min_query_length)
        self.disabled_keys = set(disabled_keys)

    def match_fields(self, item: AppShortcut) -> tuple[str | None, ...]:
        return (item.display_name, item.app_label)

    def is_disqualified(self, item: AppShortcut) -> bool:
        return not item.enabled or item.key in self.disabled_keys

    def normalize_candidates(self, items: list[AppShortcut]) -> list[AppShortcut]:
        seen: set[str] = set()
        out: list[AppShortcut] = []
        for shortcut in items:
            if shortcut.key in seen:
                continue
            seen.add(shortcut.key)
            out.append(shortcut)
        return out
