from __future__ import annotations

from typing import Iterable

from qsearch.handlers.base import SearchHandler
from qsearch.models import DeviceSetting, Domain
from qsearch.overlay import CustomizationOverlay
from qsearch.rank.priority import MIN_QUERY_LENGTH


class SettingsSearchHandler(SearchHandler[DeviceSetting]):
    domain = Domain.SETTINGS

    def __init__(
        self,
        overlay: CustomizationOverlay,
        limit: int = 6,
        min_query_length: int = MIN_QUERY_LENGTH,
        disabled_ids: Iterable[str] = (),
    ):
        super().__init__(overlay, limit, min_query_length)
        self.disabled_ids = set(disabled_ids)

    def match_fields(self, item: DeviceSetting) -> tuple[str | None, ...]:
        return (item.title, item.description, *item.keywords)

    def is_disqualified(self, item: DeviceSetting) -> bool:
        return item.id in self.disabled_ids
