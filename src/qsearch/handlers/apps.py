from __future__ import annotations

from typing import Any, Iterable

from qsearch.handlers.base import SearchHandler
from qsearch.models import AppInfo, Domain
from qsearch.overlay import CustomizationOverlay
from qsearch.rank.normalize import sort_key
from qsearch.rank.priority import MIN_QUERY_LENGTH


class AppSearchHandler(SearchHandler[AppInfo]):
    domain = Domain.APPS
    token_aware = True

    def __init__(
        self,
        overlay: CustomizationOverlay,
        limit: int = 10,
        min_query_length: int = MIN_QUERY_LENGTH,
        hidden_packages: Iterable[str] = (),
        sort_by_usage: bool = False,
    ):
        super().__init__(overlay, limit, min_query_length)
        self.hidden_packages = set(hidden_packages)
        self.sort_by_usage = sort_by_usage

    def match_fields(self, item: AppInfo) -> tuple[str | None, ...]:
        return (item.app_name,)

    def is_disqualified(self, item: AppInfo) -> bool:
        return item.package_name in self.hidden_packages

    def tie_break(self, item: AppInfo) -> tuple[Any, ...]:
        if self.sort_by_usage:
            return (-item.launch_count, sort_key(item.app_name))
        return (sort_key(item.app_name),)
