from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import Any, Callable, Generic, Iterable, TypeVar

from qsearch.cache import CandidateCache
from qsearch.models import CustomizationState, Domain
from qsearch.overlay import CustomizationOverlay
from qsearch.rank.normalize import sort_key
from qsearch.rank.priority import (
    MIN_QUERY_LENGTH,
    MatchPriority,
    PreparedQuery,
    is_match,
    match_priority,
    prepare_query,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(slots=True)
class SearchState:
    pinned: list[Any] = field(default_factory=list)
    excluded: list[Any] = field(default_factory=list)
    results: list[Any] = field(default_factory=list)


@dataclass(slots=True)
class ScoredCandidate:
    priority: MatchPriority
    tie_break: tuple[Any, ...]
    item: Any


class SearchHandler(Generic[T]):
    """Ranks one domain's cached candidates against a query.

    Subclasses provide the matched text fields and any disqualification rules;
    exclusion, nickname lookup, ranking and truncation live here so every
    domain is ordered by the same rules.
    """

    domain: Domain
    token_aware = False

    def __init__(self, overlay: CustomizationOverlay, limit: int, min_query_length: int = MIN_QUERY_LENGTH):
        self.overlay = overlay
        self.limit = limit
        self.min_query_length = min_query_length
        self.cache: CandidateCache[T] = CandidateCache(self.domain.value, normalize=self.normalize_candidates)

    def key_of(self, item: T) -> str:
        return item.key  # type: ignore[attr-defined]

    def display_name(self, item: T) -> str:
        return item.display_name  # type: ignore[attr-defined]

    def match_fields(self, item: T) -> tuple[str | None, ...]:
        raise NotImplementedError

    def is_disqualified(self, item: T) -> bool:
        return False

    def normalize_candidates(self, items: list[T]) -> list[T]:
        return items

    def tie_break(self, item: T) -> tuple[Any, ...]:
        return (sort_key(self.display_name(item)),)

    def priority(self, item: T, query: str | PreparedQuery, nicknames: dict[str, str]) -> MatchPriority:
        return match_priority(
            self.match_fields(item),
            nicknames.get(self.key_of(item)),
            query,
            token_aware=self.token_aware,
            min_length=0,
        )

    def load(self, loader: Callable[[], Iterable[T]]) -> bool:
        return self.cache.refresh(loader)

    def candidates(self) -> tuple[T, ...]:
        return self.cache.items

    def find(self, key: str) -> T | None:
        for item in self.cache.items:
            if self.key_of(item) == key:
                return item
        return None

    def _pinned_excluded(self, state: CustomizationState) -> tuple[list[T], list[T]]:
        items = self.cache.items

        def by_name(item: T) -> str:
            return sort_key(self.display_name(item))

        pinned = sorted(
            (i for i in items if self.key_of(i) in state.pinned and self.key_of(i) not in state.excluded),
            key=by_name,
        )
        excluded = sorted((i for i in items if self.key_of(i) in state.excluded), key=by_name)
        return pinned, excluded

    def _rank(self, query: str, state: CustomizationState) -> list[T]:
        items = self.cache.items
        if not items:
            logger.debug("no %s candidates loaded; returning no results", self.domain.value)
            return []
        prepared = prepare_query(query)
        if prepared.is_blank or not prepared.meets_length(self.min_query_length):
            return []

        scored: list[ScoredCandidate] = []
        for item in items:
            key = self.key_of(item)
            if key in state.excluded or self.is_disqualified(item):
                continue
            priority = self.priority(item, prepared, state.nicknames)
            if not is_match(priority):
                continue
            scored.append(ScoredCandidate(priority=priority, tie_break=self.tie_break(item), item=item))

        scored.sort(key=lambda c: (c.priority, c.tie_break))
        return [c.item for c in scored[: self.limit]]

    def search(self, query: str) -> list[T]:
        return self._rank(query, self.overlay.snapshot())

    def pinned_and_excluded(self) -> SearchState:
        pinned, excluded = self._pinned_excluded(self.overlay.snapshot())
        return SearchState(pinned=pinned, excluded=excluded)

    def get_state(self, query: str) -> SearchState:
        state = self.overlay.snapshot()
        pinned, excluded = self._pinned_excluded(state)
        results = self._rank(query, state) if query.strip() else []
        return SearchState(pinned=pinned, excluded=excluded, results=results)
