from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable

from qsearch.rank.normalize import normalize_text, split_tokens

MIN_QUERY_LENGTH = 2


class MatchPriority(IntEnum):
    """Match quality tiers, lower is better. OTHER is a non-match."""

    NICKNAME_MATCH = 0
    EXACT_MATCH = 1
    STARTS_WITH = 2
    SECOND_WORD_STARTS_WITH = 3
    OTHER = 4


@dataclass(frozen=True, slots=True)
class PreparedQuery:
    raw: str
    text: str
    tokens: tuple[str, ...]

    @property
    def is_blank(self) -> bool:
        return not self.text

    def meets_length(self, min_length: int = MIN_QUERY_LENGTH) -> bool:
        return len(self.text) >= min_length


def prepare_query(query: str | PreparedQuery) -> PreparedQuery:
    if isinstance(query, PreparedQuery):
        return query
    text = normalize_text(query)
    return PreparedQuery(raw=query or "", text=text, tokens=split_tokens(text))


def _token_priority(text: str, tokens: tuple[str, ...]) -> MatchPriority:
    if not all(tok in text for tok in tokens):
        return MatchPriority.OTHER
    words = text.split(" ")
    if any(words[0].startswith(tok) for tok in tokens):
        return MatchPriority.STARTS_WITH
    if any(word.startswith(tok) for word in words[1:] for tok in tokens):
        return MatchPriority.SECOND_WORD_STARTS_WITH
    return MatchPriority.OTHER


def field_priority(field: str | None, query: PreparedQuery, token_aware: bool = False) -> MatchPriority:
    text = normalize_text(field)
    if not text or query.is_blank:
        return MatchPriority.OTHER

    q = query.text
    if text == q:
        return MatchPriority.EXACT_MATCH
    if text.startswith(q):
        return MatchPriority.STARTS_WITH

    _, sep, rest = text.partition(" ")
    if sep and rest.startswith(q):
        return MatchPriority.SECOND_WORD_STARTS_WITH

    if token_aware and len(query.tokens) > 1:
        return _token_priority(text, query.tokens)
    return MatchPriority.OTHER


def nickname_matches(nickname: str | None, query: PreparedQuery) -> bool:
    if query.is_blank:
        return False
    normalized = normalize_text(nickname)
    return bool(normalized) and query.text in normalized


def match_priority(
    fields: Iterable[str | None],
    nickname: str | None,
    query: str | PreparedQuery,
    token_aware: bool = False,
    min_length: int = MIN_QUERY_LENGTH,
) -> MatchPriority:
    """Best priority of a candidate's text fields against ``query``.

    A matching nickname short-circuits to NICKNAME_MATCH. Otherwise the result
    is the minimum over ``fields``, so adding a field never worsens it.
    Callers that validated the query length themselves pass ``min_length=0``.
    """
    prepared = prepare_query(query)
    if prepared.is_blank or not prepared.meets_length(min_length):
        return MatchPriority.OTHER

    if nickname_matches(nickname, prepared):
        return MatchPriority.NICKNAME_MATCH

    best = MatchPriority.OTHER
    for field in fields:
        priority = field_priority(field, prepared, token_aware=token_aware)
        if priority < best:
            best = priority
            if best == MatchPriority.EXACT_MATCH:
                break
    return best


def is_match(priority: MatchPriority) -> bool:
    return priority != MatchPriority.OTHER
