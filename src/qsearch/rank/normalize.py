from __future__ import annotations

import re
import unicodedata

WHITESPACE_RE = re.compile(r"\s+")


def strip_diacritics(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(ch for ch in decomposed if not unicodedata.combining(ch))


def normalize_text(text: str | None) -> str:
    """Fold text for matching: trim, collapse whitespace, drop accents, casefold.

    "  Hàll  Monitor " -> "hall monitor"
    """
    if not text:
        return ""
    collapsed = WHITESPACE_RE.sub(" ", text.strip())
    return strip_diacritics(collapsed).casefold()


def split_tokens(normalized: str) -> tuple[str, ...]:
    return tuple(t for t in normalized.split(" ") if t)


def sort_key(text: str | None) -> str:
    return (text or "").casefold()
