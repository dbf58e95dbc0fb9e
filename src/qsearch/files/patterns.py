"""Folder include/exclude patterns for file results.

Only the ``*/segment/*`` shape is understood: it matches any file whose
normalized path contains ``segment`` as a run of whole path segments. Every
other shape matches nothing.
"""

from __future__ import annotations

import re
from typing import Callable, Iterable

from qsearch.models import DeviceFile

MULTI_SLASH_RE = re.compile(r"/+")


def normalize_pattern(raw: str) -> str | None:
    trimmed = raw.strip()
    if not trimmed:
        return None
    collapsed = MULTI_SLASH_RE.sub("/", trimmed.replace("\\", "/"))
    normalized = collapsed.removeprefix("/").strip()
    if not normalized:
        return None
    return normalized.casefold()


def normalize_patterns(patterns: Iterable[str]) -> set[str]:
    out: set[str] = set()
    for raw in patterns:
        pattern = normalize_pattern(raw)
        if pattern is not None:
            out.add(pattern)
    return out


def normalize_path(path: str) -> str:
    segments = [s.strip() for s in path.replace("\\", "/").split("/")]
    return "/".join(s for s in segments if s).casefold()


def candidate_path(file: DeviceFile) -> str:
    name = file.display_name.strip()
    if not name:
        return ""
    return normalize_path(f"{file.relative_path or ''}/{name}")


def matches(path: str, pattern: str) -> bool:
    if len(pattern) > 4 and pattern.startswith("*/") and pattern.endswith("/*"):
        core = pattern[2:-2].strip("/")
        # Whole segments only: "*/download/*" does not match "downloads/".
        return bool(core.strip()) and f"/{core}/" in f"/{path}/"
    return False


def build_matcher(whitelist: Iterable[str], blacklist: Iterable[str]) -> Callable[[str], bool]:
    allowed = normalize_patterns(whitelist)
    blocked = normalize_patterns(blacklist)

    def _accepts(path: str) -> bool:
        normalized = normalize_path(path)
        if allowed and not any(matches(normalized, p) for p in allowed):
            return False
        return not any(matches(normalized, p) for p in blocked)

    return _accepts
