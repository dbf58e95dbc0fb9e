"""Candidate sources: where each domain's entities come from.

``CatalogSource`` reads a YAML catalog holding materialized entities for every
domain plus the package registry and provider row-id map, which is what the
CLI and the tool servers run against. ``MemorySource`` is built in code.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Iterable

import yaml

from qsearch.errors import CatalogError
from qsearch.models import (
    AppInfo,
    AppShortcut,
    ContactInfo,
    ContactMethod,
    DeviceFile,
    DeviceSetting,
    Domain,
    MethodKind,
    order_contact_methods,
)
from qsearch.phone import clean_number, extract_digits, merge_number

logger = logging.getLogger(__name__)


class CandidateSource:
    def load(self, domain: Domain) -> list[Any]:
        raise NotImplementedError

    def is_app_installed(self, package_name: str) -> bool:
        raise NotImplementedError

    def row_ids_for_number(self, number: str) -> set[int]:
        return set()


class MemorySource(CandidateSource):
    def __init__(
        self,
        items: dict[Domain, Iterable[Any]] | None = None,
        installed: Iterable[str] = (),
        row_ids: dict[str, Iterable[int]] | None = None,
    ):
        self.items: dict[Domain, list[Any]] = {d: list(v) for d, v in (items or {}).items()}
        self.installed = set(installed)
        self.row_ids = {extract_digits(k): set(v) for k, v in (row_ids or {}).items()}

    def load(self, domain: Domain) -> list[Any]:
        return list(self.items.get(domain, []))

    def is_app_installed(self, package_name: str) -> bool:
        return package_name in self.installed

    def row_ids_for_number(self, number: str) -> set[int]:
        return set(self.row_ids.get(extract_digits(number), set()))


def _tuple(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(str(v) for v in value)


def _app(raw: dict[str, Any]) -> AppInfo:
    return AppInfo(
        app_name=str(raw["app_name"]),
        package_name=str(raw["package_name"]),
        launch_count=int(raw.get("launch_count", 0)),
        last_used_time=int(raw.get("last_used_time", 0)),
        is_system_app=bool(raw.get("is_system_app", False)),
        user_handle_id=raw.get("user_handle_id"),
    )


def _method(raw: dict[str, Any]) -> ContactMethod:
    data_id = raw.get("data_id")
    return ContactMethod(
        kind=MethodKind(str(raw["kind"]).lower()),
        data=str(raw.get("data") or ""),
        data_id=None if data_id is None else int(data_id),
        label=str(raw.get("label") or ""),
        package_name=raw.get("package_name"),
        mime_type=raw.get("mime_type"),
        is_primary=bool(raw.get("is_primary", False)),
    )


def _contact(raw: dict[str, Any]) -> ContactInfo:
    numbers: list[str] = []
    for value in _tuple(raw.get("phone_numbers")):
        cleaned = clean_number(value)
        if cleaned is not None:
            numbers = merge_number(numbers, cleaned)
    methods = [_method(m) for m in raw.get("contact_methods") or []]
    return ContactInfo(
        contact_id=int(raw["contact_id"]),
        display_name=str(raw["display_name"]),
        lookup_key=str(raw.get("lookup_key") or ""),
        phone_numbers=tuple(numbers),
        contact_methods=order_contact_methods(methods),
        photo_uri=raw.get("photo_uri"),
    )


def _file(raw: dict[str, Any]) -> DeviceFile:
    return DeviceFile(
        uri=str(raw["uri"]),
        display_name=str(raw["display_name"]),
        mime_type=raw.get("mime_type"),
        last_modified=int(raw.get("last_modified", 0)),
        is_directory=bool(raw.get("is_directory", False)),
        relative_path=raw.get("relative_path"),
        volume_name=raw.get("volume_name"),
    )


def _setting(raw: dict[str, Any]) -> DeviceSetting:
    return DeviceSetting(
        id=str(raw["id"]),
        title=str(raw["title"]),
        description=raw.get("description"),
        keywords=_tuple(raw.get("keywords")),
        action=str(raw.get("action") or ""),
        data=raw.get("data"),
    )


def _shortcut(raw: dict[str, Any]) -> AppShortcut:
    return AppShortcut(
        package_name=str(raw["package_name"]),
        app_label=str(raw.get("app_label") or raw["package_name"]),
        id=str(raw["id"]),
        short_label=raw.get("short_label"),
        long_label=raw.get("long_label"),
        icon_ref=raw.get("icon_ref"),
        enabled=bool(raw.get("enabled", True)),
    )


_BUILDERS = {
    Domain.APPS: _app,
    Domain.CONTACTS: _contact,
    Domain.FILES: _file,
    Domain.SETTINGS: _setting,
    Domain.SHORTCUTS: _shortcut,
}


class CatalogSource(CandidateSource):
    """Entities read from a YAML catalog, re-read on every load."""

    def __init__(self, path: Path):
        self.path = path

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            logger.debug("catalog %s does not exist", self.path)
            return {}
        try:
            loaded = yaml.safe_load(self.path.read_text())
        except yaml.YAMLError as exc:
            raise CatalogError(f"invalid catalog {self.path}: {exc}") from exc
        if loaded is None:
            return {}
        if not isinstance(loaded, dict):
            raise CatalogError(f"catalog {self.path} must be a mapping")
        return loaded

    def load(self, domain: Domain) -> list[Any]:
        rows = self._read().get(domain.value) or []
        build = _BUILDERS[domain]
        out: list[Any] = []
        for raw in rows:
            try:
                out.append(build(raw))
            except (KeyError, TypeError, ValueError) as exc:
                logger.warning("skipping malformed %s entry %r: %s", domain.value, raw, exc)
        return out

    def is_app_installed(self, package_name: str) -> bool:
        data = self._read()
        installed = set(_tuple(data.get("installed_packages")))
        installed.update(str(a.get("package_name")) for a in data.get(Domain.APPS.value) or [] if isinstance(a, dict))
        return package_name in installed

    def row_ids_for_number(self, number: str) -> set[int]:
        wanted = extract_digits(number)
        rows = self._read().get("row_ids") or {}
        out: set[int] = set()
        for key, ids in rows.items():
            if extract_digits(str(key)) == wanted:
                out.update(int(i) for i in ids or [])
        return out
