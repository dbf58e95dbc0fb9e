from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from qsearch.config import FileSearchConfig
from qsearch.files.filters import (
    FileType,
    file_type,
    is_apk,
    is_extension_excluded,
    is_hidden,
    is_in_trash,
    is_system_file,
    is_system_folder,
)
from qsearch.files.patterns import build_matcher, candidate_path
from qsearch.handlers.base import SearchHandler
from qsearch.models import DeviceFile, Domain
from qsearch.overlay import CustomizationOverlay
from qsearch.rank.priority import MIN_QUERY_LENGTH


@dataclass(slots=True)
class FileFilters:
    enabled_types: set[FileType] = field(
        default_factory=lambda: {FileType.PHOTOS_AND_VIDEOS, FileType.DOCUMENTS, FileType.OTHER}
    )
    show_folders: bool = True
    show_system_files: bool = False
    show_hidden_files: bool = False
    excluded_extensions: set[str] = field(default_factory=set)
    folder_whitelist: list[str] = field(default_factory=list)
    folder_blacklist: list[str] = field(default_factory=list)

    @classmethod
    def from_config(cls, cfg: FileSearchConfig) -> "FileFilters":
        return cls(
            enabled_types={FileType(t) for t in cfg.enabled_types},
            show_folders=cfg.show_folders,
            show_system_files=cfg.show_system_files,
            show_hidden_files=cfg.show_hidden_files,
            excluded_extensions={e.strip().lstrip(".").lower() for e in cfg.excluded_extensions if e.strip()},
            folder_whitelist=list(cfg.folder_whitelist),
            folder_blacklist=list(cfg.folder_blacklist),
        )


class FileSearchHandler(SearchHandler[DeviceFile]):
    domain = Domain.FILES
    token_aware = True

    def __init__(
        self,
        overlay: CustomizationOverlay,
        limit: int = 25,
        min_query_length: int = MIN_QUERY_LENGTH,
        filters: FileFilters | None = None,
    ):
        super().__init__(overlay, limit, min_query_length)
        self.filters = filters or FileFilters()
        self._path_ok: Callable[[str], bool] = build_matcher(
            self.filters.folder_whitelist, self.filters.folder_blacklist
        )

    def match_fields(self, item: DeviceFile) -> tuple[str | None, ...]:
        return (item.display_name,)

    def is_disqualified(self, item: DeviceFile) -> bool:
        f = self.filters
        if is_extension_excluded(item.display_name, f.excluded_extensions):
            return True
        if not f.show_hidden_files and (is_hidden(item) or is_in_trash(item)):
            return True
        if not f.show_system_files and (is_system_file(item) or is_system_folder(item)):
            return True
        if item.is_directory:
            if not f.show_folders:
                return True
        else:
            if is_apk(item) and FileType.APKS not in f.enabled_types:
                return True
            if file_type(item) not in f.enabled_types:
                return True
        if f.folder_whitelist or f.folder_blacklist:
            return not self._path_ok(candidate_path(item))
        return False

    def normalize_candidates(self, items: list[DeviceFile]) -> list[DeviceFile]:
        seen: set[str] = set()
        out: list[DeviceFile] = []
        for file in items:
            if file.uri in seen:
                continue
            seen.add(file.uri)
            out.append(file)
        return out
