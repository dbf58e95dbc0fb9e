from __future__ import annotations

from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import yaml

from qsearch.paths import config_root, default_catalog_path, default_db_path, default_pid_path


@dataclass(slots=True)
class SearchConfig:
    min_query_length: int = 2
    apps_limit: int = 10
    contacts_limit: int = 20
    files_limit: int = 25
    settings_limit: int = 6
    shortcuts_limit: int = 6
    sort_apps_by_usage: bool = False
    hidden_app_packages: list[str] = field(default_factory=list)
    disabled_setting_ids: list[str] = field(default_factory=list)
    disabled_shortcut_keys: list[str] = field(default_factory=list)


@dataclass(slots=True)
class FileSearchConfig:
    enabled_types: list[str] = field(default_factory=lambda: ["photos_and_videos", "documents", "other"])
    show_folders: bool = True
    show_system_files: bool = False
    show_hidden_files: bool = False
    excluded_extensions: list[str] = field(default_factory=list)
    folder_whitelist: list[str] = field(default_factory=list)
    folder_blacklist: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ContactConfig:
    messaging_app: str = "messages"
    calling_app: str = "call"


@dataclass(slots=True)
class RecentConfig:
    enabled: bool = True
    capacity: int = 10


@dataclass(slots=True)
class UIConfig:
    show_banner: bool = True


@dataclass(slots=True)
class AppConfig:
    db_path: Path = field(default_factory=default_db_path)
    catalog_path: Path = field(default_factory=default_catalog_path)
    pid_path: Path = field(default_factory=default_pid_path)
    search: SearchConfig = field(default_factory=SearchConfig)
    files: FileSearchConfig = field(default_factory=FileSearchConfig)
    contacts: ContactConfig = field(default_factory=ContactConfig)
    recent: RecentConfig = field(default_factory=RecentConfig)
    ui: UIConfig = field(default_factory=UIConfig)


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    out = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(out.get(k), dict):
            out[k] = _merge(out[k], v)
        else:
            out[k] = v
    return out


def _to_config(data: dict[str, Any]) -> AppConfig:
    return AppConfig(
        db_path=Path(data.get("db_path", str(default_db_path()))).expanduser(),
        catalog_path=Path(data.get("catalog_path", str(default_catalog_path()))).expanduser(),
        pid_path=Path(data.get("pid_path", str(default_pid_path()))).expanduser(),
        search=SearchConfig(**data.get("search", {})),
        files=FileSearchConfig(**data.get("files", {})),
        contacts=ContactConfig(**data.get("contacts", {})),
        recent=RecentConfig(**data.get("recent", {})),
        ui=UIConfig(**data.get("ui", {})),
    )


def default_config_path() -> Path:
    return config_root() / "config.yaml"


def load_config(config_path: Path | None = None, overrides: dict[str, Any] | None = None) -> AppConfig:
    path = config_path or default_config_path()
    base: dict[str, Any] = {}
    if path.exists():
        loaded = yaml.safe_load(path.read_text())
        if isinstance(loaded, dict):
            base = loaded
    if overrides:
        base = _merge(base, overrides)
    cfg = _to_config(base)
    cfg.db_path.parent.mkdir(parents=True, exist_ok=True)
    cfg.pid_path.parent.mkdir(parents=True, exist_ok=True)
    return cfg


def write_default_config(path: Path | None = None) -> Path:
    target = path or default_config_path()
    target.parent.mkdir(parents=True, exist_ok=True)
    if target.exists():
        return target
    defaults = AppConfig()
    target.write_text(
        yaml.safe_dump(
            {
                "db_path": str(defaults.db_path),
                "catalog_path": str(defaults.catalog_path),
                "pid_path": str(defaults.pid_path),
                "search": asdict(defaults.search),
                "files": asdict(defaults.files),
                "contacts": asdict(defaults.contacts),
                "recent": asdict(defaults.recent),
                "ui": asdict(defaults.ui),
            },
            sort_keys=False,
        )
    )
    return target
