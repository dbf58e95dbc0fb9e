from __future__ import annotations

from pathlib import Path
import os

APP_NAME = "qsearch"


def cache_root() -> Path:
    xdg = os.environ.get("XDG_CACHE_HOME")
    if xdg:
        base = Path(xdg)
    else:
        base = Path.home() / ".cache"
    root = base / APP_NAME
    root.mkdir(parents=True, exist_ok=True)
    return root


def config_root() -> Path:
    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        base = Path(xdg)
    else:
        base = Path.home() / ".config"
    root = base / APP_NAME
    root.mkdir(parents=True, exist_ok=True)
    return root


def default_db_path() -> Path:
    return cache_root() / "qsearch.sqlite3"


def default_catalog_path() -> Path:
    return config_root() / "catalog.yaml"


def default_pid_path() -> Path:
    return cache_root() / "mcp_http.pid"
