from __future__ import annotations

from contextlib import contextmanager
from pathlib import Path
import sqlite3
from typing import Iterator

from qsearch.util.time import now_iso

SCHEMA_VERSION = 1

SETUP_SQL = """
CREATE TABLE IF NOT EXISTS schema_version (
  id INTEGER PRIMARY KEY CHECK (id = 1),
  version INTEGER NOT NULL,
  updated_at TEXT NOT NULL
);

CREATE TABLE IF NOT EXISTS customization_keys (
  domain TEXT NOT NULL,
  kind TEXT NOT NULL,
  item_key TEXT NOT NULL,
  created_at TEXT NOT NULL,
  PRIMARY KEY(domain, kind, item_key)
);

CREATE TABLE IF NOT EXISTS nicknames (
  domain TEXT NOT NULL,
  item_key TEXT NOT NULL,
  nickname TEXT NOT NULL,
  updated_at TEXT NOT NULL,
  PRIMARY KEY(domain, item_key)
);

CREATE TABLE IF NOT EXISTS preferences (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL,
  updated_at TEXT NOT NULL
);
"""


def _table_exists(conn: sqlite3.Connection, name: str) -> bool:
    row = conn.execute(
        "SELECT 1 FROM sqlite_master WHERE type IN ('table','view') AND name = ?",
        (name,),
    ).fetchone()
    return row is not None


def _schema_version(conn: sqlite3.Connection) -> int:
    if not _table_exists(conn, "schema_version"):
        return 0
    row = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()
    return int(row["version"]) if row else 0


def _set_schema_version(conn: sqlite3.Connection, version: int) -> None:
    conn.execute(
        """
        INSERT INTO schema_version(id, version, updated_at)
        VALUES(1, ?, ?)
        ON CONFLICT(id) DO UPDATE SET
          version=excluded.version,
          updated_at=excluded.updated_at
        """,
        (version, now_iso()),
    )


class Database:
    def __init__(self, path: Path):
        self.path = path
        self.path.parent.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def connect(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(self.path, timeout=10.0)
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA journal_mode = WAL")
        try:
            yield conn
            conn.commit()
        finally:
            conn.close()

    def initialize(self) -> None:
        with self.connect() as conn:
            conn.executescript(SETUP_SQL)
            if _schema_version(conn) < SCHEMA_VERSION:
                _set_schema_version(conn, SCHEMA_VERSION)
