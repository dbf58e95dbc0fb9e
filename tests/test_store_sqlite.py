import sqlite3
from pathlib import Path

from qsearch.db import SCHEMA_VERSION, Database
from qsearch.overlay import CustomizationOverlay
from qsearch.store import SqlitePreferenceStore


def _db(tmp_path: Path) -> Database:
    db = Database(tmp_path / "state" / "qsearch.sqlite")
    db.initialize()
    return db


def test_schema_has_expected_tables(tmp_path: Path) -> None:
    db = _db(tmp_path)
    conn = sqlite3.connect(db.path)
    try:
        names = {r[0] for r in conn.execute("SELECT name FROM sqlite_master WHERE type = 'table'").fetchall()}
        version = conn.execute("SELECT version FROM schema_version WHERE id = 1").fetchone()[0]
    finally:
        conn.close()
    assert {"customization_keys", "nicknames", "preferences", "schema_version"} <= names
    assert version == SCHEMA_VERSION


def test_initialize_is_repeatable(tmp_path: Path) -> None:
    db = _db(tmp_path)
    db.initialize()
    SqlitePreferenceStore(db).set_value("k", "v")
    db.initialize()
    assert SqlitePreferenceStore(db).get_value("k") == "v"


def test_customizations_persist_across_instances(tmp_path: Path) -> None:
    db = _db(tmp_path)
    overlay = CustomizationOverlay(SqlitePreferenceStore(db), "apps")
    overlay.pin("com.google.maps")
    overlay.exclude("com.example.ads")
    overlay.set_nickname("com.google.maps", "  nav ")

    reopened = CustomizationOverlay(SqlitePreferenceStore(Database(db.path)), "apps")
    state = reopened.snapshot()
    assert state.pinned == {"com.google.maps"}
    assert state.excluded == {"com.example.ads"}
    assert state.nicknames == {"com.google.maps": "nav"}

    reopened.set_nickname("com.google.maps", None)
    assert reopened.nickname("com.google.maps") is None


def test_values_and_flags(tmp_path: Path) -> None:
    store = SqlitePreferenceStore(_db(tmp_path))
    assert store.get_bool("contacts.direct_dial_enabled") is False
    store.set_bool("contacts.direct_dial_enabled", True)
    assert store.get_bool("contacts.direct_dial_enabled") is True
    store.set_json("recent.entries", ["a", "b"])
    assert store.get_json("recent.entries") == ["a", "b"]
    store.set_value("recent.entries", None)
    assert store.get_json("recent.entries", default=[]) == []
