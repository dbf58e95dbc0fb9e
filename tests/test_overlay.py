import threading

from qsearch.overlay import CustomizationOverlay
from qsearch.store import MemoryPreferenceStore


def _overlay(domain: str = "apps") -> CustomizationOverlay:
    return CustomizationOverlay(MemoryPreferenceStore(), domain)


def test_exclude_is_idempotent() -> None:
    overlay = _overlay()
    overlay.exclude("com.example")
    once = overlay.snapshot()
    overlay.exclude("com.example")
    assert overlay.snapshot() == once
    assert once.excluded == {"com.example"}


def test_exclude_unpins() -> None:
    overlay = _overlay()
    assert overlay.pin("com.example")
    overlay.exclude("com.example")
    state = overlay.snapshot()
    assert "com.example" not in state.pinned
    assert "com.example" in state.excluded


def test_pin_after_exclude_is_noop() -> None:
    overlay = _overlay()
    overlay.exclude("com.example")
    assert overlay.pin("com.example") is False
    assert not overlay.is_pinned("com.example")

    overlay.include("com.example")
    assert overlay.pin("com.example") is True
    assert overlay.is_pinned("com.example")


def test_nickname_set_and_clear() -> None:
    overlay = _overlay()
    overlay.set_nickname("42", "  work phone ")
    assert overlay.nickname("42") == "work phone"
    overlay.set_nickname("42", "   ")
    assert overlay.nickname("42") is None
    overlay.set_nickname("42", "boss")
    overlay.set_nickname("42", None)
    assert overlay.snapshot().nicknames == {}


def test_clear_all_excluded_keeps_pins() -> None:
    overlay = _overlay()
    overlay.pin("a")
    overlay.exclude("b")
    overlay.exclude("c")
    overlay.clear_all_excluded()
    state = overlay.snapshot()
    assert state.excluded == set()
    assert state.pinned == {"a"}


def test_domains_are_isolated() -> None:
    store = MemoryPreferenceStore()
    apps = CustomizationOverlay(store, "apps")
    files = CustomizationOverlay(store, "files")
    apps.exclude("shared-key")
    files.set_nickname("shared-key", "notes")
    assert not files.is_excluded("shared-key")
    assert apps.nickname("shared-key") is None


def test_exclude_after_pin_wins_across_threads() -> None:
    overlay = _overlay()
    keys = [f"k{i}" for i in range(50)]

    def work(key: str) -> None:
        overlay.pin(key)
        overlay.exclude(key)

    threads = [threading.Thread(target=work, args=(k,)) for k in keys]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    state = overlay.snapshot()
    assert state.excluded == set(keys)
    assert state.pinned == set()
    assert overlay.held_key_count() == 0


def test_key_locks_do_not_accumulate() -> None:
    overlay = _overlay()
    for i in range(200):
        overlay.pin(f"k{i}")
        overlay.set_nickname(f"k{i}", "nick")
        overlay.exclude(f"k{i}")
    overlay.clear_all_excluded()
    assert overlay.held_key_count() == 0


def test_clear_all_excluded_waits_for_key_holders() -> None:
    overlay = _overlay()
    overlay.exclude("a")
    overlay.exclude("b")

    with overlay._locked("b"):
        worker = threading.Thread(target=overlay.clear_all_excluded)
        worker.start()
        worker.join(timeout=0.2)
        assert worker.is_alive()
        assert overlay.is_excluded("b")
    worker.join(timeout=5)

    assert not worker.is_alive()
    assert overlay.snapshot().excluded == set()
    assert overlay.held_key_count() == 0
