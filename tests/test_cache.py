import pytest

from qsearch.cache import CandidateCache


def test_stale_refresh_is_dropped() -> None:
    cache: CandidateCache[str] = CandidateCache("apps")
    older = cache.begin_refresh()
    newer = cache.begin_refresh()

    assert cache.complete_refresh(newer, ["new"])
    assert not cache.complete_refresh(older, ["old"])
    assert cache.items == ("new",)


def test_in_order_refreshes_apply() -> None:
    cache: CandidateCache[str] = CandidateCache("apps")
    first = cache.begin_refresh()
    assert cache.complete_refresh(first, ["a"])
    second = cache.begin_refresh()
    assert cache.complete_refresh(second, ["b", "c"])
    assert cache.items == ("b", "c")
    assert cache.is_loaded()


def test_failed_loader_keeps_previous(caplog: pytest.LogCaptureFixture) -> None:
    cache: CandidateCache[str] = CandidateCache("contacts")
    cache.replace(["kept"])

    def boom() -> list[str]:
        raise RuntimeError("provider unavailable")

    assert cache.refresh(boom) is False
    assert cache.items == ("kept",)
    assert "failed to load contacts" in caplog.text


def test_normalize_and_clear() -> None:
    cache: CandidateCache[int] = CandidateCache("files", normalize=lambda xs: sorted(set(xs)))
    cache.replace([3, 1, 3, 2])
    assert cache.items == (1, 2, 3)
    cache.clear()
    assert cache.items == ()
    assert not cache.is_loaded()
