from qsearch.files.patterns import build_matcher, candidate_path, matches, normalize_pattern, normalize_patterns
from qsearch.models import DeviceFile


def test_segment_pattern() -> None:
    accepts = build_matcher(["*/Download/*"], [])
    assert accepts("Download/receipts/invoice.pdf")
    assert not accepts("Downloads/invoice.pdf")
    assert accepts("/storage//Download\\invoice.pdf")


def test_blacklist_wins() -> None:
    accepts = build_matcher(["*/DCIM/*"], ["*/Camera/*"])
    assert accepts("DCIM/Screenshots/a.png")
    assert not accepts("DCIM/Camera/a.jpg")
    assert not accepts("Pictures/a.jpg")

    same = build_matcher(["*/DCIM/*"], ["*/DCIM/*"])
    assert not same("DCIM/a.jpg")


def test_empty_lists_accept_everything() -> None:
    accepts = build_matcher([], [])
    assert accepts("anything/at/all.txt")
    assert accepts("")


def test_unsupported_shapes_match_nothing() -> None:
    path = "download/a.pdf"
    assert not matches(path, "download")
    assert not matches(path, "*/download")
    assert not matches(path, "download/*")
    assert not matches(path, "*//*")


def test_multi_segment_pattern() -> None:
    assert matches("x/a/b/c.txt", "*/a/b/*")
    assert not matches("x/a/bc/c.txt", "*/a/b/*")


def test_normalize_pattern() -> None:
    assert normalize_pattern("  ") is None
    assert normalize_pattern("/") is None
    assert normalize_pattern("*/Download/*") == "*/download/*"
    assert normalize_pattern("\\\\Download\\\\") == "download/"
    assert normalize_patterns(["*/A/*", " */a/* ", ""]) == {"*/a/*"}


def test_candidate_path() -> None:
    file = DeviceFile(uri="content://1", display_name="Invoice.pdf", relative_path="Download/Sub/")
    assert candidate_path(file) == "download/sub/invoice.pdf"
    assert candidate_path(DeviceFile(uri="content://2", display_name="a.txt")) == "a.txt"
    assert candidate_path(DeviceFile(uri="content://3", display_name="  ")) == ""
