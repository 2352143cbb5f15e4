from pathlib import Path

from core.bee_converter.utils import atomic_write, byte_size, iter_html_files, slugify


def test_slugify_basic() -> None:
    assert slugify("Spring Sale: 50% off!") == "Spring-Sale-50-off"


def test_slugify_empty_falls_back() -> None:
    assert slugify("???") == "template"


def test_byte_size_counts_utf8_bytes() -> None:
    assert byte_size("café") == 5


def test_atomic_write_replaces_content(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "out.json"
    atomic_write(target, "one")
    atomic_write(target, "two")
    assert target.read_text(encoding="utf-8") == "two"
    assert [p.name for p in target.parent.iterdir()] == ["out.json"]


def test_iter_html_files_filters_directories(tmp_path: Path) -> None:
    (tmp_path / "b.html").write_text("<html></html>", encoding="utf-8")
    (tmp_path / "a.htm").write_text("<html></html>", encoding="utf-8")
    (tmp_path / "notes.txt").write_text("skip", encoding="utf-8")
    explicit = tmp_path / "notes.txt"
    found = list(iter_html_files([tmp_path, explicit]))
    assert [p.name for p in found] == ["a.htm", "b.html", "notes.txt"]
