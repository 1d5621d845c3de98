"""文件枚举与输出路径映射。"""

from __future__ import annotations

from pathlib import Path

import pytest

from site_builder.core.exceptions import DestinationOutsideRootError
from site_builder.core.scanner import (
    destination_under,
    enumerate_files,
    expand_glob_spec,
    load_exclude_patterns,
    mirror_destination,
)


def touch(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(b"x")
    return path


def test_expand_glob_spec() -> None:
    assert expand_glob_spec("{jpg,jpeg,png,gif}") == ("*.jpg", "*.jpeg", "*.png", "*.gif")
    assert expand_glob_spec("css") == ("*.css",)
    assert expand_glob_spec("*.js") == ("*.js",)


def test_enumerate_recurses_and_filters_extensions(tmp_path: Path) -> None:
    root = tmp_path / "images"
    touch(root / "a.png")
    touch(root / "icons" / "b.png")
    touch(root / "icons" / "deep" / "c.PNG")
    touch(root / "photos" / "d.jpg")
    touch(root / "e.jpg")
    touch(root / "readme.txt")
    touch(root / "font.woff")

    found = enumerate_files(root, "{jpg,jpeg,png,gif}")

    assert len(found) == 5
    assert all(path.is_absolute() for path in found)
    assert {path.name for path in found} == {"a.png", "b.png", "c.PNG", "d.jpg", "e.jpg"}


def test_enumerate_missing_root_returns_empty(tmp_path: Path) -> None:
    assert enumerate_files(tmp_path / "nope", "{png}") == []


def test_exclude_patterns_match_name_or_relative_path(tmp_path: Path) -> None:
    root = tmp_path / "images"
    touch(root / "keep.png")
    touch(root / "draft.png")
    touch(root / "wip" / "other.png")

    exclude_file = tmp_path / "exclude.txt"
    exclude_file.write_text("# drafts\ndraft.png\n\nwip/*\n", encoding="utf-8")
    patterns = load_exclude_patterns(exclude_file)

    found = enumerate_files(root, "png", patterns)

    assert patterns == ("draft.png", "wip/*")
    assert [path.name for path in found] == ["keep.png"]


def test_missing_exclude_file_yields_no_patterns(tmp_path: Path) -> None:
    assert load_exclude_patterns(tmp_path / "missing.txt") == ()
    assert load_exclude_patterns(None) == ()


def test_mirror_destination_stays_under_root(tmp_path: Path) -> None:
    source_root = tmp_path / "public" / "images"
    source = touch(source_root / "icons" / "a.png")

    destination = mirror_destination(source, source_root, tmp_path / "distrib" / "images")

    assert destination == (tmp_path / "distrib" / "images" / "icons" / "a.png").resolve()


def test_destination_outside_root_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(DestinationOutsideRootError):
        destination_under(tmp_path / "distrib", "../escape.js")

    with pytest.raises(DestinationOutsideRootError):
        mirror_destination(touch(tmp_path / "elsewhere.png"), tmp_path / "public", tmp_path / "distrib")
