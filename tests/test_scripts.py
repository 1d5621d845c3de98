"""JavaScript 页面包与公共库包。"""

from __future__ import annotations

import asyncio
from pathlib import Path

from calmjs.parse import es5

from site_builder.core.config import BuildConfig
from site_builder.processing.pipeline import create_context
from site_builder.processing.scripts import (
    BUNDLE_SEPARATOR,
    build_library_bundle,
    bundle_output_name,
    compress_page_bundles,
    minify_javascript,
)

COMMON_JS = """
/*! Putt Putt Planet common helpers */
function addStrokes(first, second) {
    // total strokes for two holes
    return first + second;
}
"""

HOME_JS = """
var homePage = {
    start: function () {
        return addStrokes(2, 3);
    }
};
"""

ABOUT_JS = """
var aboutPage = { title: "About us" };
"""


def write_sources(root: Path) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    (root / "common.js").write_text(COMMON_JS, encoding="utf-8")
    (root / "home.js").write_text(HOME_JS, encoding="utf-8")
    (root / "about.js").write_text(ABOUT_JS, encoding="utf-8")
    (root / "bootstrap.bundle.min.js").write_text("!function(){}();", encoding="utf-8")
    return root


def make_config(source: Path, output: Path, **overrides) -> BuildConfig:
    values = dict(
        js_source=source,
        js_destination=output,
        page_manifest={"home": ("common.js", "home.js"), "about": ("common.js", "about.js")},
        libs_to_copy=("bootstrap.bundle.min.js",),
        libs_to_combine=("common.js", "home.js"),
        combined_lib_file_name="enginesis.min.js",
        max_workers=2,
    )
    values.update(overrides)
    return BuildConfig(**values)


def test_bundle_output_name_uses_last_member() -> None:
    assert bundle_output_name(["common.js", "pages/home.js"]) == "home.min.js"


def test_two_page_bundles_produce_two_outputs(tmp_path: Path) -> None:
    source = write_sources(tmp_path / "js")
    output = tmp_path / "distrib" / "js"
    context = create_context(make_config(source, output))

    outcomes = asyncio.run(compress_page_bundles(context))

    assert {outcome.status for outcome in outcomes} == {"bundled"}
    assert (output / "home.min.js").exists()
    assert (output / "about.min.js").exists()
    assert context.stats.total_files == 4

    expected_original = 2 * len(COMMON_JS.encode()) + len(HOME_JS.encode()) + len(ABOUT_JS.encode())
    assert context.stats.total_bytes_considered == expected_original
    assert context.stats.total_bytes_compressed == (
        (output / "home.min.js").stat().st_size + (output / "about.min.js").stat().st_size
    )


def test_minified_bundle_parses(tmp_path: Path) -> None:
    source = write_sources(tmp_path / "js")
    output = tmp_path / "out"
    context = create_context(make_config(source, output))

    asyncio.run(compress_page_bundles(context))

    for name in ("home.min.js", "about.min.js"):
        code = (output / name).read_text(encoding="utf-8")
        es5(code)
        assert "total strokes" not in code
        assert "addStrokes" in code
    home = (output / "home.min.js").read_text(encoding="utf-8")
    assert "homePage" in home
    assert len(home) < len(COMMON_JS) + len(HOME_JS)


def test_ignored_members_are_skipped(tmp_path: Path) -> None:
    source = write_sources(tmp_path / "js")
    output = tmp_path / "out"
    context = create_context(make_config(source, output, js_files_to_ignore=("common.js",)))

    outcomes = asyncio.run(compress_page_bundles(context))

    assert all(outcome.file_count == 1 for outcome in outcomes)
    assert "addStrokes(first" not in (output / "home.min.js").read_text(encoding="utf-8")
    assert context.stats.total_files == 2


def test_unreadable_member_fails_only_its_bundle(tmp_path: Path) -> None:
    source = write_sources(tmp_path / "js")
    output = tmp_path / "out"
    manifest = {"home": ("common.js", "home.js"), "broken": ("missing.js", "broken.js")}
    context = create_context(make_config(source, output, page_manifest=manifest))

    outcomes = asyncio.run(compress_page_bundles(context))

    statuses = {outcome.source_path.name: outcome.status for outcome in outcomes}
    assert statuses == {"home.js": "bundled", "broken.js": "error-read"}
    assert (output / "home.min.js").exists()
    assert not (output / "broken.min.js").exists()
    assert context.stats.total_files == 2


def test_compression_disabled_passes_sources_through() -> None:
    sources = [COMMON_JS, HOME_JS]

    assert minify_javascript(sources, compress=False, mangle=False) == BUNDLE_SEPARATOR.join(sources)


MANGLE_JS = """
function scoreHole(longParameterName) {
    var localVariable = longParameterName * 2;
    return localVariable + 1;
}
"""


def test_mangle_renames_local_identifiers() -> None:
    mangled = minify_javascript([MANGLE_JS], compress=True, mangle=True)

    es5(mangled)
    assert "scoreHole" in mangled
    assert "longParameterName" not in mangled
    assert "localVariable" not in mangled


def test_compress_without_mangle_keeps_identifiers_and_license() -> None:
    compressed = minify_javascript([COMMON_JS, MANGLE_JS], compress=True, mangle=False)

    es5(compressed)
    assert "longParameterName" in compressed
    assert "localVariable" in compressed
    assert "return first+second" in compressed
    assert "/*! Putt Putt Planet common helpers */" in compressed
    assert "total strokes" not in compressed


def test_syntax_error_fails_only_its_bundle(tmp_path: Path) -> None:
    source = write_sources(tmp_path / "js")
    (source / "broken.js").write_text("function (oops {", encoding="utf-8")
    output = tmp_path / "out"
    manifest = {"home": ("common.js", "home.js"), "broken": ("broken.js",)}
    context = create_context(make_config(source, output, page_manifest=manifest))

    outcomes = asyncio.run(compress_page_bundles(context))

    statuses = {outcome.source_path.name: outcome.status for outcome in outcomes}
    assert statuses == {"home.js": "bundled", "broken.js": "error-minify"}
    assert not (output / "broken.min.js").exists()
    assert context.stats.total_files == 2


def test_duplicate_output_name_is_rejected(tmp_path: Path) -> None:
    source = write_sources(tmp_path / "js")
    (source / "pages").mkdir()
    (source / "pages" / "home.js").write_text("var otherHome = 1;\n", encoding="utf-8")
    output = tmp_path / "out"
    manifest = {"home": ("common.js", "home.js"), "mirror": ("about.js", "pages/home.js")}
    context = create_context(make_config(source, output, page_manifest=manifest))

    outcomes = asyncio.run(compress_page_bundles(context))

    statuses = sorted(outcome.status for outcome in outcomes)
    assert statuses == ["bundled", "error-duplicate-output"]
    assert "homePage" in (output / "home.min.js").read_text(encoding="utf-8")
    assert context.stats.total_files == 2
    assert context.stats.total_bytes_compressed == (output / "home.min.js").stat().st_size


def test_page_bundle_cannot_overwrite_combined_library(tmp_path: Path) -> None:
    source = write_sources(tmp_path / "js")
    output = tmp_path / "out"
    manifest = {"lib": ("home.js", "enginesis.js")}
    context = create_context(make_config(source, output, page_manifest=manifest))

    outcomes = asyncio.run(compress_page_bundles(context))

    assert [outcome.status for outcome in outcomes] == ["error-duplicate-output"]
    assert not (output / "enginesis.min.js").exists()


def test_library_bundle_copies_and_combines(tmp_path: Path) -> None:
    source = write_sources(tmp_path / "js")
    output = tmp_path / "distrib" / "js"
    context = create_context(make_config(source, output))

    outcomes = asyncio.run(build_library_bundle(context))

    assert [outcome.status for outcome in outcomes] == ["copied", "bundled"]
    assert (output / "bootstrap.bundle.min.js").read_bytes() == (source / "bootstrap.bundle.min.js").read_bytes()
    combined = (output / "enginesis.min.js").read_text(encoding="utf-8")
    assert "addStrokes" in combined and "homePage" in combined
    assert context.stats.total_files == 3


def test_missing_library_is_logged_and_skipped(tmp_path: Path) -> None:
    source = write_sources(tmp_path / "js")
    output = tmp_path / "out"
    config = make_config(source, output, libs_to_copy=("jquery.min.js", "bootstrap.bundle.min.js"))
    context = create_context(config)

    outcomes = asyncio.run(build_library_bundle(context))

    statuses = {outcome.source_path.name: outcome.status for outcome in outcomes}
    assert statuses["jquery.min.js"] == "error-stat"
    assert statuses["bootstrap.bundle.min.js"] == "copied"
    assert (output / "enginesis.min.js").exists()
