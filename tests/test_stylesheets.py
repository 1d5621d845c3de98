"""CSS 压缩。"""

from __future__ import annotations

import asyncio
from pathlib import Path

from site_builder.core.config import BuildConfig
from site_builder.processing.pipeline import create_context
from site_builder.processing.stylesheets import minify_css, process_stylesheets

SITE_CSS = """
/* layout */
.scorecard {
    color : #ff0000 ;
    margin : 0px 0px 0px 0px;
}
"""


def make_config(source: Path, output: Path) -> BuildConfig:
    return BuildConfig(css_source=source, css_destination=output, optimize_css=True, max_workers=1)


def test_minify_css_removes_comments_and_whitespace() -> None:
    minified = minify_css(SITE_CSS)

    assert "layout" not in minified
    assert minified.startswith(".scorecard{")
    assert len(minified) < len(SITE_CSS)


def test_process_stylesheets_mirrors_tree(tmp_path: Path) -> None:
    source = tmp_path / "css"
    output = tmp_path / "distrib" / "css"
    (source / "pages").mkdir(parents=True)
    (source / "site.css").write_text(SITE_CSS, encoding="utf-8")
    (source / "pages" / "home.css").write_text(SITE_CSS, encoding="utf-8")
    (source / "empty.css").write_text("   \n", encoding="utf-8")
    context = create_context(make_config(source, output))

    outcomes = asyncio.run(process_stylesheets(context))

    statuses = {outcome.source_path.name: outcome.status for outcome in outcomes}
    assert statuses == {"site.css": "minified", "home.css": "minified", "empty.css": "skip-empty"}
    assert (output / "pages" / "home.css").read_text(encoding="utf-8") == minify_css(SITE_CSS)
    assert not (output / "empty.css").exists()
    assert context.stats.total_files == 2
    assert context.stats.total_bytes_considered == 2 * len(SITE_CSS.encode())
