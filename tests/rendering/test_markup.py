"""HTML output tests."""

from __future__ import annotations

from pathlib import Path

from git2pdf.config import RenderConfig
from git2pdf.models import FileCategory, Module
from git2pdf.rendering.highlight import StyleKey
from git2pdf.rendering.listing import StyledListing
from git2pdf.rendering.markup import HtmlRenderer, merge_palettes

RED = StyleKey(color="#ff0000")
BLUE = StyleKey(color="#0000ff", bold=True)


def _listing(relative_path: str, lines, palette) -> StyledListing:
    return StyledListing(
        relative_path=relative_path,
        module_path="crate",
        category=FileCategory.SOURCE,
        lines=lines,
        palette=palette,
    )


def test_merge_palettes_shares_equal_styles() -> None:
    first = _listing("src/a.rs", [[("c1", "fn"), (None, " a")]], {"c1": RED})
    second = _listing("src/b.rs", [[("c1", "x"), ("c2", "y")]], {"c1": BLUE, "c2": RED})

    merged, palette = merge_palettes([first, second])

    assert palette == {"c1": RED, "c2": BLUE}
    assert merged[0].lines == [[("c1", "fn"), (None, " a")]]
    assert merged[1].lines == [[("c2", "x"), ("c1", "y")]]
    assert first.lines == [[("c1", "fn"), (None, " a")]]


def test_render_module_html(tmp_path: Path) -> None:
    module = Module(
        name="demo",
        root_path=tmp_path,
        is_workspace_member=True,
        version="1.2.3",
        description="A <demo> crate",
    )
    listing = _listing("src/lib.rs", [[("c1", "fn"), (None, " main() {}")], []], {"c1": BLUE})

    document = HtmlRenderer().render_module(
        module, [listing], RenderConfig(columns=2, page_break=True), commit="abc123"
    )

    assert "<title>demo - Code Review</title>" in document
    assert "demo v1.2.3" in document
    assert "(workspace member)" in document
    assert "Commit: abc123" in document
    assert "A &lt;demo&gt; crate" in document
    assert ".c1 { color: #0000ff; font-weight: bold }" in document
    assert '<span class="c1">fn</span>' in document
    assert "column-count: 2" in document
    assert "page-break-after: always" in document
    assert '<span class="line-number">2</span>' in document


def test_render_module_single_column_without_page_breaks(tmp_path: Path) -> None:
    module = Module(name="solo", root_path=tmp_path)
    listing = _listing("src/main.rs", [[(None, "a < b")]], {})

    document = HtmlRenderer().render_module(module, [listing], RenderConfig(columns=1, page_break=False))

    assert "column-count" not in document
    assert "page-break-after" not in document
    assert "a &lt; b" in document
