"""Tests for git2pdf.config."""

from __future__ import annotations

from pathlib import Path

import pytest

from git2pdf.config import (
    ConfigError,
    Git2PdfConfig,
    PageGeometry,
    build_render_config,
    load_config,
    parse_margins,
    parse_paper_size,
    resolve_output_format,
)


def test_load_config_returns_defaults_when_missing(tmp_path: Path) -> None:
    config = load_config(tmp_path)

    assert isinstance(config, Git2PdfConfig)
    assert config.root == tmp_path.resolve()
    assert config.include_tests is None
    assert config.modules == []
    assert config.theme is None
    assert config.font.size is None
    assert config.page.size is None
    assert config.output.dir is None
    assert config.exclude_paths == []


def test_load_config_parses_expected_fields(tmp_path: Path) -> None:
    config_file = tmp_path / ".git2pdf.yml"
    config_file.write_text(
        """
include_tests: true
parallel: "no"
modules: core, cli
theme: Solarized (dark)
font:
  size: 9.5
  path: fonts/Mono.ttf
page:
  size: 148x210
  margins: 5 8
  columns: 1
  page_break: false
output:
  dir: out
  format: html
exclude_paths:
  - src/generated/
cache_dir: /var/tmp/git2pdf
""",
        encoding="utf-8",
    )

    config = load_config(config_file)

    assert config.include_tests is True
    assert config.parallel is False
    assert config.modules == ["core", "cli"]
    assert config.theme == "Solarized (dark)"
    assert config.font.size == 9.5
    assert config.font.path == tmp_path.resolve() / "fonts" / "Mono.ttf"
    assert config.page.size == "148x210"
    assert config.page.margins == "5 8"
    assert config.page.columns == 1
    assert config.page.page_break is False
    assert config.output.dir == tmp_path.resolve() / "out"
    assert config.output.format == "html"
    assert config.exclude_paths == ["src/generated/"]
    assert config.cache_dir == Path("/var/tmp/git2pdf")


def test_load_config_rejects_invalid_yaml(tmp_path: Path) -> None:
    (tmp_path / ".git2pdf.yml").write_text("page: [unclosed\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_load_config_rejects_non_mapping(tmp_path: Path) -> None:
    (tmp_path / ".git2pdf.yml").write_text("- just\n- a list\n", encoding="utf-8")

    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_build_render_config_defaults() -> None:
    render = build_render_config()

    assert render.include_tests is False
    assert render.parallel is True
    assert render.modules == ()
    assert render.theme == "InspiredGitHub"
    assert render.font_size == 8.0
    assert render.columns == 2
    assert render.page_break is True
    assert render.geometry == PageGeometry(210.0, 297.0, 10.0, 10.0, 10.0, 10.0)


def test_cli_values_take_precedence_over_file(tmp_path: Path) -> None:
    file_config = Git2PdfConfig(root=tmp_path, theme="monokai", include_tests=True, modules=["a"])
    file_config.font.size = 11
    file_config.page.columns = 3

    render = build_render_config(
        file_config,
        theme="none",
        include_tests=False,
        font_size=7,
        modules=["b", " "],
    )

    assert render.theme is None
    assert render.highlighting_enabled is False
    assert render.include_tests is False
    assert render.font_size == 7.0
    assert render.columns == 3
    assert render.modules == ("b",)


@pytest.mark.parametrize(
    ("kwargs", "message"),
    [
        ({"font_size": 0}, "Font size"),
        ({"columns": 0}, "Column count"),
        ({"paper_size": "A4"}, "paper size"),
        ({"margins": "200"}, "printable area"),
    ],
)
def test_build_render_config_rejects_invalid_values(kwargs: dict, message: str) -> None:
    with pytest.raises(ConfigError, match=message):
        build_render_config(**kwargs)


def test_parse_paper_size() -> None:
    assert parse_paper_size("210x297") == (210.0, 297.0)
    assert parse_paper_size("8.5 X 11") == (8.5, 11.0)
    with pytest.raises(ConfigError):
        parse_paper_size("0x297")


def test_parse_margins_css_order() -> None:
    assert parse_margins("10") == (10.0, 10.0, 10.0, 10.0)
    assert parse_margins("5 8") == (5.0, 8.0, 5.0, 8.0)
    assert parse_margins("1,2,3,4") == (1.0, 2.0, 3.0, 4.0)
    with pytest.raises(ConfigError):
        parse_margins("1 2 3")
    with pytest.raises(ConfigError):
        parse_margins("-1")


def test_resolve_output_format(tmp_path: Path) -> None:
    file_config = Git2PdfConfig(root=tmp_path)
    file_config.output.format = "HTML"

    assert resolve_output_format(None) == "pdf"
    assert resolve_output_format(None, file_config) == "html"
    assert resolve_output_format("pdf", file_config) == "pdf"
    with pytest.raises(ConfigError):
        resolve_output_format("docx")
