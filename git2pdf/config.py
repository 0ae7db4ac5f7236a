"""Configuration loading for git2pdf (.git2pdf.yml) and render settings."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import yaml

CONFIG_FILENAME = ".git2pdf.yml"

DEFAULT_PAPER_SIZE = "210x297"
DEFAULT_MARGINS = "10"
DEFAULT_THEME = "InspiredGitHub"
DISABLED_THEMES = {"none", "disabled"}
OUTPUT_FORMATS = ("pdf", "html")


class ConfigError(RuntimeError):
    """Raised when configuration values cannot be parsed."""


@dataclass(frozen=True)
class PageGeometry:
    """Page size and margins in millimetres."""

    width: float = 210.0
    height: float = 297.0
    margin_top: float = 10.0
    margin_right: float = 10.0
    margin_bottom: float = 10.0
    margin_left: float = 10.0

    @classmethod
    def parse(cls, paper_size: str, margins: str) -> "PageGeometry":
        width, height = parse_paper_size(paper_size)
        top, right, bottom, left = parse_margins(margins)
        if left + right >= width or top + bottom >= height:
            raise ConfigError(
                f"Margins {margins!r} leave no printable area on a {paper_size} page"
            )
        return cls(width, height, top, right, bottom, left)


@dataclass(frozen=True)
class RenderConfig:
    """Settings consumed by classification, rendering and assembly."""

    include_tests: bool = False
    parallel: bool = True
    modules: Tuple[str, ...] = ()
    theme: Optional[str] = DEFAULT_THEME
    font_size: float = 8.0
    font_path: Optional[Path] = None
    geometry: PageGeometry = field(default_factory=PageGeometry)
    page_break: bool = True
    columns: int = 2
    exclude_paths: Tuple[str, ...] = ()
    tab_width: int = 4

    @property
    def highlighting_enabled(self) -> bool:
        return self.theme is not None


@dataclass
class FontConfig:
    """Font settings from .git2pdf.yml."""

    size: Optional[float] = None
    path: Optional[Path] = None


@dataclass
class PageConfig:
    """Page layout settings from .git2pdf.yml."""

    size: Optional[str] = None
    margins: Optional[str] = None
    columns: Optional[int] = None
    page_break: Optional[bool] = None


@dataclass
class OutputConfig:
    """Where and how results are written."""

    dir: Optional[Path] = None
    format: Optional[str] = None


@dataclass
class Git2PdfConfig:
    """Represents the settings defined in .git2pdf.yml."""

    root: Path
    include_tests: Optional[bool] = None
    parallel: Optional[bool] = None
    modules: List[str] = field(default_factory=list)
    theme: Optional[str] = None
    font: FontConfig = field(default_factory=FontConfig)
    page: PageConfig = field(default_factory=PageConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    exclude_paths: List[str] = field(default_factory=list)
    cache_dir: Optional[Path] = None


def load_config(config_path: Path) -> Git2PdfConfig:
    """Load configuration from disk; a missing file yields empty settings."""
    config_file = _resolve_config_path(config_path)
    root = config_file.parent.resolve()

    if not config_file.exists():
        return Git2PdfConfig(root=root)

    data = _read_config(config_file)
    if not isinstance(data, dict):
        raise ConfigError(f"{config_file.name} must contain a mapping at the root")

    font_data = _as_dict(data.get("font"))
    font = FontConfig(
        size=_as_float(font_data.get("size")),
        path=_as_path(root, font_data.get("path")),
    )

    page_data = _as_dict(data.get("page"))
    page = PageConfig(
        size=_as_str(page_data.get("size")),
        margins=_as_str(page_data.get("margins")),
        columns=_as_int(page_data.get("columns")),
        page_break=_as_bool(page_data.get("page_break")),
    )

    output_data = _as_dict(data.get("output"))
    output = OutputConfig(
        dir=_as_path(root, output_data.get("dir")),
        format=_as_str(output_data.get("format")),
    )

    return Git2PdfConfig(
        root=root,
        include_tests=_as_bool(data.get("include_tests")),
        parallel=_as_bool(data.get("parallel")),
        modules=_as_str_list(data.get("modules")),
        theme=_as_str(data.get("theme")),
        font=font,
        page=page,
        output=output,
        exclude_paths=_as_str_list(data.get("exclude_paths")),
        cache_dir=_as_path(root, data.get("cache_dir")),
    )


def build_render_config(
    config: Git2PdfConfig | None = None,
    *,
    include_tests: Optional[bool] = None,
    parallel: Optional[bool] = None,
    modules: Optional[Sequence[str]] = None,
    theme: Optional[str] = None,
    font_size: Optional[float] = None,
    font_path: Optional[Path] = None,
    paper_size: Optional[str] = None,
    margins: Optional[str] = None,
    columns: Optional[int] = None,
    page_break: Optional[bool] = None,
) -> RenderConfig:
    """Merge CLI overrides, file settings and defaults into a RenderConfig."""
    file_config = config or Git2PdfConfig(root=Path.cwd())

    theme_name = _first(theme, file_config.theme, DEFAULT_THEME)
    size = _first(font_size, file_config.font.size, 8.0)
    if size <= 0:
        raise ConfigError(f"Font size must be positive, got {size}")
    column_count = _first(columns, file_config.page.columns, 2)
    if column_count < 1:
        raise ConfigError(f"Column count must be at least 1, got {column_count}")

    geometry = PageGeometry.parse(
        _first(paper_size, file_config.page.size, DEFAULT_PAPER_SIZE),
        _first(margins, file_config.page.margins, DEFAULT_MARGINS),
    )

    module_names = modules if modules is not None else file_config.modules
    return RenderConfig(
        include_tests=_first(include_tests, file_config.include_tests, False),
        parallel=_first(parallel, file_config.parallel, True),
        modules=tuple(name.strip() for name in module_names if name.strip()),
        theme=None if theme_name.strip().lower() in DISABLED_THEMES else theme_name,
        font_size=float(size),
        font_path=_first(font_path, file_config.font.path, None),
        geometry=geometry,
        page_break=_first(page_break, file_config.page.page_break, True),
        columns=column_count,
        exclude_paths=tuple(file_config.exclude_paths),
    )


def resolve_output_format(value: Optional[str], config: Git2PdfConfig | None = None) -> str:
    fmt = (_first(value, config.output.format if config else None, "pdf")).lower()
    if fmt not in OUTPUT_FORMATS:
        raise ConfigError(f"Unsupported output format {fmt!r}; expected one of {', '.join(OUTPUT_FORMATS)}")
    return fmt


def parse_paper_size(value: str) -> Tuple[float, float]:
    """Parse ``WIDTHxHEIGHT`` in millimetres."""
    parts = value.lower().split("x")
    if len(parts) != 2:
        raise ConfigError(
            f"Invalid paper size {value!r}. Expected WIDTHxHEIGHT (e.g., 210x297)"
        )
    try:
        width, height = (float(part.strip()) for part in parts)
    except ValueError as exc:
        raise ConfigError(f"Invalid paper size {value!r}: {exc}") from exc
    if width <= 0 or height <= 0:
        raise ConfigError(f"Paper dimensions must be positive, got {value!r}")
    return width, height


def parse_margins(value: str) -> Tuple[float, float, float, float]:
    """Parse CSS-style margins: ``all``, ``vertical horizontal`` or ``top right bottom left``."""
    try:
        parts = [float(part) for part in value.replace(",", " ").split()]
    except ValueError as exc:
        raise ConfigError(f"Invalid margin value in {value!r}") from exc
    if any(part < 0 for part in parts):
        raise ConfigError(f"Margins must not be negative, got {value!r}")
    if len(parts) == 1:
        return parts[0], parts[0], parts[0], parts[0]
    if len(parts) == 2:
        return parts[0], parts[1], parts[0], parts[1]
    if len(parts) == 4:
        return parts[0], parts[1], parts[2], parts[3]
    raise ConfigError(
        'Invalid margins format. Expected 1, 2, or 4 values (e.g., "10", "10 20", or "10 20 10 20")'
    )


def _resolve_config_path(config_path: Path) -> Path:
    config_path = config_path.expanduser()
    if config_path.is_dir():
        return (config_path / CONFIG_FILENAME).resolve()
    return config_path.resolve()


def _read_config(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read {path}: {exc}") from exc
    if not text.strip():
        return {}
    try:
        loaded = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse {path.name}: {exc}") from exc
    return loaded or {}


def _first(*values: Any) -> Any:
    for value in values:
        if value is not None:
            return value
    return None


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _as_str(value: Any) -> Optional[str]:
    return str(value) if isinstance(value, (str, int, float, bool)) else None


def _as_path(root: Path, value: Any) -> Optional[Path]:
    text = _as_str(value)
    if not text:
        return None
    path = Path(os.path.expanduser(text))
    return path if path.is_absolute() else root / path


def _as_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return None
    return None


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def _as_str_list(value: Any) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    if isinstance(value, Sequence):
        return [str(item) for item in value if isinstance(item, (str, int, float, bool))]
    return []


__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "Git2PdfConfig",
    "PageGeometry",
    "RenderConfig",
    "build_render_config",
    "load_config",
    "parse_margins",
    "parse_paper_size",
    "resolve_output_format",
]
