"""Per-module resource pool shared read-only by every render task."""

from __future__ import annotations

import hashlib
import io
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from reportlab.lib.fonts import addMapping
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont, TTFError

from ..config import RenderConfig
from ..logging import get_logger
from .highlight import HighlightRules, Theme, resolve_theme

LEADING_RATIO = 1.15

logger = get_logger("resources")


class ResourceError(RuntimeError):
    """Raised when fonts or other shared resources cannot be prepared."""


@dataclass(frozen=True)
class FontFace:
    """A monospace font family and its metrics at the configured size."""

    name: str
    size: float
    char_width: float
    leading: float


@dataclass(frozen=True)
class ResourcePool:
    """Fonts, theme and highlighting rules built once for one module."""

    font: FontFace
    theme: Optional[Theme]
    rules: HighlightRules

    @classmethod
    def build(cls, config: RenderConfig) -> "ResourcePool":
        font = load_font(config.font_path, config.font_size)
        theme = resolve_theme(config.theme) if config.highlighting_enabled else None
        logger.debug(
            "Prepared resources: font=%s size=%.1f theme=%s",
            font.name,
            font.size,
            theme.name if theme else "disabled",
        )
        return cls(font=font, theme=theme, rules=HighlightRules())


def load_font(font_path: Path | None, size: float) -> FontFace:
    """Return the built-in Courier family, or register a TrueType font once."""
    if font_path is None:
        return _face("Courier", size)

    try:
        data = Path(font_path).read_bytes()
    except OSError as exc:
        raise ResourceError(f"Failed to read font {font_path}: {exc}") from exc

    name = f"Git2PdfMono-{hashlib.sha256(data).hexdigest()[:12]}"
    if name not in pdfmetrics.getRegisteredFontNames():
        try:
            pdfmetrics.registerFont(TTFont(name, io.BytesIO(data)))
        except TTFError as exc:
            raise ResourceError(f"Failed to load font {font_path}: {exc}") from exc
        for bold in (0, 1):
            for italic in (0, 1):
                addMapping(name, bold, italic, name)
        logger.debug("Registered font %s from %s", name, font_path)
    return _face(name, size)


def _face(name: str, size: float) -> FontFace:
    return FontFace(
        name=name,
        size=size,
        char_width=pdfmetrics.stringWidth("M", name, size),
        leading=round(size * LEADING_RATIO, 2),
    )


__all__ = ["FontFace", "ResourceError", "ResourcePool", "load_font"]
