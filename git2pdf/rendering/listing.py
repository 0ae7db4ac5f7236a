"""Render one classified file into a styled listing."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from pygments.lexer import Lexer

from ..config import RenderConfig
from ..logging import get_logger
from ..models import ClassifiedFile, FileCategory
from .highlight import DEFAULT_KEY, HighlightRules, Span, StyleKey, Theme

logger = get_logger("listing")

# A rendered span: palette class name (None for unstyled text) and its text.
StyledSpan = Tuple[Optional[str], str]


class RenderError(RuntimeError):
    """Raised when a source file cannot be turned into a listing."""

    def __init__(self, path: object, reason: object) -> None:
        super().__init__(f"Failed to render {path}: {reason}")
        self.path = path


@dataclass
class StyledListing:
    """Line-numbered, palette-styled markup for one file."""

    relative_path: str
    module_path: str
    category: FileCategory
    lines: List[List[StyledSpan]]
    palette: Dict[str, StyleKey] = field(default_factory=dict)
    background: str = "#ffffff"
    foreground: str = "#000000"
    has_inline_tests: bool = False
    degraded_lines: int = 0

    @property
    def line_count(self) -> int:
        return len(self.lines)


def render_listing(
    file: ClassifiedFile,
    rules: HighlightRules,
    theme: Optional[Theme],
    config: RenderConfig,
) -> StyledListing:
    """Read *file* and return its listing.

    Without a theme every line is a single unstyled span. With one, distinct
    style keys are collected into a palette of ``c1``, ``c2``, ... classes.
    A line the highlighter cannot handle falls back to unstyled text.
    """
    try:
        content = file.absolute_path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise RenderError(file.relative_path, exc) from exc

    source_lines = split_lines(content, config.tab_width)
    listing = StyledListing(
        relative_path=file.relative_path,
        module_path=file.module_path,
        category=file.category,
        lines=[],
        has_inline_tests="#[test]" in content or "#[cfg(test)]" in content,
    )

    if theme is None:
        listing.lines = [[(None, line)] if line else [] for line in source_lines]
        return listing

    listing.background = theme.background
    listing.foreground = theme.foreground
    lexer = rules.lexer_for(file.absolute_path.name)
    tokenized, degraded = _highlight(source_lines, rules, lexer, theme, file.relative_path)
    listing.degraded_lines = degraded

    classes: Dict[StyleKey, str] = {}
    for spans in tokenized:
        line: List[StyledSpan] = []
        for key, text in spans:
            if key.is_default:
                line.append((None, text))
                continue
            name = classes.get(key)
            if name is None:
                name = f"c{len(classes) + 1}"
                classes[key] = name
                listing.palette[name] = key
            line.append((name, text))
        listing.lines.append(line)
    return listing


def split_lines(content: str, tab_width: int = 4) -> List[str]:
    """Split text into lines without terminators, expanding tabs."""
    text = content.lstrip("\ufeff").replace("\r\n", "\n").replace("\r", "\n")
    if text.endswith("\n"):
        text = text[:-1]
    if not text:
        return []
    return [line.expandtabs(tab_width) for line in text.split("\n")]


def _highlight(
    source_lines: List[str],
    rules: HighlightRules,
    lexer: Lexer,
    theme: Theme,
    path: str,
) -> Tuple[List[List[Span]], int]:
    if not source_lines:
        return [], 0

    document: List[List[Span]] = []
    try:
        document = rules.tokenize_document("\n".join(source_lines), lexer, theme)
    except Exception as exc:
        logger.debug("Whole-file highlighting failed for %s: %s", path, exc)
    if len(document) != len(source_lines):
        document = [[] for _ in source_lines]

    result: List[List[Span]] = []
    degraded = 0
    for index, line in enumerate(source_lines):
        spans = document[index]
        if _joined(spans) != line:
            spans = _highlight_line(line, rules, lexer, theme)
            if spans is None:
                degraded += 1
                spans = [(DEFAULT_KEY, line)] if line else []
        result.append(spans)

    if degraded:
        logger.debug("%d line(s) of %s rendered without highlighting", degraded, path)
    return result, degraded


def _highlight_line(line: str, rules: HighlightRules, lexer: Lexer, theme: Theme) -> Optional[List[Span]]:
    try:
        spans = rules.tokenize(line, lexer, theme)
    except Exception:
        return None
    return spans if _joined(spans) == line else None


def _joined(spans: List[Span]) -> str:
    return "".join(text for _, text in spans)


__all__ = ["RenderError", "StyledListing", "StyledSpan", "render_listing", "split_lines"]
