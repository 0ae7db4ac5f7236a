"""Syntax highlighting rules and theme resolution backed by Pygments."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple, Type

from pygments.lexer import Lexer
from pygments.lexers import TextLexer, get_lexer_for_filename
from pygments.style import Style
from pygments.styles import get_all_styles, get_style_by_name
from pygments.token import Token
from pygments.util import ClassNotFound

from ..logging import get_logger

DEFAULT_STYLE = "default"

# Theme names accepted by earlier releases, mapped onto Pygments styles.
_THEME_ALIASES = {
    "inspiredgithub": "default",
    "solarized (light)": "solarized-light",
    "solarized (dark)": "solarized-dark",
    "base16-ocean.dark": "monokai",
    "base16-eighties.dark": "monokai",
    "base16-mocha.dark": "monokai",
    "base16-ocean.light": "friendly",
}

logger = get_logger("highlight")


@dataclass(frozen=True)
class StyleKey:
    """Visual attributes of a highlighted span."""

    color: Optional[str] = None
    bold: bool = False
    italic: bool = False
    underline: bool = False

    @property
    def is_default(self) -> bool:
        return self.color is None and not (self.bold or self.italic or self.underline)

    def to_css(self) -> str:
        parts = []
        if self.color:
            parts.append(f"color: {self.color}")
        if self.bold:
            parts.append("font-weight: bold")
        if self.italic:
            parts.append("font-style: italic")
        if self.underline:
            parts.append("text-decoration: underline")
        return "; ".join(parts)


DEFAULT_KEY = StyleKey()

Span = Tuple[StyleKey, str]


@dataclass(frozen=True)
class Theme:
    """A resolved Pygments style with page colours derived from it."""

    name: str
    style: Type[Style]
    background: str
    foreground: str

    @classmethod
    def from_style_name(cls, name: str) -> "Theme":
        style = get_style_by_name(name)
        background = _normalise_color(style.background_color) or "#ffffff"
        foreground = _normalise_color(style.style_for_token(Token).get("color")) or "#000000"
        return cls(name=name, style=style, background=background, foreground=foreground)

    def key_for(self, token_type) -> StyleKey:
        attrs = self.style.style_for_token(token_type)
        return StyleKey(
            color=_normalise_color(attrs.get("color")),
            bold=bool(attrs.get("bold")),
            italic=bool(attrs.get("italic")),
            underline=bool(attrs.get("underline")),
        )


class HighlightRules:
    """Selects a lexer for a file and splits its tokens into styled lines."""

    def lexer_for(self, filename: str) -> Lexer:
        try:
            return get_lexer_for_filename(filename, stripnl=False, ensurenl=False)
        except ClassNotFound:
            return TextLexer(stripnl=False, ensurenl=False)

    def tokenize_document(self, text: str, lexer: Lexer, theme: Theme) -> List[List[Span]]:
        """Tokenize a whole document and return its spans grouped by line."""
        lines: List[List[Span]] = [[]]
        for token_type, value in lexer.get_tokens(text):
            key = theme.key_for(token_type)
            for index, chunk in enumerate(value.split("\n")):
                if index:
                    lines.append([])
                if chunk:
                    lines[-1].append((key, chunk))
        return lines

    def tokenize(self, line: str, lexer: Lexer, theme: Theme) -> List[Span]:
        """Tokenize a single line in isolation."""
        spans: List[Span] = []
        for token_type, value in lexer.get_tokens(line):
            value = value.replace("\n", "")
            if value:
                spans.append((theme.key_for(token_type), value))
        return spans


ThemeResolver = Callable[[str], Optional[str]]


def _resolve_exact(name: str) -> Optional[str]:
    return name if name in set(get_all_styles()) else None


def _resolve_alias(name: str) -> Optional[str]:
    return _THEME_ALIASES.get(name.strip().lower())


def _resolve_casefold(name: str) -> Optional[str]:
    wanted = name.strip().lower().replace(" ", "-").replace("_", "-")
    for candidate in sorted(get_all_styles()):
        if candidate.lower() == wanted:
            return candidate
    return None


THEME_RESOLVERS: Sequence[Tuple[str, ThemeResolver]] = (
    ("style", _resolve_exact),
    ("alias", _resolve_alias),
    ("case-insensitive", _resolve_casefold),
)


def resolve_theme(name: Optional[str]) -> Optional[Theme]:
    """Resolve a theme name, falling back to the default style.

    Returns None when highlighting is disabled (``name`` is None).
    """
    if name is None:
        return None
    for label, resolver in THEME_RESOLVERS:
        style_name = resolver(name)
        if style_name is not None:
            logger.debug("Theme %r resolved by %s lookup to %s", name, label, style_name)
            return Theme.from_style_name(style_name)
    logger.warning("Unknown theme %r; using %s", name, DEFAULT_STYLE)
    return Theme.from_style_name(DEFAULT_STYLE)


def _normalise_color(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    value = value.strip()
    if not value.startswith("#"):
        value = f"#{value}"
    if len(value) == 4:
        value = "#" + "".join(ch * 2 for ch in value[1:])
    return value.lower()


__all__ = [
    "DEFAULT_KEY",
    "HighlightRules",
    "Span",
    "StyleKey",
    "THEME_RESOLVERS",
    "Theme",
    "resolve_theme",
]
