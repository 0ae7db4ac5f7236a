"""HTML output for a whole module, rendered with Jinja2 templates."""

from __future__ import annotations

from dataclasses import replace
from typing import Dict, List, Optional, Sequence, Tuple

from jinja2 import Environment, PackageLoader, select_autoescape

from ..config import RenderConfig
from ..models import Module
from .highlight import StyleKey
from .listing import StyledListing


class HtmlRenderer:
    """Renders a module's listings into one self-contained HTML document."""

    def __init__(self, env: Environment | None = None) -> None:
        self._env = env or _create_env()

    def render_module(
        self,
        module: Module,
        listings: Sequence[StyledListing],
        config: RenderConfig,
        *,
        commit: Optional[str] = None,
    ) -> str:
        merged, palette = merge_palettes(listings)
        background = listings[0].background if listings else "#ffffff"
        foreground = listings[0].foreground if listings else "#000000"
        template = self._env.get_template("module.html.j2")
        return template.render(
            module=module,
            listings=merged,
            palette=[(name, key.to_css()) for name, key in palette.items()],
            commit=commit,
            geometry=config.geometry,
            font_size=config.font_size,
            columns=config.columns,
            page_break=config.page_break,
            background=background,
            foreground=foreground,
        )


def merge_palettes(
    listings: Sequence[StyledListing],
) -> Tuple[List[StyledListing], Dict[str, StyleKey]]:
    """Rename per-file palette classes onto one module-wide palette.

    Equal style keys from different files share a class; names follow
    first-seen order across the listings.
    """
    names: Dict[StyleKey, str] = {}
    palette: Dict[str, StyleKey] = {}
    merged: List[StyledListing] = []
    for listing in listings:
        mapping: Dict[str, str] = {}
        for local_name, key in listing.palette.items():
            shared = names.get(key)
            if shared is None:
                shared = f"c{len(names) + 1}"
                names[key] = shared
                palette[shared] = key
            mapping[local_name] = shared
        lines = [
            [(mapping[name] if name else None, text) for name, text in line]
            for line in listing.lines
        ]
        merged.append(replace(listing, lines=lines, palette={mapping[n]: k for n, k in listing.palette.items()}))
    return merged, palette


def _create_env() -> Environment:
    return Environment(
        loader=PackageLoader("git2pdf", "templates"),
        autoescape=select_autoescape(enabled_extensions=("html", "j2"), default_for_string=True),
        trim_blocks=True,
        lstrip_blocks=True,
    )


__all__ = ["HtmlRenderer", "merge_palettes"]
