"""Listing rendering: highlighting, shared resources and markup output."""

from __future__ import annotations

from .highlight import HighlightRules, StyleKey, Theme, resolve_theme
from .listing import RenderError, StyledListing, render_listing
from .markup import HtmlRenderer
from .resources import FontFace, ResourceError, ResourcePool

__all__ = [
    "FontFace",
    "HighlightRules",
    "HtmlRenderer",
    "RenderError",
    "ResourceError",
    "ResourcePool",
    "StyleKey",
    "StyledListing",
    "Theme",
    "render_listing",
    "resolve_theme",
]
