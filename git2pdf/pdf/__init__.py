"""PDF typesetting and merging backed by ReportLab and pypdf."""

from __future__ import annotations

from .engine import CombinedArtifact, PdfEngine, wrap_spans

__all__ = ["CombinedArtifact", "PdfEngine", "wrap_spans"]
