"""On-disk stores used while assembling documents."""

from __future__ import annotations

from .artifact_cache import ArtifactCache, ArtifactCacheError, cache_key_for

__all__ = ["ArtifactCache", "ArtifactCacheError", "cache_key_for"]
