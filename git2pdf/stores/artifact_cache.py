"""Scratch cache for per-file artifacts staged between render and merge."""

from __future__ import annotations

import hashlib
import shutil
import tempfile
from pathlib import Path
from typing import Optional

from ..logging import get_logger

_SUFFIX = ".pdf"
_STEM_LIMIT = 48

logger = get_logger("cache")


class ArtifactCacheError(RuntimeError):
    """Raised when a staged artifact cannot be written, read or removed."""


def cache_key_for(relative_path: str) -> str:
    """Return a flat file name for a crate-relative path.

    The name is the file's sanitized base name plus a digest of the whole
    path, so nested paths of any depth stay well under the file name limit.
    """
    normalized = relative_path.replace("\\", "/")
    digest = hashlib.sha256(normalized.encode("utf-8")).hexdigest()[:16]
    stem = _safe_label(normalized.rsplit("/", 1)[-1])[:_STEM_LIMIT]
    return f"{stem}-{digest}{_SUFFIX}"


class ArtifactCache:
    """One scratch directory of rendered artifacts for a single module.

    Every render task writes its own key, so concurrent writers never touch
    the same file. The directory is deleted by :meth:`cleanup`.
    """

    def __init__(self, label: str, parent: Path | None = None) -> None:
        try:
            if parent is not None:
                parent.mkdir(parents=True, exist_ok=True)
            self._path: Optional[Path] = Path(
                tempfile.mkdtemp(prefix=f"git2pdf-{_safe_label(label)}-", dir=parent)
            )
        except OSError as exc:
            raise ArtifactCacheError(f"Failed to create scratch cache for {label}: {exc}") from exc
        logger.debug("Scratch cache for %s at %s", label, self._path)

    @property
    def path(self) -> Path:
        if self._path is None:
            raise ArtifactCacheError("Scratch cache has already been cleaned up")
        return self._path

    def write(self, key: str, data: bytes) -> int:
        target = self.path / key
        try:
            target.write_bytes(data)
        except OSError as exc:
            raise ArtifactCacheError(f"Failed to write cached artifact {target}: {exc}") from exc
        return len(data)

    def read(self, key: str) -> bytes:
        target = self.path / key
        try:
            return target.read_bytes()
        except OSError as exc:
            raise ArtifactCacheError(f"Failed to read cached artifact {target}: {exc}") from exc

    def remove(self, key: str) -> None:
        target = self.path / key
        try:
            target.unlink(missing_ok=True)
        except OSError as exc:
            raise ArtifactCacheError(f"Failed to remove cached artifact {target}: {exc}") from exc

    def cleanup(self) -> None:
        if self._path is None:
            return
        shutil.rmtree(self._path, ignore_errors=True)
        logger.debug("Removed scratch cache %s", self._path)
        self._path = None

    def __enter__(self) -> "ArtifactCache":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.cleanup()


def _safe_label(label: str) -> str:
    return "".join(ch if ch.isalnum() or ch in "-_" else "_" for ch in label) or "module"


__all__ = ["ArtifactCache", "ArtifactCacheError", "cache_key_for"]
