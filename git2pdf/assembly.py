"""Two-phase assembly of a module's listings into one combined PDF.

The render phase turns every file into its own artifact, optionally on a
thread pool, and stages each one in a scratch cache as soon as it exists.
The merge phase then walks the original file order, reloading one artifact
at a time and appending its pages to the combined document.
"""

from __future__ import annotations

import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional, Sequence

from .config import RenderConfig
from .logging import get_logger
from .models import ClassifiedFile, Module, StagedArtifact
from .pdf import PdfEngine
from .rendering import ResourceError, ResourcePool, render_listing
from .stores import ArtifactCache, ArtifactCacheError, cache_key_for

logger = get_logger("assembly")


class AssemblyError(RuntimeError):
    """Raised when a module's combined artifact cannot be produced."""

    def __init__(self, module: str, reason: object) -> None:
        super().__init__(f"Failed to assemble {module}: {reason}")
        self.module = module


@dataclass
class AssemblyReport:
    """Outcome of one module's assembly."""

    data: bytes
    staged: List[StagedArtifact] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    page_count: int = 0


def worker_count() -> int:
    """Render workers for this machine: every core but one, at least one."""
    return max(1, (os.cpu_count() or 1) - 1)


class AssemblyPipeline:
    """Renders, stages and merges the listings of one module at a time."""

    def __init__(
        self,
        engine: PdfEngine | None = None,
        *,
        cache_parent: Path | None = None,
        max_workers: int | None = None,
    ) -> None:
        self.engine = engine or PdfEngine()
        self.cache_parent = cache_parent
        self.max_workers = max_workers

    def assemble(
        self,
        module: Module,
        files: Sequence[ClassifiedFile],
        config: RenderConfig,
        *,
        commit: str | None = None,
    ) -> bytes:
        return self.run(module, files, config, commit=commit).data

    def run(
        self,
        module: Module,
        files: Sequence[ClassifiedFile],
        config: RenderConfig,
        *,
        commit: str | None = None,
        pool: ResourcePool | None = None,
    ) -> AssemblyReport:
        """Assemble *files* in the given order into one document.

        A file that cannot be read or rendered is logged once and left out.
        Failures of the scratch cache or of merging are fatal for the module
        and surface as :class:`AssemblyError`.
        """
        files = list(files)
        if pool is None:
            try:
                pool = ResourcePool.build(config)
            except ResourceError as exc:
                raise AssemblyError(module.name, exc) from exc

        try:
            cache = ArtifactCache(module.name, parent=self.cache_parent)
        except ArtifactCacheError as exc:
            raise AssemblyError(module.name, exc) from exc

        try:
            started = time.perf_counter()
            slots = self._render_phase(module, files, config, pool, cache)
            staged = [artifact for artifact in slots if artifact is not None]
            skipped = [file.relative_path for file, artifact in zip(files, slots) if artifact is None]
            logger.debug(
                "Rendered %d/%d file(s) of %s in %.2fs",
                len(staged),
                len(files),
                module.name,
                time.perf_counter() - started,
            )
            data, page_count = self._merge_phase(module, files, slots, config, pool, cache, commit)
        except ArtifactCacheError as exc:
            raise AssemblyError(module.name, exc) from exc
        finally:
            cache.cleanup()

        return AssemblyReport(data=data, staged=staged, skipped=skipped, page_count=page_count)

    # ------------------------------------------------------------------
    # Render phase

    def _render_phase(
        self,
        module: Module,
        files: List[ClassifiedFile],
        config: RenderConfig,
        pool: ResourcePool,
        cache: ArtifactCache,
    ) -> List[Optional[StagedArtifact]]:
        slots: List[Optional[StagedArtifact]] = [None] * len(files)
        if not config.parallel or len(files) < 2:
            for position, file in enumerate(files):
                slots[position] = self._stage(position, file, module, config, pool, cache)
            return slots

        workers = self.max_workers or worker_count()
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="git2pdf-render") as executor:
            futures = {
                executor.submit(self._stage, position, file, module, config, pool, cache): position
                for position, file in enumerate(files)
            }
            try:
                for future in as_completed(futures):
                    slots[futures[future]] = future.result()
            except BaseException:
                executor.shutdown(wait=True, cancel_futures=True)
                raise
        return slots

    def _stage(
        self,
        position: int,
        file: ClassifiedFile,
        module: Module,
        config: RenderConfig,
        pool: ResourcePool,
        cache: ArtifactCache,
    ) -> Optional[StagedArtifact]:
        started = time.perf_counter()
        try:
            listing = render_listing(file, pool.rules, pool.theme, config)
            data = self.engine.render_listing(listing, config, pool, title=module.name)
        except Exception as exc:
            logger.warning("Skipping %s in %s: %s", file.relative_path, module.name, exc)
            return None

        key = cache_key_for(file.relative_path)
        size = cache.write(key, data)
        del data, listing
        return StagedArtifact(
            position=position,
            cache_key=key,
            size_bytes=size,
            render_duration=time.perf_counter() - started,
        )

    # ------------------------------------------------------------------
    # Merge phase

    def _merge_phase(
        self,
        module: Module,
        files: List[ClassifiedFile],
        slots: List[Optional[StagedArtifact]],
        config: RenderConfig,
        pool: ResourcePool,
        cache: ArtifactCache,
        commit: str | None,
    ) -> tuple[bytes, int]:
        combined = self.engine.new_combined(f"{module.name} - Code Review")
        rendered = sum(1 for artifact in slots if artifact is not None)
        try:
            cover = self.engine.render_cover(module, config, pool, commit=commit, file_count=rendered)
            self.engine.append_pages(combined, self.engine.parse_artifact(cover), title=module.name)
        except Exception as exc:
            raise AssemblyError(module.name, f"cover page: {exc}") from exc
        del cover

        for position in range(len(files)):
            artifact = slots[position]
            if artifact is None:
                continue
            data = cache.read(artifact.cache_key)
            try:
                reader = self.engine.parse_artifact(data)
                self.engine.append_pages(combined, reader, title=files[position].relative_path)
            except Exception as exc:
                raise AssemblyError(
                    module.name, f"cached artifact for {files[position].relative_path}: {exc}"
                ) from exc
            del data, reader
            cache.remove(artifact.cache_key)

        try:
            return self.engine.serialize(combined), combined.page_count
        except Exception as exc:
            raise AssemblyError(module.name, f"serialising combined document: {exc}") from exc


__all__ = ["AssemblyError", "AssemblyPipeline", "AssemblyReport", "worker_count"]
