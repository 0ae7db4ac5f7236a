"""Core data models shared across git2pdf components."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Optional


@dataclass(frozen=True)
class Module:
    """A crate discovered from a ``Cargo.toml`` manifest.

    Two modules are equal when they share a root path; the remaining fields
    are descriptive only.
    """

    name: str = field(compare=False)
    root_path: Path
    is_workspace_member: bool = field(default=False, compare=False)
    version: str = field(default="0.0.0", compare=False)
    description: Optional[str] = field(default=None, compare=False)


class FileCategory(Enum):
    """Role of a source file inside its crate."""

    SOURCE = "source"
    TEST = "test"
    INTEGRATION_TEST = "integration_test"
    EXAMPLE = "example"
    BENCHMARK = "benchmark"
    BUILD_SCRIPT = "build_script"
    OTHER = "other"

    @property
    def is_test(self) -> bool:
        return self in (FileCategory.TEST, FileCategory.INTEGRATION_TEST)


@dataclass(frozen=True)
class ClassifiedFile:
    """A source file with its category and Rust module path."""

    absolute_path: Path = field(compare=False)
    relative_path: str
    category: FileCategory = field(compare=False)
    module_path: str = field(compare=False)


@dataclass(frozen=True)
class StagedArtifact:
    """A rendered file artifact persisted to the scratch cache."""

    position: int
    cache_key: str
    size_bytes: int
    render_duration: float


__all__ = ["ClassifiedFile", "FileCategory", "Module", "StagedArtifact"]
