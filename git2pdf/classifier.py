"""File classification for Rust crates.

Categories and module paths are derived from the shape of a file's path
relative to the crate root; file contents are never consulted.
"""

from __future__ import annotations

from pathlib import Path, PurePosixPath
from typing import Iterable, List

from .logging import get_logger
from .models import ClassifiedFile, FileCategory
from .walker import IgnoreWalker

SOURCE_EXTENSION = ".rs"
SOURCE_ROOT = "src"
BUILD_SCRIPT = "build.rs"
BUILD_OUTPUT_DIR = "target"
ROOT_TOKEN = "crate"
MODULE_SEPARATOR = "::"
INDEX_NAMES = {"mod", "lib", "main"}

_TOP_LEVEL_CATEGORIES = {
    "tests": FileCategory.INTEGRATION_TEST,
    "examples": FileCategory.EXAMPLE,
    "benches": FileCategory.BENCHMARK,
}

logger = get_logger("classifier")


def classify_path(relative_path: str) -> FileCategory:
    """Return the category for a crate-relative, ``/``-separated path."""
    parts = PurePosixPath(relative_path).parts
    if not parts:
        return FileCategory.OTHER

    if len(parts) == 1 and parts[0] == BUILD_SCRIPT:
        return FileCategory.BUILD_SCRIPT

    first = parts[0]
    if first == SOURCE_ROOT:
        return FileCategory.TEST if "tests" in parts[1:] else FileCategory.SOURCE
    return _TOP_LEVEL_CATEGORIES.get(first, FileCategory.OTHER)


def compute_module_path(relative_path: str) -> str:
    """Return the Rust module path, e.g. ``src/foo/bar.rs`` -> ``crate::foo::bar``."""
    parts = list(PurePosixPath(relative_path).parts)
    if parts and parts[0] == SOURCE_ROOT:
        parts = parts[1:]
    if parts and parts[-1].endswith(SOURCE_EXTENSION):
        parts[-1] = parts[-1][: -len(SOURCE_EXTENSION)]
    if parts and parts[-1] in INDEX_NAMES:
        parts = parts[:-1]
    return MODULE_SEPARATOR.join([ROOT_TOKEN, *parts])


def classify(
    module_root: Path | str,
    include_tests: bool,
    *,
    exclude_paths: Iterable[str] = (),
) -> List[ClassifiedFile]:
    """Walk *module_root* and return its classified ``.rs`` files.

    Test and integration-test files are visited but dropped unless
    *include_tests* is set. Output is sorted by relative path.
    """
    root = Path(module_root).resolve()
    walker = IgnoreWalker(skip_dir_names=(BUILD_OUTPUT_DIR,), extra_patterns=exclude_paths)

    files: List[ClassifiedFile] = []
    for path in walker.walk(root, suffix=SOURCE_EXTENSION):
        relative_path = path.relative_to(root).as_posix()
        category = classify_path(relative_path)
        if category.is_test and not include_tests:
            continue
        files.append(
            ClassifiedFile(
                absolute_path=path,
                relative_path=relative_path,
                category=category,
                module_path=compute_module_path(relative_path),
            )
        )

    files.sort(key=lambda item: item.relative_path)
    logger.debug("Classified %d file(s) under %s", len(files), root)
    return files


def select_printable(files: Iterable[ClassifiedFile], include_tests: bool) -> List[ClassifiedFile]:
    """Keep crate sources, plus tests when requested, preserving order."""
    selected = []
    for item in files:
        if item.category is FileCategory.SOURCE:
            selected.append(item)
        elif include_tests and item.category.is_test:
            selected.append(item)
    return selected


__all__ = [
    "classify",
    "classify_path",
    "compute_module_path",
    "select_printable",
]
