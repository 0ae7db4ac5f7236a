"""Ignore-aware directory walking for crate trees."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Iterable, Iterator, List, Optional, Sequence

IGNORE_FILENAME = ".gitignore"


class WalkError(RuntimeError):
    """Raised when a directory cannot be read during traversal."""

    def __init__(self, path: Path, reason: object) -> None:
        super().__init__(f"Failed to read directory {path}: {reason}")
        self.path = path


@dataclass
class IgnoreRule:
    """Represents one gitignore-style pattern."""

    pattern: str
    directory_only: bool
    anchored: bool
    negate: bool
    has_slash: bool

    def matches(self, rel_path: str, is_dir: bool) -> bool:
        if not self.pattern:
            return False
        if self.directory_only and not is_dir:
            return False

        if self.anchored or self.has_slash:
            return _match_segments(self.pattern.split("/"), rel_path.split("/"))

        return fnmatchcase(rel_path.rsplit("/", 1)[-1], self.pattern)


def _match_segments(pattern: Sequence[str], parts: Sequence[str]) -> bool:
    """Match path segments so that wildcards never cross a slash.

    A `**` segment matches zero or more directories; a trailing `**` matches
    everything inside the directory but not the directory itself.
    """
    if not pattern:
        return not parts
    head = pattern[0]
    if head == "**":
        if len(pattern) == 1:
            return bool(parts)
        return any(_match_segments(pattern[1:], parts[index:]) for index in range(len(parts) + 1))
    if not parts:
        return False
    return fnmatchcase(parts[0], head) and _match_segments(pattern[1:], parts[1:])


@dataclass
class IgnoreLayer:
    """Rules read from one source, scoped to the directory they apply to.

    ``prefix`` is the layer's directory relative to the walk root; ``None``
    or ``""`` means the layer applies to every path below the root.
    """

    rules: List[IgnoreRule] = field(default_factory=list)
    prefix: Optional[str] = None

    def relative(self, rel_path: str) -> Optional[str]:
        if self.prefix is None or self.prefix == "":
            return rel_path
        if rel_path.startswith(f"{self.prefix}/"):
            return rel_path[len(self.prefix) + 1 :]
        return None


def build_ignore_rule(pattern: str, negate: bool = False) -> IgnoreRule | None:
    pattern = pattern.strip()
    if not pattern:
        return None

    directory_only = pattern.endswith("/")
    if directory_only:
        pattern = pattern[:-1]

    anchored = pattern.startswith("/")
    if anchored:
        pattern = pattern[1:]

    has_slash = "/" in pattern
    return IgnoreRule(
        pattern=pattern,
        directory_only=directory_only,
        anchored=anchored,
        negate=negate,
        has_slash=has_slash,
    )


def parse_ignore_lines(lines: Iterable[str]) -> List[IgnoreRule]:
    rules: List[IgnoreRule] = []
    for raw_line in lines:
        line = raw_line.rstrip("\n")
        if not line.strip() or line.startswith("#"):
            continue
        negate = line.startswith("!")
        if negate:
            line = line[1:]
        elif line.startswith("\\"):
            line = line[1:]
        rule = build_ignore_rule(line, negate=negate)
        if rule is not None:
            rules.append(rule)
    return rules


def parse_ignore_file(path: Path) -> List[IgnoreRule]:
    try:
        text = path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return []
    return parse_ignore_lines(text.splitlines())


def default_global_ignore() -> Path | None:
    """Return git's default global excludes file location."""
    config_home = os.environ.get("XDG_CONFIG_HOME")
    base = Path(config_home) if config_home else Path.home() / ".config"
    candidate = base / "git" / "ignore"
    return candidate if candidate.is_file() else None


def find_repository_top(start: Path) -> Path | None:
    """Return the closest directory at or above *start* that holds ``.git``."""
    for candidate in (start, *start.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def _should_ignore(rel_path: str, is_dir: bool, layers: Sequence[IgnoreLayer]) -> bool:
    ignored = False
    for layer in layers:
        scoped = layer.relative(rel_path)
        if scoped is None:
            continue
        for rule in layer.rules:
            if rule.matches(scoped, is_dir):
                ignored = not rule.negate
    return ignored


class IgnoreWalker:
    """Walks a directory tree honoring layered gitignore rules.

    Hidden entries are skipped and symlinks are neither followed nor yielded.
    Entries are visited in sorted order within each directory.
    """

    def __init__(
        self,
        *,
        skip_dir_names: Iterable[str] = (),
        extra_patterns: Iterable[str] = (),
        global_ignore: Path | None | bool = True,
    ) -> None:
        self.skip_dir_names = frozenset(skip_dir_names)
        self.extra_rules = parse_ignore_lines(extra_patterns)
        self._global_ignore = global_ignore

    def walk(self, root: Path, *, suffix: str | None = None) -> Iterator[Path]:
        root = Path(root).resolve()
        if not root.is_dir():
            raise WalkError(root, "not a directory")

        layers = self._base_layers(root)

        def _on_error(error: OSError) -> None:
            raise WalkError(Path(error.filename or root), error.strerror or error)

        nested: dict[str, IgnoreLayer] = {}
        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error, followlinks=False):
            current_dir = Path(dirpath)
            rel_dir = current_dir.relative_to(root).as_posix() if current_dir != root else ""

            if rel_dir:
                local = parse_ignore_file(current_dir / IGNORE_FILENAME)
                if local:
                    nested[rel_dir] = IgnoreLayer(rules=local, prefix=rel_dir)
            active = layers + self._nested_layers(nested, rel_dir) + [IgnoreLayer(self.extra_rules)]

            kept_dirs = []
            for name in sorted(dirnames):
                if name.startswith(".") or name in self.skip_dir_names:
                    continue
                if os.path.islink(current_dir / name):
                    continue
                rel_path = f"{rel_dir}/{name}" if rel_dir else name
                if _should_ignore(rel_path, True, active):
                    continue
                kept_dirs.append(name)
            dirnames[:] = kept_dirs

            for filename in sorted(filenames):
                if filename.startswith("."):
                    continue
                if suffix is not None and not filename.endswith(suffix):
                    continue
                path = current_dir / filename
                if path.is_symlink():
                    continue
                rel_path = f"{rel_dir}/{filename}" if rel_dir else filename
                if _should_ignore(rel_path, False, active):
                    continue
                yield path

    def _base_layers(self, root: Path) -> List[IgnoreLayer]:
        layers: List[IgnoreLayer] = []

        global_path: Path | None
        if self._global_ignore is True:
            global_path = default_global_ignore()
        elif self._global_ignore is False:
            global_path = None
        else:
            global_path = self._global_ignore
        if global_path is not None:
            layers.append(IgnoreLayer(parse_ignore_file(global_path)))

        repo_top = find_repository_top(root)
        if repo_top is not None:
            layers.append(IgnoreLayer(parse_ignore_file(repo_top / ".git" / "info" / "exclude")))
            ancestors = [parent for parent in root.parents if parent == repo_top or repo_top in parent.parents]
            for ancestor in reversed(ancestors):
                rules = parse_ignore_file(ancestor / IGNORE_FILENAME)
                if not rules:
                    continue
                offset = root.relative_to(ancestor).as_posix()
                layers.append(_AncestorLayer(rules=rules, offset=offset))

        layers.append(IgnoreLayer(parse_ignore_file(root / IGNORE_FILENAME), prefix=""))
        return layers

    @staticmethod
    def _nested_layers(nested: dict[str, IgnoreLayer], rel_dir: str) -> List[IgnoreLayer]:
        if not rel_dir:
            return []
        result = []
        parts = rel_dir.split("/")
        for depth in range(1, len(parts) + 1):
            layer = nested.get("/".join(parts[:depth]))
            if layer is not None:
                result.append(layer)
        return result


@dataclass
class _AncestorLayer(IgnoreLayer):
    """Rules from a parent directory of the walk root."""

    offset: str = ""

    def relative(self, rel_path: str) -> Optional[str]:
        return f"{self.offset}/{rel_path}"


def walk_files(
    root: Path,
    *,
    suffix: str | None = None,
    skip_dir_names: Iterable[str] = (),
    extra_patterns: Iterable[str] = (),
) -> List[Path]:
    """Return every non-ignored file under *root*, sorted."""
    walker = IgnoreWalker(skip_dir_names=skip_dir_names, extra_patterns=extra_patterns)
    return sorted(walker.walk(root, suffix=suffix))


__all__ = [
    "IgnoreRule",
    "IgnoreWalker",
    "WalkError",
    "build_ignore_rule",
    "parse_ignore_lines",
    "walk_files",
]
