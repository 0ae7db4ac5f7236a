"""Crate discovery from Cargo manifests."""

from __future__ import annotations

import tomllib
from dataclasses import replace
from fnmatch import fnmatchcase
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Sequence

from .logging import get_logger
from .models import Module
from .walker import walk_files

MANIFEST_FILENAME = "Cargo.toml"
DEFAULT_VERSION = "0.0.0"

_DISCOVERY_SKIP_DIRS = ("target", "node_modules")

logger = get_logger("discovery")


class ManifestError(RuntimeError):
    """Raised when a Cargo manifest cannot be read or parsed."""

    def __init__(self, path: Path, reason: object) -> None:
        super().__init__(f"Failed to parse {path}: {reason}")
        self.path = path


def discover(root_path: Path | str) -> List[Module]:
    """Return the crates under *root_path*, sorted by name and unique by path.

    A root ``Cargo.toml`` drives discovery through its ``[workspace]`` table;
    without one the whole tree is searched for manifests.
    """
    root = Path(root_path).expanduser().resolve()
    root_manifest = root / MANIFEST_FILENAME

    if not root_manifest.is_file():
        logger.debug("No root manifest in %s; searching recursively", root)
        modules = _discover_recursive(root)
    else:
        data = _load_manifest(root_manifest)
        modules = []
        workspace = data.get("workspace")
        inherited: Dict[str, Any] = {}
        if isinstance(workspace, dict):
            inherited = _as_dict(workspace.get("package"))
            members = workspace.get("members")
            excludes = [str(item) for item in workspace.get("exclude") or [] if isinstance(item, str)]
            if isinstance(members, list):
                for pattern in members:
                    if not isinstance(pattern, str):
                        continue
                    modules.extend(_expand_member(root, pattern, excludes, inherited))

        package = _module_from_manifest(root, data, root_manifest, inherited)
        if package is not None:
            modules.append(package)

    return _sort_and_dedupe(modules)


def _expand_member(
    root: Path, pattern: str, excludes: Sequence[str], inherited: Dict[str, Any]
) -> List[Module]:
    pattern = pattern.strip().rstrip("/")
    if "*" not in pattern:
        if any(pattern.startswith(prefix) for prefix in excludes):
            logger.debug("Workspace member %s excluded", pattern)
            return []
        module = _try_member(root / pattern, inherited)
        return [module] if module is not None else []

    segments = pattern.split("/")
    wildcard_index = next(index for index, segment in enumerate(segments) if "*" in segment)
    base_path = root.joinpath(*segments[:wildcard_index])
    name_pattern = segments[wildcard_index]
    remainder = segments[wildcard_index + 1 :]

    if not base_path.is_dir():
        logger.debug("Glob base %s does not exist; no members matched", base_path)
        return []

    modules: List[Module] = []
    for entry in sorted(base_path.iterdir()):
        if not entry.is_dir() or not fnmatchcase(entry.name, name_pattern):
            continue
        candidate = entry.joinpath(*remainder) if remainder else entry
        rel_path = candidate.relative_to(root).as_posix()
        if any(rel_path.startswith(prefix) for prefix in excludes):
            logger.debug("Workspace member %s excluded", rel_path)
            continue
        module = _try_member(candidate, inherited)
        if module is not None:
            modules.append(module)
    return modules


def _try_member(path: Path, inherited: Dict[str, Any]) -> Optional[Module]:
    try:
        module = try_parse_module(path, inherited)
    except ManifestError as exc:
        logger.error("%s; skipping workspace member", exc)
        return None
    if module is None:
        return None
    return replace(module, is_workspace_member=True)


def try_parse_module(path: Path, inherited: Dict[str, Any] | None = None) -> Optional[Module]:
    """Parse ``path/Cargo.toml`` into a Module, or None when it has no package."""
    manifest = path / MANIFEST_FILENAME
    if not manifest.is_file():
        return None
    data = _load_manifest(manifest)
    return _module_from_manifest(path.resolve(), data, manifest, inherited or {})


def _discover_recursive(root: Path) -> List[Module]:
    modules: List[Module] = []
    for path in walk_files(root, suffix=MANIFEST_FILENAME, skip_dir_names=_DISCOVERY_SKIP_DIRS):
        if path.name != MANIFEST_FILENAME:
            continue
        try:
            module = try_parse_module(path.parent)
        except ManifestError as exc:
            logger.error("%s; skipping crate", exc)
            continue
        if module is not None:
            modules.append(module)
    return modules


def _load_manifest(path: Path) -> Dict[str, Any]:
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ManifestError(path, exc) from exc
    try:
        return tomllib.loads(text)
    except tomllib.TOMLDecodeError as exc:
        raise ManifestError(path, exc) from exc


def _module_from_manifest(
    root: Path, data: Dict[str, Any], manifest: Path, inherited: Dict[str, Any]
) -> Optional[Module]:
    package = data.get("package")
    if package is None:
        return None
    if not isinstance(package, dict):
        raise ManifestError(manifest, "[package] must be a table")
    name = package.get("name")
    if not isinstance(name, str) or not name:
        raise ManifestError(manifest, "[package] is missing a name")

    version = _inherit(package.get("version"), inherited.get("version"))
    description = _inherit(package.get("description"), inherited.get("description"))
    return Module(
        name=name,
        root_path=root,
        is_workspace_member=False,
        version=version if isinstance(version, str) else DEFAULT_VERSION,
        description=description if isinstance(description, str) else None,
    )


def _inherit(value: Any, workspace_value: Any) -> Any:
    if isinstance(value, dict) and value.get("workspace") is True:
        return workspace_value
    return value


def _sort_and_dedupe(modules: Iterable[Module]) -> List[Module]:
    ordered = sorted(modules, key=lambda module: module.name)
    seen: set[Path] = set()
    unique: List[Module] = []
    for module in ordered:
        if module.root_path in seen:
            continue
        seen.add(module.root_path)
        unique.append(module)
    return unique


def _as_dict(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


__all__ = ["MANIFEST_FILENAME", "ManifestError", "discover", "try_parse_module"]
