"""Helper utilities for constructing throwaway crate trees in tests."""

from __future__ import annotations

import textwrap
from pathlib import Path
from typing import Mapping, Sequence


class RepoBuilder:
    """Utility for writing files and Cargo manifests into a temporary tree."""

    def __init__(self, tmp_path: Path) -> None:
        self.root = tmp_path / "repo"
        self.root.mkdir()

    def write(self, files: Mapping[str, str]) -> None:
        """Write `path -> contents` entries into the repository."""
        for relative, content in files.items():
            path = self.root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            normalised = textwrap.dedent(content).lstrip("\n")
            path.write_text(normalised, encoding="utf-8")

    def crate(
        self,
        directory: str,
        name: str,
        *,
        version: str = "0.1.0",
        description: str | None = None,
        sources: Mapping[str, str] | None = None,
    ) -> Path:
        """Write a package manifest (plus optional sources) under *directory*."""
        lines = ["[package]", f'name = "{name}"', f'version = "{version}"']
        if description is not None:
            lines.append(f'description = "{description}"')
        prefix = f"{directory}/" if directory else ""
        self.write({f"{prefix}Cargo.toml": "\n".join(lines) + "\n"})
        for relative, content in (sources or {}).items():
            self.write({f"{prefix}{relative}": content})
        return self.root / directory if directory else self.root

    def workspace(
        self,
        members: Sequence[str],
        *,
        exclude: Sequence[str] = (),
        package: str | None = None,
        extra: str = "",
    ) -> None:
        """Write a root manifest declaring a workspace."""
        lines = ["[workspace]", f"members = {_toml_list(members)}"]
        if exclude:
            lines.append(f"exclude = {_toml_list(exclude)}")
        if extra:
            lines.append(textwrap.dedent(extra).strip())
        if package is not None:
            lines.extend(["", "[package]", f'name = "{package}"', 'version = "1.0.0"'])
        self.write({"Cargo.toml": "\n".join(lines) + "\n"})

    def path(self) -> Path:
        """Return the repository root path."""
        return self.root


def _toml_list(values: Sequence[str]) -> str:
    return "[" + ", ".join(f'"{value}"' for value in values) + "]"


__all__ = ["RepoBuilder"]
