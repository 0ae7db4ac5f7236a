"""Ignore-aware walker tests."""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from git2pdf.walker import IgnoreWalker, WalkError, build_ignore_rule, parse_ignore_lines, walk_files
from tests._fixtures.repo_builder import RepoBuilder


def _walk(root: Path, walker: IgnoreWalker | None = None, suffix: str | None = ".rs") -> list[str]:
    walker = walker or IgnoreWalker(global_ignore=False)
    return sorted(path.relative_to(root).as_posix() for path in walker.walk(root, suffix=suffix))


def test_root_and_nested_gitignore_with_negation(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            ".gitignore": "generated/\n*.gen.rs\n",
            "src/lib.rs": "",
            "src/out.gen.rs": "",
            "generated/code.rs": "",
            "src/nested/.gitignore": "*.rs\n!keep.rs\n",
            "src/nested/drop.rs": "",
            "src/nested/keep.rs": "",
        }
    )

    assert _walk(repo_builder.path()) == ["src/lib.rs", "src/nested/keep.rs"]


def test_hidden_entries_and_suffix_filter(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            ".hidden/a.rs": "",
            "src/.secret.rs": "",
            "src/main.rs": "",
            "README.md": "",
        }
    )

    root = repo_builder.path()
    assert _walk(root) == ["src/main.rs"]
    assert _walk(root, suffix=None) == ["README.md", "src/main.rs"]


def test_skip_dir_names_and_extra_patterns(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "target/debug/build.rs": "",
            "src/lib.rs": "",
            "src/vendored/x.rs": "",
        }
    )
    walker = IgnoreWalker(skip_dir_names=("target",), extra_patterns=["src/vendored"], global_ignore=False)

    assert _walk(repo_builder.path(), walker) == ["src/lib.rs"]


def test_extra_patterns_override_gitignore_negation(repo_builder: RepoBuilder) -> None:
    repo_builder.write({".gitignore": "!src/lib.rs\n", "src/lib.rs": "", "src/other.rs": ""})
    walker = IgnoreWalker(extra_patterns=["lib.rs"], global_ignore=False)

    assert _walk(repo_builder.path(), walker) == ["src/other.rs"]


def test_global_ignore_and_info_exclude(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    global_file = tmp_path / "global-ignore"
    global_file.write_text("*.bak.rs\n", encoding="utf-8")
    repo_builder.write(
        {
            ".git/info/exclude": "scratch.rs\n",
            "src/lib.rs": "",
            "src/old.bak.rs": "",
            "src/scratch.rs": "",
        }
    )

    walker = IgnoreWalker(global_ignore=global_file)

    assert _walk(repo_builder.path(), walker) == ["src/lib.rs"]


def test_ancestor_gitignore_applies_inside_repository(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            ".git/HEAD": "ref: refs/heads/main\n",
            ".gitignore": "crates/core/src/skip.rs\n",
            "crates/core/src/lib.rs": "",
            "crates/core/src/skip.rs": "",
        }
    )

    crate_root = repo_builder.path() / "crates" / "core"

    assert _walk(crate_root) == ["src/lib.rs"]


def test_local_gitignore_applies_without_repository(repo_builder: RepoBuilder) -> None:
    repo_builder.write({".gitignore": "/build.rs\n", "build.rs": "", "src/build.rs": ""})

    assert _walk(repo_builder.path()) == ["src/build.rs"]


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_symlinks_are_not_followed(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "x.rs").write_text("", encoding="utf-8")
    repo_builder.write({"src/lib.rs": ""})
    root = repo_builder.path()
    (root / "src" / "linked").symlink_to(outside, target_is_directory=True)
    (root / "src" / "alias.rs").symlink_to(root / "src" / "lib.rs")

    assert _walk(root) == ["src/lib.rs"]


def test_walk_files_is_sorted_and_repeatable(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"c.rs": "", "a/z.rs": "", "b.rs": ""})
    root = repo_builder.path()

    first = walk_files(root, suffix=".rs")

    assert [path.relative_to(root).as_posix() for path in first] == ["a/z.rs", "b.rs", "c.rs"]
    assert walk_files(root, suffix=".rs") == first


def test_missing_root_raises_walk_error(tmp_path: Path) -> None:
    with pytest.raises(WalkError):
        list(IgnoreWalker(global_ignore=False).walk(tmp_path / "absent"))


@pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0, reason="permissions are not enforced for root"
)
def test_unreadable_directory_raises_walk_error(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"src/lib.rs": ""})
    locked = repo_builder.path() / "src"
    locked.chmod(0)
    try:
        with pytest.raises(WalkError):
            list(IgnoreWalker(global_ignore=False).walk(repo_builder.path()))
    finally:
        locked.chmod(0o755)


def test_rule_parsing() -> None:
    rules = parse_ignore_lines(["# comment", "", "!keep.rs", r"\!literal", "/anchored", "dir/"])

    assert [(rule.pattern, rule.negate) for rule in rules] == [
        ("keep.rs", True),
        ("!literal", False),
        ("anchored", False),
        ("dir", False),
    ]
    assert rules[2].anchored is True
    assert rules[3].directory_only is True
    assert build_ignore_rule("   ") is None


def test_directory_only_rule_ignores_files_of_same_name() -> None:
    rule = build_ignore_rule("cache/")
    assert rule is not None
    assert rule.matches("cache", True) is True
    assert rule.matches("cache", False) is False


def test_slash_patterns_do_not_cross_directories(repo_builder: RepoBuilder) -> None:
    repo_builder.write({".gitignore": "src/*.rs\n", "src/top.rs": "", "src/a/deep.rs": ""})

    assert _walk(repo_builder.path()) == ["src/a/deep.rs"]


def test_double_star_matches_zero_or_more_directories(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            ".gitignore": "src/**/gen.rs\n",
            "src/gen.rs": "",
            "src/a/b/gen.rs": "",
            "src/keep.rs": "",
        }
    )

    assert _walk(repo_builder.path()) == ["src/keep.rs"]


@pytest.mark.parametrize(
    ("pattern", "path", "expected"),
    [
        ("src/*.rs", "src/lib.rs", True),
        ("src/*.rs", "src/net/lib.rs", False),
        ("src/?.rs", "src/a.rs", True),
        ("**/gen.rs", "gen.rs", True),
        ("**/gen.rs", "a/b/gen.rs", True),
        ("src/**", "src/a/b.rs", True),
        ("src/**", "src", False),
        ("/lib.rs", "src/lib.rs", False),
    ],
)
def test_rule_matching_is_segment_wise(pattern: str, path: str, expected: bool) -> None:
    rule = build_ignore_rule(pattern)
    assert rule is not None
    assert rule.matches(path, False) is expected
