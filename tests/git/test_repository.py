"""Tests for git clone, fetch and ref resolution."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

import pytest

from git2pdf.git.repository import GitError, GitRepository, extract_repo_name, is_remote_source

LOCAL_SHA = "1" * 40
TAG_SHA = "3" * 40


class RecordingRunner:
    """Answers rev-parse for known refs and records every command."""

    def __init__(self, refs: dict[str, str] | None = None, failing: tuple[str, ...] = ()) -> None:
        self.refs = refs or {}
        self.failing = failing
        self.calls: list[tuple[list[str], Path]] = []

    def __call__(self, args, cwd, env=None, capture_output=False):  # type: ignore[no-untyped-def]
        args = list(args)
        self.calls.append((args, Path(cwd)))
        if args[1] in self.failing:
            raise subprocess.CalledProcessError(128, args, stderr=f"fatal: {args[1]} failed")
        if args[1] == "rev-parse":
            ref = args[-1].removesuffix("^{commit}")
            if ref in self.refs:
                return self.refs[ref] + "\n"
            raise subprocess.CalledProcessError(1, args)
        return ""

    def commands(self) -> list[list[str]]:
        return [args for args, _ in self.calls]


@pytest.mark.parametrize(
    ("source", "remote"),
    [
        ("https://github.com/org/repo.git", True),
        ("git@github.com:org/repo.git", True),
        ("ssh://git@host/repo", True),
        ("./local/path", False),
        ("/abs/path", False),
    ],
)
def test_is_remote_source(source: str, remote: bool) -> None:
    assert is_remote_source(source) is remote


@pytest.mark.parametrize(
    ("url", "name"),
    [
        ("https://github.com/org/repo.git", "repo"),
        ("https://github.com/org/repo/", "repo"),
        ("git@github.com:org/tool.git", "tool"),
        ("git@host:solo", "solo"),
    ],
)
def test_extract_repo_name(url: str, name: str) -> None:
    assert extract_repo_name(url) == name


def test_resolution_prefers_local_branch(tmp_path: Path) -> None:
    runner = RecordingRunner({"refs/heads/main": LOCAL_SHA, "refs/tags/main": TAG_SHA})
    repo = GitRepository(tmp_path, runner)

    attempts = repo.resolve_attempts("main")

    assert [attempt.resolver for attempt in attempts] == ["local branch"]
    assert repo.resolve("main") == LOCAL_SHA


def test_resolution_falls_through_to_tag_then_literal(tmp_path: Path) -> None:
    runner = RecordingRunner({"refs/tags/v1.0": TAG_SHA, "abc123": LOCAL_SHA})
    repo = GitRepository(tmp_path, runner)

    attempts = repo.resolve_attempts("v1.0")
    assert [(a.resolver, a.found) for a in attempts] == [
        ("local branch", False),
        ("remote branch", False),
        ("tag", True),
    ]
    assert repo.resolve("abc123") == LOCAL_SHA


def test_unknown_ref_raises_with_tried_candidates(tmp_path: Path) -> None:
    repo = GitRepository(tmp_path, RecordingRunner())

    with pytest.raises(GitError) as excinfo:
        repo.resolve("nope")

    message = str(excinfo.value)
    assert "refs/heads/nope" in message
    assert "refs/remotes/origin/nope" in message
    assert "refs/tags/nope" in message


def test_checkout_detaches_at_resolved_commit(tmp_path: Path) -> None:
    runner = RecordingRunner({"refs/remotes/origin/dev": LOCAL_SHA})
    repo = GitRepository(tmp_path, runner)

    assert repo.checkout("dev") == LOCAL_SHA
    assert runner.commands()[-1] == ["git", "checkout", "--detach", "--quiet", LOCAL_SHA]
    assert runner.calls[-1][1] == tmp_path


def test_clone_when_destination_missing(tmp_path: Path) -> None:
    runner = RecordingRunner()
    destination = tmp_path / "cache" / "repo"

    GitRepository.clone_or_open("https://example.com/repo.git", destination, runner)

    assert runner.commands() == [["git", "clone", "https://example.com/repo.git", str(destination)]]
    assert runner.calls[0][1] == destination.parent


def test_existing_clone_is_fetched(tmp_path: Path) -> None:
    destination = tmp_path / "repo"
    (destination / ".git").mkdir(parents=True)
    runner = RecordingRunner()

    GitRepository.clone_or_open("https://example.com/repo.git", destination, runner)

    assert runner.commands() == [["git", "fetch", "--tags", "--prune", "origin"]]


def test_fetch_failure_on_existing_clone_is_a_warning(
    tmp_path: Path, caplog: pytest.LogCaptureFixture, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setattr(logging.getLogger("git2pdf"), "propagate", True)
    destination = tmp_path / "repo"
    (destination / ".git").mkdir(parents=True)

    with caplog.at_level(logging.WARNING, logger="git2pdf"):
        GitRepository.clone_or_open("https://example.com/repo.git", destination, RecordingRunner(failing=("fetch",)))

    assert any("fetch" in record.getMessage() for record in caplog.records)


def test_stale_destination_is_replaced_before_clone(tmp_path: Path) -> None:
    destination = tmp_path / "repo"
    destination.mkdir()
    (destination / "leftover.txt").write_text("x", encoding="utf-8")
    runner = RecordingRunner()

    GitRepository.clone_or_open("https://example.com/repo.git", destination, runner)

    assert not destination.exists()
    assert runner.commands()[0][:2] == ["git", "clone"]


def test_clone_failure_raises_git_error(tmp_path: Path) -> None:
    with pytest.raises(GitError, match="clone failed"):
        GitRepository.clone_or_open(
            "https://example.com/repo.git", tmp_path / "repo", RecordingRunner(failing=("clone",))
        )


def test_head_commit(tmp_path: Path) -> None:
    repo = GitRepository(tmp_path, RecordingRunner({"HEAD": LOCAL_SHA}))

    assert repo.head_commit() == LOCAL_SHA
    assert GitRepository(tmp_path, RecordingRunner()).head_commit() is None
