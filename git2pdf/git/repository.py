"""Git access for remote sources: clone, fetch, ref resolution and checkout."""

from __future__ import annotations

import re
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable, List, Optional, Tuple

from ..logging import get_logger

logger = get_logger("git")

_REMOTE_PREFIXES = ("http://", "https://", "git@", "ssh://", "git://")


class GitError(RuntimeError):
    """Raised when a git operation fails."""

    def __init__(self, operation: str, target: object, reason: object) -> None:
        super().__init__(f"git {operation} failed for {target}: {reason}")
        self.operation = operation
        self.target = target


@dataclass(frozen=True)
class RefResolution:
    """Result of trying one ref namespace; ``commit`` is None when not found."""

    resolver: str
    candidate: str
    commit: Optional[str] = None

    @property
    def found(self) -> bool:
        return self.commit is not None


# Tried in order; each maps a user-supplied ref onto a fully qualified name.
REF_RESOLVERS: Tuple[Tuple[str, Callable[[str], str]], ...] = (
    ("local branch", lambda ref: f"refs/heads/{ref}"),
    ("remote branch", lambda ref: f"refs/remotes/origin/{ref}"),
    ("tag", lambda ref: f"refs/tags/{ref}"),
    ("reference", lambda ref: ref),
)


def is_remote_source(source: str) -> bool:
    return source.startswith(_REMOTE_PREFIXES)


def extract_repo_name(url: str) -> str:
    """Return the last path component of a git URL without ``.git``."""
    trimmed = url.rstrip("/")
    if trimmed.endswith(".git"):
        trimmed = trimmed[:-4]
    name = re.split(r"[/:]", trimmed)[-1]
    return name or "repository"


class GitRepository:
    """A working copy driven through the ``git`` executable."""

    def __init__(self, path: Path, runner: Callable[..., str] | None = None) -> None:
        self.path = Path(path)
        self._runner = runner or self._default_runner

    @classmethod
    def clone_or_open(
        cls,
        url: str,
        destination: Path,
        runner: Callable[..., str] | None = None,
    ) -> "GitRepository":
        """Open an existing clone at *destination* and fetch, or clone afresh."""
        repo = cls(destination, runner)
        if (destination / ".git").exists():
            logger.info("Using existing clone at %s", destination)
            try:
                repo.fetch()
            except GitError as exc:
                logger.warning("Could not fetch latest changes: %s", exc)
            return repo

        if destination.exists():
            shutil.rmtree(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Cloning %s into %s", url, destination)
        try:
            repo._run(["git", "clone", url, str(destination)], cwd=destination.parent)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise GitError("clone", url, _reason(exc)) from exc
        return repo

    def fetch(self) -> None:
        try:
            self._run(["git", "fetch", "--tags", "--prune", "origin"], cwd=self.path)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise GitError("fetch", self.path, _reason(exc)) from exc

    def resolve_attempts(self, ref: str) -> List[RefResolution]:
        """Try each ref namespace in order, stopping at the first hit."""
        attempts: List[RefResolution] = []
        for name, qualify in REF_RESOLVERS:
            candidate = qualify(ref)
            attempt = RefResolution(name, candidate, self._rev_parse(candidate))
            attempts.append(attempt)
            if attempt.found:
                break
        return attempts

    def resolve(self, ref: str) -> str:
        attempts = self.resolve_attempts(ref)
        hit = attempts[-1]
        if not hit.found:
            tried = ", ".join(attempt.candidate for attempt in attempts)
            raise GitError("resolve", ref, f"no matching branch, tag or commit (tried {tried})")
        logger.debug("Resolved %s as %s %s", ref, hit.resolver, hit.commit)
        return hit.commit  # type: ignore[return-value]

    def checkout(self, ref: str) -> str:
        """Check out *ref* as a detached HEAD and return its commit."""
        commit = self.resolve(ref)
        try:
            self._run(["git", "checkout", "--detach", "--quiet", commit], cwd=self.path)
        except (OSError, subprocess.CalledProcessError) as exc:
            raise GitError("checkout", ref, _reason(exc)) from exc
        logger.info("Checked out %s (%s)", ref, commit[:12])
        return commit

    def head_commit(self) -> Optional[str]:
        return self._rev_parse("HEAD")

    # ------------------------------------------------------------------
    # Helpers

    def _rev_parse(self, candidate: str) -> Optional[str]:
        try:
            output = self._run(
                ["git", "rev-parse", "--verify", "--quiet", f"{candidate}^{{commit}}"],
                cwd=self.path,
                capture_output=True,
            )
        except subprocess.CalledProcessError:
            return None
        except OSError as exc:
            raise GitError("rev-parse", candidate, exc) from exc
        commit = output.strip()
        return commit or None

    def _run(
        self,
        args: Iterable[str],
        *,
        cwd: Path,
        env: dict[str, str] | None = None,
        capture_output: bool = False,
    ) -> str:
        return self._runner(args, cwd=cwd, env=env, capture_output=capture_output)

    @staticmethod
    def _default_runner(
        args: Iterable[str],
        *,
        cwd: Path,
        env: dict[str, str] | None = None,
        capture_output: bool = False,
    ) -> str:
        completed = subprocess.run(
            list(args),
            cwd=str(cwd),
            env=env,
            check=True,
            text=True,
            capture_output=capture_output,
        )
        if capture_output:
            return completed.stdout
        return ""


def _reason(exc: BaseException) -> str:
    if isinstance(exc, subprocess.CalledProcessError) and exc.stderr:
        return str(exc.stderr).strip()
    return str(exc)


__all__ = [
    "GitError",
    "GitRepository",
    "REF_RESOLVERS",
    "RefResolution",
    "extract_repo_name",
    "is_remote_source",
]
