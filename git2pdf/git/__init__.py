"""Git helpers for fetching and checking out remote sources."""

from .repository import GitError, GitRepository, RefResolution, extract_repo_name, is_remote_source

__all__ = ["GitError", "GitRepository", "RefResolution", "extract_repo_name", "is_remote_source"]
