"""Lightweight git helpers for resolving repository context.

These helpers avoid third-party dependencies and use subprocess to query git.
"""

from __future__ import annotations

import logging
import re
import subprocess
from pathlib import Path
from typing import Optional

from remote_e2e.errors import NotAGitRepository
from remote_e2e.models import RepositoryInfo

logger = logging.getLogger(__name__)

_GITHUB_REMOTE_PATTERNS = (
    re.compile(r"https://github\.com/([^/]+/[^/]+)"),
    re.compile(r"git@github\.com:([^/]+/[^/]+)"),
    re.compile(r"ssh://git@github\.com/([^/]+/[^/]+)"),
)


def _run_git(args: list[str], cwd: Path) -> Optional[str]:
    try:
        out = subprocess.check_output(
            ["git", *args], cwd=str(cwd), stderr=subprocess.DEVNULL
        )
        return out.decode("utf-8", errors="replace").strip()
    except (OSError, subprocess.CalledProcessError):
        return None


def repo_name_from_remote(url: Optional[str]) -> Optional[str]:
    """Extract ``owner/repo`` from a GitHub remote URL."""
    if not url:
        return None
    clean = re.sub(r"\.git$", "", url.strip())
    for pattern in _GITHUB_REMOTE_PATTERNS:
        match = pattern.search(clean)
        if match:
            return match.group(1)
    return None


def _working_dir(file_path: Path) -> Path:
    return file_path if file_path.is_dir() else file_path.parent


class GitRepositoryResolver:
    """Resolve name, root and branch of the repository holding a path."""

    def resolve(self, file_path: str) -> RepositoryInfo:
        path = Path(file_path).expanduser().resolve()
        cwd = _working_dir(path)

        repo_path = None
        branch_name = None
        if cwd.exists():
            repo_path = _run_git(["rev-parse", "--show-toplevel"], cwd)
            branch_name = _run_git(["rev-parse", "--abbrev-ref", "HEAD"], cwd) or _run_git(
                ["symbolic-ref", "--short", "HEAD"], cwd
            )
        repo_name = None
        if repo_path:
            remote = _run_git(["config", "--get", "remote.origin.url"], cwd)
            repo_name = repo_name_from_remote(remote) or Path(repo_path).name

        if not repo_name or not repo_path or not branch_name:
            raise NotAGitRepository(
                f'File "{file_path}" is not associated with a Git repository '
                "or repository information could not be retrieved."
            )

        info = RepositoryInfo(
            repo_name=repo_name,
            repo_path=repo_path,
            branch_name=branch_name,
            file_path=str(path),
        )
        logger.info("Repository info: %s (%s) at %s", repo_name, branch_name, repo_path)
        return info


__all__ = ["GitRepositoryResolver", "repo_name_from_remote"]
