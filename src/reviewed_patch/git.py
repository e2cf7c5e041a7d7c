"""Review session detection from the current git working copy."""

import logging
import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

# git@github.com:user/repo.git, https://github.com/user/repo.git, ssh://.../repo
REMOTE_REPO_NAME_RE = re.compile(r"[/:]([^/:]+?)(?:\.git)?/?$")


@dataclass(frozen=True)
class SessionInfo:
    """Identity of a review session: one repository and branch."""

    repo_name: str
    branch_name: str

    @property
    def session_id(self) -> str:
        return f"{self.repo_name}:{self.branch_name}"


def _git(args: list[str], cwd: Optional[Path]) -> Optional[str]:
    """Run a git command, returning stripped stdout or None on failure."""
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=10,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        logger.debug(f"git {' '.join(args)} failed: {e}")
        return None

    if result.returncode != 0:
        return None
    return result.stdout.strip()


def repo_name_from_remote(remote_url: str) -> Optional[str]:
    """Extract the repository name from a remote URL."""
    match = REMOTE_REPO_NAME_RE.search(remote_url.strip())
    if match and match.group(1):
        return match.group(1)
    return None


def detect_session(cwd: Optional[Path] = None) -> Optional[SessionInfo]:
    """Detect the review session for a directory.

    The repository name comes from the origin remote, falling back to the
    top-level directory name; the branch from HEAD, falling back to
    "unknown".

    Args:
        cwd: Directory inside the working copy (default: process cwd)

    Returns:
        SessionInfo, or None when not inside a git working copy
    """
    toplevel = _git(["rev-parse", "--show-toplevel"], cwd)
    if not toplevel:
        return None

    git_root = Path(toplevel)

    repo_name = None
    remote = _git(["remote", "get-url", "origin"], git_root)
    if remote:
        repo_name = repo_name_from_remote(remote)
    if not repo_name:
        repo_name = git_root.name or "unknown"

    branch_name = _git(["rev-parse", "--abbrev-ref", "HEAD"], git_root) or "unknown"

    return SessionInfo(repo_name=repo_name, branch_name=branch_name)
