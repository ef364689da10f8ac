"""Branch and repository query service for speck."""

import git
import os
import re
from typing import List, Optional, Tuple

from speck.constants import MIN_GIT_VERSION
from speck.models.results import GitResult
from speck.services.git.worktrees import describe_git_error
from speck.logging_config import get_logger

logger = get_logger(__name__)


def _split_nul(output: str) -> List[str]:
    return [entry for entry in output.split("\0") if entry.strip()]


def get_git_version() -> GitResult[Tuple[int, ...]]:
    """Version of the git binary GitPython will invoke."""
    try:
        return GitResult.success(tuple(git.Git().version_info))
    except (git.exc.GitError, OSError, ValueError) as e:
        return GitResult.failure(describe_git_error(e, "git --version"))


def has_worktree_support() -> bool:
    """Worktrees need git 2.5 or newer; a missing git binary means no support."""
    result = get_git_version()
    if not result.ok or not result.value:
        logger.debug(f"Could not determine git version: {result.error}")
        return False
    return tuple(result.value[:2]) >= MIN_GIT_VERSION


class BranchQueries:
    """Service for querying branches, refs and files of a repository."""

    def __init__(self, repo_path: str):
        """Initialize the branch queries service.

        Args:
            repo_path: Path to the git repository or one of its worktrees
        """
        self.repo_path = os.path.abspath(repo_path)
        self.remote_name = "origin"

    def _get_repo(self):
        """Get a fresh git.Repo instance for the repository."""
        return git.Repo(self.repo_path)

    def branch_exists(self, branch_name: str) -> bool:
        """Check refs/heads/<branch> resolves. Never raises."""
        try:
            repo = self._get_repo()
            repo.git.rev_parse("--verify", "--quiet", f"refs/heads/{branch_name}")
            return True
        except (git.exc.GitError, OSError) as e:
            logger.debug(f"Branch {branch_name} not found: {e}")
            return False

    def get_current_branch(self) -> GitResult[str]:
        """Abbreviated name of HEAD ("HEAD" when detached)."""
        try:
            repo = self._get_repo()
            return GitResult.success(repo.git.rev_parse("--abbrev-ref", "HEAD").strip())
        except (git.exc.GitError, OSError) as e:
            return GitResult.failure(describe_git_error(e, "git rev-parse --abbrev-ref HEAD"))

    def get_remote_url(self) -> GitResult[str]:
        """URL of the origin remote."""
        try:
            repo = self._get_repo()
            return GitResult.success(repo.git.remote("get-url", self.remote_name).strip())
        except (git.exc.GitError, OSError) as e:
            return GitResult.failure(describe_git_error(e, "git remote get-url"))

    def list_tracked_files(self) -> GitResult[List[str]]:
        """Paths git tracks, relative to the repository root."""
        try:
            repo = self._get_repo()
            return GitResult.success(_split_nul(repo.git.ls_files("-z")))
        except (git.exc.GitError, OSError) as e:
            return GitResult.failure(describe_git_error(e, "git ls-files"))

    def list_untracked_files(self) -> GitResult[List[str]]:
        """Untracked paths that are not excluded by .gitignore."""
        try:
            repo = self._get_repo()
            output = repo.git.ls_files("-z", "--others", "--exclude-standard")
            return GitResult.success(_split_nul(output))
        except (git.exc.GitError, OSError) as e:
            return GitResult.failure(describe_git_error(e, "git ls-files --others"))

    def delete_branch(self, branch_name: str, force: bool = False) -> GitResult[bool]:
        """Delete a local branch with -d, or -D when forced."""
        try:
            repo = self._get_repo()
            repo.git.branch("-D" if force else "-d", branch_name)
            logger.info(f"Deleted branch {branch_name}")
            return GitResult.success(True)
        except (git.exc.GitError, OSError) as e:
            return GitResult.failure(describe_git_error(e, "git branch delete"))


def repo_name_from_url(remote_url: str) -> Optional[str]:
    """Last path component of a remote URL without the .git suffix.

    Handles https://host/user/repo.git, git@host:user/repo.git and URLs
    without a suffix.
    """
    match = re.search(r"[/:]([^/:]+?)(?:\.git)?/?$", remote_url.strip())
    if match:
        return match.group(1)
    return None
