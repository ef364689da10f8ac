"""Worktree operations service for speck."""

import git
import os
from typing import Dict, List, Optional

from speck.exceptions import GitWorktreeError
from speck.models.results import GitResult
from speck.models.worktree import GitWorktreeInfo, PruneResult
from speck.logging_config import get_logger

logger = get_logger(__name__)

DETACHED_HEAD = "detached HEAD"


def describe_git_error(e: Exception, command: str) -> str:
    """Turn a GitPython exception into a one-line message with exit code and stderr."""
    if isinstance(e, git.exc.GitCommandError):
        stderr = (e.stderr if hasattr(e, "stderr") and e.stderr else str(e)).strip()
        status = e.status if hasattr(e, "status") else "unknown"
        if stderr:
            return f"{command} failed (exit {status}): {stderr}"
        return f"{command} failed with exit code {status}"
    return f"{command} failed: {e}"


def parse_worktree_porcelain(output: str) -> List[GitWorktreeInfo]:
    """Parse `git worktree list --porcelain` output.

    Format:
        worktree /path/to/worktree
        HEAD <sha>
        branch refs/heads/<name>    (or "detached")
        prunable <reason>           (optional)
        <blank line>

    Records without path, branch and commit (e.g. bare repositories) are skipped.
    """
    worktrees: List[GitWorktreeInfo] = []
    current: Dict[str, str] = {}

    def flush():
        if current.get("path") and current.get("branch") and current.get("commit"):
            worktrees.append(
                GitWorktreeInfo(
                    path=current["path"],
                    branch=current["branch"],
                    commit=current["commit"],
                    prunable=current.get("prunable"),
                )
            )

    for line in output.split("\n"):
        if line.startswith("worktree "):
            flush()
            current = {"path": line[len("worktree "):]}
        elif line.startswith("HEAD "):
            current["commit"] = line[len("HEAD "):][:7]
        elif line.startswith("branch "):
            branch_ref = line[len("branch "):]
            if branch_ref.startswith("refs/heads/"):
                branch_ref = branch_ref[len("refs/heads/"):]
            current["branch"] = branch_ref
        elif line.startswith("detached"):
            current["branch"] = DETACHED_HEAD
        elif line.startswith("prunable"):
            current["prunable"] = line[len("prunable "):] if " " in line else "prunable"
        elif line == "":
            flush()
            current = {}

    # Last record when output has no trailing blank line
    flush()
    return worktrees


class WorktreeService:
    """Typed wrapper around `git worktree` subcommands."""

    def __init__(self, repo_path: str):
        """Initialize the worktree service.

        Args:
            repo_path: Path to the main git repository
        """
        self.repo_path = os.path.abspath(repo_path)

    def _get_repo(self):
        """Get a fresh git.Repo instance for the repository."""
        return git.Repo(self.repo_path)

    def query_worktrees(self) -> GitResult[List[GitWorktreeInfo]]:
        """List worktrees, reporting git failures instead of raising."""
        try:
            repo = self._get_repo()
            output = repo.git.worktree("list", "--porcelain")
        except (git.exc.GitError, OSError) as e:
            return GitResult.failure(describe_git_error(e, "git worktree list"))

        worktrees = parse_worktree_porcelain(output)
        logger.debug(f"Found {len(worktrees)} worktrees")
        for wt in worktrees:
            logger.debug(f"  {wt}")
        return GitResult.success(worktrees)

    def list_worktrees(self) -> List[GitWorktreeInfo]:
        """Get all worktrees; an unusable repository or git binary yields an empty list."""
        result = self.query_worktrees()
        if not result.ok:
            logger.debug(f"Could not list worktrees: {result.error}")
        return result.value_or([])

    def get_worktree_path(self, branch_name: str) -> Optional[str]:
        """Path of the worktree that has `branch_name` checked out, if any."""
        for worktree in self.list_worktrees():
            if worktree.branch == branch_name:
                return worktree.path
        return None

    def list_removable_worktrees(self) -> List[str]:
        """Paths of all worktrees except the main one (always listed first)."""
        return [wt.path for wt in self.list_worktrees()[1:]]

    @staticmethod
    def is_worktree(path: str) -> bool:
        """A linked worktree has a .git file rather than a .git directory."""
        return os.path.isfile(os.path.join(path, ".git"))

    def add_worktree(self, worktree_path: str, branch_name: str) -> None:
        """Run `git worktree add <path> <branch>`. The branch must already exist.

        Raises:
            GitWorktreeError: with path and branch context and git's stderr
        """
        try:
            repo = self._get_repo()
            repo.git.worktree("add", worktree_path, branch_name)
            logger.info(f"Created worktree at {worktree_path} for branch {branch_name}")
        except (git.exc.GitError, OSError) as e:
            detail = describe_git_error(e, "git worktree add")
            raise GitWorktreeError(
                f"Failed to create worktree at {worktree_path} for branch {branch_name}: {detail}",
                git_output=detail,
            ) from e

    def remove_worktree(self, worktree_path: str, force: bool = False) -> None:
        """Run `git worktree remove`.

        Callers that need guaranteed cleanup fall back to deleting the
        directory themselves when this raises.

        Raises:
            GitWorktreeError: if git refuses or fails
        """
        try:
            repo = self._get_repo()
            args = ["remove"]
            if force:
                args.append("--force")
            args.append(worktree_path)
            repo.git.worktree(*args)
            logger.info(f"Removed worktree at {worktree_path}")
        except (git.exc.GitError, OSError) as e:
            detail = describe_git_error(e, "git worktree remove")
            logger.error(f"Failed to remove worktree at {worktree_path}: {detail}")
            raise GitWorktreeError(
                f"Failed to remove worktree at {worktree_path}: {detail}",
                git_output=detail,
            ) from e

    def prune_worktrees(self, dry_run: bool = False) -> PruneResult:
        """Report stale worktree records and prune them unless `dry_run`.

        The prunable set is computed before pruning so it can be reported.
        A failed prune yields an empty result.
        """
        prunable_paths = [wt.path for wt in self.list_worktrees() if wt.prunable]

        if dry_run:
            return PruneResult(
                pruned_count=len(prunable_paths), pruned_paths=prunable_paths, dry_run=True
            )

        try:
            repo = self._get_repo()
            repo.git.worktree("prune")
            logger.info(f"Pruned {len(prunable_paths)} stale worktree record(s)")
        except (git.exc.GitError, OSError) as e:
            logger.warning(f"Could not prune worktrees: {describe_git_error(e, 'git worktree prune')}")
            return PruneResult(pruned_count=0, pruned_paths=[])

        return PruneResult(pruned_count=len(prunable_paths), pruned_paths=prunable_paths)
