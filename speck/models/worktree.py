"""Worktree data models."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class WorktreeStatus(Enum):
    """Outcome state of a created worktree."""
    READY = "ready"
    DEGRADED = "degraded"
    FAILED = "failed"


class PathState(Enum):
    """Occupancy of a prospective worktree directory."""
    NOT_FOUND = "not_found"
    EMPTY = "empty"
    EXISTS = "exists"


class RepoLayout(Enum):
    """How the main checkout directory is named."""
    REPO_NAME_DIR = "repo-name-dir"
    BRANCH_NAME_DIR = "branch-name-dir"


@dataclass
class GitWorktreeInfo:
    """One entry of `git worktree list --porcelain`. Never cached."""

    path: str
    branch: str  # "detached HEAD" when no branch is checked out
    commit: str  # Short hash (7 chars)
    prunable: Optional[str] = None  # Reason git reports the entry as stale

    def to_dict(self) -> dict:
        data = {"path": self.path, "branch": self.branch, "commit": self.commit}
        if self.prunable is not None:
            data["prunable"] = self.prunable
        return data

    def __str__(self) -> str:
        status = f"prunable: {self.prunable}" if self.prunable else "active"
        return f"{self.branch} @ {self.path} ({self.commit}) [{status}]"


@dataclass
class WorktreeMetadata:
    """Produced once per successful creation; not persisted."""

    branch_name: str
    worktree_path: str
    created_at: str  # ISO 8601
    status: WorktreeStatus
    parent_repo: str

    def to_dict(self) -> dict:
        return {
            "branchName": self.branch_name,
            "worktreePath": self.worktree_path,
            "createdAt": self.created_at,
            "status": self.status.value,
            "parentRepo": self.parent_repo,
        }


@dataclass
class CreateWorktreeOptions:
    """Inputs of a worktree creation."""

    repo_path: str
    branch_name: str  # Without prefix
    branch_prefix: Optional[str] = None
    worktree_path: Optional[str] = None  # Overrides the computed sibling path
    reuse_existing: bool = False
    force: bool = False
    skip_deps: bool = False
    skip_ide: bool = False


@dataclass
class CreateWorktreeResult:
    success: bool
    worktree_path: str
    metadata: WorktreeMetadata
    errors: List[str] = field(default_factory=list)  # Non-fatal warnings

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "worktreePath": self.worktree_path,
            "branchName": self.metadata.branch_name,
            "status": self.metadata.status.value,
            "metadata": self.metadata.to_dict(),
            "errors": self.errors or None,
        }


@dataclass
class RemoveWorktreeOptions:
    repo_path: str
    branch_name: str
    force: bool = False
    delete_branch: bool = False


@dataclass
class RemoveWorktreeResult:
    success: bool
    worktree_path: str
    branch_deleted: bool = False
    used_fallback: bool = False  # Directory was deleted directly after git refused
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "worktreePath": self.worktree_path,
            "branchDeleted": self.branch_deleted,
            "errors": self.errors or None,
        }


@dataclass
class PruneResult:
    pruned_count: int
    pruned_paths: List[str]
    dry_run: bool = False

    def to_dict(self) -> dict:
        return {
            "prunedCount": self.pruned_count,
            "prunedPaths": self.pruned_paths,
            "dryRun": self.dry_run,
        }
