"""Git-related services for speck."""

from .worktrees import WorktreeService, parse_worktree_porcelain
from .branch_queries import BranchQueries, has_worktree_support

__all__ = [
    "WorktreeService",
    "BranchQueries",
    "parse_worktree_porcelain",
    "has_worktree_support",
]
