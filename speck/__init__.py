"""
speck - git worktree lifecycle and multi-repo root detection for speck projects
"""

from .__version__ import __version__
from .config import SpeckConfig
from .core.speck_root import SpeckRootContext, detect_speck_root
from .core.worktree_manager import (
    WorktreeManager,
    create_worktree,
    list_worktrees,
    prune_worktrees,
    remove_worktree,
)
from .services.config_store import load_config, save_config

__all__ = [
    "SpeckConfig",
    "SpeckRootContext",
    "WorktreeManager",
    "create_worktree",
    "detect_speck_root",
    "list_worktrees",
    "load_config",
    "prune_worktrees",
    "remove_worktree",
    "save_config",
    "__version__",
]
