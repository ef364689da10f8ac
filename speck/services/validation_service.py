"""Pre-flight checks for worktree creation."""

import os
import re
import shutil
from typing import Optional

from speck.constants import DEFAULT_REQUIRED_DISK_MB
from speck.models.worktree import PathState
from speck.services.git.branch_queries import BranchQueries
from speck.logging_config import get_logger

logger = get_logger(__name__)

# Mirrors git's ref-name restrictions without running git check-ref-format
_INVALID_BRANCH_PATTERNS = [
    re.compile(r"\s"),            # whitespace
    re.compile(r"\.\."),          # double dots
    re.compile(r"^\."),           # leading dot
    re.compile(r"[/.]$"),         # trailing slash or dot
    re.compile(r"[~^:\\?*\[\]@{]"),  # ref special characters
    re.compile(r"//"),            # consecutive slashes
    re.compile(r"^-"),            # leading dash
]


class ValidationService:
    """Service for validating worktree operations."""

    @staticmethod
    def is_valid_branch_name(branch_name: str) -> bool:
        """
        Check a branch name against git ref naming rules.

        Args:
            branch_name: Branch name to check

        Returns:
            True if git would accept the name
        """
        if not branch_name:
            return False
        return not any(pattern.search(branch_name) for pattern in _INVALID_BRANCH_PATTERNS)

    @staticmethod
    def check_worktree_path(path: str) -> PathState:
        """
        Classify a prospective worktree directory.

        A directory holding nothing but a `.git` entry counts as empty, since
        that is a leftover worktree administrative file.

        Args:
            path: Absolute path to check

        Returns:
            PathState.NOT_FOUND, PathState.EMPTY or PathState.EXISTS
        """
        if not os.path.lexists(path):
            return PathState.NOT_FOUND

        try:
            entries = os.listdir(path)
        except OSError as e:
            # Unreadable or not a directory: treat as occupied
            logger.debug(f"Cannot list {path}: {e}")
            return PathState.EXISTS

        if not entries or entries == [".git"]:
            return PathState.EMPTY
        return PathState.EXISTS

    @staticmethod
    def get_available_disk_mb(path: str) -> Optional[float]:
        """Free space in MB on the filesystem of `path` or its nearest existing ancestor."""
        check_path = os.path.abspath(path)
        while not os.path.exists(check_path):
            parent = os.path.dirname(check_path)
            if parent == check_path:
                break
            check_path = parent

        try:
            usage = shutil.disk_usage(check_path)
        except OSError as e:
            logger.debug(f"Could not read disk usage for {check_path}: {e}")
            return None
        return usage.free / (1024 * 1024)

    @staticmethod
    def has_sufficient_disk_space(path: str, required_mb: int = DEFAULT_REQUIRED_DISK_MB) -> bool:
        """
        Check free space for a new worktree.

        Fails open: when disk stats cannot be read the answer is True, so an
        introspection problem never blocks creation.
        """
        available = ValidationService.get_available_disk_mb(path)
        if available is None:
            return True
        return available >= required_mb

    @staticmethod
    def branch_exists(repo_path: str, branch_name: str) -> bool:
        """True if refs/heads/<branch> resolves. Never raises."""
        return BranchQueries(repo_path).branch_exists(branch_name)
