"""Worktree naming and path construction.

Worktrees always live next to the main checkout, never inside it:

    /path/to/speck/                 main repository
    /path/to/speck-012-worktree/    worktree for branch 012-worktree
"""

import os
import re
from typing import Optional

from speck.exceptions import InvalidBranchNameError
from speck.models.worktree import RepoLayout
from speck.services.git.branch_queries import BranchQueries, repo_name_from_url
from speck.logging_config import get_logger

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-z0-9\-_]")
_DASH_RUNS = re.compile(r"-+")


def detect_repo_layout(repo_path: str) -> RepoLayout:
    """Decide whether worktree directories need a repository-name prefix.

    When the checkout directory is itself named after its current branch
    (e.g. ``~/src/main``), sibling worktrees are named after their branch
    alone. Otherwise they get ``<repo-name>-`` in front.
    """
    current = BranchQueries(repo_path).get_current_branch()
    if not current.ok:
        logger.debug(f"Could not read current branch, assuming repo-name layout: {current.error}")
        return RepoLayout.REPO_NAME_DIR

    if os.path.basename(os.path.abspath(repo_path)) == current.value:
        return RepoLayout.BRANCH_NAME_DIR
    return RepoLayout.REPO_NAME_DIR


def get_repo_name(repo_path: str) -> str:
    """Repository name from the origin URL, else the directory name."""
    remote = BranchQueries(repo_path).get_remote_url()
    if remote.ok and remote.value:
        name = repo_name_from_url(remote.value)
        if name:
            return name
    return os.path.basename(os.path.abspath(repo_path))


def slugify_branch_name(branch_name: str) -> str:
    """Make a branch name safe as a directory name.

    Lowercases, maps '/' and anything outside [a-z0-9-_] to '-', collapses
    dash runs and trims dashes at both ends. Distinct branches can collide;
    callers deal with existing paths.
    """
    slug = branch_name.lower().replace("/", "-")
    slug = _UNSAFE_CHARS.sub("-", slug)
    slug = _DASH_RUNS.sub("-", slug)
    return slug.strip("-")


def construct_worktree_dir_name(repo_path: str, branch_name: str) -> str:
    """Directory name for a branch's worktree.

    Raises:
        InvalidBranchNameError: if nothing of the name survives slugifying
    """
    slug = slugify_branch_name(branch_name)
    if not slug:
        raise InvalidBranchNameError(
            branch_name, "It has no characters usable in a directory name; pass an explicit worktree path."
        )
    if detect_repo_layout(repo_path) == RepoLayout.BRANCH_NAME_DIR:
        return slug
    return f"{get_repo_name(repo_path)}-{slug}"


def construct_branch_name(branch_name: str, prefix: Optional[str] = None) -> str:
    """Apply an optional prefix such as ``username/``; a missing '/' is added."""
    if not prefix:
        return branch_name
    normalized = prefix if prefix.endswith("/") else f"{prefix}/"
    return f"{normalized}{branch_name}"


def construct_worktree_path(repo_path: str, branch_name: str) -> str:
    """Absolute sibling path ``dirname(repo)/<dir-name>`` for a branch."""
    repo_abs = os.path.abspath(repo_path)
    parent_dir = os.path.dirname(repo_abs)
    return os.path.abspath(os.path.join(parent_dir, construct_worktree_dir_name(repo_abs, branch_name)))
