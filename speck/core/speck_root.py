"""Detection of the speck root in single- and multi-repo setups.

A repository can share its specs with other repositories:

    <child>/.speck/root -> <speck-root>          child points at the root
    <speck-root>/.speck-link-<name> -> <child>   root points at each child

Detection results are owned by a SpeckRootContext so one command invocation
detects once and anything that rewrites the links can invalidate explicitly.
"""

import errno
import json
import os
import re
from pathlib import Path
from typing import Dict, List, Optional

import git

from speck.constants import (
    BRANCHES_FILENAME,
    CHILD_LINK_PREFIX,
    DANGEROUS_PATHS,
    ROOT_LINK_NAME,
    SPECK_DIR,
    SPECS_DIRNAME,
)
from speck.exceptions import SpeckRootError, SymlinkSecurityError
from speck.models.speck_root import MultiRepoContext, SpeckMode, SpeckRootConfig
from speck.services.git.branch_queries import BranchQueries
from speck.logging_config import get_logger

logger = get_logger(__name__)

_SPEC_BRANCH = re.compile(r"^\d{3}-")


def is_dangerous_path(path: str) -> bool:
    """True for the filesystem root itself, or a system directory or anything below one."""
    for dangerous in DANGEROUS_PATHS:
        if path == dangerous:
            return True
        # "/" is only dangerous as an exact match
        if dangerous != "/" and path.startswith(dangerous + "/"):
            return True
    return False


def validate_symlink_target(target: str, home: Optional[str] = None, link_name: str = ".speck/root") -> None:
    """Reject link targets in system directories or directly above home.

    Raises:
        SymlinkSecurityError: if the target is not a user project location
    """
    if is_dangerous_path(target):
        raise SymlinkSecurityError(
            f"Security: {link_name} symlink points to system directory: {target}\n"
            "Speck root must be a user-owned project directory.\n"
            f"Fix: rm {link_name} and link it to a safe project path",
            target=target,
        )

    home = home if home is not None else os.path.expanduser("~")
    if home and target == os.path.dirname(home.rstrip("/")):
        raise SymlinkSecurityError(
            f"Security: {link_name} symlink points above home directory: {target}\n"
            f"Fix: rm {link_name} and link it to a project path within your home directory",
            target=target,
        )


def resolve_link(link_path: str, link_name: str = ".speck/root") -> str:
    """Fully resolve a symlink chain.

    Raises:
        SpeckRootError: if the chain is circular or its target does not exist
    """
    try:
        return str(Path(link_path).resolve(strict=True))
    except RuntimeError as e:
        # Older interpreters report symlink loops as RuntimeError
        raise SpeckRootError(
            f"Multi-repo configuration broken: {link_name} contains circular reference\n"
            f"Fix: rm {link_name} and link it to a valid path",
            cause=str(e),
        ) from e
    except FileNotFoundError as e:
        try:
            target = os.readlink(link_path)
        except OSError:
            target = "unknown"
        raise SpeckRootError(
            f"Multi-repo configuration broken: {link_name} -> {target} (does not exist)\n"
            "Fix:\n"
            f"  1. Remove broken symlink: rm {link_name}\n"
            "  2. Link it to the correct speck root",
            cause=str(e),
        ) from e
    except OSError as e:
        if e.errno == errno.ELOOP:
            raise SpeckRootError(
                f"Multi-repo configuration broken: {link_name} contains circular reference\n"
                f"Fix: rm {link_name} and link it to a valid path",
                cause=str(e),
            ) from e
        raise


def _iter_child_links(speck_root: str):
    """Yield (logical name, link path) for every .speck-link-* symlink."""
    try:
        entries = sorted(os.scandir(speck_root), key=lambda entry: entry.name)
    except FileNotFoundError:
        return
    for entry in entries:
        if entry.name.startswith(CHILD_LINK_PREFIX) and entry.is_symlink():
            yield entry.name[len(CHILD_LINK_PREFIX):], entry.path


def find_child_repos_with_names(speck_root: str) -> Dict[str, str]:
    """Map of logical child name to resolved repository path.

    Links into system directories, broken links and links to directories
    without a .git entry are skipped with a warning.
    """
    children: Dict[str, str] = {}
    for name, link_path in _iter_child_links(speck_root):
        link_name = os.path.basename(link_path)
        try:
            target = str(Path(link_path).resolve(strict=True))
        except (OSError, RuntimeError) as e:
            logger.warning(f"Broken symlink {link_name}: {e}")
            continue

        if is_dangerous_path(target):
            logger.warning(f"Security: skipping {link_name}, points to system directory: {target}")
            continue

        if not os.path.exists(os.path.join(target, ".git")):
            logger.warning(f"{link_name} points to non-git directory: {target}")
            continue

        children[name] = target
    return children


def find_child_repos(speck_root: str) -> List[str]:
    """Resolved paths of all valid child repositories linked from `speck_root`."""
    return list(find_child_repos_with_names(speck_root).values())


def get_child_repo_name(repo_root: str, speck_root: str) -> str:
    """Logical name of `repo_root` from the root's link, else its directory name."""
    resolved_repo = os.path.realpath(repo_root)
    for name, link_path in _iter_child_links(speck_root):
        try:
            if str(Path(link_path).resolve(strict=True)) == resolved_repo:
                return name
        except (OSError, RuntimeError):
            continue
    return os.path.basename(os.path.abspath(repo_root))


def find_repo_root(cwd: str) -> str:
    """Working tree root containing `cwd`, or `cwd` itself outside git."""
    try:
        repo = git.Repo(cwd, search_parent_directories=True)
    except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError):
        return cwd
    return repo.working_tree_dir or cwd


def find_main_repo_root(repo_root: str) -> str:
    """Main checkout of a linked worktree, or `repo_root` when it is not one.

    A linked worktree's .git file reads ``gitdir: <main>/.git/worktrees/<name>``.
    """
    git_path = os.path.join(repo_root, ".git")
    if not os.path.isfile(git_path):
        return repo_root
    try:
        with open(git_path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        logger.debug(f"Could not read {git_path}: {e}")
        return repo_root

    match = re.search(r"gitdir:\s*(.+)", content)
    if not match:
        return repo_root
    gitdir = os.path.join(repo_root, match.group(1).strip())
    return os.path.dirname(os.path.dirname(os.path.dirname(os.path.normpath(gitdir))))


class SpeckRootContext:
    """Owns the speck-root detection for one command invocation.

    The first detect() runs discovery and caches the answer; invalidate()
    must be called by anything that rewrites .speck/root or child links.
    """

    def __init__(self, cwd: Optional[str] = None, home: Optional[str] = None):
        self.cwd = os.path.abspath(cwd or os.getcwd())
        self.home = home
        self._cached: Optional[SpeckRootConfig] = None

    def invalidate(self) -> None:
        self._cached = None

    def refresh(self) -> SpeckRootConfig:
        self.invalidate()
        return self.detect()

    def detect(self) -> SpeckRootConfig:
        """Discover the speck root.

        Order:
            1. .speck/root symlink in the working directory (monorepo package)
            2. .speck/root symlink at the repository root, or at the main
               checkout when running inside a linked worktree
            3. .speck-link-* child links at the repository root
            4. single-repo mode

        Raises:
            SymlinkSecurityError: if a link points into a system directory
            SpeckRootError: if the repository's .speck/root is broken or circular
        """
        if self._cached is None:
            self._cached = self._discover()
            logger.debug(f"Speck root: {self._cached.to_dict()}")
        return self._cached

    def _multi_repo(self, speck_root: str, repo_root: str) -> SpeckRootConfig:
        return SpeckRootConfig(
            mode=SpeckMode.MULTI_REPO,
            speck_root=speck_root,
            repo_root=repo_root,
            specs_dir=os.path.join(speck_root, SPECS_DIRNAME),
        )

    @staticmethod
    def _single_repo(repo_root: str) -> SpeckRootConfig:
        return SpeckRootConfig(
            mode=SpeckMode.SINGLE_REPO,
            speck_root=repo_root,
            repo_root=repo_root,
            specs_dir=os.path.join(repo_root, SPECS_DIRNAME),
        )

    def _discover(self) -> SpeckRootConfig:
        cwd_link = os.path.join(self.cwd, SPECK_DIR, ROOT_LINK_NAME)
        if os.path.islink(cwd_link):
            try:
                speck_root = resolve_link(cwd_link)
            except SpeckRootError as e:
                logger.debug(f"Ignoring unusable {cwd_link}: {e.message}")
            else:
                validate_symlink_target(speck_root, self.home)
                return self._multi_repo(speck_root, self.cwd)

        repo_root = find_repo_root(self.cwd)
        main_root = find_main_repo_root(repo_root)
        link_path = os.path.join(main_root, SPECK_DIR, ROOT_LINK_NAME)

        if os.path.lexists(link_path):
            if not os.path.islink(link_path):
                logger.warning(
                    ".speck/root exists but is not a symlink. Falling back to single-repo mode. "
                    "To enable multi-repo: mv .speck/root .speck/root.backup and link it again"
                )
                return self._single_repo(repo_root)

            speck_root = resolve_link(link_path)
            validate_symlink_target(speck_root, self.home)
            return self._multi_repo(speck_root, repo_root)

        if find_child_repos(repo_root):
            return self._multi_repo(repo_root, repo_root)

        return self._single_repo(repo_root)

    def is_multi_repo_child(self) -> bool:
        """True in multi-repo mode when this repository is not the speck root."""
        config = self.detect()
        return config.mode == SpeckMode.MULTI_REPO and config.repo_root != config.speck_root

    def _read_parent_spec_id(self, repo_root: str) -> Optional[str]:
        branches_path = os.path.join(repo_root, SPECK_DIR, BRANCHES_FILENAME)
        try:
            with open(branches_path, "r", encoding="utf-8") as f:
                mapping = json.load(f)
        except (OSError, ValueError) as e:
            logger.debug(f"No usable {branches_path}: {e}")
            return None

        branches = mapping.get("branches") if isinstance(mapping, dict) else None
        if branches and isinstance(branches[0], dict):
            return branches[0].get("parentSpecId") or None
        return None

    def get_multi_repo_context(self) -> MultiRepoContext:
        """Detection result plus whether this is the single, root or child context.

        A child's parent spec comes from .speck/branches.json, else from the
        speck root's current branch when it looks like ``NNN-feature``.
        """
        config = self.detect()
        if config.mode == SpeckMode.SINGLE_REPO:
            return MultiRepoContext(root=config, context="single")
        if config.repo_root == config.speck_root:
            return MultiRepoContext(root=config, context="root")

        child_name = get_child_repo_name(config.repo_root, config.speck_root)
        parent_spec_id = self._read_parent_spec_id(config.repo_root)
        if not parent_spec_id:
            current = BranchQueries(config.speck_root).get_current_branch()
            if current.ok and _SPEC_BRANCH.match(current.value):
                parent_spec_id = current.value

        return MultiRepoContext(
            root=config,
            context="child",
            parent_spec_id=parent_spec_id,
            child_repo_name=child_name,
        )


def detect_speck_root(cwd: Optional[str] = None) -> SpeckRootConfig:
    """One-off detection from `cwd` (default: the process working directory)."""
    return SpeckRootContext(cwd).detect()
