"""Worktree lifecycle orchestration: create, remove, list and prune."""

import os
import shutil
from datetime import datetime, timezone
from typing import List, Optional

from speck.config import SpeckConfig
from speck.constants import DEFAULT_REQUIRED_DISK_MB, MIN_GIT_VERSION
from speck.core.progress import ProgressChannel
from speck.exceptions import (
    BranchNotFoundError,
    DependencyInstallError,
    DiskSpaceError,
    GitWorktreeError,
    PathOccupiedError,
    WorktreeError,
    WorktreeExistsError,
    WorktreeNotFoundError,
)
from speck.models.worktree import (
    CreateWorktreeOptions,
    CreateWorktreeResult,
    GitWorktreeInfo,
    PathState,
    PruneResult,
    RemoveWorktreeOptions,
    RemoveWorktreeResult,
    WorktreeMetadata,
    WorktreeStatus,
)
from speck.services.config_store import load_config
from speck.services.dependency_service import install_dependencies
from speck.services.file_rules_service import apply_file_rules
from speck.services.git import BranchQueries, WorktreeService
from speck.services.git.branch_queries import get_git_version, has_worktree_support
from speck.services.ide_service import launch_ide
from speck.services.naming import construct_branch_name, construct_worktree_path
from speck.services.validation_service import ValidationService
from speck.logging_config import get_logger

logger = get_logger(__name__)


class WorktreeManager:
    """Runs worktree operations for one repository.

    Every step reports into a single ProgressChannel; rendering is up to
    whoever subscribes to it.
    """

    def __init__(self, repo_path: str, channel: Optional[ProgressChannel] = None):
        """
        Args:
            repo_path: Main repository checkout
            channel: Progress channel shared by every layer of the operation
        """
        self.repo_path = os.path.abspath(repo_path)
        self.channel = channel or ProgressChannel()
        self.worktrees = WorktreeService(self.repo_path)
        self.branches = BranchQueries(self.repo_path)

    def _progress(self, stage: str, message: str, percent: int) -> None:
        self.channel.emit(stage, message, percent)

    def _contains_repo(self, worktree_path: str) -> bool:
        destination = os.path.realpath(worktree_path)
        repo = os.path.realpath(self.repo_path)
        return repo == destination or repo.startswith(destination.rstrip(os.sep) + os.sep)

    def _prepare_destination(self, worktree_path: str, force: bool, reuse: bool, errors: List[str]) -> bool:
        """Make the destination usable for `git worktree add`.

        Returns:
            True if this call created the directory (and should remove it
            again if git fails)

        Raises:
            PathOccupiedError: if the directory has content and neither force
                nor reuse was requested, or another process claimed it first
            WorktreeError: if the destination is the repository or contains it
        """
        if self._contains_repo(worktree_path):
            raise WorktreeError(
                f"Refusing to use {worktree_path} as a worktree directory: "
                f"it is or contains the main repository at {self.repo_path}"
            )

        state = ValidationService.check_worktree_path(worktree_path)

        if state == PathState.EXISTS:
            if force:
                if os.path.isdir(worktree_path) and not os.path.islink(worktree_path):
                    shutil.rmtree(worktree_path)
                else:
                    os.remove(worktree_path)
                self._progress("validate", "Removed existing directory (force=true)...", 40)
                state = PathState.NOT_FOUND
            elif reuse:
                errors.append(f"Directory already exists at {worktree_path}, reusing it")
                logger.warning(f"Reusing existing directory {worktree_path}")
                self._progress("validate", "Reusing existing directory...", 40)
                return False
            else:
                raise PathOccupiedError(worktree_path)

        if state == PathState.EMPTY:
            stale_git = os.path.join(worktree_path, ".git")
            if os.path.isfile(stale_git):
                os.remove(stale_git)
            return False

        os.makedirs(os.path.dirname(worktree_path), exist_ok=True)
        try:
            os.mkdir(worktree_path)
        except FileExistsError as e:
            raise PathOccupiedError(worktree_path) from e
        return True

    def _release_claim(self, worktree_path: str) -> None:
        try:
            os.rmdir(worktree_path)
        except OSError as e:
            logger.debug(f"Could not remove claimed directory {worktree_path}: {e}")

    def create(self, options: CreateWorktreeOptions, config: Optional[SpeckConfig] = None) -> CreateWorktreeResult:
        """Create a worktree for an existing branch and prepare it for work.

        Nothing on disk changes before `git worktree add` unless force is
        requested. After the worktree exists, file rule and IDE failures are
        collected as warnings, while a failed dependency install aborts and
        leaves the worktree in place for manual repair.

        Raises:
            BranchNotFoundError: if the branch does not exist
            WorktreeExistsError: if a worktree already tracks the branch
            DiskSpaceError: if the destination filesystem is nearly full
            PathOccupiedError: if the destination has content
            DependencyInstallError: if dependency installation fails
            GitWorktreeError: if git is missing or too old for worktrees, or git fails
            InvalidBranchNameError: if the branch name yields no directory name
            WorktreeError: if an unexpected error follows `git worktree add`
        """
        if not has_worktree_support():
            version = get_git_version()
            found = ".".join(str(part) for part in version.value) if version.ok else "not found"
            raise GitWorktreeError(
                f"Git worktrees require git >= {MIN_GIT_VERSION[0]}.{MIN_GIT_VERSION[1]} (found: {found}). "
                "Install or upgrade git and make sure it is on PATH.",
                git_output=version.error,
            )

        errors: List[str] = []
        self._progress("prune", "Starting worktree creation...", 0)

        self._progress("prune", "Cleaning up stale worktrees...", 5)
        self.worktrees.prune_worktrees()

        self._progress("config", "Loading configuration...", 10)
        if config is None:
            config = load_config(self.repo_path)

        self._progress("config", "Determining worktree location...", 15)
        branch_name = construct_branch_name(options.branch_name, options.branch_prefix)
        worktree_path = os.path.abspath(
            options.worktree_path or construct_worktree_path(self.repo_path, options.branch_name)
        )

        self._progress("validate", "Validating branch...", 20)
        if not self.branches.branch_exists(branch_name):
            raise BranchNotFoundError(branch_name)

        self._progress("validate", "Checking for existing worktree...", 25)
        existing = self.worktrees.get_worktree_path(branch_name)
        if existing:
            raise WorktreeExistsError(branch_name, existing)

        self._progress("validate", "Checking disk space...", 30)
        if not ValidationService.has_sufficient_disk_space(worktree_path, DEFAULT_REQUIRED_DISK_MB):
            raise DiskSpaceError(
                "Insufficient disk space for worktree creation",
                required_mb=DEFAULT_REQUIRED_DISK_MB,
                available_mb=ValidationService.get_available_disk_mb(worktree_path),
            )

        self._progress("validate", "Checking worktree path...", 35)
        claimed = self._prepare_destination(
            worktree_path, options.force, options.reuse_existing, errors
        )

        self._progress("git", f"Creating worktree for branch '{branch_name}'...", 45)
        try:
            self.worktrees.add_worktree(worktree_path, branch_name)
        except GitWorktreeError:
            if claimed:
                self._release_claim(worktree_path)
            raise
        self._progress("git", "Worktree created successfully", 50)

        try:
            self._populate(config, worktree_path, options, errors)
        except WorktreeError:
            raise
        except Exception as e:
            raise WorktreeError(f"Failed to create worktree: {e}", cause=str(e)) from e

        self._progress("done", "Worktree ready for use", 100)
        metadata = WorktreeMetadata(
            branch_name=branch_name,
            worktree_path=worktree_path,
            created_at=datetime.now(timezone.utc).isoformat(),
            status=WorktreeStatus.READY,
            parent_repo=self.repo_path,
        )
        return CreateWorktreeResult(
            success=True, worktree_path=worktree_path, metadata=metadata, errors=errors
        )

    def _populate(self, config: SpeckConfig, worktree_path: str, options: CreateWorktreeOptions, errors: List[str]) -> None:
        """Steps that run inside the new worktree: files, dependencies, IDE."""
        settings = config.worktree

        if settings.files.rules:
            self._progress("files", "Applying file rules...", 60)
            file_result = apply_file_rules(
                self.repo_path,
                worktree_path,
                settings.files.rules,
                include_untracked=settings.files.include_untracked,
                channel=self.channel,
            )
            if file_result.copied_count:
                self._progress("files", f"Copied {file_result.copied_count} files", 70)
            if file_result.symlinked_count:
                self._progress("files", f"Created {file_result.symlinked_count} symlinks", 75)
            for failure in file_result.errors:
                errors.append(f"File operation error ({failure.path}): {failure.error}")

        if settings.dependencies.auto_install and not options.skip_deps:
            self._progress("deps", "Installing dependencies...", 80)
            install = install_dependencies(
                worktree_path, settings.dependencies.package_manager, channel=self.channel
            )
            if not install.success:
                suggestion = install.interpretation.suggestion if install.interpretation else None
                raise DependencyInstallError(
                    f"Dependency installation failed: {install.error}\n\n"
                    f"Suggestion: {suggestion}\n\n"
                    f"The worktree was left at {worktree_path}. Fix the problem and run "
                    f"'{install.package_manager} install' there, or remove it with: "
                    f"git worktree remove {worktree_path}",
                    package_manager=install.package_manager,
                    install_output=install.error,
                    interpretation=suggestion,
                    worktree_path=worktree_path,
                )
            self._progress(
                "deps",
                f"Dependencies installed with {install.package_manager} in {install.duration_ms}ms",
                88,
            )

        if settings.ide.auto_launch and not options.skip_ide:
            self._progress("ide", "Launching IDE...", 90)
            ide_result = launch_ide(worktree_path, settings.ide.editor, settings.ide.new_window)
            if not ide_result.success:
                errors.append(f"IDE launch failed: {ide_result.error}")

    def remove(self, options: RemoveWorktreeOptions) -> RemoveWorktreeResult:
        """Remove the worktree of a branch, optionally deleting the branch.

        When git refuses (e.g. corrupted administrative state) the directory
        is deleted directly and the stale record pruned. A failed branch
        deletion is reported in `errors` and does not fail the removal.

        Raises:
            WorktreeNotFoundError: if no worktree tracks the branch
            GitWorktreeError: if the directory could not be removed at all
        """
        worktree_path = self.worktrees.get_worktree_path(options.branch_name)
        if not worktree_path:
            raise WorktreeNotFoundError(options.branch_name)

        result = RemoveWorktreeResult(success=True, worktree_path=worktree_path)
        try:
            self.worktrees.remove_worktree(worktree_path, force=options.force)
        except GitWorktreeError as e:
            logger.warning(f"git worktree remove failed, deleting {worktree_path} directly")
            try:
                if os.path.lexists(worktree_path):
                    shutil.rmtree(worktree_path)
            except OSError as rm_error:
                raise GitWorktreeError(
                    f"Failed to remove worktree: {rm_error}", git_output=e.git_output
                ) from rm_error
            result.used_fallback = True
            self.worktrees.prune_worktrees()

        if options.delete_branch:
            deleted = self.branches.delete_branch(options.branch_name, force=options.force)
            if deleted.ok:
                result.branch_deleted = True
            else:
                logger.warning(f"Worktree removed but branch was not deleted: {deleted.error}")
                result.errors.append(f"Branch deletion failed: {deleted.error}")

        return result

    def list_worktrees(self) -> List[GitWorktreeInfo]:
        return self.worktrees.list_worktrees()

    def prune_worktrees(self, dry_run: bool = False) -> PruneResult:
        return self.worktrees.prune_worktrees(dry_run=dry_run)


def create_worktree(
    options: CreateWorktreeOptions,
    channel: Optional[ProgressChannel] = None,
    config: Optional[SpeckConfig] = None,
) -> CreateWorktreeResult:
    """Create a worktree; see WorktreeManager.create."""
    return WorktreeManager(options.repo_path, channel).create(options, config)


def remove_worktree(options: RemoveWorktreeOptions) -> RemoveWorktreeResult:
    """Remove a worktree; see WorktreeManager.remove."""
    return WorktreeManager(options.repo_path).remove(options)


def list_worktrees(repo_path: str) -> List[GitWorktreeInfo]:
    return WorktreeService(repo_path).list_worktrees()


def prune_worktrees(repo_path: str, dry_run: bool = False) -> PruneResult:
    return WorktreeService(repo_path).prune_worktrees(dry_run=dry_run)
