"""Custom exceptions for speck"""

from typing import List, Optional


class SpeckError(Exception):
    """Base exception for all speck errors."""

    code = "SPECK_ERROR"

    def __init__(self, message: str, cause: Optional[str] = None):
        self.message = message
        self.cause = cause
        super().__init__(message)


class WorktreeError(SpeckError):
    """Base exception for worktree operations."""

    code = "WORKTREE_ERROR"


class GitWorktreeError(WorktreeError):
    """A git worktree operation failed."""

    code = "GIT_WORKTREE_ERROR"

    def __init__(self, message: str, git_output: Optional[str] = None):
        self.git_output = git_output
        super().__init__(message, cause=git_output)


class BranchNotFoundError(GitWorktreeError):
    """The branch a worktree should be created for does not exist."""

    code = "BRANCH_NOT_FOUND"

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(
            f"Branch '{branch}' does not exist. Create it first with: git branch {branch}"
        )


class WorktreeExistsError(GitWorktreeError):
    """A worktree already tracks the branch."""

    code = "WORKTREE_EXISTS"

    def __init__(self, branch: str, path: str):
        self.branch = branch
        self.path = path
        super().__init__(f"Worktree already exists for branch '{branch}' at: {path}")


class WorktreeNotFoundError(GitWorktreeError):
    """No worktree is checked out for the branch."""

    code = "WORKTREE_NOT_FOUND"

    def __init__(self, branch: str):
        self.branch = branch
        super().__init__(f"No worktree found for branch '{branch}'")


class PathOccupiedError(WorktreeError):
    """The destination directory already has content."""

    code = "PATH_OCCUPIED"

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Directory already exists at {path}. "
            "Use --reuse to reuse it or --force to remove it."
        )


class InvalidBranchNameError(WorktreeError):
    """Branch name violates git ref naming rules."""

    code = "INVALID_BRANCH_NAME"

    def __init__(self, branch: str, reason: Optional[str] = None):
        self.branch = branch
        super().__init__(
            f"Invalid branch name: '{branch}'. "
            + (reason or "Branch names cannot contain spaces, special characters, or start with a dash.")
        )


class FileOperationError(WorktreeError):
    """A file copy or symlink failed."""

    code = "FILE_OPERATION_ERROR"

    def __init__(self, message: str, path: Optional[str] = None, cause: Optional[str] = None):
        self.path = path
        super().__init__(message, cause=cause)


class DependencyInstallError(WorktreeError):
    """Dependency installation failed inside a new worktree."""

    code = "DEPENDENCY_INSTALL_ERROR"

    def __init__(
        self,
        message: str,
        package_manager: str,
        install_output: Optional[str] = None,
        interpretation: Optional[str] = None,
        worktree_path: Optional[str] = None,
    ):
        self.package_manager = package_manager
        self.install_output = install_output
        self.interpretation = interpretation
        self.worktree_path = worktree_path
        super().__init__(message, cause=install_output)


class IDELaunchError(WorktreeError):
    """IDE could not be launched (always non-fatal for callers)."""

    code = "IDE_LAUNCH_ERROR"

    def __init__(self, message: str, editor: str):
        self.editor = editor
        super().__init__(message)


class DiskSpaceError(WorktreeError):
    """Not enough free disk space for a new worktree."""

    code = "DISK_SPACE_ERROR"

    def __init__(self, message: str, required_mb: int, available_mb: Optional[float] = None):
        self.required_mb = required_mb
        self.available_mb = available_mb
        super().__init__(message)


class ConfigError(SpeckError):
    """Configuration file could not be read or parsed."""

    code = "CONFIG_ERROR"

    def __init__(self, message: str, path: Optional[str] = None, cause: Optional[str] = None):
        self.path = path
        super().__init__(message, cause=cause)


class ConfigValidationError(ConfigError):
    """Configuration does not match the schema."""

    code = "CONFIG_VALIDATION_ERROR"

    def __init__(self, message: str, validation_errors: Optional[List[str]] = None):
        self.validation_errors = validation_errors or []
        super().__init__(message)


class SpeckRootError(SpeckError):
    """Multi-repo configuration is broken (dangling or circular .speck/root)."""

    code = "SPECK_ROOT_ERROR"


class SymlinkSecurityError(SpeckRootError):
    """A speck symlink resolves to a system directory or above the home directory."""

    code = "SYMLINK_SECURITY_ERROR"

    def __init__(self, message: str, target: str):
        self.target = target
        super().__init__(message)
