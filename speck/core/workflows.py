"""Higher-level flows combining branch naming, approval and creation."""

from typing import Callable, Optional

from speck.core.progress import ProgressChannel
from speck.core.worktree_manager import create_worktree
from speck.exceptions import InvalidBranchNameError
from speck.models.worktree import CreateWorktreeOptions, CreateWorktreeResult
from speck.services.config_store import load_config
from speck.services.naming import construct_branch_name
from speck.services.validation_service import ValidationService


def create_branch_with_worktree(
    repo_path: str,
    branch_name: str,
    confirm: Optional[Callable[[str], bool]] = None,
    channel: Optional[ProgressChannel] = None,
    **options,
) -> Optional[CreateWorktreeResult]:
    """Create a worktree for `branch_name` with the configured branch prefix.

    Args:
        repo_path: Main repository checkout
        branch_name: Branch name without prefix, e.g. "012-worktree"
        confirm: Called with the full branch name; returning False cancels
        channel: Progress channel for the creation
        **options: Further CreateWorktreeOptions fields (force, skip_ide, ...)

    Returns:
        The creation result, or None if the user declined

    Raises:
        InvalidBranchNameError: if the prefixed name is not a valid git ref
    """
    config = load_config(repo_path)
    prefix = config.worktree.branch_prefix
    full_branch_name = construct_branch_name(branch_name, prefix)

    if not ValidationService.is_valid_branch_name(full_branch_name):
        raise InvalidBranchNameError(full_branch_name)

    if confirm is not None and not confirm(full_branch_name):
        return None

    create_options = CreateWorktreeOptions(
        repo_path=repo_path, branch_name=branch_name, branch_prefix=prefix, **options
    )
    return create_worktree(create_options, channel=channel, config=config)
