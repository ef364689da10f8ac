"""Command-line argument parsing for speck-worktree."""

import argparse
from typing import List, Optional

from speck.__version__ import __version__


def _add_repo_path(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--repo-path", default=".", help="Path to the repository (default: current directory)"
    )


def _add_json(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--json", action="store_true", help="Print machine-readable JSON")


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level parser with one subcommand per worktree operation."""
    parser = argparse.ArgumentParser(
        prog="speck-worktree",
        description="Create and manage git worktrees for speck feature branches",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show verbose output")
    parser.add_argument(
        "--debug", action="store_true", help="Show debug information and write ~/.speck/speck.log"
    )
    parser.add_argument("--version", action="version", version=f"speck-worktree {__version__}")

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    create = subparsers.add_parser("create", help="Create a worktree for an existing branch")
    create.add_argument("--branch", required=True, help="Branch to check out in the worktree")
    _add_repo_path(create)
    create.add_argument(
        "--worktree-path", help="Custom worktree directory (default: sibling of the repository)"
    )
    create.add_argument("--no-ide", action="store_true", help="Skip IDE auto-launch")
    create.add_argument("--no-deps", action="store_true", help="Skip dependency installation")
    create.add_argument(
        "--reuse", action="store_true", help="Reuse an existing directory at the worktree path"
    )
    create.add_argument(
        "--force", action="store_true", help="Remove an existing directory at the worktree path"
    )
    _add_json(create)

    remove = subparsers.add_parser("remove", help="Remove the worktree of a branch")
    remove.add_argument("--branch", required=True, help="Branch whose worktree to remove")
    _add_repo_path(remove)
    remove.add_argument(
        "--force", action="store_true", help="Remove even with uncommitted changes"
    )
    remove.add_argument(
        "--delete-branch", action="store_true", help="Also delete the branch afterwards"
    )
    _add_json(remove)

    list_parser = subparsers.add_parser("list", help="List worktrees of the repository")
    _add_repo_path(list_parser)
    _add_json(list_parser)
    list_parser.add_argument(
        "--verbose", dest="list_verbose", action="store_true", help="Show commit and prune state"
    )

    prune = subparsers.add_parser("prune", help="Clean up records of deleted worktrees")
    _add_repo_path(prune)
    prune.add_argument(
        "--dry-run", action="store_true", help="Show what would be pruned without pruning"
    )
    _add_json(prune)

    init = subparsers.add_parser("init", help="Write .speck/config.json")
    _add_repo_path(init)
    mode = init.add_mutually_exclusive_group()
    mode.add_argument(
        "--defaults", action="store_true", help="Use defaults with detected IDE and package manager"
    )
    mode.add_argument(
        "--minimal", action="store_true", help="Enable worktrees with everything else off"
    )
    _add_json(init)

    launch = subparsers.add_parser("launch-ide", help="Open a worktree in the configured IDE")
    launch.add_argument("--worktree-path", required=True, help="Worktree to open")
    _add_repo_path(launch)
    _add_json(launch)

    return parser


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    return build_parser().parse_args(argv)
