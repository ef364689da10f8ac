"""Handlers for the speck-worktree subcommands.

Each handler takes the parsed arguments and returns the process exit code.
Errors are raised to the entry point, which reports them.
"""

import json
import os
import sys
from contextlib import nullcontext
from typing import Any, Dict

from rich.console import Console
from rich.progress import BarColumn, Progress, TextColumn
from rich.prompt import Confirm, Prompt
from rich.table import Table

from speck.config import (
    DependencyConfig,
    FileConfig,
    FileRule,
    IDEConfig,
    SpeckConfig,
    WorktreeConfig,
    default_speck_config,
    minimal_speck_config,
)
from speck.constants import IDE_EDITORS, PACKAGE_MANAGERS
from speck.core.progress import ProgressChannel, ProgressEvent
from speck.core.speck_root import find_repo_root
from speck.core.worktree_manager import WorktreeManager
from speck.exceptions import ConfigError
from speck.models.worktree import CreateWorktreeOptions, RemoveWorktreeOptions
from speck.services.config_store import load_config, migrate_config, save_config
from speck.services.dependency_service import detect_package_manager
from speck.services.ide_service import detect_available_ides, launch_ide
from speck.logging_config import get_logger

console = Console()
logger = get_logger(__name__)


def print_json(data: Dict[str, Any]) -> None:
    sys.stdout.write(json.dumps(data, indent=2) + "\n")
    sys.stdout.flush()


def resolve_repo_path(path: str) -> str:
    return find_repo_root(os.path.abspath(path))


def cmd_create(args) -> int:
    repo_path = resolve_repo_path(args.repo_path)
    config = load_config(repo_path)

    if not config.is_worktree_enabled:
        message = "Worktree integration is disabled in configuration"
        if args.json:
            print_json({"success": True, "skipped": True, "message": message})
        else:
            console.print(f"[yellow]⚠ {message}; nothing to do[/yellow]")
        return 0

    options = CreateWorktreeOptions(
        repo_path=repo_path,
        branch_name=args.branch,
        worktree_path=args.worktree_path,
        reuse_existing=args.reuse,
        force=args.force,
        skip_deps=args.no_deps,
        skip_ide=args.no_ide,
    )

    channel = ProgressChannel()
    show_progress = not args.json and console.is_terminal
    progress_context = (
        Progress(
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.percentage:>3.0f}%"),
            console=console,
            transient=True,
        )
        if show_progress
        else nullcontext()
    )

    with progress_context as progress:
        if progress is not None:
            task = progress.add_task("Starting...", total=100)

            def render(event: ProgressEvent) -> None:
                progress.update(
                    task,
                    description=event.message,
                    completed=event.percent if event.percent is not None else channel.last_percent,
                )

            channel.subscribe(render)
        result = WorktreeManager(repo_path, channel).create(options, config)

    if args.json:
        print_json(result.to_dict())
        return 0

    console.print(f"[green]✓ Created worktree for branch {result.metadata.branch_name}[/green]")
    console.print(f"  Path: {result.worktree_path}")
    for warning in result.errors:
        console.print(f"[yellow]⚠ {warning}[/yellow]")
    return 0


def cmd_remove(args) -> int:
    repo_path = resolve_repo_path(args.repo_path)
    result = WorktreeManager(repo_path).remove(
        RemoveWorktreeOptions(
            repo_path=repo_path,
            branch_name=args.branch,
            force=args.force,
            delete_branch=args.delete_branch,
        )
    )

    if args.json:
        data = result.to_dict()
        data["branchName"] = args.branch
        print_json(data)
        return 0

    console.print(f"[green]✓ Removed worktree for branch {args.branch}[/green]")
    if result.used_fallback:
        console.print("[yellow]⚠ git refused the removal; the directory was deleted directly[/yellow]")
    if result.branch_deleted:
        console.print(f"[green]✓ Deleted branch {args.branch}[/green]")
    for warning in result.errors:
        console.print(f"[yellow]⚠ {warning}[/yellow]")
    return 0


def cmd_list(args) -> int:
    repo_path = resolve_repo_path(args.repo_path)
    worktrees = WorktreeManager(repo_path).list_worktrees()

    if args.json:
        print_json({"worktrees": [wt.to_dict() for wt in worktrees]})
        return 0

    if not worktrees:
        console.print("No worktrees found")
        return 0

    console.print(f"Found {len(worktrees)} worktree(s):\n")
    table = Table()
    table.add_column("Branch")
    table.add_column("Path")
    if args.list_verbose:
        table.add_column("Commit")
        table.add_column("Prunable")

    for wt in worktrees:
        row = [wt.branch, wt.path]
        if args.list_verbose:
            row.append(wt.commit)
            row.append(f"yes ({wt.prunable})" if wt.prunable else "no")
        table.add_row(*row, style="yellow" if wt.prunable else None)

    console.print(table)
    return 0


def cmd_prune(args) -> int:
    repo_path = resolve_repo_path(args.repo_path)
    result = WorktreeManager(repo_path).prune_worktrees(dry_run=args.dry_run)

    if args.json:
        data = result.to_dict()
        data["success"] = True
        print_json(data)
        return 0

    if result.pruned_count == 0:
        console.print("[green]✓ No stale worktrees found[/green]")
        return 0

    if result.dry_run:
        console.print(f"Would prune {result.pruned_count} stale worktree(s):")
    else:
        console.print(f"[green]✓ Pruned {result.pruned_count} stale worktree(s):[/green]")
    for path in result.pruned_paths:
        console.print(f"  - {path}")
    return 0


def detected_defaults(repo_path: str) -> SpeckConfig:
    """Default configuration with the first IDE on PATH and the lockfile's package manager."""
    config = default_speck_config()
    ides = detect_available_ides()
    if ides:
        config.worktree.ide = IDEConfig(editor=ides[0].editor)
    if os.path.exists(os.path.join(repo_path, "package.json")):
        config.worktree.dependencies = DependencyConfig(
            package_manager=detect_package_manager(repo_path)
        )
    return config


def run_init_wizard(repo_path: str) -> SpeckConfig:
    """Ask for each setting, starting from the existing configuration."""
    try:
        existing = load_config(repo_path)
    except ConfigError as e:
        logger.warning(f"Ignoring unreadable configuration: {e.message}")
        existing = default_speck_config()
    current = existing.worktree

    ide_names = [ide.editor for ide in detect_available_ides()]
    has_manifest = os.path.exists(os.path.join(repo_path, "package.json"))
    detected_pm = detect_package_manager(repo_path) if has_manifest else None

    console.print("\n[bold]Speck Worktree Setup Wizard[/bold]\n")
    console.print("Press Ctrl+C to cancel at any time.\n")

    if not Confirm.ask("Enable worktree integration?", default=current.enabled):
        console.print("\n[yellow]⚠ Worktree integration will be disabled.[/yellow]")
        return SpeckConfig(worktree=WorktreeConfig(enabled=False))

    worktree_path = Prompt.ask(
        "Worktree directory path (relative to repository root)", default=current.worktree_path
    )

    branch_prefix = None
    if Confirm.ask(
        "Use a branch prefix (e.g., username/feature-name)?",
        default=current.branch_prefix is not None,
    ):
        branch_prefix = Prompt.ask("Branch prefix", default=current.branch_prefix or "") or None

    auto_launch = Confirm.ask(
        "Auto-launch IDE when creating worktrees?",
        default=current.ide.auto_launch or bool(ide_names),
    )
    editor = current.ide.editor
    if auto_launch:
        if ide_names:
            console.print(f"\nDetected IDEs: {', '.join(ide_names)}")
        default_editor = editor if editor in ide_names or not ide_names else ide_names[0]
        editor = Prompt.ask("Preferred IDE", choices=IDE_EDITORS, default=default_editor)
    new_window = Confirm.ask("Open IDE in new window?", default=current.ide.new_window)

    auto_install = Confirm.ask(
        "Auto-install dependencies in worktrees?",
        default=current.dependencies.auto_install or detected_pm is not None,
    )
    package_manager = current.dependencies.package_manager
    if auto_install:
        if detected_pm:
            console.print(f"\nDetected package manager: {detected_pm}")
        package_manager = Prompt.ask(
            "Package manager",
            choices=PACKAGE_MANAGERS,
            default=detected_pm or package_manager,
        )

    if Confirm.ask("Use default file rules (.env copy, node_modules symlink)?", default=True):
        rules = [
            FileRule(".env*", "copy"),
            FileRule("node_modules", "symlink"),
            FileRule(".git", "ignore"),
        ]
    else:
        rules = list(current.files.rules)
    include_untracked = Confirm.ask(
        "Include untracked files in worktrees?", default=current.files.include_untracked
    )

    return SpeckConfig(
        worktree=WorktreeConfig(
            enabled=True,
            worktree_path=worktree_path,
            branch_prefix=branch_prefix,
            ide=IDEConfig(auto_launch=auto_launch, editor=editor, new_window=new_window),
            dependencies=DependencyConfig(
                auto_install=auto_install, package_manager=package_manager
            ),
            files=FileConfig(rules=rules, include_untracked=include_untracked),
        )
    )


def cmd_init(args) -> int:
    repo_path = resolve_repo_path(args.repo_path)

    if migrate_config(repo_path) and not args.json:
        console.print("[green]✓ Migrated existing configuration to the current version[/green]")

    if args.defaults:
        mode = "defaults"
        config = detected_defaults(repo_path)
    elif args.minimal:
        mode = "minimal"
        config = minimal_speck_config()
    else:
        mode = "interactive"
        config = run_init_wizard(repo_path)

    save_config(repo_path, config)

    if args.json:
        print_json({"success": True, "config": config.to_dict(), "mode": mode})
        return 0

    if mode == "defaults":
        console.print("[green]✓ Created worktree configuration with default values[/green]")
    elif mode == "minimal":
        console.print("[green]✓ Created minimal worktree configuration[/green]")
    console.print("\n[green]✓ Configuration saved to .speck/config.json[/green]")
    if mode == "interactive":
        console.print("\nYou can now create worktrees with:")
        console.print("  speck-worktree create --branch <branch-name>")
    return 0


def cmd_launch_ide(args) -> int:
    """Open a worktree in the configured IDE. IDE failures never fail the command."""
    repo_path = resolve_repo_path(args.repo_path)
    config = load_config(repo_path)
    ide = config.worktree.ide

    if not ide.auto_launch:
        if args.json:
            print_json(
                {
                    "success": True,
                    "skipped": True,
                    "message": "IDE auto-launch is disabled in configuration",
                }
            )
        return 0

    worktree_path = os.path.abspath(args.worktree_path)
    result = launch_ide(worktree_path, ide.editor, ide.new_window)

    if args.json:
        print_json(result.to_dict())
    elif result.success:
        console.print(f"[green]✓ Launched {result.editor} at {worktree_path}[/green]")
    else:
        Console(stderr=True).print(f"[yellow]⚠ IDE launch failed: {result.error}[/yellow]")
    return 0


COMMANDS = {
    "create": cmd_create,
    "remove": cmd_remove,
    "list": cmd_list,
    "prune": cmd_prune,
    "init": cmd_init,
    "launch-ide": cmd_launch_ide,
}
