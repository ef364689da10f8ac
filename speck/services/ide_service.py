"""Editor detection and fire-and-forget launch."""

import shutil
import subprocess
from typing import List

from speck.constants import IDE_COMMANDS, JETBRAINS_FLAG
from speck.models.operations import IDEInfo, IDELaunchResult
from speck.logging_config import get_logger

logger = get_logger(__name__)


def is_ide_available(command: str) -> bool:
    """True if the editor CLI is on PATH."""
    return shutil.which(command) is not None


def _default_args(spec: dict) -> List[str]:
    flag = spec.get("new_window_flag")
    return [flag] if flag else [JETBRAINS_FLAG]


def detect_available_ides() -> List[IDEInfo]:
    """Editors whose CLI command is found on PATH, in a fixed order."""
    ides = []
    for editor, spec in IDE_COMMANDS.items():
        if is_ide_available(spec["command"]):
            ides.append(
                IDEInfo(
                    editor=editor,
                    name=spec["name"],
                    command=spec["command"],
                    args=_default_args(spec),
                    available=True,
                )
            )
    return ides


def get_ide_command(editor: str, worktree_path: str, new_window: bool = True) -> List[str]:
    """Full argv to open `worktree_path` in `editor`.

    VSCode-style editors take -n for a new window; JetBrains-style editors
    always get "nosplash".

    Raises:
        ValueError: for an unknown editor
    """
    spec = IDE_COMMANDS.get(editor)
    if spec is None:
        raise ValueError(f"Unknown IDE editor: {editor}")

    command = [spec["command"]]
    flag = spec.get("new_window_flag")
    if flag:
        if new_window:
            command.append(flag)
    else:
        command.append(JETBRAINS_FLAG)
    command.append(worktree_path)
    return command


def launch_ide(worktree_path: str, editor: str, new_window: bool = True) -> IDELaunchResult:
    """Spawn the editor detached and return without waiting.

    Never raises: unknown editors, missing commands and spawn errors come
    back as an unsuccessful result.
    """
    spec = IDE_COMMANDS.get(editor)
    if spec is None:
        return IDELaunchResult(
            success=False, editor=editor, command="", error=f"Unknown IDE editor: {editor}"
        )

    if not is_ide_available(spec["command"]):
        return IDELaunchResult(
            success=False,
            editor=editor,
            command=spec["command"],
            error=(
                f"IDE '{spec['name']}' (command: {spec['command']}) is not available in PATH. "
                f"Please install {spec['name']} or add it to your PATH environment variable."
            ),
        )

    argv = get_ide_command(editor, worktree_path, new_window)
    command_string = " ".join(argv)
    try:
        subprocess.Popen(
            argv,
            cwd=worktree_path,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            start_new_session=True,  # Keep running after the CLI exits
        )
    except OSError as e:
        logger.warning(f"Failed to launch {spec['name']}: {e}")
        return IDELaunchResult(
            success=False,
            editor=editor,
            command=command_string,
            error=(
                f"Failed to launch IDE '{spec['name']}': {e}. The IDE command may not be "
                "in your PATH, or the worktree path may be invalid."
            ),
        )

    logger.info(f"Launched {spec['name']}: {command_string}")
    return IDELaunchResult(success=True, editor=editor, command=command_string)
