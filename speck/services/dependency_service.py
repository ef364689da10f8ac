"""Package manager detection and dependency installation."""

import os
import subprocess
import time
from typing import List, Optional

from speck.constants import LOCKFILES
from speck.core.progress import ProgressChannel
from speck.models.operations import (
    InstallErrorInterpretation,
    InstallErrorKind,
    InstallResult,
)
from speck.logging_config import get_logger

logger = get_logger(__name__)

STAGE = "deps"
MANIFEST = "package.json"


def detect_package_manager(project_path: str) -> str:
    """Pick the package manager from lockfiles: bun, pnpm, yarn, npm; default npm."""
    for lockfile, package_manager in LOCKFILES:
        if os.path.exists(os.path.join(project_path, lockfile)):
            return package_manager
    return "npm"


def get_install_command(package_manager: str) -> List[str]:
    """Install command for a package manager; "auto" falls back to npm."""
    if package_manager in ("bun", "pnpm", "yarn", "npm"):
        return [package_manager, "install"]
    return ["npm", "install"]


def interpret_install_error(error: str) -> InstallErrorInterpretation:
    """Map raw installer output to an actionable category.

    Checks run in order; the first matching keyword set wins.
    """
    text = error.lower()

    if MANIFEST in text and ("enoent" in text or "not found" in text or "no such file" in text):
        return InstallErrorInterpretation(
            InstallErrorKind.MISSING_MANIFEST,
            "package.json not found. Ensure the file exists in the worktree directory.",
        )
    if "eacces" in text or "permission denied" in text:
        return InstallErrorInterpretation(
            InstallErrorKind.PERMISSION_DENIED,
            "Permission denied. Try running with appropriate permissions or check file ownership.",
        )
    if "enospc" in text or "no space" in text:
        return InstallErrorInterpretation(
            InstallErrorKind.DISK_SPACE,
            "Insufficient disk space. Free up disk space and try again.",
        )
    if "network" in text or "timeout" in text or "fetch" in text:
        return InstallErrorInterpretation(
            InstallErrorKind.NETWORK,
            "Network error. Check your internet connection and try again.",
        )
    if "404" in text or "not found" in text:
        return InstallErrorInterpretation(
            InstallErrorKind.REGISTRY_NOT_FOUND,
            "Package not found in registry. Verify package names in package.json.",
        )
    if "unexpected" in text and "json" in text:
        return InstallErrorInterpretation(
            InstallErrorKind.MALFORMED_MANIFEST,
            "Invalid JSON in package.json. Check syntax and formatting.",
        )
    return InstallErrorInterpretation(
        InstallErrorKind.UNKNOWN,
        "Dependency installation failed. Check the error message above for details.",
    )


def _elapsed_ms(start: float) -> int:
    return int((time.monotonic() - start) * 1000)


def install_dependencies(
    worktree_path: str,
    package_manager: Optional[str] = None,
    channel: Optional[ProgressChannel] = None,
) -> InstallResult:
    """Run the package manager's install in `worktree_path`, streaming output.

    Output lines (stdout and stderr) are forwarded to the channel as they
    arrive. A missing package.json fails before anything is spawned. Spawn
    errors and non-zero exits both come back as a failed InstallResult with
    an interpretation; this function does not raise for installer failures.
    """
    channel = channel or ProgressChannel()
    start = time.monotonic()

    if not package_manager or package_manager == "auto":
        package_manager = detect_package_manager(worktree_path)

    if not os.path.exists(os.path.join(worktree_path, MANIFEST)):
        error = f"{MANIFEST} not found"
        return InstallResult(
            success=False,
            package_manager=package_manager,
            duration_ms=_elapsed_ms(start),
            error=error,
            interpretation=interpret_install_error(error),
        )

    command = get_install_command(package_manager)
    channel.emit(STAGE, f"Installing dependencies with {package_manager}...")
    logger.info(f"Running {' '.join(command)} in {worktree_path}")

    output_lines: List[str] = []
    try:
        with subprocess.Popen(
            command,
            cwd=worktree_path,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            bufsize=1,
        ) as proc:
            for line in proc.stdout:
                line = line.rstrip()
                output_lines.append(line)
                if line:
                    channel.emit(STAGE, line)
            returncode = proc.wait()
    except OSError as e:
        error = f"Failed to run {command[0]}: {e}"
        logger.error(error)
        return InstallResult(
            success=False,
            package_manager=package_manager,
            duration_ms=_elapsed_ms(start),
            error=error,
            interpretation=interpret_install_error(error),
        )

    duration = _elapsed_ms(start)
    if returncode == 0:
        logger.info(f"Dependencies installed with {package_manager} in {duration}ms")
        return InstallResult(success=True, package_manager=package_manager, duration_ms=duration)

    error = "\n".join(output_lines).strip() or f"Installation failed with exit code {returncode}"
    logger.error(f"{package_manager} install exited with {returncode}")
    return InstallResult(
        success=False,
        package_manager=package_manager,
        duration_ms=duration,
        error=error,
        interpretation=interpret_install_error(error),
    )
