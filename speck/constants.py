"""Shared constants for speck."""

from typing import Dict, List, Tuple


# Persisted state layout
SPECK_DIR = ".speck"
CONFIG_FILENAME = "config.json"
ROOT_LINK_NAME = "root"
BRANCHES_FILENAME = "branches.json"
CHILD_LINK_PREFIX = ".speck-link-"
SPECS_DIRNAME = "specs"

CURRENT_CONFIG_VERSION = "1.0"


# Allowed enum values in config.json
FILE_ACTIONS: List[str] = ["copy", "symlink", "ignore"]
IDE_EDITORS: List[str] = ["vscode", "cursor", "webstorm", "idea", "pycharm"]
PACKAGE_MANAGERS: List[str] = ["npm", "yarn", "pnpm", "bun", "auto"]


# Worktree creation
DEFAULT_REQUIRED_DISK_MB = 1000
COPY_BATCH_SIZE = 10  # Bounds simultaneously open file descriptors
MIN_GIT_VERSION: Tuple[int, int] = (2, 5)


# Lockfile detection order: first match wins
LOCKFILES: List[Tuple[str, str]] = [
    ("bun.lockb", "bun"),
    ("pnpm-lock.yaml", "pnpm"),
    ("yarn.lock", "yarn"),
    ("package-lock.json", "npm"),
]


# Editor command map. Editors without a new-window flag are JetBrains-style
# and get "nosplash" instead.
IDE_COMMANDS: Dict[str, Dict[str, str]] = {
    "vscode": {"command": "code", "name": "VSCode", "new_window_flag": "-n"},
    "cursor": {"command": "cursor", "name": "Cursor", "new_window_flag": "-n"},
    "webstorm": {"command": "webstorm", "name": "WebStorm"},
    "idea": {"command": "idea", "name": "IntelliJ IDEA"},
    "pycharm": {"command": "pycharm", "name": "PyCharm"},
}
JETBRAINS_FLAG = "nosplash"


# Symlink targets that may never serve as a speck root or child repository
DANGEROUS_PATHS: List[str] = ["/", "/etc", "/usr", "/bin", "/sbin", "/System", "/Library"]
