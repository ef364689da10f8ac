"""Configuration schema for speck worktree integration.

Stored per repository at ``.speck/config.json``. JSON keys are camelCase,
attributes are snake_case; ``to_dict``/``from_dict`` translate between them.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from speck.constants import (
    CURRENT_CONFIG_VERSION,
    FILE_ACTIONS,
    IDE_EDITORS,
    PACKAGE_MANAGERS,
)
from speck.exceptions import ConfigValidationError


@dataclass
class FileRule:
    """Pattern plus action governing how a path is materialized in a worktree."""

    pattern: str
    action: str  # copy, symlink, ignore

    def __post_init__(self):
        if not isinstance(self.pattern, str) or not self.pattern:
            raise ValueError("Pattern cannot be empty")
        if self.action not in FILE_ACTIONS:
            raise ValueError("Action must be 'copy', 'symlink', or 'ignore'")

    def to_dict(self) -> dict:
        return {"pattern": self.pattern, "action": self.action}


@dataclass
class IDEConfig:
    """IDE auto-launch settings."""

    auto_launch: bool = False
    editor: str = "vscode"
    new_window: bool = True

    def __post_init__(self):
        if self.editor not in IDE_EDITORS:
            raise ValueError(f"Editor must be one of: {', '.join(IDE_EDITORS)}")

    def to_dict(self) -> dict:
        return {
            "autoLaunch": self.auto_launch,
            "editor": self.editor,
            "newWindow": self.new_window,
        }


@dataclass
class DependencyConfig:
    """Dependency installation settings."""

    auto_install: bool = False
    package_manager: str = "auto"

    def __post_init__(self):
        if self.package_manager not in PACKAGE_MANAGERS:
            raise ValueError(
                "Package manager must be 'npm', 'yarn', 'pnpm', 'bun', or 'auto'"
            )

    def to_dict(self) -> dict:
        return {
            "autoInstall": self.auto_install,
            "packageManager": self.package_manager,
        }


@dataclass
class FileConfig:
    """File handling rules for new worktrees."""

    rules: List[FileRule] = field(default_factory=list)
    include_untracked: bool = True

    def to_dict(self) -> dict:
        return {
            "rules": [rule.to_dict() for rule in self.rules],
            "includeUntracked": self.include_untracked,
        }


@dataclass
class WorktreeConfig:
    """All worktree integration settings."""

    enabled: bool = True
    worktree_path: str = "../"
    branch_prefix: Optional[str] = None
    ide: IDEConfig = field(default_factory=IDEConfig)
    dependencies: DependencyConfig = field(default_factory=DependencyConfig)
    files: FileConfig = field(default_factory=FileConfig)

    def to_dict(self) -> dict:
        data: Dict[str, Any] = {
            "enabled": self.enabled,
            "worktreePath": self.worktree_path,
        }
        if self.branch_prefix is not None:
            data["branchPrefix"] = self.branch_prefix
        data["ide"] = self.ide.to_dict()
        data["dependencies"] = self.dependencies.to_dict()
        data["files"] = self.files.to_dict()
        return data


@dataclass
class SpeckConfig:
    """Root of .speck/config.json."""

    version: str = CURRENT_CONFIG_VERSION
    worktree: WorktreeConfig = field(default_factory=WorktreeConfig)

    def to_dict(self) -> dict:
        return {"version": self.version, "worktree": self.worktree.to_dict()}

    @classmethod
    def from_dict(cls, data: Any) -> "SpeckConfig":
        """Create SpeckConfig from a raw JSON document."""
        return parse_speck_config(data)

    @property
    def file_rules(self) -> List[FileRule]:
        return self.worktree.files.rules

    @property
    def is_worktree_enabled(self) -> bool:
        return self.worktree.enabled


def default_file_rules() -> List[FileRule]:
    """Default rules written into generated config files so users can edit them."""
    return [
        # Configuration files are copied so each worktree can diverge
        FileRule(".env*", "copy"),
        FileRule("*.config.js", "copy"),
        FileRule("*.config.ts", "copy"),
        FileRule("*.config.json", "copy"),
        FileRule(".nvmrc", "copy"),
        FileRule(".node-version", "copy"),
        FileRule(".claude/settings.local.json", "copy"),
        # Large dependency directories are shared
        FileRule("node_modules", "symlink"),
        FileRule(".bun", "symlink"),
        FileRule(".cache", "symlink"),
        FileRule(".git", "ignore"),
        FileRule(".speck", "ignore"),
        FileRule("dist", "ignore"),
        FileRule("build", "ignore"),
    ]


def default_speck_config() -> SpeckConfig:
    """Built-in configuration used when .speck/config.json is absent."""
    return SpeckConfig(
        version=CURRENT_CONFIG_VERSION,
        worktree=WorktreeConfig(files=FileConfig(rules=default_file_rules())),
    )


def minimal_speck_config() -> SpeckConfig:
    """Worktrees enabled, every optional behavior off, no file rules."""
    return SpeckConfig(version=CURRENT_CONFIG_VERSION, worktree=WorktreeConfig())


class _ConfigParser:
    """Walks a raw JSON document, applying defaults and collecting errors."""

    def __init__(self):
        self.errors: List[str] = []

    def _error(self, path: str, message: str):
        self.errors.append(f"  - {path}: {message}")

    def _section(self, data: dict, key: str, path: str) -> dict:
        value = data.get(key)
        if value is None:
            return {}
        if not isinstance(value, dict):
            self._error(path, "Expected object")
            return {}
        return value

    def _bool(self, data: dict, key: str, default: bool, path: str) -> bool:
        value = data.get(key, default)
        if not isinstance(value, bool):
            self._error(path, f"Expected boolean, received {type(value).__name__}")
            return default
        return value

    def _str(self, data: dict, key: str, default: Optional[str], path: str) -> Optional[str]:
        value = data.get(key, default)
        if value is None:
            return default
        if not isinstance(value, str):
            self._error(path, f"Expected string, received {type(value).__name__}")
            return default
        return value

    def _choice(self, data: dict, key: str, default: str, allowed: List[str], path: str, message: str) -> str:
        value = data.get(key, default)
        if value not in allowed:
            self._error(path, message)
            return default
        return value

    def parse(self, data: Any) -> SpeckConfig:
        if not isinstance(data, dict):
            self._error("(root)", "Expected object")
            return SpeckConfig()

        version = self._str(data, "version", CURRENT_CONFIG_VERSION, "version")
        wt = self._section(data, "worktree", "worktree")

        ide_data = self._section(wt, "ide", "worktree.ide")
        ide = IDEConfig(
            auto_launch=self._bool(ide_data, "autoLaunch", False, "worktree.ide.autoLaunch"),
            editor=self._choice(
                ide_data, "editor", "vscode", IDE_EDITORS, "worktree.ide.editor",
                f"Editor must be one of: {', '.join(IDE_EDITORS)}",
            ),
            new_window=self._bool(ide_data, "newWindow", True, "worktree.ide.newWindow"),
        )

        deps_data = self._section(wt, "dependencies", "worktree.dependencies")
        dependencies = DependencyConfig(
            auto_install=self._bool(
                deps_data, "autoInstall", False, "worktree.dependencies.autoInstall"
            ),
            package_manager=self._choice(
                deps_data, "packageManager", "auto", PACKAGE_MANAGERS,
                "worktree.dependencies.packageManager",
                "Package manager must be 'npm', 'yarn', 'pnpm', 'bun', or 'auto'",
            ),
        )

        files_data = self._section(wt, "files", "worktree.files")
        rules: List[FileRule] = []
        raw_rules = files_data.get("rules", [])
        if not isinstance(raw_rules, list):
            self._error("worktree.files.rules", "Expected array")
            raw_rules = []
        for index, raw_rule in enumerate(raw_rules):
            rule_path = f"worktree.files.rules.{index}"
            if not isinstance(raw_rule, dict):
                self._error(rule_path, "Expected object")
                continue
            try:
                rules.append(FileRule(raw_rule.get("pattern"), raw_rule.get("action")))
            except ValueError as e:
                field_name = "action" if "Action" in str(e) else "pattern"
                self._error(f"{rule_path}.{field_name}", str(e))
        files = FileConfig(
            rules=rules,
            include_untracked=self._bool(
                files_data, "includeUntracked", True, "worktree.files.includeUntracked"
            ),
        )

        worktree = WorktreeConfig(
            enabled=self._bool(wt, "enabled", True, "worktree.enabled"),
            worktree_path=self._str(wt, "worktreePath", "../", "worktree.worktreePath"),
            branch_prefix=self._str(wt, "branchPrefix", None, "worktree.branchPrefix"),
            ide=ide,
            dependencies=dependencies,
            files=files,
        )
        return SpeckConfig(version=version, worktree=worktree)


def parse_speck_config(data: Any) -> SpeckConfig:
    """Validate a raw config document and apply defaults.

    Unknown keys are ignored. Every schema problem is reported at once.

    Raises:
        ConfigValidationError: listing each offending field path
    """
    parser = _ConfigParser()
    config = parser.parse(data)
    if parser.errors:
        raise ConfigValidationError(
            "Invalid configuration in .speck/config.json:\n" + "\n".join(parser.errors),
            validation_errors=parser.errors,
        )
    return config
