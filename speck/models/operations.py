"""Result models for file rules, dependency installation and IDE launch."""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass
class FileOperationFailure:
    path: str
    error: str


@dataclass
class FileRulesResult:
    copied_paths: List[str] = field(default_factory=list)
    symlinked_paths: List[str] = field(default_factory=list)
    errors: List[FileOperationFailure] = field(default_factory=list)

    @property
    def copied_count(self) -> int:
        return len(self.copied_paths)

    @property
    def symlinked_count(self) -> int:
        return len(self.symlinked_paths)


class InstallErrorKind(Enum):
    """Categories of dependency installation failures."""
    MISSING_MANIFEST = "missing-manifest"
    PERMISSION_DENIED = "permission-denied"
    DISK_SPACE = "disk-space"
    NETWORK = "network"
    REGISTRY_NOT_FOUND = "registry-404"
    MALFORMED_MANIFEST = "malformed-manifest"
    UNKNOWN = "unknown"


@dataclass
class InstallErrorInterpretation:
    kind: InstallErrorKind
    suggestion: str


@dataclass
class InstallResult:
    success: bool
    package_manager: str
    duration_ms: Optional[int] = None
    error: Optional[str] = None
    interpretation: Optional[InstallErrorInterpretation] = None


@dataclass
class IDEInfo:
    """An editor CLI found on PATH."""
    editor: str
    name: str
    command: str
    args: List[str]
    available: bool

    def to_dict(self) -> dict:
        return {
            "editor": self.editor,
            "name": self.name,
            "command": self.command,
            "args": self.args,
            "available": self.available,
        }


@dataclass
class IDELaunchResult:
    success: bool
    editor: str
    command: str
    error: Optional[str] = None

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "editor": self.editor,
            "command": self.command,
            "error": self.error,
        }
