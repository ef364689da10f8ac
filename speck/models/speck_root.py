"""Speck root detection models."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class SpeckMode(Enum):
    SINGLE_REPO = "single-repo"
    MULTI_REPO = "multi-repo"


@dataclass(frozen=True)
class SpeckRootConfig:
    """Where specs live for the current invocation.

    In multi-repo mode specs_dir is always speck_root/specs; in single-repo
    mode speck_root equals repo_root.
    """

    mode: SpeckMode
    speck_root: str
    repo_root: str
    specs_dir: str

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "speckRoot": self.speck_root,
            "repoRoot": self.repo_root,
            "specsDir": self.specs_dir,
        }


@dataclass(frozen=True)
class MultiRepoContext:
    """SpeckRootConfig plus where the invocation sits in a multi-repo setup."""

    root: SpeckRootConfig
    context: str  # single, root, child
    parent_spec_id: Optional[str] = None
    child_repo_name: Optional[str] = None
