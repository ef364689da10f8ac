"""Materialize files from the main checkout into a new worktree."""

import os
import shutil
from typing import Iterable, List, Optional

import pathspec

from speck.config import FileRule
from speck.constants import COPY_BATCH_SIZE
from speck.core.progress import ProgressChannel
from speck.models.operations import FileOperationFailure, FileRulesResult
from speck.services.git.branch_queries import BranchQueries
from speck.utils.batching import run_in_batches
from speck.logging_config import get_logger

logger = get_logger(__name__)

STAGE = "files"


def build_path_spec(patterns: Iterable[str]) -> pathspec.PathSpec:
    """Compile rule patterns with .gitignore semantics.

    A pattern without a slash matches at any depth, and a pattern naming a
    directory also matches everything below it, so ``dist`` covers
    ``dist/app.js``.
    """
    return pathspec.PathSpec.from_lines("gitwildmatch", patterns)


class FileRulesService:
    """Applies copy / symlink / ignore rules between two directory trees."""

    def __init__(self, source_path: str, dest_path: str, channel: Optional[ProgressChannel] = None):
        """
        Args:
            source_path: Main repository checkout
            dest_path: Freshly added worktree
            channel: Progress channel to report into
        """
        self.source_path = os.path.abspath(source_path)
        self.dest_path = os.path.abspath(dest_path)
        self.channel = channel or ProgressChannel()
        self.queries = BranchQueries(self.source_path)

    def select_files(
        self, rules: List[FileRule], include_untracked: bool, result: FileRulesResult
    ) -> List[str]:
        """Relative paths to copy: tracked files matching a copy rule, minus ignores.

        The universe is what git tracks (never a filesystem walk), plus
        untracked-but-not-ignored files when requested.
        """
        copy_patterns = [r.pattern for r in rules if r.action == "copy"]
        if not copy_patterns:
            return []
        copy_spec = build_path_spec(copy_patterns)
        ignore_spec = build_path_spec(r.pattern for r in rules if r.action == "ignore")

        def wanted(relative_path: str) -> bool:
            return copy_spec.match_file(relative_path) and not ignore_spec.match_file(relative_path)

        tracked = self.queries.list_tracked_files()
        if not tracked.ok:
            result.errors.append(FileOperationFailure(path="git ls-files", error=tracked.error))

        selected = sorted({f for f in tracked.value_or([]) if wanted(f)})

        if include_untracked:
            untracked = self.queries.list_untracked_files()
            if not untracked.ok:
                result.errors.append(
                    FileOperationFailure(path="git ls-files --others", error=untracked.error)
                )
            seen = set(selected)
            for f in untracked.value_or([]):
                if f in seen:
                    continue
                if wanted(f):
                    selected.append(f)
                    seen.add(f)

        return selected

    def _copy_one(self, relative_path: str) -> None:
        source_file = os.path.join(self.source_path, relative_path)
        dest_file = os.path.join(self.dest_path, relative_path)
        os.makedirs(os.path.dirname(dest_file), exist_ok=True)
        shutil.copy2(source_file, dest_file, follow_symlinks=False)

    def copy_files(self, files: List[str], result: FileRulesResult) -> None:
        failures = run_in_batches(self._copy_one, files, batch_size=COPY_BATCH_SIZE)
        failed = {failure.item for failure in failures}
        result.copied_paths.extend(f for f in files if f not in failed)
        result.errors.extend(FileOperationFailure(path=f.item, error=f.error) for f in failures)

    def symlink_path(self, relative_path: str) -> None:
        """Create dest/<path> as a relative symlink to source/<path>."""
        source = os.path.join(self.source_path, relative_path)
        dest = os.path.join(self.dest_path, relative_path)
        os.makedirs(os.path.dirname(dest), exist_ok=True)
        target = os.path.relpath(source, os.path.dirname(dest))
        os.symlink(target, dest, target_is_directory=os.path.isdir(source))

    def apply(self, rules: List[FileRule], include_untracked: bool = False) -> FileRulesResult:
        """Copy matching files, then create one symlink per symlink rule.

        Individual failures are recorded in the result, never raised.
        Symlink rules whose source is absent (e.g. no node_modules yet) are
        skipped silently.
        """
        result = FileRulesResult()
        if not rules:
            return result

        if any(r.action == "copy" for r in rules):
            self.channel.emit(STAGE, "Matching files to copy...")
            files = self.select_files(rules, include_untracked, result)
            if files:
                self.channel.emit(STAGE, f"Copying {len(files)} files...")
                self.copy_files(files, result)

        symlink_rules = [r for r in rules if r.action == "symlink"]
        if symlink_rules:
            self.channel.emit(STAGE, "Creating symlinks...")
        for rule in symlink_rules:
            relative_path = rule.pattern.strip("/")
            if not os.path.lexists(os.path.join(self.source_path, relative_path)):
                continue
            try:
                self.symlink_path(relative_path)
                result.symlinked_paths.append(relative_path)
            except OSError as e:
                logger.debug(f"Could not symlink {relative_path}: {e}")
                result.errors.append(FileOperationFailure(path=relative_path, error=str(e)))

        logger.info(
            f"File rules applied: {result.copied_count} copied, "
            f"{result.symlinked_count} symlinked, {len(result.errors)} errors"
        )
        self.channel.emit(STAGE, "File operations complete")
        return result


def apply_file_rules(
    source_path: str,
    dest_path: str,
    rules: List[FileRule],
    include_untracked: bool = False,
    channel: Optional[ProgressChannel] = None,
) -> FileRulesResult:
    """Apply file rules from `source_path` into `dest_path`."""
    return FileRulesService(source_path, dest_path, channel).apply(rules, include_untracked)
