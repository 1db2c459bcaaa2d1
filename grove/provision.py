"""Create the default and requested branch worktrees inside a Grove root."""

from __future__ import annotations

import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from rich.console import Console
from rich.markup import escape

from . import git
from .branches import branch_to_directory_name
from .exceptions import GroveError
from .fs import merge_tree, move_entries
from .git import GitExecutor
from .models import BARE_DIR_NAME, GIT_FILE_NAME, OutcomeStatus, RepositoryLayout, WorktreeOutcome
from .structure import BACKUP_DIR_NAME

logger = logging.getLogger(__name__)

STAGING_DIR_NAME = ".grove-temp-files"

_LAYOUT_ENTRIES = {BARE_DIR_NAME, GIT_FILE_NAME, BACKUP_DIR_NAME, STAGING_DIR_NAME}


@dataclass
class WorktreeProvisioner:
    """Adds worktrees for branches and reports each result as an outcome.

    Nothing here raises for a single branch; failures become ``failed``
    outcomes plus a console warning so the surrounding init can finish.
    """

    executor: GitExecutor
    console: Console
    remote: str = "origin"

    def create_default_worktree(
        self,
        root: Path,
        branch: str,
        *,
        relocate_working_files: bool = False,
    ) -> WorktreeOutcome:
        layout = RepositoryLayout(root)
        dir_name = branch_to_directory_name(branch)
        target = layout.worktree_path(dir_name)
        if target.exists():
            logger.debug("default worktree %s already exists", target)
            return WorktreeOutcome(branch, dir_name, target, OutcomeStatus.SKIPPED_EXISTS)
        try:
            if relocate_working_files:
                self._add_with_working_files(layout, target, branch)
            else:
                git.worktree_add_existing(self.executor, root, target, branch)
        except (GroveError, OSError) as exc:
            logger.debug("default worktree for %s failed: %s", branch, exc)
            self._warn(f"failed to create default worktree: {exc}")
            return WorktreeOutcome(branch, dir_name, target, OutcomeStatus.FAILED, message=str(exc))
        logger.debug("default worktree for %s created at %s", branch, target)
        return WorktreeOutcome(branch, dir_name, target, OutcomeStatus.CREATED)

    def provision_branches(self, root: Path, branches: Iterable[str]) -> list[WorktreeOutcome]:
        layout = RepositoryLayout(root)
        requested = list(branches)
        if not requested:
            return []
        try:
            available = set(git.list_remote_branches(self.executor, root, self.remote))
        except GroveError as exc:
            message = f"failed to get remote branches: {exc}"
            self._warn(f"failed to create additional worktrees: {message}")
            return [
                WorktreeOutcome(
                    branch,
                    branch_to_directory_name(branch),
                    layout.worktree_path(branch_to_directory_name(branch)),
                    OutcomeStatus.FAILED,
                    message=message,
                )
                for branch in requested
            ]
        logger.debug("remote branches on %s: %s", self.remote, sorted(available))

        outcomes: list[WorktreeOutcome] = []
        for branch in requested:
            outcomes.append(self._provision_one(layout, branch, available))
        return outcomes

    def _provision_one(self, layout: RepositoryLayout, branch: str, available: set[str]) -> WorktreeOutcome:
        dir_name = branch_to_directory_name(branch)
        target = layout.worktree_path(dir_name)
        if branch not in available:
            self._warn(f"branch '{branch}' not found on remote, skipping")
            return WorktreeOutcome(
                branch, dir_name, target, OutcomeStatus.SKIPPED_NOT_FOUND, message="not found on remote"
            )
        if target.exists():
            logger.debug("worktree for %s already exists at %s", branch, target)
            return WorktreeOutcome(branch, dir_name, target, OutcomeStatus.SKIPPED_EXISTS)
        self.console.print(f"Creating worktree for branch '{escape(branch)}'...")
        try:
            git.worktree_add_existing(self.executor, layout.root, target, branch)
        except GroveError as exc:
            self._warn(f"failed to create worktree for branch '{branch}': {exc}")
            return WorktreeOutcome(branch, dir_name, target, OutcomeStatus.FAILED, message=str(exc))
        logger.debug("worktree for %s created at %s", branch, target)
        return WorktreeOutcome(branch, dir_name, target, OutcomeStatus.CREATED)

    def _add_with_working_files(self, layout: RepositoryLayout, target: Path, branch: str) -> None:
        """Add the worktree, then carry the old checkout's files into it.

        Files are staged aside first so ``worktree add`` sees a clean root;
        staged copies win over the freshly checked-out ones, which keeps
        ignored files and local edits.
        """

        root = layout.root
        staging = root / STAGING_DIR_NAME
        names = sorted(entry.name for entry in root.iterdir() if entry.name not in _LAYOUT_ENTRIES)
        logger.debug("staging %d working entries in %s", len(names), staging)
        marked_bare = False
        try:
            move_entries(names, root, staging)
            git.set_core_bare(self.executor, root)
            marked_bare = True
            git.worktree_add_existing(self.executor, root, target, branch)
        except (GroveError, OSError):
            if staging.is_dir():
                self._restore_staged(staging, root)
            if marked_bare:
                self._unmark_bare(root)
            raise
        merge_tree(staging, target)
        shutil.rmtree(staging)

    @staticmethod
    def _restore_staged(staging: Path, root: Path) -> None:
        for entry in staging.iterdir():
            entry.rename(root / entry.name)
        staging.rmdir()
        logger.debug("restored staged working files to %s", root)

    def _unmark_bare(self, root: Path) -> None:
        # The root holds a checkout again, so git must treat it as a work tree.
        try:
            git.set_core_bare(self.executor, root, False)
        except GroveError as exc:
            self._warn(f"failed to reset core.bare, run 'git config --bool core.bare false': {exc}")

    def _warn(self, message: str) -> None:
        logger.debug("warning: %s", message)
        self.console.print(f"[yellow]Warning:[/yellow] {escape(message)}")


__all__ = ["STAGING_DIR_NAME", "WorktreeProvisioner"]
