"""Create, clone into, or convert to the ``.bare`` + pointer-file layout."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from rich.console import Console

from . import git
from .exceptions import GitCommandError, GroveError, StructureError
from .fs import check_convertible, ensure_directory, remove_layout, write_git_file
from .git import GitExecutor
from .models import POINTER_CONTENT, RepositoryLayout
from .safety import ensure_safe_to_convert

logger = logging.getLogger(__name__)

BACKUP_DIR_NAME = ".git.backup"

_NETWORK_MARKERS = ("timeout", "timed out", "network", "connection", "could not resolve", "unreachable")
_AUTH_MARKERS = ("authentication", "permission denied", "access denied", "unauthorized", "403", "401")


def failure_hint(exc: GroveError) -> str | None:
    """Suggest a remedy for clone/fetch errors that look like network or auth trouble."""

    text = str(exc).lower()
    if any(marker in text for marker in _AUTH_MARKERS):
        return "check your credentials or SSH keys for this remote"
    if any(marker in text for marker in _NETWORK_MARKERS):
        return "check your network connection and the remote URL"
    return None


@dataclass
class StructureConverter:
    """Builds the bare-store layout for each init mode.

    Every procedure either leaves a complete layout behind or removes what it
    created before raising.
    """

    executor: GitExecutor
    remote: str = "origin"
    console: Optional[Console] = None
    warnings: list[str] = field(default_factory=list)

    def init_local(self, root: Path) -> RepositoryLayout:
        layout = RepositoryLayout(root)
        try:
            ensure_directory(root)
        except OSError as exc:
            raise StructureError("create-directory", f"failed to create directory {root}", cause=exc) from exc
        try:
            git.init_bare(self.executor, layout.bare_dir, cwd=root)
        except GroveError as exc:
            remove_layout(layout)
            raise StructureError(
                "init-bare", "failed to initialize bare repository", path=layout.bare_dir, cause=exc
            ) from exc
        try:
            write_git_file(layout)
        except StructureError:
            remove_layout(layout)
            raise
        logger.debug("initialized bare repository at %s", layout.bare_dir)
        return layout

    def clone_remote(self, root: Path, url: str) -> RepositoryLayout:
        layout = RepositoryLayout(root)
        try:
            git.clone_bare(self.executor, url, layout.bare_dir, cwd=root, remote=self.remote)
        except GroveError as exc:
            remove_layout(layout)
            raise StructureError(
                "clone", "failed to clone repository", url=url, hint=failure_hint(exc), cause=exc
            ) from exc
        try:
            write_git_file(layout)
        except StructureError:
            remove_layout(layout)
            raise
        if self.console is not None:
            self.console.print("Configuring remote tracking...")
        try:
            git.configure_remote_tracking(self.executor, root, self.remote)
        except GroveError as exc:
            remove_layout(layout)
            raise StructureError(
                "remote-tracking",
                "failed to configure remote tracking",
                remote=self.remote,
                hint=failure_hint(exc),
                cause=exc,
            ) from exc
        try:
            skipped = git.setup_upstream_branches(self.executor, root, self.remote)
        except GroveError as exc:
            self.warnings.append(f"failed to set up upstream branches: {exc}")
        else:
            if skipped:
                logger.debug("branches without upstream: %s", ", ".join(skipped))
        return layout

    def convert_in_place(self, root: Path) -> RepositoryLayout:
        layout = RepositoryLayout(root)
        check_convertible(root)
        ensure_safe_to_convert(self.executor, root)

        git_dir = layout.git_file
        backup = root / BACKUP_DIR_NAME
        try:
            git_dir.rename(backup)
        except OSError as exc:
            raise StructureError("convert", "failed to create backup of .git directory", cause=exc) from exc
        try:
            backup.rename(layout.bare_dir)
        except OSError as exc:
            backup.rename(git_dir)
            raise StructureError("convert", "failed to move .git to .bare", cause=exc) from exc
        try:
            write_git_file(layout)
        except StructureError:
            layout.bare_dir.rename(git_dir)
            raise
        try:
            self.validate_layout(layout)
        except GroveError as exc:
            layout.git_file.unlink()
            layout.bare_dir.rename(git_dir)
            raise StructureError("convert", "conversion validation failed", cause=exc) from exc
        logger.debug("moved %s to %s", git_dir, layout.bare_dir)
        return layout

    def validate_layout(self, layout: RepositoryLayout) -> None:
        """Confirm the pointer and store are in place and git can use them."""

        if not layout.git_file.is_file():
            raise StructureError("validate", ".git should be a file, not a directory", path=layout.git_file)
        if not layout.bare_dir.is_dir():
            raise StructureError("validate", ".bare directory does not exist", path=layout.bare_dir)
        content = layout.git_file.read_text(encoding="utf-8")
        if content != POINTER_CONTENT:
            raise StructureError("validate", f".git file content is invalid: {content!r}", path=layout.git_file)
        try:
            self.executor.execute(["status"], cwd=layout.root)
        except GitCommandError as exc:
            raise StructureError("validate", "git status failed in converted repository", cause=exc) from exc


__all__ = ["BACKUP_DIR_NAME", "StructureConverter", "failure_hint"]
