"""Filesystem checks and helpers for the bare-store layout."""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from .exceptions import DirectoryNotEmptyError, RepoExistsError, RepoNotFoundError, StructureError
from .models import BARE_DIR_NAME, GIT_FILE_NAME, POINTER_CONTENT, RepoKind, RepositoryLayout

logger = logging.getLogger(__name__)


def is_hidden(name: str) -> bool:
    return name.startswith(".")


def ensure_directory(path: Path) -> None:
    path.mkdir(parents=True, exist_ok=True)


def resolve_target(cwd: Path, target: str | None) -> Path:
    """Resolve a user-supplied directory against the invocation directory."""

    if not target:
        return cwd.resolve()
    candidate = Path(target).expanduser()
    if not candidate.is_absolute():
        candidate = cwd / candidate
    return candidate.resolve()


def check_directory_empty(path: Path) -> None:
    """Fail unless every entry in ``path`` is hidden."""

    try:
        entries = list(path.iterdir())
    except OSError as exc:
        raise StructureError("read-directory", f"failed to read directory: {path}", cause=exc) from exc
    visible = [entry.name for entry in entries if not is_hidden(entry.name)]
    if visible:
        logger.debug("visible entries block clone into %s: %s", path, visible)
        raise DirectoryNotEmptyError(path)


def check_no_repository_conflicts(path: Path) -> None:
    """Fail if ``path`` already holds a ``.git`` entry or a ``.bare`` store."""

    layout = RepositoryLayout(path)
    if layout.git_file.exists() or layout.git_file.is_symlink():
        raise RepoExistsError(path, conflict=".git file or directory")
    if layout.bare_dir.exists():
        raise RepoExistsError(path, conflict=".bare directory")


def detect_repo_kind(path: Path) -> RepoKind:
    git_path = path / GIT_FILE_NAME
    if git_path.is_dir():
        return RepoKind.TRADITIONAL
    if git_path.is_file() and (path / BARE_DIR_NAME).is_dir():
        return RepoKind.GROVE
    return RepoKind.NONE


def check_convertible(path: Path) -> None:
    """Fail unless ``path`` holds a traditional repository with no ``.bare`` yet."""

    kind = detect_repo_kind(path)
    if kind is RepoKind.GROVE:
        raise RepoExistsError(path, type="Grove repository")
    if kind is not RepoKind.TRADITIONAL:
        raise RepoNotFoundError(path, expected="traditional Git repository (.git directory)")
    if (path / BARE_DIR_NAME).exists():
        raise RepoExistsError(path, conflict=".bare directory")


def write_git_file(layout: RepositoryLayout) -> None:
    """Write the one-line pointer that redirects git to ``.bare``."""

    try:
        layout.git_file.write_text(POINTER_CONTENT, encoding="utf-8")
        layout.git_file.chmod(0o600)
    except OSError as exc:
        raise StructureError(
            "write-pointer",
            "failed to create .git file",
            path=layout.git_file,
            cause=exc,
        ) from exc
    logger.debug("wrote %s pointing at %s", layout.git_file, layout.bare_dir)


def remove_layout(layout: RepositoryLayout) -> None:
    """Remove a partially created pointer file and bare store."""

    if layout.git_file.is_file() or layout.git_file.is_symlink():
        layout.git_file.unlink()
    if layout.bare_dir.is_dir():
        shutil.rmtree(layout.bare_dir)
    logger.debug("removed partial layout under %s", layout.root)


def move_entries(names: list[str], source: Path, destination: Path) -> None:
    ensure_directory(destination)
    for name in names:
        (source / name).rename(destination / name)


def merge_tree(source: Path, destination: Path) -> None:
    """Move everything under ``source`` into ``destination``, replacing clashes."""

    ensure_directory(destination)
    for entry in source.iterdir():
        target = destination / entry.name
        if _is_real_dir(entry) and _is_real_dir(target):
            merge_tree(entry, target)
            continue
        if _is_real_dir(target):
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        entry.rename(target)


def _is_real_dir(path: Path) -> bool:
    return path.is_dir() and not path.is_symlink()


__all__ = [
    "is_hidden",
    "ensure_directory",
    "resolve_target",
    "check_directory_empty",
    "check_no_repository_conflicts",
    "detect_repo_kind",
    "check_convertible",
    "write_git_file",
    "remove_layout",
    "move_entries",
    "merge_tree",
]
