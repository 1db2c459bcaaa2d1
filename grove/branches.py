"""Branch name validation and branch-list helpers."""

from __future__ import annotations

import re

_FORBIDDEN_CHARS = ("~", "^", ":", "?", "*", "[", "\\")
_UNSAFE_DIR_PATTERN = re.compile(r"[/\\:*?\"<>|#\s]")
_HYPHEN_RUN = re.compile(r"-+")


def is_valid_branch_name(name: str) -> bool:
    """Return True if ``name`` is usable as a git branch name.

    This is a simplified form of ``git check-ref-format --branch``: it rejects
    leading dashes, ``.lock`` suffixes, leading/trailing slashes, ``..``,
    control characters, spaces and ``~ ^ : ? * [ \\``.
    """

    if not name:
        return False
    if name.startswith("-") or name.endswith(".lock"):
        return False
    if name.startswith("/") or name.endswith("/"):
        return False
    if ".." in name:
        return False
    for char in name:
        code = ord(char)
        if code < 32 or code == 127 or char == " ":
            return False
    return not any(char in name for char in _FORBIDDEN_CHARS)


def parse_branches(raw: str | None) -> list[str]:
    """Split a comma-separated branch list, dropping blanks and invalid names."""

    if not raw:
        return []
    branches: list[str] = []
    for segment in raw.split(","):
        branch = segment.strip()
        if branch and is_valid_branch_name(branch):
            branches.append(branch)
    return branches


def merge_url_branch(branches: str | None, url_branch: str | None) -> str | None:
    """Put a URL-derived branch at the front of the ``--branches`` value."""

    if not url_branch:
        return branches
    if not branches:
        return url_branch
    if any(segment.strip() == url_branch for segment in branches.split(",")):
        return branches
    return f"{url_branch},{branches}"


def branch_to_directory_name(branch: str) -> str:
    """Produce a filesystem-safe worktree directory name for a branch.

    ``feature/user/auth`` becomes ``feature-user-auth``.
    """

    if not branch:
        return ""
    name = _UNSAFE_DIR_PATTERN.sub("-", branch)
    name = _HYPHEN_RUN.sub("-", name).strip("-")
    return name or "worktree"


__all__ = [
    "is_valid_branch_name",
    "parse_branches",
    "merge_url_branch",
    "branch_to_directory_name",
]
