"""Checks that a traditional repository can be converted without losing work."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Iterable

from .exceptions import GitCommandError, UnsafeRepositoryError
from .git import GitExecutor
from .models import ChangeCounts, SafetyIssue

logger = logging.getLogger(__name__)

_ONGOING_OPERATIONS = (
    (
        "rebase in progress",
        "ongoing_rebase",
        "Git rebase in progress",
        "Complete with 'git rebase --continue' or abort with 'git rebase --abort'",
    ),
    (
        "merge in progress",
        "ongoing_merge",
        "Git merge in progress",
        "Complete with 'git merge --continue' or abort with 'git merge --abort'",
    ),
    (
        "cherry-pick in progress",
        "ongoing_cherry_pick",
        "Git cherry-pick in progress",
        "Complete with 'git cherry-pick --continue' or abort with 'git cherry-pick --abort'",
    ),
    (
        "bisect in progress",
        "ongoing_bisect",
        "Git bisect in progress",
        "Complete bisect or abort with 'git bisect reset'",
    ),
)


def count_changes(lines: Iterable[str]) -> ChangeCounts:
    """Tally ``git status --porcelain=v1`` lines by change type."""

    counts = ChangeCounts()
    for line in lines:
        if len(line) < 2:
            continue
        staged, unstaged = line[0], line[1]
        if staged == "M":
            counts.modified += 1
        elif staged == "A":
            counts.added += 1
        elif staged == "D":
            counts.deleted += 1
        elif staged in ("R", "C"):
            counts.renamed += 1
        if unstaged == "M":
            counts.modified += 1
        elif unstaged == "D":
            counts.deleted += 1
        elif unstaged == "?":
            counts.untracked += 1
    return counts


def _output_lines(output: str) -> list[str]:
    return [line for line in output.splitlines() if line.strip()]


def check_git_status(executor: GitExecutor, root: Path) -> list[SafetyIssue]:
    # Unlike the other probes, a failing status aborts the whole check.
    output = executor.execute(["status", "--porcelain=v1"], cwd=root)
    issues: list[SafetyIssue] = []
    counts = count_changes(output.splitlines())
    if counts.has_changes():
        issues.append(counts.to_issue())
    issues.extend(check_ongoing_operations(executor, root))
    return issues


def check_ongoing_operations(executor: GitExecutor, root: Path) -> list[SafetyIssue]:
    try:
        status = executor.execute(["status"], cwd=root)
    except GitCommandError:
        logger.debug("git status unavailable; skipping ongoing operation check")
        return []
    return [
        SafetyIssue(type=kind, description=description, solution=solution)
        for marker, kind, description, solution in _ONGOING_OPERATIONS
        if marker in status
    ]


def check_stashed_changes(executor: GitExecutor, root: Path) -> list[SafetyIssue]:
    try:
        stashes = _output_lines(executor.execute(["stash", "list"], cwd=root))
    except GitCommandError:
        return []
    if not stashes:
        return []
    return [
        SafetyIssue(
            type="stashed_changes",
            description=f"{len(stashes)} stashed change(s)",
            solution="Apply with 'git stash pop' or remove with 'git stash drop'",
        )
    ]


def check_untracked_files(executor: GitExecutor, root: Path) -> list[SafetyIssue]:
    try:
        files = _output_lines(executor.execute(["ls-files", "--others", "--exclude-standard"], cwd=root))
    except GitCommandError:
        return []
    if not files:
        return []
    return [
        SafetyIssue(
            type="untracked_files",
            description=f"{len(files)} untracked file(s)",
            solution="Add to git with 'git add <files>' or add to .gitignore",
        )
    ]


def check_existing_worktrees(executor: GitExecutor, root: Path) -> list[SafetyIssue]:
    try:
        lines = _output_lines(executor.execute(["worktree", "list"], cwd=root))
    except GitCommandError:
        return []
    linked = [line for line in lines if "(bare)" not in line]
    # The first entry is the main working tree.
    extra = len(linked) - 1
    if extra <= 0:
        return []
    return [
        SafetyIssue(
            type="existing_worktrees",
            description=f"{extra} existing worktree(s)",
            solution="Remove with 'git worktree remove <path>' or 'git worktree prune'",
        )
    ]


def check_unpushed_commits(executor: GitExecutor, root: Path) -> list[SafetyIssue]:
    try:
        output = executor.execute(
            ["for-each-ref", "--format=%(refname:short) %(upstream:short) %(upstream:track)", "refs/heads"],
            cwd=root,
        )
    except GitCommandError:
        return []
    issues: list[SafetyIssue] = []
    for line in _output_lines(output):
        fields = line.split()
        if len(fields) < 2:
            continue
        branch, upstream = fields[0], fields[1]
        track = " ".join(fields[2:])
        if "ahead" in track:
            issues.append(
                SafetyIssue(
                    type="unpushed_commits",
                    description=f"Branch '{branch}' has unpushed commits ({track})",
                    solution=f"Push with 'git push origin {branch}'",
                )
            )
            continue
        try:
            count = executor.execute(["rev-list", "--count", f"{upstream}..{branch}"], cwd=root).strip()
        except GitCommandError:
            continue
        if count not in ("", "0"):
            issues.append(
                SafetyIssue(
                    type="unpushed_commits",
                    description=f"Branch '{branch}' has {count} unpushed commit(s)",
                    solution=f"Push with 'git push origin {branch}'",
                )
            )
    return issues


def check_local_only_branches(executor: GitExecutor, root: Path) -> list[SafetyIssue]:
    try:
        output = executor.execute(["for-each-ref", "--format=%(refname:short) %(upstream)", "refs/heads"], cwd=root)
    except GitCommandError:
        return []
    local_only = [fields[0] for fields in (line.split() for line in _output_lines(output)) if len(fields) == 1]
    if not local_only:
        return []
    return [
        SafetyIssue(
            type="local_only_branches",
            description=f"Local-only branch(es): {', '.join(local_only)}",
            solution="Push with 'git push -u origin <branch>' or delete with 'git branch -d <branch>'",
        )
    ]


SAFETY_CHECKS: tuple[Callable[[GitExecutor, Path], list[SafetyIssue]], ...] = (
    check_git_status,
    check_stashed_changes,
    check_untracked_files,
    check_existing_worktrees,
    check_unpushed_commits,
    check_local_only_branches,
)


def collect_safety_issues(executor: GitExecutor, root: Path) -> list[SafetyIssue]:
    issues: list[SafetyIssue] = []
    for check in SAFETY_CHECKS:
        found = check(executor, root)
        logger.debug("%s found %d issue(s)", check.__name__, len(found))
        issues.extend(found)
    return issues


def ensure_safe_to_convert(executor: GitExecutor, root: Path) -> None:
    """Raise UnsafeRepositoryError listing every problem that blocks conversion."""

    issues = collect_safety_issues(executor, root)
    if issues:
        raise UnsafeRepositoryError(issues)


__all__ = [
    "SAFETY_CHECKS",
    "count_changes",
    "collect_safety_issues",
    "ensure_safe_to_convert",
]
