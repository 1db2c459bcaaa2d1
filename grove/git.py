"""Git executor capability and thin wrappers around the commands grove issues."""

from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path
from typing import Protocol, Sequence

from .branches import is_valid_branch_name
from .exceptions import GitCommandError, GitNotFoundError

logger = logging.getLogger(__name__)

COMMON_DEFAULT_BRANCHES = ("main", "master", "develop", "trunk")
FALLBACK_DEFAULT_BRANCH = "main"


class GitExecutor(Protocol):
    """Runs one git subcommand and returns its stripped standard output."""

    def execute(self, args: Sequence[str], *, cwd: Path) -> str:
        ...


class SubprocessGitExecutor:
    """GitExecutor backed by the real git binary."""

    def __init__(self, binary: str = "git", env: dict[str, str] | None = None):
        self.binary = binary
        self.env = env

    def execute(self, args: Sequence[str], *, cwd: Path) -> str:
        command = [self.binary, *args]
        start = time.monotonic()
        logger.debug("running %s (cwd=%s)", " ".join(command), cwd)
        try:
            result = subprocess.run(
                command,
                cwd=str(cwd),
                env=self.env,
                text=True,
                capture_output=True,
                check=False,
            )
        except FileNotFoundError as exc:
            raise GitNotFoundError(f"git is not available: {self.binary}") from exc
        elapsed = time.monotonic() - start
        if result.returncode != 0:
            logger.debug("git failed in %.3fs (exit %d): %s", elapsed, result.returncode, result.stderr.strip())
            raise GitCommandError(command, result.returncode, stdout=result.stdout, stderr=result.stderr)
        logger.debug("git succeeded in %.3fs", elapsed)
        return result.stdout.strip()


def _lines(output: str) -> list[str]:
    return [line for line in output.splitlines() if line.strip()]


def init_bare(executor: GitExecutor, bare_dir: Path, *, cwd: Path) -> None:
    executor.execute(["init", "--bare", str(bare_dir)], cwd=cwd)


def clone_bare(executor: GitExecutor, url: str, bare_dir: Path, *, cwd: Path, remote: str = "origin") -> None:
    executor.execute(["clone", "--bare", "--origin", remote, url, str(bare_dir)], cwd=cwd)


def configure_remote_tracking(executor: GitExecutor, root: Path, remote: str = "origin") -> None:
    """Map remote heads to ``refs/remotes/<remote>/*`` and fetch them."""

    executor.execute(
        ["config", f"remote.{remote}.fetch", f"+refs/heads/*:refs/remotes/{remote}/*"],
        cwd=root,
    )
    executor.execute(["fetch", remote], cwd=root)


def setup_upstream_branches(executor: GitExecutor, root: Path, remote: str = "origin") -> list[str]:
    """Point every local branch at its remote counterpart.

    Branches without a remote counterpart are skipped; their names are
    returned so callers can mention them.
    """

    output = executor.execute(["for-each-ref", "--format=%(refname:short)", "refs/heads"], cwd=root)
    skipped: list[str] = []
    for branch in _lines(output):
        branch = branch.strip()
        try:
            executor.execute(["branch", f"--set-upstream-to={remote}/{branch}", branch], cwd=root)
        except GitCommandError:
            logger.debug("no upstream %s/%s; leaving branch untracked", remote, branch)
            skipped.append(branch)
    return skipped


def list_remote_branches(executor: GitExecutor, root: Path, remote: str = "origin") -> list[str]:
    """Return branch names under ``<remote>/`` from ``git branch -r``."""

    output = executor.execute(["branch", "-r"], cwd=root)
    prefix = f"{remote}/"
    branches: list[str] = []
    for raw in _lines(output):
        line = raw.strip()
        if "->" in line or not line.startswith(prefix):
            continue
        branches.append(line[len(prefix) :])
    return branches


def worktree_add_existing(executor: GitExecutor, root: Path, target: Path, branch: str) -> None:
    executor.execute(["worktree", "add", str(target), branch], cwd=root)


def set_core_bare(executor: GitExecutor, root: Path, value: bool = True) -> None:
    executor.execute(["config", "--bool", "core.bare", "true" if value else "false"], cwd=root)


def current_branch(executor: GitExecutor, root: Path) -> str | None:
    try:
        branch = executor.execute(["branch", "--show-current"], cwd=root).strip()
    except GitCommandError:
        return None
    if branch and is_valid_branch_name(branch):
        return branch
    return None


def detect_default_branch(executor: GitExecutor, root: Path, remote: str = "origin") -> str:
    """Work out the repository's primary branch.

    Tries, in order: the cached ``refs/remotes/<remote>/HEAD``, the branch
    HEAD points at, ``ls-remote --symref``, ``remote show``, a common branch
    name on the remote, the first remote branch, and finally ``main``.
    """

    start = time.monotonic()
    probes = (
        ("local remote HEAD", _remote_head_symref),
        ("current branch", lambda ex, path, _remote: current_branch(ex, path)),
        ("ls-remote --symref", _ls_remote_symref),
        ("remote show", _remote_show_head),
        ("common branch names", _common_remote_branch),
        ("first remote branch", _first_remote_branch),
    )
    for label, probe in probes:
        branch = probe(executor, root, remote)
        if branch:
            logger.debug("default branch %r detected via %s in %.3fs", branch, label, time.monotonic() - start)
            return branch
        logger.debug("default branch probe %s found nothing", label)
    logger.warning("default branch detection exhausted all methods, using %s", FALLBACK_DEFAULT_BRANCH)
    return FALLBACK_DEFAULT_BRANCH


def _remote_head_symref(executor: GitExecutor, root: Path, remote: str) -> str | None:
    prefix = f"refs/remotes/{remote}/"
    try:
        ref = executor.execute(["symbolic-ref", f"{prefix}HEAD"], cwd=root).strip()
    except GitCommandError:
        return None
    if ref.startswith(prefix):
        branch = ref[len(prefix) :]
        if is_valid_branch_name(branch):
            return branch
    return None


def _ls_remote_symref(executor: GitExecutor, root: Path, remote: str) -> str | None:
    try:
        output = executor.execute(["ls-remote", "--symref", remote, "HEAD"], cwd=root)
    except GitCommandError:
        return None
    for line in _lines(output):
        parts = line.split()
        if len(parts) >= 2 and parts[0] == "ref:" and parts[1].startswith("refs/heads/"):
            branch = parts[1][len("refs/heads/") :]
            if is_valid_branch_name(branch):
                return branch
    return None


def _remote_show_head(executor: GitExecutor, root: Path, remote: str) -> str | None:
    try:
        output = executor.execute(["remote", "show", remote], cwd=root)
    except GitCommandError:
        return None
    for line in _lines(output):
        stripped = line.strip()
        if stripped.startswith("HEAD branch:"):
            branch = stripped[len("HEAD branch:") :].strip()
            if is_valid_branch_name(branch):
                return branch
    return None


def _remote_branches_quiet(executor: GitExecutor, root: Path, remote: str) -> list[str]:
    try:
        return [b for b in list_remote_branches(executor, root, remote) if b != "HEAD"]
    except GitCommandError:
        return []


def _common_remote_branch(executor: GitExecutor, root: Path, remote: str) -> str | None:
    available = set(_remote_branches_quiet(executor, root, remote))
    for candidate in COMMON_DEFAULT_BRANCHES:
        if candidate in available:
            return candidate
    return None


def _first_remote_branch(executor: GitExecutor, root: Path, remote: str) -> str | None:
    for branch in _remote_branches_quiet(executor, root, remote):
        if is_valid_branch_name(branch):
            return branch
    return None


__all__ = [
    "GitExecutor",
    "SubprocessGitExecutor",
    "init_bare",
    "clone_bare",
    "configure_remote_tracking",
    "setup_upstream_branches",
    "list_remote_branches",
    "worktree_add_existing",
    "set_core_bare",
    "current_branch",
    "detect_default_branch",
]
