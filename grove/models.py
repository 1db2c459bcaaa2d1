"""Dataclasses shared across modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

BARE_DIR_NAME = ".bare"
GIT_FILE_NAME = ".git"
POINTER_CONTENT = f"gitdir: {BARE_DIR_NAME}\n"


class InitMode(str, Enum):
    LOCAL = "local"
    REMOTE = "remote"
    CONVERT = "convert"


class InitState(str, Enum):
    IDLE = "idle"
    RESOLVING_INPUT = "resolving-input"
    VALIDATING_SAFETY = "validating-safety"
    CONVERTING_STRUCTURE = "converting-structure"
    PROVISIONING_WORKTREES = "provisioning-worktrees"
    REPORTING = "reporting"
    DONE = "done"
    FAILED = "failed"


class RepoKind(str, Enum):
    TRADITIONAL = "traditional"
    GROVE = "grove"
    NONE = "none"


class OutcomeStatus(str, Enum):
    CREATED = "created"
    SKIPPED_EXISTS = "skipped-exists"
    SKIPPED_NOT_FOUND = "skipped-not-found"
    FAILED = "failed"


@dataclass(frozen=True)
class RepositoryLayout:
    """The bare store and pointer file that make a root a Grove repository."""

    root: Path

    @property
    def bare_dir(self) -> Path:
        return self.root / BARE_DIR_NAME

    @property
    def git_file(self) -> Path:
        return self.root / GIT_FILE_NAME

    def worktree_path(self, dir_name: str) -> Path:
        return self.root / dir_name


@dataclass(frozen=True)
class PlatformURLInfo:
    """Clone URL plus any branch or pull request parsed out of a web URL."""

    repo_url: str
    platform: str | None = None
    branch: str | None = None
    pr_number: str | None = None


@dataclass(frozen=True)
class WorktreeOutcome:
    """Result of provisioning a single branch worktree."""

    branch: str
    dir_name: str
    path: Path
    status: OutcomeStatus
    message: str | None = None

    @property
    def ok(self) -> bool:
        return self.status in (OutcomeStatus.CREATED, OutcomeStatus.SKIPPED_EXISTS)


@dataclass(frozen=True)
class SafetyIssue:
    """A reason the repository cannot be converted yet."""

    type: str
    description: str
    solution: str


@dataclass
class ChangeCounts:
    modified: int = 0
    added: int = 0
    deleted: int = 0
    renamed: int = 0
    untracked: int = 0

    def has_changes(self) -> bool:
        return self.modified + self.added + self.deleted + self.renamed > 0

    def describe(self) -> str:
        if not self.has_changes():
            return ""
        parts = []
        for label, count in (
            ("modified", self.modified),
            ("added", self.added),
            ("deleted", self.deleted),
            ("renamed", self.renamed),
        ):
            if count:
                parts.append(f"{count} {label}")
        return f"Uncommitted changes ({', '.join(parts)})"

    def to_issue(self) -> SafetyIssue:
        return SafetyIssue(
            type="uncommitted_changes",
            description=self.describe(),
            solution="git add <files> && git commit",
        )


@dataclass(frozen=True)
class InitRequest:
    """Raw user input for one `grove init` invocation."""

    cwd: Path
    target: str | None = None
    convert: bool = False
    branches: str | None = None


@dataclass
class InitReport:
    """Everything an init run produced, for rendering and assertions."""

    mode: InitMode
    layout: RepositoryLayout
    url_info: PlatformURLInfo | None = None
    default_worktree: WorktreeOutcome | None = None
    worktrees: list[WorktreeOutcome] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def outcomes(self) -> list[WorktreeOutcome]:
        items = [self.default_worktree] if self.default_worktree else []
        return items + list(self.worktrees)
