"""Custom error hierarchy for grove."""

from __future__ import annotations

from typing import Any, Sequence


class GroveError(RuntimeError):
    """Base error for the CLI."""

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.context = {key: value for key, value in context.items() if value is not None}
        super().__init__(message)

    def __str__(self) -> str:
        if not self.context:
            return self.message
        details = ", ".join(f"{key}: {value}" for key, value in self.context.items())
        return f"{self.message} ({details})"


class UsageError(GroveError):
    """Raised when flags and arguments are combined in an unsupported way."""


class ConfigError(GroveError):
    """Raised when environment configuration is missing or invalid."""


class PreconditionError(GroveError):
    """Raised when the target directory is not in a state we can act on."""


class RepoExistsError(PreconditionError):
    """Raised when a repository is already present at the target."""

    def __init__(self, path: Any, **context: Any):
        self.path = path
        super().__init__(f"repository already exists at: {path}", **context)


class RepoNotFoundError(PreconditionError):
    """Raised when no repository of the expected kind is present."""

    def __init__(self, path: Any, **context: Any):
        self.path = path
        super().__init__(f"repository not found at: {path}", **context)


class DirectoryNotEmptyError(PreconditionError):
    """Raised when a clone target contains visible entries."""

    def __init__(self, path: Any):
        self.path = path
        super().__init__(f"invalid repository at {path}: directory is not empty")


class UnsafeRepositoryError(PreconditionError):
    """Raised when converting would risk losing work."""

    def __init__(self, issues: Sequence[Any]):
        self.issues = list(issues)
        lines = ["Repository is not ready for conversion:"]
        for issue in self.issues:
            lines.append(f"  ✗ {issue.description} ({issue.solution})")
        lines.append("")
        lines.append("Please resolve these issues before converting to ensure no work is lost.")
        super().__init__("\n".join(lines))


class StructureError(GroveError):
    """Raised when creating or moving the bare store fails."""

    def __init__(self, step: str, message: str, **context: Any):
        self.step = step
        super().__init__(message, **context)


class GitCommandError(GroveError):
    """Raised when an underlying git command fails."""

    def __init__(
        self,
        command: list[str],
        returncode: int,
        *,
        stdout: str | None = None,
        stderr: str | None = None,
    ):
        self.command = command
        self.returncode = returncode
        self.stdout = stdout or ""
        self.stderr = stderr or ""
        message = f"git command failed (exit {returncode}): {' '.join(command)}"
        details = "\n".join(
            section
            for section in (self.stdout.strip(), self.stderr.strip())
            if section
        )
        if details:
            message = f"{message}\n{details}"
        super().__init__(message)


class GitNotFoundError(GroveError):
    """Raised when the git binary cannot be executed."""


class NotPlatformURLError(GroveError):
    """Raised when a string is not a recognized hosting-platform URL."""


__all__ = [
    "GroveError",
    "UsageError",
    "ConfigError",
    "PreconditionError",
    "RepoExistsError",
    "RepoNotFoundError",
    "DirectoryNotEmptyError",
    "UnsafeRepositoryError",
    "StructureError",
    "GitCommandError",
    "GitNotFoundError",
    "NotPlatformURLError",
]
