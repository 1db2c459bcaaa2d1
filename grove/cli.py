"""Typer-based CLI for grove."""

from __future__ import annotations

import logging
from pathlib import Path

import typer
from rich.console import Console

from . import __version__
from .config import load_settings
from .exceptions import GroveError, UsageError
from .git import SubprocessGitExecutor
from .models import InitRequest
from .orchestrator import InitOrchestrator

app = typer.Typer(help="Manage Git repositories laid out for worktrees", no_args_is_help=True)
console = Console()


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _show_version(value: bool) -> None:
    if value:
        typer.echo(f"grove {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_show_version,
        is_eager=True,
        help="Show the version and exit.",
    ),
) -> None:
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    configure_logging(verbose)


@app.command(help="Initialize, clone into, or convert to a worktree-ready repository")
def init(
    target: str | None = typer.Argument(
        None,
        help="Directory to initialize, or a remote URL to clone into the current directory.",
    ),
    convert: bool = typer.Option(
        False,
        "--convert",
        help="Convert the traditional Git repository in the current directory.",
    ),
    branches: str | None = typer.Option(
        None,
        "--branches",
        help="Comma-separated branches to create worktrees for (e.g. 'main,develop,feature/auth').",
    ),
) -> None:
    """Set up a `.bare` object store with a `.git` pointer file.

    With no argument the current directory gets an empty repository. A
    hosting-platform or Git URL is cloned into the current directory, which
    must hold nothing but hidden files; branch and pull request links are
    understood. `--convert` turns the repository in the current directory into
    the same layout and moves its files into a worktree for the current branch.
    """

    request = InitRequest(cwd=Path.cwd(), target=target, convert=convert, branches=branches)
    try:
        settings = load_settings()
        orchestrator = InitOrchestrator(SubprocessGitExecutor(settings.git_binary), console, settings)
        orchestrator.run(request)
    except UsageError as err:
        _fail(str(err), code=2)
    except GroveError as err:
        _fail(str(err))


def _fail(message: str, code: int = 1) -> None:
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code)


if __name__ == "__main__":
    app()
