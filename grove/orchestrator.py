"""Drive one `grove init` run from raw input to the final report."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from . import git
from .branches import merge_url_branch, parse_branches
from .config import Settings
from .exceptions import GroveError, NotPlatformURLError, UsageError
from .fs import check_convertible, check_directory_empty, check_no_repository_conflicts, resolve_target
from .git import GitExecutor
from .models import InitMode, InitReport, InitRequest, InitState, PlatformURLInfo, RepositoryLayout
from .provision import WorktreeProvisioner
from .structure import StructureConverter
from .urls import is_git_url, parse_platform_url

logger = logging.getLogger(__name__)

# Only these states can end in FAILED; later phases report problems as outcomes.
_FAILABLE_STATES = (
    InitState.RESOLVING_INPUT,
    InitState.VALIDATING_SAFETY,
    InitState.CONVERTING_STRUCTURE,
)


@dataclass(frozen=True)
class InitPlan:
    """Input resolved into a mode, a root directory and the branches to provision."""

    mode: InitMode
    root: Path
    url: str | None = None
    url_info: PlatformURLInfo | None = None
    branches: tuple[str, ...] = ()


def validate_usage(target: str | None, *, convert: bool, branches: str | None) -> None:
    """Reject flag combinations that can never succeed, before touching disk."""

    if convert and target:
        raise UsageError("cannot specify arguments when using --convert flag")
    if convert and branches:
        raise UsageError("cannot use --branches flag with --convert")
    if branches and not target:
        raise UsageError("--branches flag requires a remote URL argument")


@dataclass
class InitOrchestrator:
    executor: GitExecutor
    console: Console
    settings: Settings = field(default_factory=Settings)
    state: InitState = field(default=InitState.IDLE, init=False)

    def run(self, request: InitRequest) -> InitReport:
        start = time.monotonic()
        self.state = InitState.IDLE
        converter = StructureConverter(self.executor, remote=self.settings.remote, console=self.console)
        try:
            self._enter(InitState.RESOLVING_INPUT)
            plan = self.resolve(request)
            self._enter(InitState.VALIDATING_SAFETY)
            self._validate(plan)
            self._enter(InitState.CONVERTING_STRUCTURE)
            layout = self._convert(converter, plan)
        except GroveError:
            if self.state in _FAILABLE_STATES:
                logger.debug("init failed during %s", self.state.value)
                self.state = InitState.FAILED
            raise

        report = InitReport(mode=plan.mode, layout=layout, url_info=plan.url_info)
        report.warnings.extend(converter.warnings)
        for warning in converter.warnings:
            self.console.print(f"[yellow]Warning:[/yellow] {escape(warning)}")

        self._enter(InitState.PROVISIONING_WORKTREES)
        self._provision(plan, report)

        self._enter(InitState.REPORTING)
        self._report(report)
        self._enter(InitState.DONE)
        logger.debug("init (%s) finished in %.3fs", plan.mode.value, time.monotonic() - start)
        return report

    def resolve(self, request: InitRequest) -> InitPlan:
        """Work out the init mode and where it applies."""

        target = (request.target or "").strip() or None
        validate_usage(target, convert=request.convert, branches=request.branches)
        cwd = request.cwd.resolve()

        if request.convert:
            return InitPlan(mode=InitMode.CONVERT, root=cwd)
        if target is None:
            return InitPlan(mode=InitMode.LOCAL, root=cwd)

        try:
            info = parse_platform_url(target)
        except NotPlatformURLError as exc:
            logger.debug("%s is not a platform URL: %s", target, exc)
        else:
            if info.pr_number:
                self.console.print(f"Detected {info.platform} pull request #{info.pr_number}")
            if info.branch:
                self.console.print(f"Detected {info.platform} branch: {escape(info.branch)}")
            merged = merge_url_branch(request.branches, info.branch)
            return InitPlan(
                mode=InitMode.REMOTE,
                root=cwd,
                url=info.repo_url,
                url_info=info,
                branches=tuple(parse_branches(merged)),
            )

        if is_git_url(target, base=cwd):
            return InitPlan(
                mode=InitMode.REMOTE,
                root=cwd,
                url=target,
                branches=tuple(parse_branches(request.branches)),
            )
        if request.branches:
            raise UsageError("--branches flag requires a remote URL argument", target=target)
        return InitPlan(mode=InitMode.LOCAL, root=resolve_target(cwd, target))

    def _validate(self, plan: InitPlan) -> None:
        if plan.mode is InitMode.LOCAL:
            check_no_repository_conflicts(plan.root)
        elif plan.mode is InitMode.REMOTE:
            check_directory_empty(plan.root)
            check_no_repository_conflicts(plan.root)
        else:
            check_convertible(plan.root)

    def _convert(self, converter: StructureConverter, plan: InitPlan) -> RepositoryLayout:
        if plan.mode is InitMode.LOCAL:
            return converter.init_local(plan.root)
        if plan.mode is InitMode.REMOTE:
            self.console.print(f"Cloning {escape(plan.url or '')}...")
            return converter.clone_remote(plan.root, plan.url or "")
        self.console.print("Converting traditional Git repository to Grove structure...")
        self.console.print(f"Repository: {escape(str(plan.root))}")
        return converter.convert_in_place(plan.root)

    def _provision(self, plan: InitPlan, report: InitReport) -> None:
        if plan.mode is InitMode.LOCAL:
            return
        provisioner = WorktreeProvisioner(self.executor, self.console, remote=self.settings.remote)
        root = report.layout.root
        if plan.mode is InitMode.CONVERT:
            self.console.print("Creating default worktree for current branch...")
            branch = git.current_branch(self.executor, root) or git.detect_default_branch(
                self.executor, root, self.settings.remote
            )
            report.default_worktree = provisioner.create_default_worktree(
                root, branch, relocate_working_files=True
            )
        else:
            self.console.print("Creating default worktree...")
            branch = git.detect_default_branch(self.executor, root, self.settings.remote)
            report.default_worktree = provisioner.create_default_worktree(root, branch)
            if plan.branches:
                self.console.print("Creating additional worktrees...")
                report.worktrees.extend(provisioner.provision_branches(root, plan.branches))
        for outcome in report.outcomes:
            if outcome.message and not outcome.ok:
                report.warnings.append(f"{outcome.branch}: {outcome.message}")

    def _report(self, report: InitReport) -> None:
        root = escape(str(report.layout.root))
        bare = escape(str(report.layout.bare_dir))
        if report.mode is InitMode.LOCAL:
            self.console.print(f"Initialized bare Git repository in {root}")
            self.console.print(f"Git objects stored in: {bare}")
            steps = [
                ("grove create <branch-name>", "Create your first worktree"),
                ("grove list", "List all worktrees"),
            ]
        elif report.mode is InitMode.REMOTE:
            self.console.print(f"[green]Successfully cloned and configured repository in {root}[/green]")
            self.console.print(f"Git objects stored in: {bare}")
            steps = [
                ("cd <worktree-name>", "Switch to the created worktree"),
                ("grove create <branch-name>", "Create a worktree for a branch"),
                ("grove list", "List all worktrees"),
            ]
        else:
            self.console.print(f"[green]Successfully converted repository to Grove structure in {root}[/green]")
            self.console.print(f"Git objects moved to: {bare}")
            steps = [
                ("grove create <branch-name>", "Create a worktree for a branch"),
                ("grove list", "List all worktrees"),
            ]
        self.console.print("")
        self.console.print("Next steps:")
        for command, description in steps:
            self.console.print(f"  {command:<26}  # {description}", markup=False)

    def _enter(self, state: InitState) -> None:
        logger.debug("init state %s -> %s", self.state.value, state.value)
        self.state = state


__all__ = ["InitOrchestrator", "InitPlan", "validate_usage"]
