"""Tests for default and additional worktree provisioning."""

from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from grove.models import OutcomeStatus
from grove.provision import STAGING_DIR_NAME, WorktreeProvisioner

from tests.fakes import FakeGitExecutor, make_console

REMOTE_BRANCHES = "  origin/HEAD -> origin/main\n  origin/main\n  origin/feature/auth\n  upstream/other"


class ProvisionTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self._tmp.cleanup)
        self.root = Path(self._tmp.name).resolve()
        (self.root / ".bare").mkdir()
        self.console, self.output = make_console()


class ProvisionBranchesTests(ProvisionTestCase):
    def test_missing_branch_is_skipped_with_warning(self) -> None:
        executor = FakeGitExecutor(responses={("branch", "-r"): "  origin/main"})
        provisioner = WorktreeProvisioner(executor, self.console)

        outcomes = provisioner.provision_branches(self.root, ["main", "no-such-branch"])

        self.assertEqual([o.status for o in outcomes], [OutcomeStatus.CREATED, OutcomeStatus.SKIPPED_NOT_FOUND])
        self.assertTrue(outcomes[0].ok)
        self.assertFalse(outcomes[1].ok)
        self.assertTrue((self.root / "main").is_dir())
        self.assertIn("branch 'no-such-branch' not found on remote, skipping", self.output.getvalue())

    def test_slashes_become_hyphens_and_symbolic_refs_are_ignored(self) -> None:
        executor = FakeGitExecutor(responses={("branch", "-r"): REMOTE_BRANCHES})
        provisioner = WorktreeProvisioner(executor, self.console)

        outcomes = provisioner.provision_branches(self.root, ["feature/auth", "HEAD", "other"])

        self.assertEqual(outcomes[0].dir_name, "feature-auth")
        self.assertIn(("worktree", "add", str(self.root / "feature-auth"), "feature/auth"), executor.commands())
        self.assertEqual(outcomes[1].status, OutcomeStatus.SKIPPED_NOT_FOUND)
        self.assertEqual(outcomes[2].status, OutcomeStatus.SKIPPED_NOT_FOUND)

    def test_existing_directory_is_skipped_silently(self) -> None:
        (self.root / "main").mkdir()
        executor = FakeGitExecutor(responses={("branch", "-r"): "origin/main"})

        outcomes = WorktreeProvisioner(executor, self.console).provision_branches(self.root, ["main"])

        self.assertEqual(outcomes[0].status, OutcomeStatus.SKIPPED_EXISTS)
        self.assertFalse(executor.called("worktree", "add"))
        self.assertNotIn("Warning", self.output.getvalue())

    def test_one_failure_does_not_stop_the_batch(self) -> None:
        executor = FakeGitExecutor(
            responses={("branch", "-r"): REMOTE_BRANCHES},
            failures={("worktree", "add", str(self.root / "main")): "fatal: already checked out"},
        )

        outcomes = WorktreeProvisioner(executor, self.console).provision_branches(self.root, ["main", "feature/auth"])

        self.assertEqual([o.status for o in outcomes], [OutcomeStatus.FAILED, OutcomeStatus.CREATED])
        self.assertIn("already checked out", outcomes[0].message)
        self.assertIn("failed to create worktree for branch 'main'", self.output.getvalue())

    def test_enumeration_failure_marks_every_branch_failed(self) -> None:
        executor = FakeGitExecutor(failures={("branch", "-r"): "fatal: broken"})

        outcomes = WorktreeProvisioner(executor, self.console).provision_branches(self.root, ["main", "dev"])

        self.assertEqual([o.status for o in outcomes], [OutcomeStatus.FAILED, OutcomeStatus.FAILED])
        self.assertIn("failed to get remote branches", self.output.getvalue())

    def test_custom_remote_name(self) -> None:
        executor = FakeGitExecutor(responses={("branch", "-r"): "  upstream/main\n  origin/dev"})

        outcomes = WorktreeProvisioner(executor, self.console, remote="upstream").provision_branches(
            self.root, ["main", "dev"]
        )

        self.assertEqual([o.status for o in outcomes], [OutcomeStatus.CREATED, OutcomeStatus.SKIPPED_NOT_FOUND])


class DefaultWorktreeTests(ProvisionTestCase):
    def test_adds_worktree_for_branch(self) -> None:
        executor = FakeGitExecutor()

        outcome = WorktreeProvisioner(executor, self.console).create_default_worktree(self.root, "main")

        self.assertEqual(outcome.status, OutcomeStatus.CREATED)
        self.assertEqual(executor.commands(), [("worktree", "add", str(self.root / "main"), "main")])

    def test_failure_is_an_outcome_not_an_exception(self) -> None:
        executor = FakeGitExecutor(failures={("worktree", "add"): "fatal: invalid reference: main"})

        outcome = WorktreeProvisioner(executor, self.console).create_default_worktree(self.root, "main")

        self.assertEqual(outcome.status, OutcomeStatus.FAILED)
        self.assertIn("failed to create default worktree", self.output.getvalue())

    def test_relocates_working_files_into_worktree(self) -> None:
        (self.root / ".git").write_text("gitdir: .bare\n")
        (self.root / "README.md").write_text("local copy\n")
        (self.root / "build").mkdir()
        (self.root / "build" / "out.bin").write_text("ignored artifact\n")

        def checkout(args: list[str], cwd: Path) -> None:
            target = Path(args[2])
            target.mkdir()
            (target / "README.md").write_text("committed copy\n")

        executor = FakeGitExecutor(effects={("worktree", "add"): checkout})

        outcome = WorktreeProvisioner(executor, self.console).create_default_worktree(
            self.root, "main", relocate_working_files=True
        )

        self.assertEqual(outcome.status, OutcomeStatus.CREATED)
        self.assertIn(("config", "--bool", "core.bare", "true"), executor.commands())
        worktree = self.root / "main"
        self.assertEqual((worktree / "README.md").read_text(), "local copy\n")
        self.assertEqual((worktree / "build" / "out.bin").read_text(), "ignored artifact\n")
        self.assertFalse((self.root / "README.md").exists())
        self.assertFalse((self.root / STAGING_DIR_NAME).exists())
        self.assertTrue((self.root / ".git").is_file())

    def test_failed_add_restores_working_files(self) -> None:
        (self.root / "README.md").write_text("local copy\n")
        executor = FakeGitExecutor(failures={("worktree", "add"): "fatal: invalid reference"})

        outcome = WorktreeProvisioner(executor, self.console).create_default_worktree(
            self.root, "main", relocate_working_files=True
        )

        self.assertEqual(outcome.status, OutcomeStatus.FAILED)
        self.assertEqual((self.root / "README.md").read_text(), "local copy\n")
        self.assertFalse((self.root / STAGING_DIR_NAME).exists())
        commands = executor.commands()
        self.assertIn(("config", "--bool", "core.bare", "false"), commands)
        self.assertLess(
            commands.index(("config", "--bool", "core.bare", "true")),
            commands.index(("config", "--bool", "core.bare", "false")),
        )

    def test_failed_core_bare_reset_keeps_add_error(self) -> None:
        (self.root / "README.md").write_text("local copy\n")
        executor = FakeGitExecutor(
            failures={
                ("worktree", "add"): "fatal: invalid reference",
                ("config", "--bool", "core.bare", "false"): "error: could not lock config file",
            }
        )

        outcome = WorktreeProvisioner(executor, self.console).create_default_worktree(
            self.root, "main", relocate_working_files=True
        )

        self.assertEqual(outcome.status, OutcomeStatus.FAILED)
        self.assertIn("invalid reference", outcome.message)
        self.assertIn("failed to reset core.bare", self.output.getvalue())
        self.assertEqual((self.root / "README.md").read_text(), "local copy\n")

    def test_core_bare_untouched_when_staging_fails_first(self) -> None:
        (self.root / "README.md").write_text("local copy\n")
        executor = FakeGitExecutor(failures={("config", "--bool", "core.bare", "true"): "error: could not lock"})

        outcome = WorktreeProvisioner(executor, self.console).create_default_worktree(
            self.root, "main", relocate_working_files=True
        )

        self.assertEqual(outcome.status, OutcomeStatus.FAILED)
        self.assertNotIn(("config", "--bool", "core.bare", "false"), executor.commands())
        self.assertFalse(executor.called("worktree", "add"))
        self.assertEqual((self.root / "README.md").read_text(), "local copy\n")


if __name__ == "__main__":
    unittest.main()
