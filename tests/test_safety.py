"""Tests for the pre-conversion repository safety checks."""

from __future__ import annotations

import unittest
from pathlib import Path

from grove.exceptions import GitCommandError, UnsafeRepositoryError
from grove.safety import collect_safety_issues, count_changes, ensure_safe_to_convert

from tests.fakes import FakeGitExecutor

ROOT = Path("/repo")


def _clean_responses() -> dict[tuple[str, ...], str]:
    return {
        ("for-each-ref", "--format=%(refname:short) %(upstream)"): "main refs/remotes/origin/main",
        ("for-each-ref", "--format=%(refname:short) %(upstream:short) %(upstream:track)"): "main origin/main",
        ("rev-list", "--count"): "0",
        ("worktree", "list"): "/repo  abc123 [main]",
    }


class CountChangesTests(unittest.TestCase):
    def test_tallies_porcelain_lines(self) -> None:
        counts = count_changes([" M a.py", "M  b.py", "A  c.py", " D d.py", "R  e.py -> f.py", "?? g.py"])

        self.assertEqual((counts.modified, counts.added, counts.deleted, counts.renamed), (2, 1, 1, 1))
        self.assertEqual(counts.untracked, 1)
        self.assertEqual(counts.describe(), "Uncommitted changes (2 modified, 1 added, 1 deleted, 1 renamed)")

    def test_untracked_alone_is_not_an_uncommitted_change(self) -> None:
        self.assertFalse(count_changes(["?? notes.txt"]).has_changes())


class CollectSafetyIssuesTests(unittest.TestCase):
    def test_clean_repository_has_no_issues(self) -> None:
        executor = FakeGitExecutor(responses=_clean_responses())

        self.assertEqual(collect_safety_issues(executor, ROOT), [])
        for _, cwd in executor.calls:
            self.assertEqual(cwd, ROOT)

    def test_reports_every_category(self) -> None:
        responses = _clean_responses()
        responses.update(
            {
                ("status", "--porcelain=v1"): " M app.py\n?? scratch.txt",
                ("status",): "On branch main\nYou are currently rebasing.\n(rebase in progress)",
                ("stash", "list"): "stash@{0}: WIP\nstash@{1}: WIP",
                ("ls-files", "--others", "--exclude-standard"): "scratch.txt",
                ("worktree", "list"): "/repo abc [main]\n/repo-feature def [feature]",
                ("for-each-ref", "--format=%(refname:short) %(upstream:short) %(upstream:track)"): (
                    "main origin/main [ahead 2]\nlocal"
                ),
                ("for-each-ref", "--format=%(refname:short) %(upstream)"): "main refs/remotes/origin/main\nlocal",
            }
        )
        executor = FakeGitExecutor(responses=responses)

        types = [issue.type for issue in collect_safety_issues(executor, ROOT)]

        self.assertEqual(
            types,
            [
                "uncommitted_changes",
                "ongoing_rebase",
                "stashed_changes",
                "untracked_files",
                "existing_worktrees",
                "unpushed_commits",
                "local_only_branches",
            ],
        )

    def test_unpushed_commits_counted_with_rev_list(self) -> None:
        responses = _clean_responses()
        responses[("rev-list", "--count")] = "3"
        executor = FakeGitExecutor(responses=responses)

        issues = collect_safety_issues(executor, ROOT)

        self.assertEqual([issue.description for issue in issues], ["Branch 'main' has 3 unpushed commit(s)"])

    def test_failing_status_aborts(self) -> None:
        executor = FakeGitExecutor(failures={("status", "--porcelain=v1"): "fatal: not a git repository"})

        with self.assertRaises(GitCommandError):
            collect_safety_issues(executor, ROOT)

    def test_other_probe_failures_are_ignored(self) -> None:
        executor = FakeGitExecutor(
            responses=_clean_responses(),
            failures={("stash", "list"): "boom", ("ls-files",): "boom"},
        )

        self.assertEqual(collect_safety_issues(executor, ROOT), [])


class EnsureSafeToConvertTests(unittest.TestCase):
    def test_untracked_file_blocks_conversion(self) -> None:
        responses = _clean_responses()
        responses[("ls-files", "--others", "--exclude-standard")] = "notes.txt"
        executor = FakeGitExecutor(responses=responses)

        with self.assertRaises(UnsafeRepositoryError) as ctx:
            ensure_safe_to_convert(executor, ROOT)

        message = str(ctx.exception)
        self.assertIn("Repository is not ready for conversion", message)
        self.assertIn("1 untracked file(s)", message)
        self.assertIn("git add <files>", message)


if __name__ == "__main__":
    unittest.main()
