"""Tests for core.committer: fake git for the state machine, real git for the round trip."""

import asyncio
import os
import shutil
import subprocess
from unittest.mock import patch

import pytest

from core.committer import BranchCommitter
from core.errors import BranchResolutionExhausted, CommitStepFailed
from core.state import BranchCommitJob, CommandResult, FileEntry


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

class FakeGit:
    """Stands in for core.shell.run_command and tracks branches it has seen."""

    def __init__(self, remote=(), local=(), fail_on=None):
        self.remote = set(remote)
        self.local = set(local)
        self.fail_on = fail_on
        self.commands = []

    async def __call__(self, command, cwd, timeout=None):
        self.commands.append(command)
        if self.fail_on and command[:len(self.fail_on)] == self.fail_on:
            return CommandResult(command, 2, "formatting...", "make: *** [fmt] Error 2")

        stdout = ""
        if command[:3] == ["git", "ls-remote", "--heads"]:
            if command[-1] in self.remote:
                stdout = f"0123abcd\trefs/heads/{command[-1]}\n"
        elif command[:3] == ["git", "branch", "--list"]:
            if command[-1] in self.local:
                stdout = f"  {command[-1]}\n"
        elif command[:3] == ["git", "checkout", "-b"]:
            self.local.add(command[3])
        elif command[:2] == ["git", "push"]:
            self.remote.add(command[-1])
        return CommandResult(command, 0, stdout, "")

    def ran(self, *prefix):
        return [c for c in self.commands if c[:len(prefix)] == list(prefix)]


def _files():
    return [
        FileEntry(path="api/v1/foo_types.go", content="package v1\n"),
        FileEntry(path="controllers/foo_controller.go", content="package controllers\n"),
    ]


def _commit(committer, fake, resource_name="foo", files=None):
    with patch("core.shell.run_command", fake):
        return asyncio.run(committer.commit(resource_name, files or _files()))


# ---------------------------------------------------------------------------
# Branch name resolution
# ---------------------------------------------------------------------------

class TestResolveBranchName:
    def test_free_base_name(self, tmp_path):
        fake = FakeGit()
        with patch("core.shell.run_command", fake):
            name = asyncio.run(BranchCommitter(str(tmp_path)).resolve_branch_name("foo"))
        assert name == "ai-impl-foo"

    def test_skips_existing_remote_branches(self, tmp_path):
        fake = FakeGit(remote={"ai-impl-foo", "ai-impl-foo-1"})
        with patch("core.shell.run_command", fake):
            name = asyncio.run(BranchCommitter(str(tmp_path)).resolve_branch_name("foo"))
        assert name == "ai-impl-foo-2"

    def test_local_only_branch_counts(self, tmp_path):
        fake = FakeGit(remote={"ai-impl-foo"}, local={"ai-impl-foo-1"})
        with patch("core.shell.run_command", fake):
            name = asyncio.run(BranchCommitter(str(tmp_path)).resolve_branch_name("foo"))
        assert name == "ai-impl-foo-2"

    def test_checks_remote_then_local(self, tmp_path):
        fake = FakeGit()
        with patch("core.shell.run_command", fake):
            asyncio.run(BranchCommitter(str(tmp_path)).resolve_branch_name("foo"))
        assert fake.commands == [
            ["git", "ls-remote", "--heads", "origin", "ai-impl-foo"],
            ["git", "branch", "--list", "ai-impl-foo"],
        ]

    def test_bounded(self, tmp_path):
        fake = FakeGit(remote={"ai-impl-foo", "ai-impl-foo-1", "ai-impl-foo-2"})
        committer = BranchCommitter(str(tmp_path), max_branch_suffix=2)
        with patch("core.shell.run_command", fake):
            with pytest.raises(BranchResolutionExhausted) as exc:
                asyncio.run(committer.resolve_branch_name("foo"))
        assert exc.value.attempts == 3
        assert exc.value.base == "ai-impl-foo"


# ---------------------------------------------------------------------------
# Full job
# ---------------------------------------------------------------------------

class TestCommit:
    def test_command_sequence(self, tmp_path):
        fake = FakeGit()
        branch = _commit(BranchCommitter(str(tmp_path)), fake)

        assert branch == "ai-impl-foo"
        after_resolve = fake.commands[2:]
        assert after_resolve == [
            ["git", "config", "user.name", "neutree-ai-coder"],
            ["git", "config", "user.email", "neutree-ai-coder@arcfra.com"],
            ["git", "reset", "--hard"],
            ["git", "clean", "-f"],
            ["git", "checkout", "-b", "ai-impl-foo"],
            ["make", "mockgen"],
            ["make", "fmt"],
            ["git", "add", "."],
            ["git", "commit", "-m", "feat: (ai-gen) impl the foo controller"],
            ["git", "push", "-u", "origin", "ai-impl-foo"],
        ]

    def test_files_written_under_code_base(self, tmp_path):
        existing = tmp_path / "controllers" / "foo_controller.go"
        existing.parent.mkdir(parents=True)
        existing.write_text("old content")

        _commit(BranchCommitter(str(tmp_path)), FakeGit())

        assert (tmp_path / "api" / "v1" / "foo_types.go").read_text() == "package v1\n"
        assert existing.read_text() == "package controllers\n"

    def test_custom_format_commands(self, tmp_path):
        fake = FakeGit()
        _commit(BranchCommitter(str(tmp_path), format_commands=[["make", "generate"]]), fake)
        assert fake.ran("make") == [["make", "generate"]]

    def test_format_failure_aborts_before_commit(self, tmp_path):
        fake = FakeGit(fail_on=["make", "fmt"])
        committer = BranchCommitter(str(tmp_path))
        job = BranchCommitJob(resource_name="foo", files=_files())

        with patch("core.shell.run_command", fake):
            with pytest.raises(CommitStepFailed) as exc:
                asyncio.run(committer.run_job(job))

        assert exc.value.command == ["make", "fmt"]
        assert exc.value.returncode == 2
        assert exc.value.phase == "format"
        assert "Error 2" in exc.value.stderr
        assert exc.value.stdout == "formatting..."
        assert job.phase == "failed"
        assert fake.ran("git", "commit") == []
        assert fake.ran("git", "push") == []

    def test_retry_after_failure_gets_new_branch(self, tmp_path):
        fake = FakeGit(fail_on=["make", "fmt"])
        committer = BranchCommitter(str(tmp_path))
        with pytest.raises(CommitStepFailed):
            _commit(committer, fake)

        fake.fail_on = None
        assert _commit(committer, fake) == "ai-impl-foo-1"

    def test_path_escape_rejected(self, tmp_path):
        fake = FakeGit()
        with pytest.raises(ValueError, match="escapes"):
            _commit(
                BranchCommitter(str(tmp_path)), fake,
                files=[FileEntry(path="../outside.go", content="x")],
            )
        assert fake.ran("make") == []

    def test_code_base_required(self):
        with pytest.raises(ValueError, match="code base"):
            BranchCommitter("")


# ---------------------------------------------------------------------------
# Real git round trip
# ---------------------------------------------------------------------------

def _git(cwd, *args):
    subprocess.run(
        ["git", "-c", "user.name=test", "-c", "user.email=test@example.com", *args],
        cwd=cwd, check=True, capture_output=True, text=True,
    )


def _remote_branches(remote):
    out = subprocess.run(
        ["git", "branch", "--list"], cwd=remote, check=True, capture_output=True, text=True,
    ).stdout
    return {line.strip("* ").strip() for line in out.splitlines() if line.strip()}


@pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")
def test_real_git_commit_and_push(tmp_path):
    remote = tmp_path / "remote.git"
    work = tmp_path / "work"
    subprocess.run(["git", "init", "--bare", str(remote)], check=True, capture_output=True)
    subprocess.run(["git", "clone", str(remote), str(work)], check=True, capture_output=True)
    (work / "README.md").write_text("project\n")
    _git(work, "add", ".")
    _git(work, "commit", "-m", "initial")
    _git(work, "push", "origin", "HEAD")

    committer = BranchCommitter(str(work), format_commands=[])
    files = [FileEntry(path="api/v1/workspace_types.go", content="package v1\n")]
    branch = asyncio.run(committer.commit("workspace", files))

    assert branch == "ai-impl-workspace"
    assert "ai-impl-workspace" in _remote_branches(remote)
    log = subprocess.run(
        ["git", "log", "--format=%s", "ai-impl-workspace"],
        cwd=remote, check=True, capture_output=True, text=True,
    ).stdout.splitlines()
    assert log[0] == "feat: (ai-gen) impl the workspace controller"
    assert len(log) == 2

    # the first branch now exists remotely, so a second run takes the next suffix
    files = [FileEntry(path="api/v1/workspace_types.go", content="package v1\n\n// v2\n")]
    assert asyncio.run(committer.commit("workspace", files)) == "ai-impl-workspace-1"
    assert os.path.isfile(work / "api" / "v1" / "workspace_types.go")
