"""Branch-safe commit: land generated files on a fresh, collision-free branch.

The job walks a fixed phase sequence:

    resolve -> reset -> write -> format -> push -> done

and any failure ends it in "failed" with the error re-raised. Failures carry
the command, exit code and captured output. Nothing is retried and nothing is
rolled back: the working tree is left as the failing step found it.

The committer owns the checkout for the duration of a job but does no
locking. Callers must make sure two jobs never run against the same checkout
at once.
"""

import logging
import os

from config.defaults import DEFAULTS
from core.shell import check_command
from core.state import BranchCommitJob
from core.errors import BranchResolutionExhausted

logger = logging.getLogger(__name__)


class BranchCommitter:
    """Commits an artifact set to ai-impl-<resource> (or the next free suffix)."""

    def __init__(self, code_base, format_commands=None, max_branch_suffix=None):
        if not code_base:
            raise ValueError("A code base directory is required to commit generated files")
        self.code_base = os.path.realpath(code_base)
        if format_commands is None:
            format_commands = DEFAULTS["format_commands"]
        self.format_commands = [list(cmd) for cmd in format_commands]
        if max_branch_suffix is None:
            max_branch_suffix = DEFAULTS["max_branch_suffix"]
        self.max_branch_suffix = max_branch_suffix

    async def _git(self, *args, phase=""):
        return await check_command(["git", *args], self.code_base, phase=phase)

    async def branch_exists(self, branch):
        """True if the branch exists on origin or locally (created but never pushed)."""
        remote = await self._git("ls-remote", "--heads", "origin", branch, phase="resolve")
        if remote.stdout.strip():
            return True
        local = await self._git("branch", "--list", branch, phase="resolve")
        return bool(local.stdout.strip())

    async def resolve_branch_name(self, resource_name):
        base = f"{DEFAULTS['branch_prefix']}-{resource_name}"
        for suffix in range(self.max_branch_suffix + 1):
            candidate = base if suffix == 0 else f"{base}-{suffix}"
            if not await self.branch_exists(candidate):
                return candidate
            logger.debug("Branch %s is taken", candidate)
        raise BranchResolutionExhausted(base, self.max_branch_suffix + 1)

    async def reset_workspace(self, branch):
        await self._git("config", "user.name", DEFAULTS["git_user_name"], phase="reset")
        await self._git("config", "user.email", DEFAULTS["git_user_email"], phase="reset")
        await self._git("reset", "--hard", phase="reset")
        await self._git("clean", "-f", phase="reset")
        await self._git("checkout", "-b", branch, phase="reset")

    def write_files(self, files):
        """Write every file under the code base, overwriting existing content."""
        written = []
        for f in files:
            full_path = os.path.join(self.code_base, f.path)
            resolved = os.path.realpath(full_path)
            if not resolved.startswith(self.code_base + os.sep):
                raise ValueError(f"Path escapes code base: {f.path}")
            os.makedirs(os.path.dirname(resolved), exist_ok=True)
            with open(resolved, "w") as fp:
                fp.write(f.content)
            written.append(f.path)
        return written

    async def format_workspace(self):
        for command in self.format_commands:
            await check_command(command, self.code_base, phase="format")

    async def commit_and_push(self, resource_name, branch):
        message = DEFAULTS["commit_message"].format(resource_name=resource_name)
        await self._git("add", ".", phase="push")
        await self._git("commit", "-m", message, phase="push")
        await self._git("push", "-u", "origin", branch, phase="push")

    async def run_job(self, job: BranchCommitJob) -> BranchCommitJob:
        try:
            job.phase = "resolve"
            job.branch_name = await self.resolve_branch_name(job.resource_name)
            logger.info("Committing %s to branch %s", job.resource_name, job.branch_name)

            job.phase = "reset"
            await self.reset_workspace(job.branch_name)

            job.phase = "write"
            self.write_files(job.files)

            job.phase = "format"
            await self.format_workspace()

            job.phase = "push"
            await self.commit_and_push(job.resource_name, job.branch_name)
        except Exception:
            logger.error("Commit job for %s failed in phase '%s'", job.resource_name, job.phase)
            job.phase = "failed"
            raise

        job.phase = "done"
        return job

    async def commit(self, resource_name, files):
        """Run a full commit job and return the branch it landed on."""
        job = await self.run_job(BranchCommitJob(resource_name=resource_name, files=list(files)))
        return job.branch_name
