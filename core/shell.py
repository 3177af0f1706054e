"""Async subprocess runner with command allowlist and timeout."""

import asyncio
import logging
import os

from config.defaults import DEFAULTS
from core.errors import CommitStepFailed
from core.state import CommandResult

logger = logging.getLogger(__name__)


async def run_command(command, cwd, timeout=None):
    """Run a command in cwd and capture its output.

    Args:
        command: Command as a list of strings, e.g. ["git", "status"]
        cwd: Working directory (must exist)
        timeout: Seconds before killing the process (default from config)

    Returns:
        CommandResult. A timeout or a missing executable yields returncode -1.

    Raises:
        ValueError: If command is not in the allowlist or cwd is invalid.
    """
    if timeout is None:
        timeout = DEFAULTS["command_timeout"]

    if not command or not isinstance(command, list):
        raise ValueError("Command must be a non-empty list of strings")

    executable = command[0]
    allowed = DEFAULTS["allowed_commands"]
    if executable not in allowed:
        raise ValueError(
            f"Command '{executable}' not in allowlist: {allowed}"
        )

    cwd = os.path.realpath(cwd)
    if not os.path.isdir(cwd):
        raise ValueError(f"Working directory does not exist: {cwd}")

    logger.info("Running %s", " ".join(command))
    try:
        process = await asyncio.create_subprocess_exec(
            *command,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError:
        return CommandResult(command, -1, "", f"Command not found: {executable}")

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError:
        process.kill()
        await process.wait()
        return CommandResult(command, -1, "", f"Command timed out after {timeout}s")

    return CommandResult(
        command,
        process.returncode,
        stdout.decode(errors="replace"),
        stderr.decode(errors="replace"),
    )


async def check_command(command, cwd, phase="", timeout=None):
    """run_command, raising CommitStepFailed on a non-zero exit."""
    result = await run_command(command, cwd, timeout=timeout)
    if result.returncode != 0:
        logger.error(
            "%s exited %d: %s",
            " ".join(command), result.returncode, (result.stderr or result.stdout).strip(),
        )
        raise CommitStepFailed(command, result.returncode, result.stdout, result.stderr, phase)
    return result
