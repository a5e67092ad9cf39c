"""Asynchronous shell command execution with optional timeout and JSON parsing."""

from __future__ import annotations

import asyncio
import json
import os
import time
from typing import Any, Optional

from taproom.core.errors import (
    BackendUnavailableError,
    BrewCommandError,
    BrewTimeoutError,
    retry_on_transient,
)
from taproom.core.logging import get_logger

log = get_logger(__name__)

ENV_OVERRIDES = {
    "LANG": "C",
    "HOMEBREW_NO_COLOR": "1",
    "HOMEBREW_NO_EMOJI": "1",
    "HOMEBREW_NO_ENV_HINTS": "1",
}


def command_env() -> dict[str, str]:
    """Environment for package manager subprocesses."""
    env = os.environ.copy()
    env.update(ENV_OVERRIDES)
    return env


async def run_capture(
    *cmd: str, timeout: Optional[float] = None
) -> tuple[str, str, int]:
    """Run a command asynchronously with an optional timeout.

    Args:
        *cmd: Command and its arguments to run.
        timeout: Timeout in seconds, ``None`` to wait indefinitely.

    Returns:
        A tuple of (stdout, stderr, returncode).

    Raises:
        BackendUnavailableError: If the executable cannot be found.
        BrewTimeoutError: If the command times out.
    """
    command = " ".join(cmd)
    start = time.perf_counter()
    log.debug("command_start", command=command, timeout=timeout)

    try:
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=command_env(),
        )
    except FileNotFoundError as e:
        log.error("command_not_found", command=command)
        raise BackendUnavailableError(binary=cmd[0]) from e

    try:
        out, err = await asyncio.wait_for(process.communicate(), timeout)
    except asyncio.TimeoutError as e:
        duration_ms = int((time.perf_counter() - start) * 1000)
        log.error(
            "command_timeout",
            command=command,
            timeout=timeout,
            duration_ms=duration_ms
        )
        try:
            process.kill()
        finally:
            raise BrewTimeoutError(
                command=command,
                timeout=timeout,
                context={"duration_ms": duration_ms}
            ) from e

    duration_ms = int((time.perf_counter() - start) * 1000)
    log.info(
        "command_complete",
        command=command,
        returncode=process.returncode,
        duration_ms=duration_ms
    )

    return (
        out.decode(errors="replace").strip(),
        err.decode(errors="replace").strip(),
        process.returncode,
    )


async def run_checked(*cmd: str, timeout: Optional[float] = None) -> str:
    """Run a command and fail on a non-zero exit code.

    Returns:
        The command's standard output.

    Raises:
        BrewCommandError: If the command exits with a non-zero code.
    """
    out, err, code = await run_capture(*cmd, timeout=timeout)

    if code != 0:
        log.error(
            "command_failed",
            command=" ".join(cmd),
            error=err or out,
            returncode=code
        )
        raise BrewCommandError(
            command=" ".join(cmd),
            returncode=code,
            error=last_line(err or out),
        )

    return out


@retry_on_transient(max_retries=3, base_delay=1.0)
async def run_json(*cmd: str, timeout: Optional[float] = None) -> Any:
    """Run a read-only command and parse its JSON output.

    Automatically retries on transient errors.

    Raises:
        BrewCommandError: If the command fails or its output is not JSON.
        BrewTimeoutError: If the command times out (retried automatically).
    """
    out = await run_checked(*cmd, timeout=timeout)

    try:
        return json.loads(out)
    except json.JSONDecodeError as e:
        log.error(
            "json_parse_failed",
            command=" ".join(cmd),
            error=str(e),
            exc_info=True
        )
        raise BrewCommandError(
            "Failed to parse JSON output",
            command=" ".join(cmd),
            context={"output_preview": out[:200]}
        ) from e


def last_line(text: str) -> str:
    """Last non-empty line of command output, usually the actual error."""
    lines = [line.strip() for line in text.splitlines() if line.strip()]
    return lines[-1] if lines else ""
