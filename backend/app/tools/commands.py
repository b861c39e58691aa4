"""
Crateship — External command runner.

Every cargo and git invocation goes through run_command so that
timeouts, cancellation, output capture and secret masking behave the
same everywhere. stderr is folded into stdout, like a CI log.
"""

from __future__ import annotations

import asyncio
import contextlib
import os
import time
from dataclasses import dataclass
from typing import Iterable, Sequence

from app.errors import CommandFailedError, CommandTimeoutError
from app.utils.logging import logger

OUTPUT_TAIL_CHARS = 4000
REDACTED = "***"


@dataclass
class CommandResult:
    argv: list[str]
    exit_code: int
    output: str
    duration_ms: int

    @property
    def output_tail(self) -> str:
        return self.output[-OUTPUT_TAIL_CHARS:]


def mask_secrets(text: str, secrets: Iterable[str]) -> str:
    for secret in secrets:
        if secret:
            text = text.replace(secret, REDACTED)
    return text


async def _terminate(proc: asyncio.subprocess.Process) -> None:
    with contextlib.suppress(ProcessLookupError):
        proc.kill()
    await proc.wait()


async def run_command(
    argv: Sequence[str],
    cwd: str | None = None,
    env: dict[str, str] | None = None,
    timeout: float = 1800.0,
    redact: Iterable[str] = (),
) -> CommandResult:
    """
    Run argv to completion and return its combined output.

    env is merged over the current process environment.
    Raises CommandFailedError on a nonzero exit (or a missing executable)
    and CommandTimeoutError when the timeout elapses; the process is
    killed in that case and on task cancellation.
    """
    secrets = [s for s in redact if s]
    display = mask_secrets(" ".join(argv), secrets)
    full_env = {**os.environ, **(env or {})}

    logger.info("  $ %s", display)
    start = time.perf_counter()
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=cwd,
            env=full_env,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
        )
    except FileNotFoundError:
        raise CommandFailedError(display, 127, f"{argv[0]}: command not found")

    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout)
    except asyncio.TimeoutError:
        await _terminate(proc)
        logger.error("  Timed out after %.0fs: %s", timeout, display)
        raise CommandTimeoutError(display, timeout)
    except asyncio.CancelledError:
        await _terminate(proc)
        logger.warning("  Cancelled: %s", display)
        raise

    output = mask_secrets(stdout.decode("utf-8", errors="replace"), secrets)
    result = CommandResult(
        argv=[mask_secrets(a, secrets) for a in argv],
        exit_code=proc.returncode,
        output=output,
        duration_ms=int((time.perf_counter() - start) * 1000),
    )

    if result.exit_code != 0:
        logger.error("  `%s` exited with %d", display, result.exit_code)
        for line in result.output_tail.splitlines()[-20:]:
            logger.error("    | %s", line)
        raise CommandFailedError(display, result.exit_code, result.output_tail)

    logger.info("  `%s` finished in %dms", display, result.duration_ms)
    return result
