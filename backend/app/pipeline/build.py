"""
Crateship — Build matrix job.

One cell per OS label. Each cell generates the lockfile, computes the
dependency cache key from it, then runs the release build. Cells run
concurrently and fail fast: the first failing cell cancels the rest.

Only cells whose OS matches the host can execute here; the others are
recorded as skipped.
"""

from __future__ import annotations

import asyncio
import hashlib
import sys
import time
from pathlib import Path

from app.core.config import AppConfig
from app.errors import BuildFailedError, CommandFailedError, CommandTimeoutError, CrateshipError
from app.models.run import MatrixCell
from app.tools.commands import run_command
from app.utils.logging import logger, step_timer

LOCKFILE_GLOB = "**/Cargo.lock"

_RUNNER_OS_PREFIXES = {
    "ubuntu": "Linux",
    "linux": "Linux",
    "windows": "Windows",
    "macos": "macOS",
}

_HOST_RUNNER_OS = {
    "linux": "Linux",
    "win32": "Windows",
    "darwin": "macOS",
}


def runner_os_for(label: str) -> str:
    """Map a matrix label like 'macOS-latest' to its runner OS name."""
    lowered = label.lower()
    for prefix, runner_os in _RUNNER_OS_PREFIXES.items():
        if lowered.startswith(prefix):
            return runner_os
    return label


def host_runner_os() -> str:
    return _HOST_RUNNER_OS.get(sys.platform, sys.platform)


def hash_lockfiles(workdir: str | Path) -> str:
    """SHA-256 over the per-file digests of every Cargo.lock, in path order.
    Empty string when there are none."""
    files = sorted(p for p in Path(workdir).glob(LOCKFILE_GLOB) if p.is_file())
    if not files:
        return ""
    outer = hashlib.sha256()
    for path in files:
        outer.update(hashlib.sha256(path.read_bytes()).digest())
    return outer.hexdigest()


def cache_key(runner_os: str, workdir: str | Path) -> str:
    return f"{runner_os}-cargo-cache-{hash_lockfiles(workdir)}"


async def _run_cell(cell: MatrixCell, workdir: str, cfg: AppConfig, runner) -> MatrixCell:
    start = time.perf_counter()
    env = {**cfg.build_env, "RUNNER_OS": cell.runner_os}
    try:
        await runner(list(cfg.lockfile_command), cwd=workdir, env=env, timeout=cfg.command_timeout)
        cell.cache_key = cache_key(cell.runner_os, workdir)
        logger.info("  [%s] cache key %s", cell.os, cell.cache_key)

        result = await runner(list(cfg.build_command), cwd=workdir, env=env, timeout=cfg.command_timeout)
        cell.exit_code = result.exit_code
        cell.status = "ok"
        return cell
    except CommandFailedError as exc:
        cell.status = "failed"
        cell.exit_code = exc.exit_code
        cell.detail = exc.message
        raise
    except CommandTimeoutError as exc:
        cell.status = "failed"
        cell.detail = exc.message
        raise
    except asyncio.CancelledError:
        cell.status = "cancelled"
        cell.detail = "cancelled after another cell failed"
        raise
    finally:
        cell.duration_ms = int((time.perf_counter() - start) * 1000)


async def run_build_matrix(
    workdir: str,
    cfg: AppConfig,
    runner=run_command,
    host_os: str | None = None,
) -> list[MatrixCell]:
    """
    Run every matrix cell that this host can execute.

    Returns all cells (including skipped ones) when the build succeeds.
    Raises BuildFailedError if any cell fails or if no cell could run; the
    cells, with their final statuses, travel on the error.
    """
    host_os = host_os or host_runner_os()
    cells = [MatrixCell(os=label, runner_os=runner_os_for(label)) for label in cfg.matrix]

    runnable: list[MatrixCell] = []
    for cell in cells:
        if cell.runner_os == host_os:
            runnable.append(cell)
        else:
            cell.status = "skipped"
            cell.detail = f"no runner for {cell.os} on this host"
            logger.info("  ⊘ %s — %s", cell.os, cell.detail)

    if not runnable:
        raise BuildFailedError([f"no matrix cell can run on a {host_os} host"], cells=cells)

    with step_timer(f"Build matrix ({len(runnable)}/{len(cells)} cells)"):
        tasks = {
            asyncio.create_task(_run_cell(cell, workdir, cfg, runner)): cell
            for cell in runnable
        }
        try:
            done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        failures: list[str] = []
        for task in done:
            exc = task.exception()
            if exc is None:
                continue
            if not isinstance(exc, CrateshipError):
                raise exc
            failures.append(f"{tasks[task].os}: {exc.message}")

    for cell in cells:
        symbol = {"ok": "✓", "skipped": "⊘"}.get(cell.status, "✗")
        logger.info("  %s %s — %s %s", symbol, cell.os, cell.status, cell.detail)

    if failures:
        raise BuildFailedError(failures, cells=cells)
    return cells
