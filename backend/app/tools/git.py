"""
Crateship — git queries against the checkout.
"""

from __future__ import annotations

from app.errors import CheckoutError
from app.tools.commands import run_command
from app.utils.logging import logger


async def latest_commit_message(
    repo_dir: str,
    sha: str = "HEAD",
    timeout: float = 60.0,
    runner=run_command,
) -> str:
    """Full message of the newest non-merge commit reachable from sha."""
    result = await runner(
        ["git", "log", "--no-merges", "--format=%B", "-n", "1", sha],
        cwd=repo_dir,
        timeout=timeout,
    )
    return result.output.rstrip()


async def head_commit(repo_dir: str, timeout: float = 60.0, runner=run_command) -> str:
    result = await runner(["git", "rev-parse", "HEAD"], cwd=repo_dir, timeout=timeout)
    return result.output.strip()


async def checkout_commit(
    repo_dir: str,
    sha: str,
    remote: str = "origin",
    timeout: float = 600.0,
    runner=run_command,
) -> str:
    """
    Put the working tree on sha (detached), fetching from remote first.

    An empty remote skips the fetch. Raises CheckoutError if HEAD does
    not end up at sha.
    """
    if remote:
        await runner(["git", "fetch", "--quiet", "--tags", remote], cwd=repo_dir, timeout=timeout)
    await runner(["git", "checkout", "--quiet", "--force", "--detach", sha], cwd=repo_dir, timeout=timeout)

    head = await head_commit(repo_dir, runner=runner)
    if not head or not head.startswith(sha):
        raise CheckoutError(sha, head)
    logger.info("  Checked out %s", head[:12])
    return head
