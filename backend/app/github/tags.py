"""
Crateship — GitHub tag client.

Pushes a lightweight tag by creating the ref through the REST API:

  POST /repos/{owner}/{repo}/git/refs   {"ref": "refs/tags/<tag>", "sha": "<sha>"}

422 means the ref already exists; that is surfaced as TagExistsError
rather than silently re-pointing a published tag.
"""

from __future__ import annotations

import asyncio

import httpx

from app.errors import GitHubAPIError, TagExistsError
from app.github.auth import GitHubCredentials
from app.utils.logging import logger, step_timer

MAX_RETRIES = 1
RETRY_DELAY_S = 2.0


class GitHubTagClient:
    """Thin async wrapper around the GitHub git refs API."""

    def __init__(
        self,
        api_url: str,
        credentials: GitHubCredentials,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_delay: float = RETRY_DELAY_S,
    ):
        self.api_url = api_url.rstrip("/")
        self.credentials = credentials
        self.transport = transport
        self.retry_delay = retry_delay

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=30.0,
            headers=self.credentials.as_headers(),
            transport=self.transport,
        )

    async def create_tag(self, repository: str, tag: str, sha: str) -> str:
        """Create refs/tags/<tag> at sha. Returns the created ref name.
        Retries once on transport errors and 5xx responses."""
        ref = f"refs/tags/{tag}"
        endpoint = f"{self.api_url}/repos/{repository}/git/refs"
        last_err: Exception | None = None

        with step_timer(f"GitHub — push tag {tag}"):
            for attempt in range(1, MAX_RETRIES + 2):
                try:
                    async with self._client() as client:
                        resp = await client.post(endpoint, json={"ref": ref, "sha": sha})
                except httpx.TransportError as exc:
                    last_err = exc
                    logger.warning("  GitHub transport error (attempt %d/%d): %s", attempt, MAX_RETRIES + 1, exc)
                else:
                    if resp.status_code == 422:
                        raise TagExistsError(tag)
                    if resp.is_success:
                        logger.info("  Created %s → %s", ref, sha[:12])
                        return resp.json().get("ref", ref)
                    logger.error(
                        "  GitHub create ref returned %d (attempt %d/%d): %s",
                        resp.status_code, attempt, MAX_RETRIES + 1, resp.text,
                    )
                    last_err = GitHubAPIError("create ref", resp.status_code, resp.text)
                    if resp.status_code < 500:
                        raise last_err

                if attempt <= MAX_RETRIES:
                    logger.warning("  Retrying create ref in %.0fs", self.retry_delay)
                    await asyncio.sleep(self.retry_delay)

        if isinstance(last_err, GitHubAPIError):
            raise last_err
        raise GitHubAPIError("create ref", 0, str(last_err))
