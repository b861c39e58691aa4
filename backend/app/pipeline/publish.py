"""
Crateship — Gated publish job.

Always evaluates the release candidate (commit message + manifest
version). Only when the commit message passes the gate does it push the
version tag and run cargo login / package / publish, in that order,
stopping at the first failure.
"""

from __future__ import annotations

from pathlib import Path

from app.core.config import AppConfig
from app.errors import MissingCredentialsError
from app.github.auth import GitHubCredentials
from app.github.tags import GitHubTagClient
from app.models.release import ReleaseCandidate
from app.pipeline.gate import is_version_change
from app.pipeline.versioning import derive_tag, read_manifest_version
from app.tools.commands import mask_secrets, run_command
from app.tools.git import latest_commit_message
from app.utils.logging import logger

CARGO_STEPS = ("login", "package", "publish")


class PublishJob:
    """The publish half of the workflow. Needs a successful build first."""

    def __init__(
        self,
        cfg: AppConfig,
        workdir: str,
        sha: str,
        repository: str = "",
        runner=run_command,
        tag_client: GitHubTagClient | None = None,
    ):
        self.cfg = cfg
        self.workdir = workdir
        self.sha = sha
        self.repository = repository or cfg.github.repository
        self.runner = runner
        self.tag_client = tag_client or GitHubTagClient(
            api_url=cfg.github.api_url,
            credentials=GitHubCredentials(token=cfg.github.token),
        )

    async def evaluate(self) -> ReleaseCandidate:
        message = await latest_commit_message(self.workdir, self.sha, runner=self.runner)
        gated = is_version_change(message, self.cfg.gate_prefix)
        # Only a release needs a usable version.
        version = read_manifest_version(Path(self.workdir) / self.cfg.manifest, required=gated)
        logger.info(
            "  Commit %s: %r → %s",
            self.sha[:12], message.splitlines()[0] if message else "",
            "version change" if gated else "no release",
        )
        return ReleaseCandidate(
            version=version,
            tag=derive_tag(version),
            commit_message=message,
            gated=gated,
        )

    def check_credentials(self) -> None:
        """Fail before any side effect if a gated release cannot complete."""
        missing: list[str] = []
        if not self.cfg.github.token:
            missing.append("GITHUB_TOKEN")
        if not self.repository:
            missing.append("GITHUB_REPOSITORY")
        if not self.cfg.crates_io_token:
            missing.append("CRATES_IO_TOKEN")
        if missing:
            raise MissingCredentialsError(missing)

    async def push_tag(self, candidate: ReleaseCandidate) -> str:
        if self.cfg.dry_run:
            logger.info("  [dry-run] would tag %s at %s", candidate.tag, self.sha[:12])
            return f"refs/tags/{candidate.tag}"
        return await self.tag_client.create_tag(self.repository, candidate.tag, self.sha)

    def _cargo_argv(self, step: str) -> list[str]:
        if step == "login":
            return ["cargo", "login", self.cfg.crates_io_token]
        return ["cargo", step]

    async def cargo(self, step: str) -> None:
        argv = self._cargo_argv(step)
        secrets = [self.cfg.crates_io_token]
        if self.cfg.dry_run:
            logger.info("  [dry-run] would run: %s", mask_secrets(" ".join(argv), secrets))
            return
        await self.runner(
            argv,
            cwd=self.workdir,
            env=self.cfg.build_env,
            timeout=self.cfg.command_timeout,
            redact=secrets,
        )
