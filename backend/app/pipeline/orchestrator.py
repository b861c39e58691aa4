"""
Crateship — Workflow Orchestrator.

Runs one push through the workflow as a state machine:

  RECEIVED → BUILDING → BUILT → SKIPPED
                              → GATED → TAGGED → PUBLISHED
  RECEIVED → IGNORED  (push to another branch, or a branch deletion)
  any step → FAILED

Building starts from a detached checkout of the pushed sha. Each step is
timed, logged, and recorded on the WorkflowRun. Runs that share a workdir
execute one at a time.
"""

from __future__ import annotations

import asyncio
import time
import uuid

from app.core.config import AppConfig, settings
from app.errors import BuildFailedError, CrateshipError
from app.github.tags import GitHubTagClient
from app.models.release import PushEvent
from app.models.run import RunState, StepTiming, WorkflowRun
from app.pipeline.build import run_build_matrix
from app.pipeline.publish import CARGO_STEPS, PublishJob
from app.tools.commands import run_command
from app.tools.git import checkout_commit
from app.utils.logging import logger

_WORKDIR_LOCKS: dict[str, asyncio.Lock] = {}


def workdir_lock(workdir: str) -> asyncio.Lock:
    """One lock per checkout directory, shared by every run in this process."""
    return _WORKDIR_LOCKS.setdefault(str(workdir), asyncio.Lock())


class WorkflowOrchestrator:
    """
    State-machine orchestrator for the build + publish workflow.

    The publish job only starts after every build cell has succeeded.
    """

    def __init__(
        self,
        event: PushEvent,
        cfg: AppConfig | None = None,
        workdir: str | None = None,
        runner=run_command,
        tag_client: GitHubTagClient | None = None,
        host_os: str | None = None,
    ):
        self.cfg = cfg or settings
        self.event = event
        self.workdir = workdir or self.cfg.workdir
        self.runner = runner
        self.host_os = host_os
        self.result = WorkflowRun(
            run_id=uuid.uuid4().hex[:12],
            sha=event.after,
            branch=event.branch,
            repository=event.repository.full_name or self.cfg.github.repository,
        )
        self.publisher = PublishJob(
            cfg=self.cfg,
            workdir=self.workdir,
            sha=event.after,
            repository=self.result.repository,
            runner=runner,
            tag_client=tag_client,
        )

    @property
    def run_id(self) -> str:
        return self.result.run_id

    @property
    def state(self) -> RunState:
        return self.result.state

    def _record_step(self, name: str, start: float, status: str = "ok", detail: str = ""):
        ms = int((time.perf_counter() - start) * 1000)
        self.result.timings.append(StepTiming(step=name, duration_ms=ms, status=status, detail=detail))
        symbol = "✓" if status == "ok" else ("⊘" if status == "skipped" else "✗")
        logger.info("  %s %s — %dms %s", symbol, name, ms, detail)

    def _should_run(self) -> tuple[bool, str]:
        if self.event.deleted or not self.event.after.strip("0"):
            return False, f"branch {self.event.branch} deleted"
        if self.event.branch != self.cfg.branch:
            return False, f"push to {self.event.branch}, workflow runs on {self.cfg.branch}"
        return True, ""

    async def run(self) -> WorkflowRun:
        """Execute the workflow. Returns the WorkflowRun; re-raises step errors."""
        t = time.perf_counter()
        should_run, reason = self._should_run()
        if not should_run:
            self.result.state = RunState.IGNORED
            self._record_step("trigger", t, "skipped", reason)
            return self.result

        lock = workdir_lock(self.workdir)
        if lock.locked():
            logger.info("[%s] Waiting for the run in progress on %s", self.run_id, self.workdir)
        async with lock:
            return await self._run_locked()

    async def _run_locked(self) -> WorkflowRun:
        logger.info("=" * 60)
        logger.info("[%s] Workflow starting (%s @ %s)", self.run_id, self.result.branch, self.result.sha[:12])
        logger.info("=" * 60)
        workflow_start = time.perf_counter()

        try:
            await self._step_checkout()
            await self._step_build()
            candidate = await self._step_evaluate()
            if candidate.gated:
                await self._step_tag()
                for step in CARGO_STEPS:
                    await self._step_cargo(step)
                self.result.state = RunState.PUBLISHED
            else:
                self.result.state = RunState.SKIPPED
                self._record_step("publish", time.perf_counter(), "skipped", "not a version change")

        except Exception as exc:
            self.result.state = RunState.FAILED
            self.result.errors.append(exc.message if isinstance(exc, CrateshipError) else str(exc))
            raise

        total_ms = int((time.perf_counter() - workflow_start) * 1000)
        logger.info("=" * 60)
        logger.info("[%s] Workflow complete — %s in %dms", self.run_id, self.result.state.value, total_ms)
        logger.info("=" * 60)
        return self.result

    async def _step_checkout(self):
        t = time.perf_counter()
        if not self.cfg.checkout:
            self._record_step("checkout", t, "skipped", "CRATESHIP_CHECKOUT is off")
            return
        try:
            head = await checkout_commit(
                self.workdir, self.result.sha, remote=self.cfg.git_remote, runner=self.runner,
            )
        except CrateshipError as exc:
            self._record_step("checkout", t, "failed", exc.message)
            raise
        self._record_step("checkout", t, detail=head[:12])

    async def _step_build(self):
        t = time.perf_counter()
        self.result.state = RunState.BUILDING
        try:
            self.result.matrix = await run_build_matrix(
                self.workdir, self.cfg, runner=self.runner, host_os=self.host_os,
            )
        except BuildFailedError as exc:
            self.result.matrix = exc.cells
            self._record_step("build", t, "failed", exc.message)
            raise
        except CrateshipError as exc:
            self._record_step("build", t, "failed", exc.message)
            raise
        skipped = [c.os for c in self.result.matrix if c.status == "skipped"]
        if skipped:
            self.result.warnings.append(f"matrix cells skipped on this host: {', '.join(skipped)}")
        self.result.state = RunState.BUILT
        built = sum(1 for c in self.result.matrix if c.status == "ok")
        self._record_step("build", t, detail=f"{built}/{len(self.result.matrix)} cells built")

    async def _step_evaluate(self):
        t = time.perf_counter()
        try:
            candidate = await self.publisher.evaluate()
            self.result.release = candidate
            if not candidate.version:
                self.result.warnings.append(
                    f"no version value in {self.cfg.manifest}; a version change commit would fail"
                )
            if candidate.gated:
                self.publisher.check_credentials()
                self.result.state = RunState.GATED
        except CrateshipError as exc:
            self._record_step("evaluate", t, "failed", exc.message)
            raise
        self._record_step("evaluate", t, detail=f"version {candidate.version}, gated={candidate.gated}")
        return candidate

    async def _step_tag(self):
        t = time.perf_counter()
        tag = self.result.release.tag
        try:
            await self.publisher.push_tag(self.result.release)
        except CrateshipError as exc:
            self._record_step("tag", t, "failed", exc.message)
            raise
        self.result.state = RunState.TAGGED
        self._record_step("tag", t, detail=tag)

    async def _step_cargo(self, step: str):
        t = time.perf_counter()
        try:
            await self.publisher.cargo(step)
        except CrateshipError as exc:
            self._record_step(f"cargo {step}", t, "failed", exc.message)
            raise
        self._record_step(f"cargo {step}", t)
