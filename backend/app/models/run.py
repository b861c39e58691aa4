"""
Crateship — Workflow run contracts.

Every push produces a WorkflowRun with full traceability:
matrix cell results, step timings, and the release verdict.
"""

from __future__ import annotations

import enum

from pydantic import BaseModel, Field

from app.models.release import ReleaseCandidate


class RunState(str, enum.Enum):
    RECEIVED = "RECEIVED"
    IGNORED = "IGNORED"
    BUILDING = "BUILDING"
    BUILT = "BUILT"
    GATED = "GATED"
    TAGGED = "TAGGED"
    PUBLISHED = "PUBLISHED"
    SKIPPED = "SKIPPED"
    FAILED = "FAILED"


class StepTiming(BaseModel):
    step: str
    duration_ms: int
    status: str = "ok"  # ok | skipped | failed
    detail: str = ""


class MatrixCell(BaseModel):
    os: str
    runner_os: str = ""  # Linux | Windows | macOS
    status: str = "pending"  # pending | ok | skipped | failed | cancelled
    exit_code: int | None = None
    duration_ms: int = 0
    cache_key: str = ""
    detail: str = ""


class WorkflowRun(BaseModel):
    """Complete output contract for every workflow run."""

    run_id: str
    sha: str
    branch: str
    repository: str = ""
    state: RunState = RunState.RECEIVED
    matrix: list[MatrixCell] = Field(default_factory=list)
    release: ReleaseCandidate | None = None
    timings: list[StepTiming] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
