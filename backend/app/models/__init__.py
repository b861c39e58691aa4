"""Crateship data models — typed contracts for the whole workflow."""

from app.models.release import (
    PushEvent,
    RepositoryModel,
    CommitModel,
    ReleaseCandidate,
)
from app.models.run import (
    RunState,
    StepTiming,
    MatrixCell,
    WorkflowRun,
)

__all__ = [
    "PushEvent",
    "RepositoryModel",
    "CommitModel",
    "ReleaseCandidate",
    "RunState",
    "StepTiming",
    "MatrixCell",
    "WorkflowRun",
]
