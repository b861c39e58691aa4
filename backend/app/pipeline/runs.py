"""
Crateship — In-memory run registry.

Holds the most recent workflow runs so the API can report on them.
Runs are stored by reference; the orchestrator updates them in place.
"""

from __future__ import annotations

from collections import OrderedDict

from app.models.run import WorkflowRun

MAX_RUNS = 100

_RUNS: "OrderedDict[str, WorkflowRun]" = OrderedDict()


def register_run(run: WorkflowRun) -> None:
    _RUNS[run.run_id] = run
    while len(_RUNS) > MAX_RUNS:
        _RUNS.popitem(last=False)


def get_run(run_id: str) -> WorkflowRun | None:
    return _RUNS.get(run_id)


def list_runs() -> list[WorkflowRun]:
    return list(reversed(_RUNS.values()))


def clear_runs() -> None:
    _RUNS.clear()
