"""Unit tests for Pydantic data models."""

import pytest
from app.models.release import PushEvent, ReleaseCandidate
from app.models.run import MatrixCell, RunState, StepTiming, WorkflowRun

PUSH_PAYLOAD = {
    "ref": "refs/heads/master",
    "before": "1" * 40,
    "after": "a" * 40,
    "deleted": False,
    "repository": {"full_name": "acme/widget", "private": False},
    "head_commit": {"id": "a" * 40, "message": "Version change: 1.2.3"},
    "pusher": {"name": "octocat"},
}


class TestPushEvent:
    def test_from_github_payload(self):
        e = PushEvent(**PUSH_PAYLOAD)
        assert e.branch == "master"
        assert e.repository.full_name == "acme/widget"
        assert e.head_commit.message == "Version change: 1.2.3"

    def test_minimal(self):
        e = PushEvent(ref="refs/heads/main", after="b" * 40)
        assert e.repository.full_name == ""
        assert e.head_commit is None
        assert e.deleted is False

    def test_tag_ref_kept_verbatim(self):
        e = PushEvent(ref="refs/tags/1.2.3", after="c" * 40)
        assert e.branch == "refs/tags/1.2.3"

    def test_missing_after_fails(self):
        with pytest.raises(Exception):
            PushEvent(ref="refs/heads/master")

    def test_empty_ref_fails(self):
        with pytest.raises(Exception):
            PushEvent(ref="", after="a" * 40)


class TestReleaseCandidate:
    def test_defaults(self):
        rc = ReleaseCandidate(version="1.2.3", tag="1.2.3")
        assert rc.gated is False
        assert rc.commit_message == ""

    def test_empty_version_allowed_when_ungated(self):
        rc = ReleaseCandidate(version="", tag="")
        assert rc.version == ""

    def test_overlong_version_fails(self):
        with pytest.raises(Exception):
            ReleaseCandidate(version="1" * 101, tag="1")


class TestWorkflowRun:
    def test_minimal_run(self):
        run = WorkflowRun(run_id="abc123", sha="a" * 40, branch="master")
        assert run.state == RunState.RECEIVED
        assert run.matrix == []
        assert run.release is None

    def test_json_dump(self):
        run = WorkflowRun(
            run_id="abc123",
            sha="a" * 40,
            branch="master",
            state=RunState.PUBLISHED,
            matrix=[MatrixCell(os="ubuntu-latest", runner_os="Linux", status="ok", exit_code=0)],
            release=ReleaseCandidate(version="1.2.3", tag="1.2.3", gated=True),
            timings=[StepTiming(step="build", duration_ms=5)],
        )
        d = run.model_dump(mode="json")
        assert d["state"] == "PUBLISHED"
        assert d["matrix"][0]["status"] == "ok"
        assert d["release"]["tag"] == "1.2.3"

    def test_run_states(self):
        assert RunState.RECEIVED == "RECEIVED"
        assert RunState.IGNORED == "IGNORED"
        assert RunState.FAILED == "FAILED"

    def test_step_timing_defaults(self):
        st = StepTiming(step="build", duration_ms=10)
        assert st.status == "ok"
        assert st.detail == ""

    def test_matrix_cell_defaults(self):
        cell = MatrixCell(os="windows-latest")
        assert cell.status == "pending"
        assert cell.exit_code is None
