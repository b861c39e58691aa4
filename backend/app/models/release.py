"""
Crateship — Push event and release candidate models.

The webhook payload is validated into PushEvent at the edge; the
publish job works against ReleaseCandidate. No raw dicts leak across
boundaries.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class RepositoryModel(BaseModel):
    full_name: str = Field(default="", max_length=200)


class CommitModel(BaseModel):
    id: str = ""
    message: str = ""


class PushEvent(BaseModel):
    """
    The subset of a GitHub push payload the runner needs.

    Unknown payload fields are ignored.
    """

    ref: str = Field(min_length=1)
    after: str = Field(min_length=1, max_length=64)
    repository: RepositoryModel = Field(default_factory=RepositoryModel)
    head_commit: CommitModel | None = None
    deleted: bool = False

    @property
    def branch(self) -> str:
        """Branch name for refs/heads/* refs, otherwise the raw ref."""
        prefix = "refs/heads/"
        return self.ref[len(prefix):] if self.ref.startswith(prefix) else self.ref


class ReleaseCandidate(BaseModel):
    """
    Version read from the manifest plus the gating verdict for a commit.

    version is empty only for ungated commits whose manifest version line
    could not be split into a value.
    """

    version: str = Field(max_length=100)
    tag: str = Field(max_length=100)
    commit_message: str = ""
    gated: bool = False
