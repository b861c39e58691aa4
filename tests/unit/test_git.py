"""Unit tests for git queries, against a throwaway repository."""

import shutil
import subprocess

import pytest

from app.errors import CommandFailedError
from app.tools.git import checkout_commit, head_commit, latest_commit_message

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")


def _git(repo, *args):
    return subprocess.run(
        ["git", "-c", "user.name=Test", "-c", "user.email=test@example.com", *args],
        cwd=repo, check=True, capture_output=True, text=True,
    ).stdout.strip()


@pytest.fixture
def repo(tmp_path):
    _git(tmp_path, "init", "-q", "-b", "master")
    (tmp_path / "Cargo.toml").write_text('[package]\nversion = "1.0.0"\n')
    _git(tmp_path, "add", ".")
    _git(tmp_path, "commit", "-q", "-m", "Initial commit")
    return tmp_path


@pytest.mark.asyncio
class TestLatestCommitMessage:
    async def test_head_message(self, repo):
        (repo / "Cargo.toml").write_text('[package]\nversion = "1.1.0"\n')
        _git(repo, "commit", "-q", "-am", "Version change: 1.1.0\n\nBump for release.")
        message = await latest_commit_message(str(repo))
        assert message == "Version change: 1.1.0\n\nBump for release."

    async def test_merge_commits_skipped(self, repo):
        _git(repo, "checkout", "-q", "-b", "feature")
        (repo / "Cargo.toml").write_text('[package]\nversion = "1.1.0"\n')
        _git(repo, "commit", "-q", "-am", "Version change: 1.1.0")
        _git(repo, "checkout", "-q", "master")
        (repo / "README.md").write_text("widget\n")
        _git(repo, "add", "README.md")
        _git(repo, "commit", "-q", "-m", "Add readme")
        _git(repo, "merge", "-q", "--no-ff", "-m", "Merge branch 'feature'", "feature")

        message = await latest_commit_message(str(repo), "HEAD")
        assert not message.startswith("Merge")

    async def test_unknown_sha(self, repo):
        with pytest.raises(CommandFailedError):
            await latest_commit_message(str(repo), "f" * 40)


@pytest.mark.asyncio
class TestCheckoutCommit:
    async def test_detaches_at_pushed_sha(self, repo):
        first = _git(repo, "rev-parse", "HEAD")
        (repo / "Cargo.toml").write_text('[package]\nversion = "1.1.0"\n')
        _git(repo, "commit", "-q", "-am", "Version change: 1.1.0")

        head = await checkout_commit(str(repo), first, remote="")
        assert head == first
        assert await head_commit(str(repo)) == first
        assert 'version = "1.0.0"' in (repo / "Cargo.toml").read_text()

    async def test_local_changes_discarded(self, repo):
        sha = _git(repo, "rev-parse", "HEAD")
        (repo / "Cargo.toml").write_text("scratch\n")
        await checkout_commit(str(repo), sha, remote="")
        assert (repo / "Cargo.toml").read_text() == '[package]\nversion = "1.0.0"\n'

    async def test_fetches_from_remote(self, repo, tmp_path_factory):
        clone = tmp_path_factory.mktemp("clone")
        _git(clone, "clone", "-q", str(repo), ".")
        (repo / "Cargo.toml").write_text('[package]\nversion = "1.1.0"\n')
        _git(repo, "commit", "-q", "-am", "Version change: 1.1.0")
        pushed = _git(repo, "rev-parse", "HEAD")

        assert await checkout_commit(str(clone), pushed) == pushed
        assert 'version = "1.1.0"' in (clone / "Cargo.toml").read_text()

    async def test_unknown_sha(self, repo):
        with pytest.raises(CommandFailedError):
            await checkout_commit(str(repo), "f" * 40, remote="")
