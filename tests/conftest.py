"""Shared test configuration and fixtures for the Crateship test suite."""

import asyncio
import dataclasses
import sys
from pathlib import Path

import pytest

# Add backend to Python path so imports work
backend_dir = str(Path(__file__).parent.parent / "backend")
if backend_dir not in sys.path:
    sys.path.insert(0, backend_dir)

from app.core.config import GitHubConfig, settings  # noqa: E402
from app.errors import CommandFailedError  # noqa: E402
from app.tools.commands import CommandResult  # noqa: E402

CARGO_TOML = """\
[package]
name = "widget"
version = "1.2.3"
authors = ["Acme <dev@acme.test>"]
edition = "2018"

[dependencies]
serde = { version = "1.0", features = ["derive"] }
"""


class FakeRunner:
    """
    Stands in for run_command. Records argv; git log returns commit_message,
    git rev-parse returns the last checked-out sha unless head is given.
    """

    def __init__(self, commit_message="Fix typo", fail=None, hang=None, head=None):
        self.commit_message = commit_message
        self.head = head
        self.checked_out = ""
        self.fail = fail or {}
        self.hang = set(hang or ())
        self.calls: list[list[str]] = []
        self.envs: list[dict] = []

    async def __call__(self, argv, cwd=None, env=None, timeout=1800.0, redact=()):
        argv = list(argv)
        self.calls.append(argv)
        self.envs.append(dict(env or {}))
        key = " ".join(argv[:2])
        if key in self.fail:
            raise CommandFailedError(key, self.fail[key], "error: boom")
        if key in self.hang:
            await asyncio.sleep(30)
        output = ""
        if key == "git checkout":
            self.checked_out = argv[-1]
        elif key == "git rev-parse":
            output = (self.head or self.checked_out) + "\n"
        elif key == "git log":
            output = self.commit_message + "\n"
        return CommandResult(argv=argv, exit_code=0, output=output, duration_ms=1)

    def commands(self) -> list[str]:
        return [" ".join(argv[:2]) for argv in self.calls]


@pytest.fixture
def fake_runner():
    return FakeRunner


@pytest.fixture
def crate_dir(tmp_path):
    (tmp_path / "Cargo.toml").write_text(CARGO_TOML, encoding="utf-8")
    (tmp_path / "Cargo.lock").write_text("# lock v1\n", encoding="utf-8")
    return tmp_path


@pytest.fixture
def cfg(crate_dir):
    return dataclasses.replace(
        settings,
        branch="master",
        workdir=str(crate_dir),
        manifest="Cargo.toml",
        gate_prefix="Version change",
        matrix=("ubuntu-latest", "windows-latest", "macOS-latest"),
        lockfile_command=("cargo", "generate-lockfile"),
        build_command=("cargo", "build", "--release"),
        build_env={"CARGO_TERM_VERBOSE": "true", "RUST_BACKTRACE": "1"},
        command_timeout=30.0,
        dry_run=False,
        github=GitHubConfig(
            api_url="https://api.github.test",
            token="gh-test-token",
            repository="acme/widget",
        ),
        crates_io_token="cio-secret-token",
        webhook_secret="",
        checkout=True,
        git_remote="origin",
    )
