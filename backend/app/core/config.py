"""
Crateship — Runner Configuration
Loads .env automatically, then reads all settings from environment variables.
"""

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

_env_path = Path(__file__).resolve().parent.parent.parent / ".env"
load_dotenv(_env_path)

DEFAULT_MATRIX = "ubuntu-latest,windows-latest,macOS-latest"


@dataclass(frozen=True)
class GitHubConfig:
    """GitHub REST API access used to push release tags."""
    api_url: str
    token: str
    repository: str


@dataclass(frozen=True)
class AppConfig:
    """Top-level runner configuration."""
    host: str
    port: int
    debug: bool
    branch: str
    workdir: str
    checkout: bool
    git_remote: str
    manifest: str
    gate_prefix: str
    matrix: tuple[str, ...]
    lockfile_command: tuple[str, ...]
    build_command: tuple[str, ...]
    build_env: dict[str, str]
    command_timeout: float
    dry_run: bool
    github: GitHubConfig
    crates_io_token: str
    webhook_secret: str


def _split_list(value: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def _load_config() -> AppConfig:
    return AppConfig(
        host=os.getenv("APP_HOST", "0.0.0.0"),
        port=int(os.getenv("APP_PORT", "8000")),
        debug=os.getenv("APP_DEBUG", "false").lower() == "true",
        branch=os.getenv("CRATESHIP_BRANCH", "master"),
        workdir=os.getenv("CRATESHIP_WORKDIR", os.getcwd()),
        checkout=os.getenv("CRATESHIP_CHECKOUT", "true").lower() == "true",
        git_remote=os.getenv("CRATESHIP_GIT_REMOTE", "origin"),
        manifest=os.getenv("CRATESHIP_MANIFEST", "Cargo.toml"),
        gate_prefix=os.getenv("CRATESHIP_GATE_PREFIX", "Version change"),
        matrix=_split_list(os.getenv("CRATESHIP_MATRIX", DEFAULT_MATRIX)),
        lockfile_command=tuple(
            os.getenv("CRATESHIP_LOCKFILE_COMMAND", "cargo generate-lockfile").split()
        ),
        build_command=tuple(
            os.getenv("CRATESHIP_BUILD_COMMAND", "cargo build --release").split()
        ),
        build_env={
            "CARGO_TERM_VERBOSE": os.getenv("CARGO_TERM_VERBOSE", "true"),
            "RUST_BACKTRACE": os.getenv("RUST_BACKTRACE", "1"),
        },
        command_timeout=float(os.getenv("CRATESHIP_COMMAND_TIMEOUT", "1800")),
        dry_run=os.getenv("CRATESHIP_DRY_RUN", "false").lower() == "true",
        github=GitHubConfig(
            api_url=os.getenv("GITHUB_API_URL", "https://api.github.com"),
            token=os.getenv("GITHUB_TOKEN", ""),
            repository=os.getenv("GITHUB_REPOSITORY", ""),
        ),
        crates_io_token=os.getenv("CRATES_IO_TOKEN", ""),
        webhook_secret=os.getenv("CRATESHIP_WEBHOOK_SECRET", ""),
    )


def _validate_config(cfg: AppConfig) -> list[str]:
    """Warn about missing publish settings. Builds still run without them."""
    warnings: list[str] = []
    if not cfg.github.token:
        warnings.append("GITHUB_TOKEN is not set; version tags cannot be pushed.")
    if not cfg.crates_io_token:
        warnings.append("CRATES_IO_TOKEN is not set; crates cannot be published.")
    if not cfg.matrix:
        warnings.append("CRATESHIP_MATRIX is empty; every build will fail.")
    return warnings


settings = _load_config()
config_warnings = _validate_config(settings)
