"""
Crateship — Manifest version extraction.

Reads the crate version the same way the release shell step did:

  grep "^version" < Cargo.toml | head -n 1 | awk '{ print $3 }' | sed 's/"//g'

That is: first line starting with "version", third whitespace-delimited
token, every double quote removed. No TOML parsing is attempted.
"""

from __future__ import annotations

from pathlib import Path

from app.errors import ManifestNotFoundError, ManifestVersionError
from app.utils.logging import logger

VERSION_KEY = "version"
VERSION_TOKEN_INDEX = 2


def version_field(manifest_text: str) -> str:
    """
    The third token of the first 'version' line, quotes removed.

    Empty when that line has fewer than three tokens (e.g. version="1.2.3"),
    just as awk prints an empty field. Raises ManifestVersionError only when
    no line starts with 'version'.
    """
    line = next(
        (raw for raw in manifest_text.splitlines() if raw.startswith(VERSION_KEY)),
        None,
    )
    if line is None:
        raise ManifestVersionError(f"no line starts with '{VERSION_KEY}'")

    tokens = line.split()
    if len(tokens) <= VERSION_TOKEN_INDEX:
        return ""
    return tokens[VERSION_TOKEN_INDEX].replace('"', "")


def extract_version(manifest_text: str) -> str:
    """Return the version string from manifest text or raise ManifestVersionError."""
    version = version_field(manifest_text)
    if not version:
        line = next(raw for raw in manifest_text.splitlines() if raw.startswith(VERSION_KEY))
        raise ManifestVersionError(f"expected 'version = \"x.y.z\"', got: {line.strip()}")
    return version


def read_manifest_version(path: str | Path, required: bool = True) -> str:
    """
    Read the version from the manifest file.

    With required=False an unreadable version line yields "" instead of
    raising; a missing file or a missing version line still raise.
    """
    manifest = Path(path)
    if not manifest.is_file():
        raise ManifestNotFoundError(str(path))
    text = manifest.read_text(encoding="utf-8")
    version = extract_version(text) if required else version_field(text)
    logger.info("  Current version: %s", version)
    return version


def derive_tag(version: str) -> str:
    # Tags carry the bare version, no "v" prefix.
    return version
