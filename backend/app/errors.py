"""
Crateship — Structured error catalog.

Every error has a code, human message, and suggested fix.
No raw exceptions leak to API callers.
"""

from __future__ import annotations

from typing import Any


class CrateshipError(Exception):
    """Base error with structured code + suggestion."""

    def __init__(self, code: str, message: str, suggestion: str = "", detail: Any = None):
        self.code = code
        self.message = message
        self.suggestion = suggestion
        self.detail = detail
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "error_code": self.code,
            "message": self.message,
        }
        if self.suggestion:
            d["suggestion"] = self.suggestion
        if self.detail:
            d["detail"] = self.detail
        return d


class ManifestNotFoundError(CrateshipError):
    def __init__(self, path: str):
        super().__init__(
            code="MANIFEST_NOT_FOUND",
            message=f"Manifest file not found: {path}",
            suggestion="Check CRATESHIP_MANIFEST; it is resolved relative to the checkout.",
        )


class ManifestVersionError(CrateshipError):
    def __init__(self, reason: str):
        super().__init__(
            code="MANIFEST_VERSION_MISSING",
            message=f"Could not read a version from the manifest: {reason}",
            suggestion='Add a line of the form: version = "1.2.3"',
        )


class CommandFailedError(CrateshipError):
    def __init__(self, command: str, exit_code: int, output: str = ""):
        self.exit_code = exit_code
        super().__init__(
            code="COMMAND_FAILED",
            message=f"`{command}` exited with status {exit_code}",
            suggestion="See the command output for details.",
            detail=output[-2000:] if output else None,
        )


class CommandTimeoutError(CrateshipError):
    def __init__(self, command: str, timeout_s: float):
        super().__init__(
            code="COMMAND_TIMEOUT",
            message=f"`{command}` timed out after {timeout_s:.0f}s",
            suggestion="Raise CRATESHIP_COMMAND_TIMEOUT or check for a hung build.",
        )


class BuildFailedError(CrateshipError):
    def __init__(self, failures: list[str], cells: list | None = None):
        self.cells = cells or []
        super().__init__(
            code="BUILD_FAILED",
            message=f"Build matrix failed: {'; '.join(failures)}",
            suggestion="Fix the build before a release can be published.",
            detail=failures,
        )


class MissingCredentialsError(CrateshipError):
    def __init__(self, names: list[str]):
        super().__init__(
            code="MISSING_CREDENTIALS",
            message=f"Missing publish credentials: {', '.join(names)}",
            suggestion="Set them in the environment or in .env before pushing a version change.",
            detail=names,
        )


class TagExistsError(CrateshipError):
    def __init__(self, tag: str):
        super().__init__(
            code="TAG_EXISTS",
            message=f"Tag already exists: {tag}",
            suggestion="Bump the version in the manifest before committing a version change.",
        )


class GitHubAPIError(CrateshipError):
    def __init__(self, api: str, status: int, body: str = ""):
        super().__init__(
            code=f"GITHUB_{api.upper().replace(' ', '_')}_ERROR",
            message=f"GitHub {api} returned HTTP {status}",
            suggestion="Check GITHUB_TOKEN permissions and GITHUB_REPOSITORY.",
            detail=body[:500] if body else None,
        )


class WebhookSignatureError(CrateshipError):
    def __init__(self):
        super().__init__(
            code="WEBHOOK_SIGNATURE_INVALID",
            message="Webhook signature does not match the payload",
            suggestion="Check that CRATESHIP_WEBHOOK_SECRET matches the secret configured on the repository.",
        )


class WebhookPayloadError(CrateshipError):
    def __init__(self, reason: str):
        super().__init__(
            code="WEBHOOK_PAYLOAD_INVALID",
            message=f"Webhook payload is not a valid push event: {reason}",
            suggestion="Send the push payload as UTF-8 JSON (content type application/json).",
        )


class CheckoutError(CrateshipError):
    def __init__(self, sha: str, head: str):
        super().__init__(
            code="CHECKOUT_MISMATCH",
            message=f"Workdir is at {head[:12] or 'an unknown commit'}, expected {sha[:12]}",
            suggestion="Check that CRATESHIP_WORKDIR is a clone of the pushed repository.",
        )
