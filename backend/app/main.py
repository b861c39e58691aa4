"""
Crateship — FastAPI Backend

Endpoints:
  POST /v1/webhooks/push  — GitHub push webhook → workflow run (background)
  GET  /v1/runs           — Recent workflow runs
  GET  /v1/runs/{run_id}  — One workflow run (matrix, timings, release)
  POST /v1/inspect        — Manifest + commit message → version, tag, gate verdict
  GET  /v1/workflow       — Effective workflow configuration
  GET  /health            — Health check
"""

import hashlib
import hmac
import json
import uuid

from fastapi import BackgroundTasks, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from app.core.config import config_warnings, settings
from app.errors import CrateshipError, WebhookPayloadError, WebhookSignatureError
from app.models.release import PushEvent, ReleaseCandidate
from app.pipeline.gate import is_version_change
from app.pipeline.orchestrator import WorkflowOrchestrator
from app.pipeline.runs import get_run, list_runs, register_run
from app.pipeline.versioning import derive_tag, extract_version
from app.utils.logging import logger


app = FastAPI(
    title="Crateship API",
    description=(
        "Build a Cargo crate across an OS matrix on every push, and publish it "
        "to crates.io when the commit is a version change."
    ),
    version="1.0.0",
)


@app.on_event("startup")
async def _startup_banner():
    logger.info("")
    logger.info("╔══════════════════════════════════════════════════╗")
    logger.info("║            Crateship  ·  Release Runner          ║")
    logger.info("╠══════════════════════════════════════════════════╣")
    logger.info("║  POST /v1/webhooks/push → workflow run           ║")
    logger.info("║  GET  /v1/runs/{id}     → run status             ║")
    logger.info("║  POST /v1/inspect       → version + gate check   ║")
    logger.info("║  GET  /v1/workflow      → workflow config        ║")
    logger.info("║  GET  /health           → Health check           ║")
    logger.info("╠══════════════════════════════════════════════════╣")
    logger.info("║  Branch  : %-38s║", settings.branch)
    logger.info("║  Matrix  : %-38s║", ", ".join(settings.matrix))
    logger.info("║  Workdir : %-38s║", settings.workdir[-38:])
    logger.info("╚══════════════════════════════════════════════════╝")
    for warning in config_warnings:
        logger.warning("  %s", warning)
    logger.info("")


# ──────────────────────────────────────────────────────────
# Request/Response models
# ──────────────────────────────────────────────────────────

class InspectRequest(BaseModel):
    manifest: str = Field(..., description="Manifest file contents (Cargo.toml)")
    commit_message: str = Field(default="", description="Latest non-merge commit message")
    gate_prefix: str | None = Field(
        default=None,
        description="Override the configured gate prefix",
    )


def _verify_signature(body: bytes, signature: str | None, secret: str) -> None:
    """Check X-Hub-Signature-256 (sha256=<hex HMAC of the raw body>)."""
    expected = "sha256=" + hmac.new(secret.encode(), body, hashlib.sha256).hexdigest()
    if not signature or not hmac.compare_digest(expected, signature):
        raise WebhookSignatureError()


async def _execute(orchestrator: WorkflowOrchestrator) -> None:
    try:
        await orchestrator.run()
    except CrateshipError as exc:
        logger.warning("[%s] Workflow failed: %s", orchestrator.run_id, exc.code)
    except Exception:
        logger.exception("[%s] Workflow crashed", orchestrator.run_id)


# ──────────────────────────────────────────────────────────
# Endpoints
# ──────────────────────────────────────────────────────────

@app.get("/health")
async def health():
    return {"status": "ok", "service": "crateship", "version": "1.0.0"}


@app.get("/v1/workflow")
async def get_workflow():
    """Describe the workflow this runner executes."""
    return {
        "branch": settings.branch,
        "matrix": list(settings.matrix),
        "lockfile_command": " ".join(settings.lockfile_command),
        "build_command": " ".join(settings.build_command),
        "build_env": settings.build_env,
        "checkout": settings.checkout,
        "manifest": settings.manifest,
        "gate_prefix": settings.gate_prefix,
        "dry_run": settings.dry_run,
    }


@app.post("/v1/webhooks/push", status_code=202)
async def push_webhook(request: Request, background_tasks: BackgroundTasks):
    """
    Accept a GitHub push webhook and schedule a workflow run.

    Returns immediately with the run id; poll /v1/runs/{run_id} for progress.
    """
    request_id = uuid.uuid4().hex[:12]
    body = await request.body()
    event_name = request.headers.get("X-GitHub-Event", "push")

    if settings.webhook_secret:
        try:
            _verify_signature(body, request.headers.get("X-Hub-Signature-256"), settings.webhook_secret)
        except WebhookSignatureError as exc:
            logger.warning("[%s] Rejected webhook: %s", request_id, exc.code)
            raise HTTPException(status_code=401, detail=exc.to_dict())

    if event_name == "ping":
        return {"status": "pong"}
    if event_name != "push":
        logger.info("[%s] Ignoring %s event", request_id, event_name)
        return {"status": "ignored", "event": event_name}

    try:
        event = PushEvent(**json.loads(body or b"{}"))
    except (ValueError, TypeError, PydanticValidationError) as exc:
        # ValueError covers JSONDecodeError and UnicodeDecodeError.
        err = WebhookPayloadError(str(exc))
        logger.warning("[%s] Rejected webhook: %s", request_id, err.message)
        raise HTTPException(status_code=422, detail=err.to_dict())

    orchestrator = WorkflowOrchestrator(event=event, cfg=settings)
    register_run(orchestrator.result)
    background_tasks.add_task(_execute, orchestrator)

    logger.info(
        "[%s] POST /v1/webhooks/push — %s @ %s → run %s",
        request_id, event.branch, event.after[:12], orchestrator.run_id,
    )
    return JSONResponse(
        status_code=202,
        content={"run_id": orchestrator.run_id, "state": orchestrator.state.value},
    )


@app.get("/v1/runs")
async def get_runs():
    return [run.model_dump(mode="json") for run in list_runs()]


@app.get("/v1/runs/{run_id}")
async def get_run_status(run_id: str):
    run = get_run(run_id)
    if run is None:
        raise HTTPException(status_code=404, detail=f"Unknown run: {run_id}")
    return run.model_dump(mode="json")


@app.post("/v1/inspect", response_model=ReleaseCandidate)
async def inspect_release(req: InspectRequest):
    """
    Evaluate a manifest and commit message without building anything.

    Returns the version that would be tagged and whether the commit
    message would trigger a publish.
    """
    prefix = settings.gate_prefix if req.gate_prefix is None else req.gate_prefix
    try:
        version = extract_version(req.manifest)
    except CrateshipError as exc:
        raise HTTPException(status_code=422, detail=exc.to_dict())

    return ReleaseCandidate(
        version=version,
        tag=derive_tag(version),
        commit_message=req.commit_message,
        gated=is_version_change(req.commit_message, prefix),
    )
