"""FastAPI surface exposing the live claim session."""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, Optional

from fastapi import BackgroundTasks, Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse

from rapid_claims.models.evidence import Evidence
from rapid_claims.orchestration.workflow import WorkflowController
from rapid_claims.pipeline import get_controller
from rapid_claims.utils.errors import AnalysisError, IngestionError


APP_TITLE = "Rapid Response Claim Agent"
MAX_FILE_SIZE_MB = int(os.getenv("MAX_FILE_SIZE_MB", "25"))

logger = logging.getLogger(__name__)

app = FastAPI(title=APP_TITLE)


def controller_dependency() -> WorkflowController:
    return get_controller()


async def _run_session(controller: WorkflowController, session_id: int, evidence: Evidence) -> None:
    try:
        await controller.run_session(session_id, evidence)
    except AnalysisError as exc:
        # Session is already back in IDLE with the user-facing message set
        logger.warning(f"Claim session for '{evidence.filename}' returned to IDLE: {exc}")


def _read_upload(file: UploadFile) -> Optional[Evidence]:
    data = file.file.read()
    if len(data) > MAX_FILE_SIZE_MB * 1024 * 1024:
        raise HTTPException(
            status_code=413,
            detail=f"{file.filename} exceeds the per-file limit of {MAX_FILE_SIZE_MB} MB.",
        )
    try:
        return Evidence.from_upload(file.filename, file.content_type, data)
    except IngestionError as exc:
        logger.debug(f"Ignoring upload: {exc}")
        return None


@app.get("/api/session")
async def session_state(
    controller: WorkflowController = Depends(controller_dependency),
) -> Dict[str, Any]:
    return controller.snapshot().to_dict()


@app.get("/api/session/transcript")
async def session_transcript(
    controller: WorkflowController = Depends(controller_dependency),
) -> Dict[str, Any]:
    return controller.export_transcript()


@app.post("/api/session/evidence")
async def submit_evidence(
    background_tasks: BackgroundTasks,
    file: Optional[UploadFile] = File(None),
    controller: WorkflowController = Depends(controller_dependency),
) -> JSONResponse:
    """Start a session for one photo or video; ignored unless the session is IDLE."""
    evidence = _read_upload(file) if file is not None else None

    session_id = controller.open_session(evidence)
    accepted = session_id is not None
    if accepted:
        background_tasks.add_task(_run_session, controller, session_id, evidence)

    return JSONResponse(
        status_code=202,
        content={"accepted": accepted, "session": controller.snapshot().to_dict()},
        background=background_tasks,
    )


@app.get("/api/session/evidence/preview")
async def evidence_preview(
    controller: WorkflowController = Depends(controller_dependency),
) -> Dict[str, Any]:
    """Inline preview of the evidence in the live session."""
    evidence = controller.evidence
    if evidence is None:
        raise HTTPException(status_code=404, detail="No evidence in the current session.")
    return {**evidence.describe(), "preview_url": evidence.data_url()}


@app.post("/api/session/reset")
async def reset_session(
    controller: WorkflowController = Depends(controller_dependency),
) -> Dict[str, Any]:
    return controller.reset().to_dict()


@app.get("/healthz")
async def healthcheck() -> Dict[str, str]:
    return {"status": "ok"}
