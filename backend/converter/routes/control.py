"""
Control endpoints for the converter session.

Thin HTTP adapter over the JobOrchestrator on app.state.orchestrator.
Every action is explicit: start() needs an uploaded file and a bitrate,
reset() must be requested. Illegal actions answer 409, never a silent
no-op.
"""

import logging
from datetime import datetime
from pathlib import PurePath
from typing import List, Optional

from fastapi import APIRouter, File, Form, HTTPException, Request, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel, ConfigDict

from converter.jobs import (
    EngineNotLoadedError,
    InvalidStateTransitionError,
    JobOrchestrator,
    JobState,
)
from converter.presets import InvalidBitrateError, describe_options

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/control", tags=["control"])


# ============================================================================
# API MODELS
# ============================================================================

class ProgressInfo(BaseModel):
    """Progress sample for the UI."""

    model_config = ConfigDict(extra="forbid")

    ratio: float
    percent: int
    fps: float
    speed: str


class ErrorInfo(BaseModel):
    """Recorded failure (without the log; see /control/logs)."""

    model_config = ConfigDict(extra="forbid")

    kind: str
    message: str
    recoverable: bool
    occurred_at: datetime


class StatusResponse(BaseModel):
    """Current job status."""

    model_config = ConfigDict(extra="forbid")

    state: str
    progress: ProgressInfo
    load_progress: float
    log_count: int
    output_size: Optional[int] = None
    error: Optional[ErrorInfo] = None


class LogsResponse(BaseModel):
    """Log lines from an offset."""

    model_config = ConfigDict(extra="forbid")

    offset: int
    total: int
    lines: List[str]


class PresetInfo(BaseModel):
    """Preset summary for the bitrate picker."""

    model_config = ConfigDict(extra="forbid")

    id: str
    name: str
    bitrate: str
    description: str


class PresetListResponse(BaseModel):
    """Available presets, in display order."""

    model_config = ConfigDict(extra="forbid")

    presets: List[PresetInfo]


class OperationResponse(BaseModel):
    """Generic operation result."""

    model_config = ConfigDict(extra="forbid")

    success: bool
    message: str
    state: str


def _orchestrator(request: Request) -> JobOrchestrator:
    return request.app.state.orchestrator


def converted_filename(source_name: Optional[str], fallback: str) -> str:
    """
    Download name for a converted file: "<name>-converted.<ext>".

    "clip.final.mov" → "clip.final-converted.mov". Falls back to `fallback`
    when the upload had no usable name. Without an extension the fallback
    extension is used.
    """
    name = PurePath((source_name or "").replace("\\", "/")).name.replace('"', "")
    stem, dot, extension = name.rpartition(".")
    if not dot:
        stem, extension = name, fallback.rpartition(".")[2]
    if not stem:
        return fallback
    return f"{stem}-converted.{extension}"


# ============================================================================
# ENDPOINTS
# ============================================================================

@router.get("/status", response_model=StatusResponse)
async def get_status(request: Request):
    """
    Get the job state, progress and any recorded failure.

    Returns:
        StatusResponse
    """
    snapshot = _orchestrator(request).snapshot()
    progress = snapshot.progress

    error = None
    if snapshot.error is not None:
        error = ErrorInfo(
            kind=snapshot.error.kind.value,
            message=snapshot.error.message,
            recoverable=snapshot.error.recoverable,
            occurred_at=snapshot.error.occurred_at,
        )

    return StatusResponse(
        state=snapshot.state.value,
        progress=ProgressInfo(
            ratio=progress.ratio,
            percent=progress.percent,
            fps=progress.fps,
            speed=progress.speed,
        ),
        load_progress=snapshot.load_progress,
        log_count=snapshot.log_count,
        output_size=snapshot.output_size,
        error=error,
    )


@router.get("/logs", response_model=LogsResponse)
async def get_logs(request: Request, offset: int = 0):
    """
    Get captured log lines starting at offset.

    Poll with offset = previous total to receive only new lines.
    """
    if offset < 0:
        raise HTTPException(status_code=400, detail="offset must be >= 0")

    logs = _orchestrator(request).logs
    return LogsResponse(offset=offset, total=len(logs), lines=list(logs[offset:]))


@router.get("/presets", response_model=PresetListResponse)
async def list_presets(request: Request):
    """List bitrate presets in display order."""
    registry = _orchestrator(request).preset_registry
    return PresetListResponse(
        presets=[
            PresetInfo(
                id=preset.id,
                name=preset.name,
                bitrate=preset.bitrate,
                description=preset.description,
            )
            for preset in registry.list_presets()
        ]
    )


@router.post("/start", response_model=OperationResponse, status_code=202)
async def start_conversion(
    request: Request,
    file: UploadFile = File(...),
    bitrate: Optional[str] = Form(None),
):
    """
    Start a conversion of the uploaded file.

    The run continues in the background; poll /control/status.

    Args:
        file: Source video
        bitrate: Bitrate ("6000k", "8M", bare kbps) or preset id.
            Empty uses the configured default.

    Raises:
        HTTPException 400: Invalid bitrate or empty upload
        HTTPException 409: Job is not READY
    """
    orchestrator = _orchestrator(request)

    if orchestrator.state != JobState.READY:
        raise HTTPException(
            status_code=409,
            detail=f"Cannot start: job is {orchestrator.state.value}",
        )

    data = await file.read()
    if not data:
        raise HTTPException(status_code=400, detail="Uploaded file is empty")

    try:
        orchestrator.submit(data, bitrate or None, source_name=file.filename)
    except InvalidBitrateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except (InvalidStateTransitionError, EngineNotLoadedError) as e:
        raise HTTPException(status_code=409, detail=str(e))

    logger.info(
        f"Conversion started for '{file.filename}' ({len(data)} bytes, "
        f"{describe_options(orchestrator.options)})"
    )
    return OperationResponse(
        success=True,
        message="Conversion started",
        state=orchestrator.state.value,
    )


@router.post("/reset", response_model=OperationResponse)
async def reset_job(request: Request):
    """
    Discard output, progress and logs and return to READY.

    Raises:
        HTTPException 409: Run in progress, or engine never loaded
    """
    orchestrator = _orchestrator(request)
    try:
        orchestrator.reset()
    except (InvalidStateTransitionError, EngineNotLoadedError) as e:
        raise HTTPException(status_code=409, detail=str(e))

    return OperationResponse(
        success=True,
        message="Job reset",
        state=orchestrator.state.value,
    )


@router.get("/output")
async def download_output(request: Request):
    """
    Download the converted file.

    Raises:
        HTTPException 409: No successful conversion to download
    """
    orchestrator = _orchestrator(request)
    output = orchestrator.output
    if orchestrator.state != JobState.SUCCEEDED or output is None:
        raise HTTPException(
            status_code=409,
            detail=f"No output available: job is {orchestrator.state.value}",
        )

    filename = converted_filename(orchestrator.source_name, orchestrator.settings.output_name)
    return Response(
        content=output,
        media_type="video/mp4",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
