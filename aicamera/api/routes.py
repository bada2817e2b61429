"""
FastAPI routes for the AI camera service.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException

from aicamera.core.errors import (
    PreconditionError,
    ProviderError,
    RecordNotFoundError,
    UnsupportedOperationError,
)
from aicamera.dependencies import SettingsDependency, get_orchestrator
from aicamera.models.inspiration import Error, Finished, FocusPoint, state_text
from aicamera.models.jobs import GenerationJob
from aicamera.schemas import (
    AlertView,
    AutoInspirationUpdate,
    CameraUpdate,
    CameraView,
    CancelRequest,
    CaptureRecordView,
    CaptureRequest,
    ClipAnalysisRequest,
    FocusRequest,
    FrameAccepted,
    FrameUpload,
    GenerationJobView,
    HighlightRequest,
    HighlightStory,
    InspirationSnapshot,
    PersonaUpdate,
    ProviderUpdate,
)
from aicamera.services import CaptureRecord, Orchestrator

router = APIRouter()
logger = logging.getLogger(__name__)

OrchestratorDependency = Annotated[Orchestrator, Depends(get_orchestrator)]


def _snapshot(orchestrator: Orchestrator) -> InspirationSnapshot:
    state = orchestrator.state
    return InspirationSnapshot(
        status=state.status,
        text=state_text(state),
        latency_ms=state.latency_ms if isinstance(state, Finished) else None,
        error=state.message if isinstance(state, Error) else None,
        run_id=orchestrator.controller.run_id,
        persona=orchestrator.persona,
        provider=orchestrator.provider,
        auto_inspiration=orchestrator.auto_inspiration,
    )


def _record_view(record: CaptureRecord) -> CaptureRecordView:
    return CaptureRecordView(
        id=record.id,
        created_at=record.created_at,
        persona=record.persona,
        inspiration_text=record.inspiration_text,
        original_image_file=record.original_image_file,
        edited_image_file=record.edited_image_file,
        generated_video_file=record.generated_video_file,
        video_script=record.video_script,
        video_job_id=record.video_job_id,
        clip_analysis_text=record.clip_analysis_text,
        is_generating_edited_image=record.is_generating_edited_image,
        is_generating_video_script=record.is_generating_video_script,
        is_generating_video=record.is_generating_video,
    )


def _job_view(job: GenerationJob) -> GenerationJobView:
    return GenerationJobView(
        id=job.id,
        kind=job.kind,
        owner_id=job.owner_id,
        provider=job.provider,
        status=job.status,
        attempts=job.attempts,
        created_at=job.created_at,
        failure_reason=job.failure_reason,
    )


def _to_http_error(exc: Exception) -> HTTPException:
    if isinstance(exc, RecordNotFoundError):
        return HTTPException(status_code=HTTPStatus.NOT_FOUND, detail=str(exc))
    if isinstance(exc, (UnsupportedOperationError, PreconditionError)):
        return HTTPException(status_code=HTTPStatus.CONFLICT, detail=str(exc))
    return HTTPException(status_code=HTTPStatus.BAD_GATEWAY, detail=str(exc))


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck(settings: SettingsDependency) -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok", "environment": settings.environment}


@router.post("/frames", response_model=FrameAccepted, status_code=HTTPStatus.OK)
async def push_frame(payload: FrameUpload, orchestrator: OrchestratorDependency) -> FrameAccepted:
    """Receive the latest live camera frame."""
    triggered = orchestrator.on_frame(payload.image_bytes())
    return FrameAccepted(
        first_frame=orchestrator.frames_received == 1,
        inspiration_triggered=triggered,
    )


@router.put("/camera", response_model=CameraView)
async def update_camera(payload: CameraUpdate, orchestrator: OrchestratorDependency) -> CameraView:
    """Start, stop or switch the camera feed."""
    orchestrator.set_camera(running=payload.running, position=payload.position)
    camera = orchestrator.camera
    return CameraView(
        running=camera.is_running,
        position=camera.position,
        frames_received=camera.frames_received,
    )


@router.get("/inspiration", response_model=InspirationSnapshot)
async def get_inspiration(orchestrator: OrchestratorDependency) -> InspirationSnapshot:
    return _snapshot(orchestrator)


@router.post(
    "/inspiration/trigger",
    response_model=InspirationSnapshot,
    status_code=HTTPStatus.ACCEPTED,
)
async def trigger_inspiration(orchestrator: OrchestratorDependency) -> InspirationSnapshot:
    """Start a fresh inspiration run, superseding any live one."""
    try:
        orchestrator.trigger_inspiration()
    except UnsupportedOperationError as exc:
        raise _to_http_error(exc) from exc
    return _snapshot(orchestrator)


@router.post(
    "/inspiration/focus",
    response_model=InspirationSnapshot,
    status_code=HTTPStatus.ACCEPTED,
)
async def focus_inspiration(
    payload: FocusRequest, orchestrator: OrchestratorDependency
) -> InspirationSnapshot:
    """Focus on a point of the frame and re-run inspiration for it."""
    try:
        orchestrator.focus(FocusPoint(payload.x, payload.y))
    except UnsupportedOperationError as exc:
        raise _to_http_error(exc) from exc
    return _snapshot(orchestrator)


@router.post("/inspiration/cancel", response_model=InspirationSnapshot)
async def cancel_inspiration(
    orchestrator: OrchestratorDependency, payload: CancelRequest | None = None
) -> InspirationSnapshot:
    restart = payload.restart if payload else False
    orchestrator.cancel_inspiration(restart=restart)
    return _snapshot(orchestrator)


@router.put("/inspiration/persona", response_model=InspirationSnapshot)
async def update_persona(
    payload: PersonaUpdate, orchestrator: OrchestratorDependency
) -> InspirationSnapshot:
    orchestrator.set_persona(payload.persona)
    return _snapshot(orchestrator)


@router.put("/inspiration/auto", response_model=InspirationSnapshot)
async def update_auto_inspiration(
    payload: AutoInspirationUpdate, orchestrator: OrchestratorDependency
) -> InspirationSnapshot:
    orchestrator.set_auto_inspiration(payload.enabled)
    return _snapshot(orchestrator)


@router.put("/provider", response_model=InspirationSnapshot)
async def update_provider(
    payload: ProviderUpdate, orchestrator: OrchestratorDependency
) -> InspirationSnapshot:
    try:
        orchestrator.use_provider(payload.provider)
    except UnsupportedOperationError as exc:
        raise _to_http_error(exc) from exc
    return _snapshot(orchestrator)


@router.post(
    "/captures", response_model=CaptureRecordView, status_code=HTTPStatus.CREATED
)
async def capture_photo(
    payload: CaptureRequest, orchestrator: OrchestratorDependency
) -> CaptureRecordView:
    """Store a photo together with the finished inspiration, if any."""
    try:
        record = orchestrator.capture_photo(payload.image_bytes())
    except PreconditionError as exc:
        raise _to_http_error(exc) from exc
    return _record_view(record)


@router.get("/captures", response_model=List[CaptureRecordView])
async def list_captures(orchestrator: OrchestratorDependency) -> List[CaptureRecordView]:
    return [_record_view(record) for record in orchestrator.list_records()]


@router.get("/captures/{record_id}", response_model=CaptureRecordView)
async def get_capture(record_id: str, orchestrator: OrchestratorDependency) -> CaptureRecordView:
    try:
        record = orchestrator.get_record(record_id)
    except RecordNotFoundError as exc:
        raise _to_http_error(exc) from exc
    return _record_view(record)


@router.post(
    "/captures/{record_id}/edited-image",
    response_model=GenerationJobView,
    status_code=HTTPStatus.ACCEPTED,
)
async def generate_edited_image(
    record_id: str, orchestrator: OrchestratorDependency
) -> GenerationJobView:
    """Start a stylized redraw of the capture."""
    try:
        job = orchestrator.generate_edited_image(record_id)
    except (RecordNotFoundError, PreconditionError, UnsupportedOperationError) as exc:
        raise _to_http_error(exc) from exc
    return _job_view(job)


@router.post(
    "/captures/{record_id}/video",
    response_model=CaptureRecordView,
    status_code=HTTPStatus.ACCEPTED,
)
async def generate_video(
    record_id: str, orchestrator: OrchestratorDependency
) -> CaptureRecordView:
    """Write a script for the capture and start an AI video job from it."""
    try:
        record = orchestrator.generate_video(record_id)
    except (RecordNotFoundError, PreconditionError, UnsupportedOperationError) as exc:
        raise _to_http_error(exc) from exc
    return _record_view(record)


@router.post("/captures/{record_id}/clip-analysis", response_model=CaptureRecordView)
async def analyze_clip(
    record_id: str,
    payload: ClipAnalysisRequest,
    orchestrator: OrchestratorDependency,
) -> CaptureRecordView:
    try:
        record = await orchestrator.analyze_clip(record_id, payload.frame_bytes())
    except RecordNotFoundError as exc:
        raise _to_http_error(exc) from exc
    return _record_view(record)


@router.post("/highlights", response_model=HighlightStory)
async def generate_highlight_story(
    payload: HighlightRequest, orchestrator: OrchestratorDependency
) -> HighlightStory:
    """Tell a single story across the selected captures."""
    try:
        return await orchestrator.generate_highlight_story(payload.record_ids)
    except (RecordNotFoundError, ProviderError) as exc:
        logger.warning("Highlight story failed", extra={"error": type(exc).__name__})
        raise _to_http_error(exc) from exc


@router.get("/jobs", response_model=List[GenerationJobView])
async def list_jobs(orchestrator: OrchestratorDependency) -> List[GenerationJobView]:
    return [_job_view(job) for job in orchestrator.tracker.active_jobs()]


@router.get("/alerts", response_model=List[AlertView])
async def drain_alerts(orchestrator: OrchestratorDependency) -> List[AlertView]:
    """Return and clear pending alerts."""
    return [
        AlertView(title=alert.title, message=alert.message, created_at=alert.created_at)
        for alert in orchestrator.drain_alerts()
    ]


__all__ = ["router"]
