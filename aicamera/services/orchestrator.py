"""
Wiring between the capture client, the inspiration controller, the job tracker
and capture record storage.
"""

from __future__ import annotations

import asyncio
import logging
import re
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Deque, List, Mapping, Optional, Set

from pydantic import ValidationError

from aicamera.clients.base import ProviderClient
from aicamera.clients.capture_source import LatestFrameCaptureSource
from aicamera.core.config import AppSettings
from aicamera.core.errors import (
    PreconditionError,
    ProtocolError,
    RecordNotFoundError,
    UnsupportedOperationError,
)
from aicamera.models.inspiration import (
    AnalysisOptions,
    AnalysisRequest,
    CameraPosition,
    Finished,
    FocusPoint,
    Idle,
    InspirationPersona,
    InspirationState,
)
from aicamera.models.jobs import GenerationJob, JobKind, JobStatus
from aicamera.models.providers import AIProvider
from aicamera.schemas.api import HighlightStory
from aicamera.services.capture_records import CaptureRecord, CaptureRecordStore
from aicamera.services.inspiration import AnalysisController, collect_content
from aicamera.services.job_store import GenerationJobStore
from aicamera.services.job_tracker import JobTracker, Sleeper

logger = logging.getLogger(__name__)

_MAX_ALERTS = 50
_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$")


@dataclass(frozen=True, slots=True)
class Alert:
    """User-facing notice about a failed background operation."""

    title: str
    message: str
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class Orchestrator:
    """Single owner of the live inspiration state and the generation features."""

    def __init__(
        self,
        *,
        settings: AppSettings,
        clients: Mapping[AIProvider, ProviderClient],
        capture_source: LatestFrameCaptureSource,
        records: CaptureRecordStore,
        job_store: GenerationJobStore,
        controller: AnalysisController | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._clients = dict(clients)
        self._capture = capture_source
        self._records = records
        self._provider = settings.ai_provider
        self._persona = settings.inspiration.default_persona
        self._auto_inspiration = settings.inspiration.auto_trigger
        self._focus_point: Optional[FocusPoint] = None
        self._alerts: Deque[Alert] = deque(maxlen=_MAX_ALERTS)
        self._background: Set[asyncio.Task[None]] = set()
        self.controller = controller or AnalysisController()
        self.tracker = JobTracker(
            job_store,
            self._client_for,
            poll_interval_seconds=settings.jobs.poll_interval_seconds,
            max_poll_attempts=settings.jobs.max_poll_attempts,
            on_finished=self._on_job_finished,
            sleep=sleep,
        )

    @property
    def provider(self) -> AIProvider:
        return self._provider

    @property
    def persona(self) -> InspirationPersona:
        return self._persona

    @property
    def auto_inspiration(self) -> bool:
        return self._auto_inspiration

    @property
    def focus_point(self) -> Optional[FocusPoint]:
        return self._focus_point

    @property
    def frames_received(self) -> int:
        return self._capture.frames_received

    @property
    def camera(self) -> LatestFrameCaptureSource:
        return self._capture

    @property
    def state(self) -> InspirationState:
        return self.controller.state

    @property
    def client(self) -> ProviderClient:
        return self._client_for(self._provider)

    def _client_for(self, provider: AIProvider) -> ProviderClient:
        try:
            return self._clients[provider]
        except KeyError:
            raise UnsupportedOperationError(
                f"No client is configured for {provider.label}."
            ) from None

    async def start(self) -> List[GenerationJob]:
        """Reconcile durable jobs and busy flags left by a previous process."""
        resumed = self.tracker.resume_pending()
        videos = {
            job.owner_id: job.id
            for job in resumed
            if job.kind is JobKind.VIDEO_GENERATION
        }
        for record in self._records.list_records():
            job_id = videos.get(record.id)
            stale = (
                record.is_generating_edited_image
                or record.is_generating_video_script
                or (record.is_generating_video and job_id is None)
            )
            if job_id is None and not stale:
                continue
            record.is_generating_edited_image = False
            record.is_generating_video_script = False
            record.is_generating_video = job_id is not None
            if job_id is not None:
                record.video_job_id = job_id
            self._records.save(record)
        if resumed:
            logger.info("Resumed generation jobs", extra={"count": len(resumed)})
        return resumed

    async def shutdown(self) -> None:
        self.controller.cancel()
        tasks = list(self._background)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        await self.tracker.shutdown()

    async def wait_idle(self) -> None:
        """Wait until inspiration, background work and jobs have settled."""
        await self.controller.wait()
        while self._background:
            await asyncio.gather(*list(self._background))
        await self.tracker.wait_all()

    def use_provider(self, provider: AIProvider) -> bool:
        """Switch provider. A live run belongs to the old provider and is restarted."""
        if provider == self._provider:
            return False
        self._client_for(provider)
        self._provider = provider
        logger.info("AI provider switched", extra={"provider": provider.value})
        self.cancel_inspiration(restart=True)
        return True

    def on_frame(self, frame: bytes) -> bool:
        """Accept a live frame. Returns True when it started an inspiration run."""
        first = self._capture.push_frame(frame)
        if first and self._auto_inspiration and isinstance(self.state, Idle):
            self.trigger_inspiration()
            return True
        return False

    def trigger_inspiration(self, *, focus: bool = False) -> int:
        persona = self._persona
        prompt = self._settings.prompts.for_persona(persona)
        options = AnalysisOptions(deep_thinking=self._settings.inspiration.deep_thinking)
        point = self._focus_point if focus else None

        async def prepare() -> AnalysisRequest:
            if point is not None:
                try:
                    await self._capture.focus(point)
                except Exception:
                    logger.warning("Focus request failed", exc_info=True)
            frame = self._capture.get_current_frame()
            if frame is None:
                raise PreconditionError("No camera frame is available yet.")
            return AnalysisRequest(images=(frame,), prompt=prompt, options=options)

        return self.controller.trigger(self.client, prepare)

    def focus(self, point: FocusPoint) -> int:
        self._focus_point = point
        return self.trigger_inspiration(focus=True)

    def set_camera(
        self,
        *,
        running: bool | None = None,
        position: CameraPosition | None = None,
    ) -> None:
        """Start, stop or switch the camera. A live run on the old feed is cancelled."""
        changed = False
        if position is not None and self._capture.switch_camera(position):
            self._focus_point = None
            changed = True
        if running is False and self._capture.is_running:
            self._capture.stop()
            changed = True
        elif running is True:
            self._capture.start()
        if changed:
            self.controller.cancel()

    def set_persona(self, persona: InspirationPersona) -> bool:
        if persona == self._persona:
            return False
        self._persona = persona
        self.trigger_inspiration()
        return True

    def set_auto_inspiration(self, enabled: bool) -> None:
        if enabled == self._auto_inspiration:
            return
        self._auto_inspiration = enabled
        if not enabled:
            self.controller.cancel()
        elif isinstance(self.state, Idle) and not self.controller.is_running:
            self.trigger_inspiration()

    def cancel_inspiration(self, *, restart: bool = False) -> None:
        self.controller.cancel()
        if restart and self._auto_inspiration:
            self.trigger_inspiration()

    def capture_photo(self, image: bytes | None = None) -> CaptureRecord:
        """Store a photo, attaching the finished inspiration when there is one."""
        image = image if image is not None else self._capture.get_current_frame()
        if image is None:
            raise PreconditionError("No camera frame is available to capture.")
        state = self.state
        if isinstance(state, Finished):
            return self._records.create(
                image=image, persona=self._persona, inspiration_text=state.text
            )
        return self._records.create(image=image)

    def list_records(self) -> List[CaptureRecord]:
        return self._records.list_records()

    def get_record(self, record_id: str) -> CaptureRecord:
        record = self._records.get(record_id)
        if record is None:
            raise RecordNotFoundError(record_id)
        return record

    def generate_edited_image(self, record_id: str) -> GenerationJob:
        record = self.get_record(record_id)
        if record.is_generating_edited_image:
            raise PreconditionError("An edited image is already being generated.")
        source = self._require_original(record)
        client = self.client

        record.is_generating_edited_image = True
        self._records.save(record)
        return self.tracker.start_image_edit(
            client,
            owner_id=record.id,
            source_ref=record.original_image_file,
            source=source,
            prompt=self._settings.prompts.image_edit,
        )

    def generate_video(self, record_id: str) -> CaptureRecord:
        """Write a video script for the capture, then submit a video job.

        Returns immediately; progress is reflected on the record and failures
        are reported as alerts.
        """
        record = self.get_record(record_id)
        if record.video_busy:
            raise PreconditionError("A video is already being generated for this capture.")
        client = self.client
        if not client.supports_jobs:
            raise UnsupportedOperationError(
                f"{client.provider.label} does not support video generation."
            )
        source = self._require_original(record)

        record.is_generating_video_script = True
        self._records.save(record)
        self._spawn(self._produce_video(record.id, client, source))
        return record

    async def analyze_clip(self, record_id: str, frames: List[bytes]) -> CaptureRecord:
        """Interpret a recorded clip from its sampled frames and store the text."""
        record = self.get_record(record_id)
        if not frames:
            record.clip_analysis_text = (
                "Frame extraction failed or the AI service is misconfigured."
            )
            self._records.save(record)
            return record

        persona = record.persona or InspirationPersona.ASSISTANT
        persona_prompt = self._settings.prompts.for_persona(persona)
        prompt = (
            "Based on the consecutive frames of this clip, and in the role "
            f"described by '{persona_prompt}', interpret the story as a whole "
            "and elevate it."
        )
        try:
            text = await collect_content(self.client, frames, prompt)
        except Exception as exc:
            logger.warning("Clip analysis failed", extra={"record_id": record_id})
            text = f"Clip analysis failed: {str(exc) or type(exc).__name__}"

        record = self.get_record(record_id)
        record.clip_analysis_text = text
        self._records.save(record)
        return record

    async def generate_highlight_story(self, record_ids: List[str]) -> HighlightStory:
        """Tell one story across several captures, in chronological order."""
        records = sorted(
            (self.get_record(record_id) for record_id in record_ids),
            key=lambda record: record.created_at,
        )
        images = [
            image
            for image in (self._records.read_original(record) for record in records)
            if image is not None
        ]
        if not images:
            raise PreconditionError("The selected captures have no readable images.")

        text = await collect_content(
            self.client, images, self._settings.prompts.highlight_reel
        )
        payload = _CODE_FENCE.sub("", text.strip())
        try:
            return HighlightStory.model_validate_json(payload)
        except ValidationError as exc:
            raise ProtocolError(
                "The AI did not return a valid story script."
            ) from exc

    def alert(self, message: str, *, title: str = "Something went wrong") -> None:
        self._alerts.append(Alert(title=title, message=message))

    def drain_alerts(self) -> List[Alert]:
        alerts = list(self._alerts)
        self._alerts.clear()
        return alerts

    def _require_original(self, record: CaptureRecord) -> bytes:
        source = self._records.read_original(record)
        if source is None:
            raise PreconditionError("The original image for this capture is missing.")
        return source

    def _spawn(self, coro) -> None:
        task = asyncio.get_running_loop().create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _produce_video(
        self, record_id: str, client: ProviderClient, source: bytes
    ) -> None:
        try:
            script = await collect_content(
                client, [source], self._settings.prompts.video_story
            )
            if not script.strip():
                raise ProtocolError("No suitable script could be written.")
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.alert(f"Video script failed: {str(exc) or type(exc).__name__}")
            record = self.get_record(record_id)
            record.is_generating_video_script = False
            self._records.save(record)
            return

        record = self.get_record(record_id)
        record.video_script = script
        record.is_generating_video_script = False
        self._records.save(record)

        try:
            job = await self.tracker.submit_video(
                client,
                owner_id=record_id,
                source_ref=record.original_image_file,
                source=source,
                prompt=script,
            )
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            self.alert(f"Video job could not be started: {str(exc) or type(exc).__name__}")
            return

        record = self.get_record(record_id)
        record.video_job_id = job.id
        record.is_generating_video = True
        self._records.save(record)

    async def _on_job_finished(self, job: GenerationJob) -> None:
        record = self._records.get(job.owner_id)
        if record is None:
            logger.warning(
                "Job finished for unknown capture record",
                extra={"job_id": job.id, "owner_id": job.owner_id},
            )
            return

        succeeded = job.status is JobStatus.SUCCEEDED and job.artifact is not None
        if job.kind is JobKind.IMAGE_EDIT:
            record.is_generating_edited_image = False
            if succeeded:
                file_name = f"{record.id}_edited.jpg"
                self._records.write_media(file_name, job.artifact)
                record.edited_image_file = file_name
            else:
                self.alert(f"Image edit failed: {job.failure_reason or 'unknown'}")
        else:
            record.is_generating_video = False
            if succeeded:
                file_name = f"{record.id}_generated.mp4"
                self._records.write_media(file_name, job.artifact)
                record.generated_video_file = file_name
            else:
                self.alert(f"Video generation failed: {job.failure_reason or 'unknown'}")
        self._records.save(record)


__all__ = ["Alert", "Orchestrator"]
