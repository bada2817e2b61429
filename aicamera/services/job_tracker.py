"""
Tracking of long-running generation jobs from submission to a terminal status.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Dict, List, Optional
from uuid import uuid4

from aicamera.clients.base import ProviderClient
from aicamera.core.errors import JobTimedOutError, MissingArtifactError, UnknownStatusError
from aicamera.models.jobs import GenerationJob, JobKind, JobStatus
from aicamera.models.providers import AIProvider
from aicamera.services.job_store import GenerationJobStore

logger = logging.getLogger(__name__)

CompletionHandler = Callable[[GenerationJob], Awaitable[None]]
ClientResolver = Callable[[AIProvider], ProviderClient]
Sleeper = Callable[[float], Awaitable[None]]

_IN_PROGRESS = frozenset({"pending", "processing"})


class JobTracker:
    """Poll asynchronous generation jobs and hand terminal results to a callback.

    Video jobs are persisted while they are in flight so that
    :meth:`resume_pending` can pick them up after a restart. Image edits are a
    single request and are tracked in memory only.
    """

    def __init__(
        self,
        store: GenerationJobStore,
        resolve_client: ClientResolver,
        *,
        poll_interval_seconds: float = 5.0,
        max_poll_attempts: int = 120,
        on_finished: Optional[CompletionHandler] = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self._store = store
        self._resolve_client = resolve_client
        self._interval = poll_interval_seconds
        self._max_attempts = max_poll_attempts
        self._on_finished = on_finished
        self._sleep = sleep
        self._jobs: Dict[str, GenerationJob] = {}
        self._tasks: Dict[str, asyncio.Task[GenerationJob]] = {}

    def active_jobs(self) -> List[GenerationJob]:
        return list(self._jobs.values())

    def is_tracking(self, job_id: str) -> bool:
        return job_id in self._tasks

    async def submit_video(
        self,
        client: ProviderClient,
        *,
        owner_id: str,
        source_ref: str,
        source: bytes,
        prompt: str,
    ) -> GenerationJob:
        """Create a remote video job, persist it and start polling.

        Submission errors propagate to the caller; once a job id exists every
        failure is reported through the completion handler instead.
        """
        job_id = await client.submit_job(source, prompt)
        if job_id in self._tasks:
            logger.info("Video generation job already tracked", extra={"job_id": job_id})
            return self._jobs[job_id]
        job = GenerationJob(
            id=job_id,
            kind=JobKind.VIDEO_GENERATION,
            source_ref=source_ref,
            owner_id=owner_id,
            provider=client.provider,
        )
        self._store.save(job)
        logger.info(
            "Video generation job submitted",
            extra={"job_id": job.id, "owner_id": owner_id, "provider": job.provider.value},
        )
        self.track(job)
        return job

    def start_image_edit(
        self,
        client: ProviderClient,
        *,
        owner_id: str,
        source_ref: str,
        source: bytes,
        prompt: str,
    ) -> GenerationJob:
        """Run a single image-edit request in the background."""
        job = GenerationJob(
            id=uuid4().hex,
            kind=JobKind.IMAGE_EDIT,
            source_ref=source_ref,
            owner_id=owner_id,
            provider=client.provider,
        )
        self._spawn(job, self._run_image_edit(job, client, source, prompt))
        return job

    def track(self, job: GenerationJob) -> bool:
        """Start polling ``job``. Returns False if it is already being polled."""
        if job.id in self._tasks:
            return False
        if job.status.is_terminal:
            raise ValueError(f"Job {job.id} is already {job.status.value}.")
        if job.status is JobStatus.PENDING:
            job.advance(JobStatus.POLLING)
        job.attempts = 0
        self._store.save(job)
        self._spawn(job, self._poll(job))
        return True

    def resume_pending(self) -> List[GenerationJob]:
        """Re-enter polling for every durable job left in flight by a previous process."""
        resumed: List[GenerationJob] = []
        for job in self._store.load_pending():
            if self.track(job):
                logger.info(
                    "Resuming generation job",
                    extra={"job_id": job.id, "owner_id": job.owner_id},
                )
                resumed.append(job)
        return resumed

    async def wait(self, job_id: str) -> Optional[GenerationJob]:
        task = self._tasks.get(job_id)
        if task is None:
            return None
        return await asyncio.shield(task)

    async def wait_all(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()))

    async def shutdown(self) -> None:
        """Cancel every loop. Durable jobs stay ``Polling`` and resume on next start."""
        tasks = list(self._tasks.values())
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
        self._jobs.clear()

    def _spawn(self, job: GenerationJob, coro: Awaitable[GenerationJob]) -> None:
        self._jobs[job.id] = job
        self._tasks[job.id] = asyncio.get_running_loop().create_task(
            coro, name=f"job-{job.kind.value}-{job.id}"
        )

    async def _poll(self, job: GenerationJob) -> GenerationJob:
        try:
            client = self._resolve_client(job.provider)
            for attempt in range(1, self._max_attempts + 1):
                if attempt > 1:
                    await self._sleep(self._interval)
                job.attempts = attempt
                result = await client.poll_job(job.id)

                if result.status == "succeeded":
                    if not result.artifact_url:
                        raise MissingArtifactError(
                            "The job succeeded but no artifact URL was returned."
                        )
                    artifact = await client.fetch_artifact(result.artifact_url)
                    job.succeed(artifact=artifact, artifact_ref=result.artifact_url)
                    break
                if result.status == "failed":
                    job.fail(result.error_message or "unknown")
                    break
                if result.status not in _IN_PROGRESS:
                    raise UnknownStatusError(result.status)
                job.advance(JobStatus.POLLING)
            else:
                raise JobTimedOutError(self._max_attempts, self._interval)
        except asyncio.CancelledError:
            raise
        except JobTimedOutError as exc:
            job.time_out(str(exc))
        except Exception as exc:
            job.fail(str(exc) or type(exc).__name__)

        await self._finish(job, durable=True)
        return job

    async def _run_image_edit(
        self, job: GenerationJob, client: ProviderClient, source: bytes, prompt: str
    ) -> GenerationJob:
        try:
            artifact = await client.generate_edited_image(source, prompt)
            job.succeed(artifact=artifact)
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            job.fail(str(exc) or type(exc).__name__)

        await self._finish(job, durable=False)
        return job

    async def _finish(self, job: GenerationJob, *, durable: bool) -> None:
        log = logger.info if job.status is JobStatus.SUCCEEDED else logger.warning
        log(
            "Generation job finished",
            extra={
                "job_id": job.id,
                "kind": job.kind.value,
                "status": job.status.value,
                "attempts": job.attempts,
                "reason": job.failure_reason,
            },
        )
        if durable:
            # Terminal records are never resumed.
            self._store.save(job)
        try:
            if self._on_finished is not None:
                await self._on_finished(job)
        except Exception:
            logger.exception("Completion handler failed", extra={"job_id": job.id})
        else:
            if durable:
                self._store.clear(job)
        finally:
            self._tasks.pop(job.id, None)
            self._jobs.pop(job.id, None)


__all__ = ["JobTracker"]
