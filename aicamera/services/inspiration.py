"""
Single-flight controller for the live inspiration stream.

Every trigger starts a new run identified by a monotonically increasing run id.
State changes from a run are applied only while that run is still the current
one, so a superseded or cancelled stream can never touch observable state.
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import aclosing
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from aicamera.clients.base import ProviderClient
from aicamera.models.chunks import ContentChunk, DoneChunk, ErrorChunk, ReasoningChunk
from aicamera.models.inspiration import (
    AnalysisOptions,
    AnalysisRequest,
    Error,
    Finished,
    Idle,
    InspirationState,
    Reasoning,
    Streaming,
    Thinking,
)

logger = logging.getLogger(__name__)

SILENT_RESULT = "silent result"

RequestFactory = Callable[[], Awaitable[AnalysisRequest]]
StateListener = Callable[[InspirationState], None]


class AnalysisController:
    """Owns the inspiration state and at most one in-flight analysis run."""

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._state: InspirationState = Idle()
        self._run_id = 0
        self._task: Optional[asyncio.Task[None]] = None
        self._listeners: List[StateListener] = []

    @property
    def state(self) -> InspirationState:
        return self._state

    @property
    def run_id(self) -> int:
        return self._run_id

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def add_listener(self, listener: StateListener) -> None:
        """Register a callback invoked synchronously on every state change."""
        self._listeners.append(listener)

    def trigger(
        self,
        client: ProviderClient,
        request: Union[AnalysisRequest, RequestFactory],
    ) -> int:
        """Start a new run, superseding any live one, and return its run id.

        ``request`` may be a ready request or a coroutine factory that builds it
        inside the run (for example after a focus side effect). Failures while
        building the request surface as ``Error`` states.
        """
        superseded = self.is_running
        self._stop_current()
        run_id = self._run_id
        if superseded:
            logger.info("Inspiration run superseded", extra={"run_id": run_id})
        self._apply(run_id, Thinking())

        started = self._clock()
        self._task = asyncio.get_running_loop().create_task(
            self._run(run_id, client, request, started),
            name=f"inspiration-run-{run_id}",
        )
        return run_id

    def cancel(self) -> None:
        """Stop the live run and return to ``Idle``. A no-op when already idle."""
        if isinstance(self._state, Idle) and not self.is_running:
            return
        self._stop_current()

    async def wait(self) -> InspirationState:
        """Wait for the current run to finish and return the resulting state."""
        task = self._task
        if task is not None:
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
        return self._state

    def _stop_current(self) -> None:
        self._run_id += 1
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._apply(self._run_id, Idle())

    def _is_current(self, run_id: int) -> bool:
        return run_id == self._run_id

    def _apply(self, run_id: int, state: InspirationState) -> bool:
        """Single entry point for state mutation, guarded by the run token."""
        if not self._is_current(run_id):
            return False
        if state == self._state:
            return True
        self._state = state
        logger.debug(
            "Inspiration state changed",
            extra={"run_id": run_id, "status": state.status.value},
        )
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Inspiration listener failed", extra={"run_id": run_id})
        return True

    async def _run(
        self,
        run_id: int,
        client: ProviderClient,
        request: Union[AnalysisRequest, RequestFactory],
        started: float,
    ) -> None:
        content = ""
        reasoning = ""
        latency_ms: Optional[int] = None
        try:
            if not isinstance(request, AnalysisRequest):
                request = await request()
            if not self._is_current(run_id):
                return

            stream = client.stream_analyze(request.images, request.prompt, request.options)
            async with aclosing(stream) as chunks:
                async for chunk in chunks:
                    if not self._is_current(run_id):
                        return
                    if latency_ms is None:
                        latency_ms = max(0, int((self._clock() - started) * 1000))

                    if isinstance(chunk, ReasoningChunk):
                        if content:
                            continue
                        reasoning += chunk.text
                        self._apply(run_id, Reasoning(reasoning))
                    elif isinstance(chunk, ContentChunk):
                        content += chunk.text
                        self._apply(run_id, Streaming(content))
                    elif isinstance(chunk, ErrorChunk):
                        self._apply(run_id, Error(chunk.message))
                        return
                    elif isinstance(chunk, DoneChunk):
                        break

            if content:
                self._apply(run_id, Finished(content, latency_ms or 0))
            else:
                self._apply(run_id, Error(SILENT_RESULT))
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            if self._is_current(run_id):
                logger.warning(
                    "Inspiration run failed",
                    extra={"run_id": run_id, "error": type(exc).__name__},
                )
            self._apply(run_id, Error(str(exc) or type(exc).__name__))


async def collect_content(
    client: ProviderClient,
    images: Sequence[bytes],
    prompt: str,
    options: AnalysisOptions | None = None,
) -> str:
    """Run a one-off analysis and return the concatenated content text.

    Error chunks are raised as their underlying exception.
    """
    text = ""
    async with aclosing(client.stream_analyze(images, prompt, options)) as chunks:
        async for chunk in chunks:
            if isinstance(chunk, ContentChunk):
                text += chunk.text
            elif isinstance(chunk, ErrorChunk):
                raise chunk.cause
            elif isinstance(chunk, DoneChunk):
                break
    return text


__all__ = ["AnalysisController", "SILENT_RESULT", "collect_content"]
