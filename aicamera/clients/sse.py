"""Decoder turning server-sent-event lines into typed completion chunks."""

from __future__ import annotations

from typing import AsyncIterable, AsyncIterator, Iterable, Iterator, List, Optional

from pydantic import ValidationError

from aicamera.core.errors import ProtocolError
from aicamera.models.chunks import (
    Chunk,
    ContentChunk,
    DoneChunk,
    ErrorChunk,
    ReasoningChunk,
)
from aicamera.schemas.provider import StreamPayload

DATA_PREFIX = "data: "
DONE_MARKER = "[DONE]"


class StreamDecoder:
    """Classify `data:` events into reasoning text, content text and terminals.

    ``reasoning_field`` names the delta field a provider uses for its thinking
    phase; ``None`` means the provider has no such phase and any reasoning text
    is ignored.
    """

    def __init__(self, reasoning_field: Optional[str] = "reasoning_content") -> None:
        self._reasoning_field = reasoning_field

    def decode_line(self, line: str) -> List[Chunk]:
        """Decode a single line. An empty list means the line carries nothing."""
        line = line.rstrip("\r\n")
        if not line.startswith(DATA_PREFIX):
            return []
        payload = line[len(DATA_PREFIX):]
        if payload.strip() == DONE_MARKER:
            return [DoneChunk()]

        try:
            event = StreamPayload.model_validate_json(payload)
        except ValidationError as exc:
            return [ErrorChunk(ProtocolError(f"Malformed stream event: {_first_error(exc)}"))]

        if not event.choices:
            return []
        delta = event.choices[0].delta

        chunks: List[Chunk] = []
        if self._reasoning_field:
            reasoning = delta.field_text(self._reasoning_field)
            if reasoning:
                chunks.append(ReasoningChunk(reasoning))
        if delta.content:
            chunks.append(ContentChunk(delta.content))
        return chunks

    async def decode(self, lines: AsyncIterable[str]) -> AsyncIterator[Chunk]:
        """Lazily decode a live line stream, stopping at the first terminal chunk.

        A stream that ends without the ``[DONE]`` marker is treated as complete.
        """
        async for line in lines:
            for chunk in self.decode_line(line):
                yield chunk
                if isinstance(chunk, (DoneChunk, ErrorChunk)):
                    return
        yield DoneChunk()

    def decode_all(self, lines: Iterable[str]) -> Iterator[Chunk]:
        """Synchronous counterpart of :meth:`decode` for buffered responses."""
        for line in lines:
            for chunk in self.decode_line(line):
                yield chunk
                if isinstance(chunk, (DoneChunk, ErrorChunk)):
                    return
        yield DoneChunk()


def _first_error(exc: ValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return str(exc)
    first = errors[0]
    location = ".".join(str(part) for part in first.get("loc", ())) or "payload"
    return f"{location}: {first.get('msg', 'invalid')}"


__all__ = ["DATA_PREFIX", "DONE_MARKER", "StreamDecoder"]
