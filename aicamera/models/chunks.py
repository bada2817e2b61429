"""Typed units produced while decoding a streamed completion."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union


@dataclass(frozen=True, slots=True)
class ReasoningChunk:
    """A fragment of the provider's thinking phase."""

    text: str


@dataclass(frozen=True, slots=True)
class ContentChunk:
    """A fragment of user-visible output."""

    text: str


@dataclass(frozen=True, slots=True)
class DoneChunk:
    """Terminal marker; the stream finished successfully."""


@dataclass(frozen=True, slots=True)
class ErrorChunk:
    """Terminal marker carrying the reason decoding stopped."""

    cause: Exception

    @property
    def message(self) -> str:
        return str(self.cause) or type(self.cause).__name__


Chunk = Union[ReasoningChunk, ContentChunk, DoneChunk, ErrorChunk]


__all__ = [
    "Chunk",
    "ContentChunk",
    "DoneChunk",
    "ErrorChunk",
    "ReasoningChunk",
]
