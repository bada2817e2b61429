"""
Domain types for the live inspiration feature.

The inspiration state is a closed set of variants. Each variant is a frozen
dataclass so that observers receive immutable snapshots and equality checks are
structural.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import ClassVar, Optional, Union


class InspirationPersona(str, Enum):
    """Named prompt profile selecting the response style."""

    ASSISTANT = "assistant"
    PHOTOGRAPHY_MASTER = "photography_master"
    POET = "poet"
    TRANSLATION_ASSISTANT = "translation_assistant"
    ENCYCLOPEDIA = "encyclopedia"
    STORYTELLER = "storyteller"
    HEALTH_ASSISTANT = "health_assistant"
    MENU_ASSISTANT = "menu_assistant"

    @property
    def label(self) -> str:
        return _PERSONA_LABELS[self]


_PERSONA_LABELS = {
    InspirationPersona.ASSISTANT: "Inspiration Assistant",
    InspirationPersona.PHOTOGRAPHY_MASTER: "Light Poet",
    InspirationPersona.POET: "Word Poet",
    InspirationPersona.TRANSLATION_ASSISTANT: "Linguist",
    InspirationPersona.ENCYCLOPEDIA: "Naturalist",
    InspirationPersona.STORYTELLER: "Dream Weaver",
    InspirationPersona.HEALTH_ASSISTANT: "Life Coach",
    InspirationPersona.MENU_ASSISTANT: "Menu Helper",
}


class CameraPosition(str, Enum):
    BACK = "back"
    FRONT = "front"


@dataclass(frozen=True, slots=True)
class FocusPoint:
    """Normalized point inside the frame, origin at the top-left corner."""

    x: float
    y: float

    def __post_init__(self) -> None:
        if not (0.0 <= self.x <= 1.0 and 0.0 <= self.y <= 1.0):
            raise ValueError(
                f"Focus point must be normalized to [0, 1], got ({self.x}, {self.y})."
            )


@dataclass(frozen=True, slots=True)
class AnalysisOptions:
    deep_thinking: bool = False


@dataclass(frozen=True, slots=True)
class AnalysisRequest:
    """Immutable input for a single analysis run."""

    images: tuple[bytes, ...]
    prompt: str
    options: AnalysisOptions = field(default_factory=AnalysisOptions)

    def __post_init__(self) -> None:
        object.__setattr__(self, "images", tuple(self.images))


class InspirationStatus(str, Enum):
    IDLE = "idle"
    CAPTURING = "capturing"
    THINKING = "thinking"
    REASONING = "reasoning"
    STREAMING = "streaming"
    FINISHED = "finished"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Idle:
    status: ClassVar[InspirationStatus] = InspirationStatus.IDLE


@dataclass(frozen=True, slots=True)
class Capturing:
    status: ClassVar[InspirationStatus] = InspirationStatus.CAPTURING


@dataclass(frozen=True, slots=True)
class Thinking:
    status: ClassVar[InspirationStatus] = InspirationStatus.THINKING


@dataclass(frozen=True, slots=True)
class Reasoning:
    text: str
    status: ClassVar[InspirationStatus] = InspirationStatus.REASONING


@dataclass(frozen=True, slots=True)
class Streaming:
    text: str
    status: ClassVar[InspirationStatus] = InspirationStatus.STREAMING


@dataclass(frozen=True, slots=True)
class Finished:
    text: str
    latency_ms: int
    status: ClassVar[InspirationStatus] = InspirationStatus.FINISHED


@dataclass(frozen=True, slots=True)
class Error:
    message: str
    status: ClassVar[InspirationStatus] = InspirationStatus.ERROR


InspirationState = Union[Idle, Capturing, Thinking, Reasoning, Streaming, Finished, Error]

TERMINAL_STATUSES = frozenset({InspirationStatus.FINISHED, InspirationStatus.ERROR})


def state_text(state: InspirationState) -> Optional[str]:
    """Return the text carried by a state, if any."""
    if isinstance(state, (Reasoning, Streaming, Finished)):
        return state.text
    return None


__all__ = [
    "AnalysisOptions",
    "AnalysisRequest",
    "CameraPosition",
    "Capturing",
    "Error",
    "Finished",
    "FocusPoint",
    "Idle",
    "InspirationPersona",
    "InspirationState",
    "InspirationStatus",
    "Reasoning",
    "Streaming",
    "TERMINAL_STATUSES",
    "Thinking",
    "state_text",
]
