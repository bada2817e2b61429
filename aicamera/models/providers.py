"""
Identifiers for the AI provider families the service can talk to.
"""

from __future__ import annotations

from enum import Enum


class AIProvider(str, Enum):
    """Selectable backend for analysis and generation."""

    DOUBAO = "doubao"
    OPENAI = "openai"

    @property
    def label(self) -> str:
        return {
            AIProvider.DOUBAO: "Doubao",
            AIProvider.OPENAI: "OpenAI",
        }[self]


__all__ = ["AIProvider"]
