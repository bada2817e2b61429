"""Expose constructed client wrappers."""

from .base import ProviderClient
from .capture_source import LatestFrameCaptureSource
from .doubao import DoubaoClient
from .openai_client import OpenAIClient
from .sqlite_store import SQLiteStore
from .sse import StreamDecoder

__all__ = [
    "DoubaoClient",
    "LatestFrameCaptureSource",
    "OpenAIClient",
    "ProviderClient",
    "SQLiteStore",
    "StreamDecoder",
]
