"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from aicamera.clients import (
    DoubaoClient,
    LatestFrameCaptureSource,
    OpenAIClient,
    SQLiteStore,
)
from aicamera.dependencies.config import get_app_settings
from aicamera.models.providers import AIProvider
from aicamera.services import CaptureRecordStore, GenerationJobStore, Orchestrator


@lru_cache()
def get_doubao_client() -> DoubaoClient:
    """Provide Doubao client instance."""
    settings = get_app_settings()
    return DoubaoClient(
        settings.doubao, timeout_seconds=settings.jobs.request_timeout_seconds
    )


@lru_cache()
def get_openai_client() -> OpenAIClient:
    """Provide OpenAI client instance."""
    settings = get_app_settings()
    return OpenAIClient(
        settings.openai, timeout_seconds=settings.jobs.request_timeout_seconds
    )


@lru_cache()
def get_sqlite_store() -> SQLiteStore:
    """Provide shared SQLite record store."""
    return SQLiteStore(get_app_settings().database_path)


@lru_cache()
def get_capture_source() -> LatestFrameCaptureSource:
    """Provide the process-wide holder of the latest camera frame."""
    return LatestFrameCaptureSource()


@lru_cache()
def get_capture_record_store() -> CaptureRecordStore:
    settings = get_app_settings()
    return CaptureRecordStore(settings.database_path, settings.media_dir)


def get_job_store() -> GenerationJobStore:
    return GenerationJobStore(get_sqlite_store())


@lru_cache()
def get_orchestrator() -> Orchestrator:
    """Provide the single orchestrator owning inspiration and generation state."""
    return Orchestrator(
        settings=get_app_settings(),
        clients={
            AIProvider.DOUBAO: get_doubao_client(),
            AIProvider.OPENAI: get_openai_client(),
        },
        capture_source=get_capture_source(),
        records=get_capture_record_store(),
        job_store=get_job_store(),
    )


__all__ = [
    "get_capture_record_store",
    "get_capture_source",
    "get_doubao_client",
    "get_job_store",
    "get_openai_client",
    "get_orchestrator",
    "get_sqlite_store",
]
