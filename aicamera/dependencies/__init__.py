"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_capture_record_store,
    get_capture_source,
    get_doubao_client,
    get_job_store,
    get_openai_client,
    get_orchestrator,
    get_sqlite_store,
)
from .config import SettingsDependency, get_app_settings

__all__ = [
    "SettingsDependency",
    "get_app_settings",
    "get_capture_record_store",
    "get_capture_source",
    "get_doubao_client",
    "get_job_store",
    "get_openai_client",
    "get_orchestrator",
    "get_sqlite_store",
]
