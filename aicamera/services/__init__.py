"""Service layer exports."""

from .capture_records import CaptureRecord, CaptureRecordStore
from .inspiration import SILENT_RESULT, AnalysisController, collect_content
from .job_store import GenerationJobStore
from .job_tracker import JobTracker
from .orchestrator import Alert, Orchestrator

__all__ = [
    "Alert",
    "AnalysisController",
    "CaptureRecord",
    "CaptureRecordStore",
    "GenerationJobStore",
    "JobTracker",
    "Orchestrator",
    "SILENT_RESULT",
    "collect_content",
]
