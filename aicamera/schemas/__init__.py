"""Public schema exports."""

from .api import (
    AlertView,
    AutoInspirationUpdate,
    CameraUpdate,
    CameraView,
    CancelRequest,
    CaptureRecordView,
    CaptureRequest,
    ClipAnalysisRequest,
    FocusRequest,
    FrameAccepted,
    FrameUpload,
    GenerationJobView,
    HighlightRequest,
    HighlightStory,
    InspirationSnapshot,
    PersonaUpdate,
    ProviderUpdate,
)

__all__ = [
    "AlertView",
    "AutoInspirationUpdate",
    "CameraUpdate",
    "CameraView",
    "CancelRequest",
    "CaptureRecordView",
    "CaptureRequest",
    "ClipAnalysisRequest",
    "FocusRequest",
    "FrameAccepted",
    "FrameUpload",
    "GenerationJobView",
    "HighlightRequest",
    "HighlightStory",
    "InspirationSnapshot",
    "PersonaUpdate",
    "ProviderUpdate",
]
