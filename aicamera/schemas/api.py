"""
Pydantic models for the HTTP surface.
"""

from __future__ import annotations

import base64
import binascii
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from aicamera.models.inspiration import CameraPosition, InspirationPersona, InspirationStatus
from aicamera.models.jobs import JobKind, JobStatus
from aicamera.models.providers import AIProvider


def _decode_b64(value: str) -> bytes:
    try:
        return base64.b64decode(value, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("must be valid base64") from exc


class FrameUpload(BaseModel):
    """A live camera frame pushed by the capture client."""

    image_b64: str = Field(..., min_length=1, description="Base64-encoded JPEG frame.")

    @field_validator("image_b64")
    @classmethod
    def _validate_b64(cls, value: str) -> str:
        _decode_b64(value)
        return value

    def image_bytes(self) -> bytes:
        return _decode_b64(self.image_b64)


class FrameAccepted(BaseModel):
    first_frame: bool
    inspiration_triggered: bool


class InspirationSnapshot(BaseModel):
    """Observable state of the live inspiration feature."""

    status: InspirationStatus
    text: Optional[str] = Field(
        None, description="Reasoning or answer text accumulated so far."
    )
    latency_ms: Optional[int] = Field(
        None, description="First-chunk latency of a finished run."
    )
    error: Optional[str] = None
    run_id: int
    persona: InspirationPersona
    provider: AIProvider
    auto_inspiration: bool


class FocusRequest(BaseModel):
    x: float = Field(..., ge=0.0, le=1.0, description="Normalized horizontal position.")
    y: float = Field(..., ge=0.0, le=1.0, description="Normalized vertical position.")


class CancelRequest(BaseModel):
    restart: bool = Field(
        False, description="Start a new run afterwards when auto inspiration is on."
    )


class PersonaUpdate(BaseModel):
    persona: InspirationPersona


class AutoInspirationUpdate(BaseModel):
    enabled: bool


class ProviderUpdate(BaseModel):
    provider: AIProvider

    @field_validator("provider", mode="before")
    @classmethod
    def _normalize(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().lower()
        return value


class CameraUpdate(BaseModel):
    running: Optional[bool] = None
    position: Optional[CameraPosition] = None


class CameraView(BaseModel):
    running: bool
    position: CameraPosition
    frames_received: int


class CaptureRequest(BaseModel):
    """Photo capture; without an image the latest live frame is used."""

    image_b64: Optional[str] = Field(None, description="Base64-encoded JPEG photo.")

    @field_validator("image_b64")
    @classmethod
    def _validate_b64(cls, value: Optional[str]) -> Optional[str]:
        if value is not None:
            _decode_b64(value)
        return value

    def image_bytes(self) -> Optional[bytes]:
        return _decode_b64(self.image_b64) if self.image_b64 else None


class CaptureRecordView(BaseModel):
    id: str
    created_at: datetime
    persona: Optional[InspirationPersona] = None
    inspiration_text: Optional[str] = None
    original_image_file: str
    edited_image_file: Optional[str] = None
    generated_video_file: Optional[str] = None
    video_script: Optional[str] = None
    video_job_id: Optional[str] = None
    clip_analysis_text: Optional[str] = None
    is_generating_edited_image: bool = False
    is_generating_video_script: bool = False
    is_generating_video: bool = False


class GenerationJobView(BaseModel):
    id: str
    kind: JobKind
    owner_id: str
    provider: AIProvider
    status: JobStatus
    attempts: int
    created_at: datetime
    failure_reason: Optional[str] = None


class ClipAnalysisRequest(BaseModel):
    """Frames sampled from a recorded clip by the capture client."""

    frames_b64: List[str] = Field(
        default_factory=list, description="Base64-encoded JPEG frames in clip order."
    )

    @field_validator("frames_b64")
    @classmethod
    def _validate_frames(cls, value: List[str]) -> List[str]:
        for frame in value:
            _decode_b64(frame)
        return value

    def frame_bytes(self) -> List[bytes]:
        return [_decode_b64(frame) for frame in self.frames_b64]


class HighlightRequest(BaseModel):
    record_ids: List[str] = Field(..., min_length=1)


class HighlightStory(BaseModel):
    """Story recap generated from several captures."""

    title: str
    caption: str
    hashtags: List[str] = Field(default_factory=list)


class AlertView(BaseModel):
    title: str
    message: str
    created_at: datetime


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
