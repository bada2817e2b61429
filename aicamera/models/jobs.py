"""
Domain models for long-running generation jobs.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

from aicamera.models.providers import AIProvider


class JobKind(str, Enum):
    IMAGE_EDIT = "image_edit"
    VIDEO_GENERATION = "video_generation"


class JobStatus(str, Enum):
    PENDING = "pending"
    POLLING = "polling"
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    TIMED_OUT = "timed_out"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset({JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.TIMED_OUT})

_ALLOWED_TRANSITIONS: Dict[JobStatus, frozenset[JobStatus]] = {
    # Image edits never poll, so Pending may jump straight to a terminal status.
    JobStatus.PENDING: frozenset(
        {JobStatus.POLLING, JobStatus.SUCCEEDED, JobStatus.FAILED}
    ),
    JobStatus.POLLING: frozenset(
        {JobStatus.POLLING, JobStatus.SUCCEEDED, JobStatus.FAILED, JobStatus.TIMED_OUT}
    ),
    JobStatus.SUCCEEDED: frozenset(),
    JobStatus.FAILED: frozenset(),
    JobStatus.TIMED_OUT: frozenset(),
}


class InvalidJobTransition(ValueError):
    """Raised when a job status change would violate the lifecycle ordering."""


@dataclass(slots=True)
class GenerationJob:
    """A generation task tracked from submission to a terminal status."""

    id: str
    kind: JobKind
    source_ref: str
    owner_id: str
    provider: AIProvider
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    status: JobStatus = JobStatus.PENDING
    artifact_ref: Optional[str] = None
    artifact: Optional[bytes] = field(default=None, repr=False)
    failure_reason: Optional[str] = None
    attempts: int = 0

    def advance(self, status: JobStatus) -> None:
        if status not in _ALLOWED_TRANSITIONS[self.status]:
            raise InvalidJobTransition(
                f"Job {self.id} cannot move from {self.status.value} to {status.value}."
            )
        self.status = status

    def succeed(self, *, artifact: bytes, artifact_ref: Optional[str] = None) -> None:
        self.advance(JobStatus.SUCCEEDED)
        self.artifact = artifact
        self.artifact_ref = artifact_ref

    def fail(self, reason: str) -> None:
        self.advance(JobStatus.FAILED)
        self.failure_reason = reason

    def time_out(self, reason: str) -> None:
        self.advance(JobStatus.TIMED_OUT)
        self.failure_reason = reason

    def to_record(self) -> Dict[str, Any]:
        """Serialize the durable fields only."""
        return {
            "job_id": self.id,
            "kind": self.kind.value,
            "source_ref": self.source_ref,
            "owner_id": self.owner_id,
            "provider": self.provider.value,
            "created_at": self.created_at.isoformat(),
            "status": self.status.value,
        }

    @classmethod
    def from_record(cls, record: Dict[str, Any]) -> "GenerationJob":
        created_at = datetime.fromisoformat(record["created_at"])
        if created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return cls(
            id=record["job_id"],
            kind=JobKind(record["kind"]),
            source_ref=record["source_ref"],
            owner_id=record["owner_id"],
            provider=AIProvider(record.get("provider", AIProvider.DOUBAO.value)),
            created_at=created_at,
            status=JobStatus(record["status"]),
        )


@dataclass(frozen=True, slots=True)
class JobPollResult:
    """Outcome of a single status check against the provider."""

    job_id: str
    status: str
    artifact_url: Optional[str] = None
    error_message: Optional[str] = None


__all__ = [
    "GenerationJob",
    "InvalidJobTransition",
    "JobKind",
    "JobPollResult",
    "JobStatus",
]
