"""Typed failures raised by provider clients and the job tracker."""

from __future__ import annotations

from typing import Optional


class ProviderError(RuntimeError):
    """Base class for every failure surfaced by the AI orchestration core."""


class AuthError(ProviderError):
    """Raised when the credential for the selected provider is missing or empty."""


class ProviderHTTPError(ProviderError):
    """Raised when the provider answers with a non-success status code."""

    def __init__(self, status_code: int, provider_message: Optional[str] = None) -> None:
        self.status_code = status_code
        self.provider_message = provider_message
        detail = provider_message or f"HTTP Error {status_code}"
        super().__init__(detail)


class ProviderConnectionError(ProviderError):
    """Raised when the provider could not be reached at all."""


class ProtocolError(ProviderError):
    """Raised when a response body does not match the expected schema."""


class MissingArtifactError(ProviderError):
    """Raised when a job reports success but no artifact can be retrieved."""


class UnknownStatusError(ProviderError):
    """Raised when a job poll returns a status outside the known lifecycle."""

    def __init__(self, raw_status: str) -> None:
        self.raw_status = raw_status
        super().__init__(f"Unknown job status: {raw_status!r}")


class JobTimedOutError(ProviderError):
    """Raised when a job exhausts its poll budget without reaching a terminal status."""

    def __init__(self, attempts: int, interval_seconds: float) -> None:
        self.attempts = attempts
        minutes = attempts * interval_seconds / 60
        super().__init__(
            f"Generation did not finish after {attempts} polls (~{minutes:.0f} min)."
        )


class PreconditionError(ProviderError):
    """Raised when an operation cannot start, e.g. no camera frame is available."""


class UnsupportedOperationError(ProviderError):
    """Raised when the selected provider does not offer the requested capability."""


class RecordNotFoundError(LookupError):
    """Raised when a capture record id does not exist."""

    def __init__(self, record_id: str) -> None:
        self.record_id = record_id
        super().__init__(f"Capture record {record_id} not found.")


__all__ = [
    "AuthError",
    "JobTimedOutError",
    "MissingArtifactError",
    "PreconditionError",
    "ProtocolError",
    "ProviderConnectionError",
    "ProviderError",
    "ProviderHTTPError",
    "RecordNotFoundError",
    "UnknownStatusError",
    "UnsupportedOperationError",
]
