"""
Provider-agnostic client for chat-completions style multimodal APIs.

Concrete providers supply request bodies and credentials; the base class owns
transport, status validation, SSE decoding and artifact download.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Any, AsyncIterator, ClassVar, Dict, Optional, Sequence, Type, TypeVar

import httpx
from pydantic import BaseModel, ValidationError

from aicamera.clients.sse import StreamDecoder
from aicamera.core.errors import (
    AuthError,
    MissingArtifactError,
    ProtocolError,
    ProviderConnectionError,
    UnsupportedOperationError,
)
from aicamera.models.chunks import Chunk
from aicamera.models.inspiration import AnalysisOptions
from aicamera.models.jobs import JobPollResult
from aicamera.models.providers import AIProvider
from aicamera.utils.http import raise_for_provider_status, request_with_retry

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class ProviderClient(ABC):
    """Uniform surface over the supported AI providers."""

    provider: ClassVar[AIProvider]
    reasoning_field: ClassVar[Optional[str]] = None
    supports_jobs: ClassVar[bool] = False

    def __init__(
        self,
        *,
        base_url: str,
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout_seconds
        self._transport = transport
        self._decoder = StreamDecoder(self.reasoning_field)

    @abstractmethod
    def _api_key(self) -> str:
        """Read the current credential from configuration."""

    @abstractmethod
    def _build_stream_body(
        self, images: Sequence[bytes], prompt: str, options: AnalysisOptions
    ) -> Dict[str, Any]:
        """Construct the provider-specific streaming request body."""

    @abstractmethod
    async def generate_edited_image(self, source: bytes, prompt: str) -> bytes:
        """Produce a stylized image in a single request and return its bytes."""

    async def submit_job(self, source: bytes, prompt: str) -> str:
        """Start an asynchronous video generation job and return its id."""
        raise UnsupportedOperationError(
            f"{self.provider.label} does not support video generation."
        )

    async def poll_job(self, job_id: str) -> JobPollResult:
        """Check the status of an asynchronous job once."""
        raise UnsupportedOperationError(
            f"{self.provider.label} does not support video generation."
        )

    async def stream_analyze(
        self,
        images: Sequence[bytes],
        prompt: str,
        options: AnalysisOptions | None = None,
    ) -> AsyncIterator[Chunk]:
        """Stream an analysis of ``images`` as reasoning/content chunks.

        Nothing is sent until the first item is requested. Closing the iterator
        closes the underlying HTTP stream.
        """
        api_key = self._require_api_key()
        body = self._build_stream_body(list(images), prompt, options or AnalysisOptions())
        logger.debug(
            "Opening analysis stream",
            extra={"provider": self.provider.value, "image_count": len(images)},
        )

        async with self._http_client() as client:
            try:
                async with client.stream(
                    "POST",
                    "/chat/completions",
                    json=body,
                    headers=self._headers(api_key),
                ) as response:
                    if not response.is_success:
                        raw = await response.aread()
                        raise_for_provider_status(response, raw)
                    async for chunk in self._decoder.decode(response.aiter_lines()):
                        yield chunk
            except httpx.TransportError as exc:
                raise ProviderConnectionError(
                    f"{self.provider.label} stream interrupted: {str(exc) or type(exc).__name__}"
                ) from exc

    async def fetch_artifact(self, url: str) -> bytes:
        """Download a generated artifact from the URL the provider returned."""
        async with httpx.AsyncClient(
            timeout=self._timeout,
            transport=self._transport,
            follow_redirects=True,
        ) as client:
            response = await request_with_retry(client.get, url)
        if not response.is_success:
            raise MissingArtifactError(
                f"Artifact download failed with HTTP {response.status_code}."
            )
        if not response.content:
            raise MissingArtifactError("Artifact download returned no data.")
        return response.content

    def _require_api_key(self) -> str:
        api_key = (self._api_key() or "").strip()
        if not api_key:
            raise AuthError(
                f"{self.provider.label} API key is empty; configure it before use."
            )
        return api_key

    @staticmethod
    def _headers(api_key: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _http_client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._base_url,
            timeout=self._timeout,
            transport=self._transport,
        )

    async def _send(
        self, method: str, path: str, *, json: Dict[str, Any] | None = None
    ) -> httpx.Response:
        """Issue an authenticated request and validate its status."""
        api_key = self._require_api_key()
        async with self._http_client() as client:
            try:
                response = await client.request(
                    method, path, json=json, headers=self._headers(api_key)
                )
            except httpx.TransportError as exc:
                raise ProviderConnectionError(
                    f"{self.provider.label} request failed: {str(exc) or type(exc).__name__}"
                ) from exc
        raise_for_provider_status(response)
        return response

    @staticmethod
    def _parse(model: Type[ModelT], response: httpx.Response, what: str) -> ModelT:
        try:
            return model.model_validate_json(response.content)
        except ValidationError as exc:
            raise ProtocolError(f"Unexpected {what} response from provider.") from exc


__all__ = ["ProviderClient"]
