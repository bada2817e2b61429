"""HTTP utilities: data URIs, status validation and retrying downloads."""

from __future__ import annotations

import asyncio
import base64
import logging
from typing import Awaitable, Callable, Optional

import httpx
from pydantic import ValidationError

from aicamera.core.errors import ProviderConnectionError, ProviderHTTPError
from aicamera.schemas.provider import ProviderErrorEnvelope

logger = logging.getLogger(__name__)


class RetryConfig:
    def __init__(self, *, attempts: int = 3, backoff_seconds: float = 1.0) -> None:
        self.attempts = attempts
        self.backoff_seconds = backoff_seconds


def jpeg_data_uri(image: bytes) -> str:
    """Embed raw JPEG bytes as a data URI for JSON request bodies."""
    encoded = base64.b64encode(image).decode("ascii")
    return f"data:image/jpeg;base64,{encoded}"


def extract_provider_message(body: bytes) -> Optional[str]:
    """Decode the provider's error message from a response body, if possible."""
    if not body:
        return None
    try:
        envelope = ProviderErrorEnvelope.model_validate_json(body)
    except ValidationError:
        return None
    return envelope.text


def raise_for_provider_status(response: httpx.Response, body: Optional[bytes] = None) -> None:
    """Convert a non-2xx response into ``ProviderHTTPError``.

    Must be called before any attempt to parse a structured body. ``body`` is
    passed explicitly for streamed responses that were read manually.
    """
    if response.is_success:
        return
    raw = body if body is not None else response.content
    message = extract_provider_message(raw)
    logger.warning(
        "Provider request failed",
        extra={"status_code": response.status_code, "url": str(response.request.url)},
    )
    raise ProviderHTTPError(response.status_code, message)


async def request_with_retry(
    func: Callable[..., Awaitable[httpx.Response]],
    *args,
    retry_config: RetryConfig | None = None,
    **kwargs,
) -> httpx.Response:
    """Retry transport failures and 5xx answers; other statuses are returned as-is."""
    config = retry_config or RetryConfig()
    attempt = 0
    last_exception: Exception | None = None

    while attempt < config.attempts:
        try:
            response = await func(*args, **kwargs)
            if response.status_code < 500:
                return response
            last_exception = ProviderHTTPError(response.status_code)
        except httpx.TransportError as exc:  # pragma: no cover - network path
            last_exception = ProviderConnectionError(str(exc) or type(exc).__name__)
        attempt += 1
        if attempt >= config.attempts:
            break
        await asyncio.sleep(config.backoff_seconds * attempt)

    if last_exception is not None:
        raise last_exception
    raise RuntimeError("Request failed without raising an exception")


__all__ = [
    "RetryConfig",
    "extract_provider_message",
    "jpeg_data_uri",
    "raise_for_provider_status",
    "request_with_retry",
]
