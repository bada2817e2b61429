"""Client for the OpenAI chat-completions and image generation APIs."""

from __future__ import annotations

import base64
import binascii
from typing import Any, Dict, Sequence

import httpx

from aicamera.clients.base import ProviderClient
from aicamera.core.config import OpenAISettings
from aicamera.core.errors import ProtocolError
from aicamera.models.inspiration import AnalysisOptions
from aicamera.models.providers import AIProvider
from aicamera.schemas.provider import (
    ChatMessage,
    ImageGenerationResponse,
    ImageUrl,
    ImageUrlPart,
    TextPart,
)
from aicamera.utils.http import jpeg_data_uri


class OpenAIClient(ProviderClient):
    """Streaming analysis and prompt-driven image generation.

    OpenAI exposes no reasoning channel on this endpoint and no asynchronous
    video jobs, so ``submit_job``/``poll_job`` raise ``UnsupportedOperationError``.
    """

    provider = AIProvider.OPENAI
    reasoning_field = None
    supports_jobs = False

    def __init__(
        self,
        settings: OpenAISettings,
        *,
        timeout_seconds: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        super().__init__(
            base_url=settings.base_url,
            timeout_seconds=timeout_seconds,
            transport=transport,
        )
        self._settings = settings

    def _api_key(self) -> str:
        return self._settings.api_key

    def _build_stream_body(
        self, images: Sequence[bytes], prompt: str, options: AnalysisOptions
    ) -> Dict[str, Any]:
        content = [TextPart(text=prompt)]
        content.extend(
            ImageUrlPart(image_url=ImageUrl(url=jpeg_data_uri(image), detail="auto"))
            for image in images
        )
        message = ChatMessage(role="user", content=content)
        return {
            "model": self._settings.vlm_model,
            "messages": [message.encode()],
            "max_completion_tokens": self._settings.max_completion_tokens,
            "stream": True,
        }

    async def generate_edited_image(self, source: bytes, prompt: str) -> bytes:
        # The generations endpoint is prompt-only; the source frame is not uploaded.
        body = {
            "model": self._settings.image_model,
            "prompt": prompt,
            "n": 1,
            "size": "1024x1024",
            "response_format": "b64_json",
        }
        response = await self._send("POST", "/images/generations", json=body)
        result = self._parse(ImageGenerationResponse, response, "image generation")
        image = result.data[0] if result.data else None
        if image is not None and image.b64_json:
            try:
                return base64.b64decode(image.b64_json, validate=True)
            except binascii.Error as exc:
                raise ProtocolError("Image payload is not valid base64.") from exc
        if image is not None and image.url:
            return await self.fetch_artifact(image.url)
        raise ProtocolError("Could not read image data from the OpenAI response.")


__all__ = ["OpenAIClient"]
