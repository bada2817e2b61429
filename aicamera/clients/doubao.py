"""Client for the Doubao (Volcengine Ark) multimodal and generation APIs."""

from __future__ import annotations

from typing import Any, Dict, Sequence

import httpx

from aicamera.clients.base import ProviderClient
from aicamera.core.config import DoubaoSettings
from aicamera.core.errors import MissingArtifactError
from aicamera.models.inspiration import AnalysisOptions
from aicamera.models.jobs import JobPollResult
from aicamera.models.providers import AIProvider
from aicamera.schemas.provider import (
    ChatMessage,
    ImageGenerationResponse,
    ImageUrl,
    ImageUrlPart,
    TextPart,
    VideoTaskResponse,
    VideoTaskStatusResponse,
    encode_content_part,
)
from aicamera.utils.http import jpeg_data_uri


class DoubaoClient(ProviderClient):
    """Streaming analysis, image edit and asynchronous video generation."""

    provider = AIProvider.DOUBAO
    reasoning_field = "reasoning_content"
    supports_jobs = True

    def __init__(
        self,
        settings: DoubaoSettings,
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
            ImageUrlPart(image_url=ImageUrl(url=jpeg_data_uri(image))) for image in images
        )
        message = ChatMessage(role="user", content=content)
        return {
            "model": self._settings.vlm_model,
            "messages": [message.encode()],
            "stream": True,
            "thinking": {"type": "enabled" if options.deep_thinking else "disabled"},
        }

    async def generate_edited_image(self, source: bytes, prompt: str) -> bytes:
        body = {
            "model": self._settings.image_edit_model,
            "prompt": prompt,
            "image": jpeg_data_uri(source),
            "response_format": "url",
        }
        response = await self._send("POST", "/images/generations", json=body)
        result = self._parse(ImageGenerationResponse, response, "image generation")
        url = result.data[0].url if result.data else None
        if not url:
            raise MissingArtifactError("The image service did not return an image URL.")
        return await self.fetch_artifact(url)

    async def submit_job(self, source: bytes, prompt: str) -> str:
        final_prompt = f"{prompt} {self._settings.video_prompt_suffix}".strip()
        parts = [
            TextPart(text=final_prompt),
            ImageUrlPart(image_url=ImageUrl(url=jpeg_data_uri(source))),
        ]
        body = {
            "model": self._settings.video_model,
            "content": [encode_content_part(part) for part in parts],
        }
        response = await self._send("POST", "/contents/generations/tasks", json=body)
        return self._parse(VideoTaskResponse, response, "video task").id

    async def poll_job(self, job_id: str) -> JobPollResult:
        response = await self._send("GET", f"/contents/generations/tasks/{job_id}")
        result = self._parse(VideoTaskStatusResponse, response, "video task status")
        return JobPollResult(
            job_id=result.id,
            status=result.status,
            artifact_url=result.content.video_url if result.content else None,
            error_message=result.error.message if result.error else None,
        )


__all__ = ["DoubaoClient"]
