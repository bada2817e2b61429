"""
Pydantic models describing the chat-completions and generation wire formats.

Request content parts are modelled as an explicit sum type; responses are parsed
leniently so that provider-specific extras do not break decoding.
"""

from __future__ import annotations

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class ImageUrl(BaseModel):
    url: str
    detail: Optional[str] = None


class TextPart(BaseModel):
    """Plain text segment of a multimodal message."""

    type: Literal["text"] = "text"
    text: str


class ImageUrlPart(BaseModel):
    """Image segment of a multimodal message, carried as a data URI."""

    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl


ContentPart = Union[TextPart, ImageUrlPart]


def encode_content_part(part: ContentPart) -> Dict[str, Any]:
    """Serialize a content part; unknown variants are a programming error."""
    if isinstance(part, TextPart):
        return {"type": part.type, "text": part.text}
    if isinstance(part, ImageUrlPart):
        return {
            "type": part.type,
            "image_url": part.image_url.model_dump(exclude_none=True),
        }
    raise TypeError(f"Unsupported content part: {type(part).__name__}")


class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"] = "user"
    content: List[ContentPart]

    def encode(self) -> Dict[str, Any]:
        return {
            "role": self.role,
            "content": [encode_content_part(part) for part in self.content],
        }


class StreamDelta(BaseModel):
    """Incremental update inside a streamed choice."""

    model_config = ConfigDict(extra="allow")

    role: Optional[str] = None
    content: Optional[str] = None

    def field_text(self, name: str) -> Optional[str]:
        """Return a declared or provider-specific text field by name."""
        value = getattr(self, name, None)
        if value is None and self.model_extra:
            value = self.model_extra.get(name)
        return value if isinstance(value, str) else None


class StreamChoice(BaseModel):
    model_config = ConfigDict(extra="allow")

    delta: StreamDelta = Field(default_factory=StreamDelta)


class StreamPayload(BaseModel):
    """One `data:` event of a streamed chat completion."""

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    choices: List[StreamChoice]


class ProviderErrorDetail(BaseModel):
    model_config = ConfigDict(extra="allow")

    message: str
    type: Optional[str] = None
    code: Optional[Union[str, int]] = None


class ProviderErrorEnvelope(BaseModel):
    """Error body; providers either nest the detail or return it at top level."""

    model_config = ConfigDict(extra="allow")

    error: Optional[ProviderErrorDetail] = None
    message: Optional[str] = None

    @property
    def text(self) -> Optional[str]:
        if self.error is not None:
            return self.error.message
        return self.message


class GeneratedImage(BaseModel):
    url: Optional[str] = None
    b64_json: Optional[str] = None


class ImageGenerationResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    created: Optional[int] = None
    data: List[GeneratedImage]


class VideoTaskResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str


class VideoContent(BaseModel):
    model_config = ConfigDict(extra="allow")

    video_url: Optional[str] = None


class VideoTaskStatusResponse(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: str
    status: str
    error: Optional[ProviderErrorDetail] = None
    content: Optional[VideoContent] = None


__all__ = [
    "ChatMessage",
    "ContentPart",
    "GeneratedImage",
    "ImageGenerationResponse",
    "ImageUrl",
    "ImageUrlPart",
    "ProviderErrorDetail",
    "ProviderErrorEnvelope",
    "StreamChoice",
    "StreamDelta",
    "StreamPayload",
    "TextPart",
    "VideoContent",
    "VideoTaskResponse",
    "VideoTaskStatusResponse",
    "encode_content_part",
]
