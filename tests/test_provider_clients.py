try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import base64
import json

import httpx
import pytest

from aicamera.clients import DoubaoClient, OpenAIClient
from aicamera.core.config import DoubaoSettings, OpenAISettings
from aicamera.core.errors import (
    AuthError,
    MissingArtifactError,
    ProtocolError,
    ProviderHTTPError,
    UnsupportedOperationError,
)
from aicamera.models.chunks import ContentChunk, DoneChunk, ReasoningChunk
from aicamera.models.inspiration import AnalysisOptions

SSE_BODY = (
    'data: {"choices":[{"delta":{"reasoning_content":"Looking"}}]}\n\n'
    'data: {"choices":[{"delta":{"content":"He"}}]}\n\n'
    'data: {"choices":[{"delta":{"content":"llo"}}]}\n\n'
    "data: [DONE]\n\n"
)


class RecordingHandler:
    def __init__(self, responder):
        self.requests: list[httpx.Request] = []
        self._responder = responder

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self._responder(request)


def _doubao(handler, **overrides) -> DoubaoClient:
    settings = DoubaoSettings(api_key="ark-key", base_url="https://ark.test/api/v3", **overrides)
    return DoubaoClient(settings, transport=httpx.MockTransport(handler))


def _openai(handler, **overrides) -> OpenAIClient:
    settings = OpenAISettings(api_key="sk-test", base_url="https://openai.test/v1", **overrides)
    return OpenAIClient(settings, transport=httpx.MockTransport(handler))


async def _collect(client, images=(b"jpeg",), prompt="describe", options=None):
    return [chunk async for chunk in client.stream_analyze(list(images), prompt, options)]


@pytest.mark.asyncio
async def test_doubao_stream_builds_request_and_decodes_chunks() -> None:
    handler = RecordingHandler(
        lambda request: httpx.Response(
            200, text=SSE_BODY, headers={"content-type": "text/event-stream"}
        )
    )
    client = _doubao(handler)

    chunks = await _collect(client, options=AnalysisOptions(deep_thinking=True))

    assert chunks == [
        ReasoningChunk("Looking"),
        ContentChunk("He"),
        ContentChunk("llo"),
        DoneChunk(),
    ]
    request = handler.requests[0]
    assert request.url == "https://ark.test/api/v3/chat/completions"
    assert request.headers["authorization"] == "Bearer ark-key"
    body = json.loads(request.content)
    assert body["stream"] is True
    assert body["thinking"] == {"type": "enabled"}
    content = body["messages"][0]["content"]
    assert content[0] == {"type": "text", "text": "describe"}
    expected_uri = "data:image/jpeg;base64," + base64.b64encode(b"jpeg").decode()
    assert content[1] == {"type": "image_url", "image_url": {"url": expected_uri}}


@pytest.mark.asyncio
async def test_openai_stream_ignores_reasoning_and_sets_token_limit() -> None:
    handler = RecordingHandler(lambda request: httpx.Response(200, text=SSE_BODY))
    client = _openai(handler)

    chunks = await _collect(client, images=(b"a", b"b"))

    assert chunks == [ContentChunk("He"), ContentChunk("llo"), DoneChunk()]
    body = json.loads(handler.requests[0].content)
    assert body["max_completion_tokens"] == 4096
    assert "thinking" not in body
    image_parts = body["messages"][0]["content"][1:]
    assert len(image_parts) == 2
    assert all(part["image_url"]["detail"] == "auto" for part in image_parts)


@pytest.mark.asyncio
async def test_stream_error_status_carries_provider_message() -> None:
    handler = RecordingHandler(
        lambda request: httpx.Response(
            401, json={"error": {"message": "invalid api key", "code": "Unauthorized"}}
        )
    )

    with pytest.raises(ProviderHTTPError) as excinfo:
        await _collect(_doubao(handler))

    assert excinfo.value.status_code == 401
    assert str(excinfo.value) == "invalid api key"


@pytest.mark.asyncio
async def test_undecodable_error_body_falls_back_to_status_code() -> None:
    handler = RecordingHandler(lambda request: httpx.Response(503, text="<html>busy</html>"))

    with pytest.raises(ProviderHTTPError) as excinfo:
        await _collect(_openai(handler))

    assert excinfo.value.provider_message is None
    assert str(excinfo.value) == "HTTP Error 503"


@pytest.mark.asyncio
async def test_missing_api_key_raises_before_any_request() -> None:
    handler = RecordingHandler(lambda request: httpx.Response(200, text=SSE_BODY))
    client = DoubaoClient(
        DoubaoSettings(api_key="  ", base_url="https://ark.test/api/v3"),
        transport=httpx.MockTransport(handler),
    )

    with pytest.raises(AuthError):
        await _collect(client)
    with pytest.raises(AuthError):
        await client.submit_job(b"img", "prompt")
    assert handler.requests == []


@pytest.mark.asyncio
async def test_api_key_is_read_on_every_call() -> None:
    handler = RecordingHandler(lambda request: httpx.Response(200, text="data: [DONE]\n"))
    settings = DoubaoSettings(api_key="first", base_url="https://ark.test/api/v3")
    client = DoubaoClient(settings, transport=httpx.MockTransport(handler))

    await _collect(client)
    settings.api_key = "second"
    await _collect(client)

    assert [r.headers["authorization"] for r in handler.requests] == [
        "Bearer first",
        "Bearer second",
    ]


@pytest.mark.asyncio
async def test_doubao_submit_job_appends_video_suffix() -> None:
    handler = RecordingHandler(lambda request: httpx.Response(200, json={"id": "cgt-123"}))
    client = _doubao(handler, video_model="seedance-test")

    job_id = await client.submit_job(b"frame", "A quiet harbour at dawn")

    assert job_id == "cgt-123"
    request = handler.requests[0]
    assert request.url.path == "/api/v3/contents/generations/tasks"
    body = json.loads(request.content)
    assert body["model"] == "seedance-test"
    assert body["content"][0] == {
        "type": "text",
        "text": "A quiet harbour at dawn --dur 10 --resolution 720p --camerafixed false",
    }
    assert body["content"][1]["image_url"]["url"].startswith("data:image/jpeg;base64,")


@pytest.mark.asyncio
async def test_submit_job_with_unexpected_body_raises_protocol_error() -> None:
    handler = RecordingHandler(lambda request: httpx.Response(200, json={"task": "x"}))

    with pytest.raises(ProtocolError):
        await _doubao(handler).submit_job(b"frame", "prompt")


@pytest.mark.asyncio
async def test_poll_job_maps_status_payload() -> None:
    def respond(request: httpx.Request) -> httpx.Response:
        assert request.method == "GET"
        assert request.url.path == "/api/v3/contents/generations/tasks/cgt-1"
        return httpx.Response(
            200,
            json={
                "id": "cgt-1",
                "status": "succeeded",
                "content": {"video_url": "https://cdn.test/v.mp4"},
            },
        )

    result = await _doubao(RecordingHandler(respond)).poll_job("cgt-1")

    assert result.status == "succeeded"
    assert result.artifact_url == "https://cdn.test/v.mp4"
    assert result.error_message is None


@pytest.mark.asyncio
async def test_poll_job_surfaces_failure_reason() -> None:
    handler = RecordingHandler(
        lambda request: httpx.Response(
            200,
            json={"id": "cgt-2", "status": "failed", "error": {"message": "content policy"}},
        )
    )

    result = await _doubao(handler).poll_job("cgt-2")

    assert result.status == "failed"
    assert result.error_message == "content policy"


@pytest.mark.asyncio
async def test_doubao_edited_image_fetches_returned_url() -> None:
    def respond(request: httpx.Request) -> httpx.Response:
        if request.url.host == "cdn.test":
            return httpx.Response(200, content=b"edited-bytes")
        body = json.loads(request.content)
        assert body["response_format"] == "url"
        assert body["image"].startswith("data:image/jpeg;base64,")
        return httpx.Response(200, json={"data": [{"url": "https://cdn.test/edit.jpg"}]})

    handler = RecordingHandler(respond)

    data = await _doubao(handler).generate_edited_image(b"src", "paint it")

    assert data == b"edited-bytes"
    assert [r.url.host for r in handler.requests] == ["ark.test", "cdn.test"]


@pytest.mark.asyncio
async def test_doubao_edited_image_without_url_is_missing_artifact() -> None:
    handler = RecordingHandler(lambda request: httpx.Response(200, json={"data": []}))

    with pytest.raises(MissingArtifactError):
        await _doubao(handler).generate_edited_image(b"src", "paint it")


@pytest.mark.asyncio
async def test_openai_edited_image_decodes_base64_payload() -> None:
    encoded = base64.b64encode(b"png-bytes").decode()
    handler = RecordingHandler(
        lambda request: httpx.Response(200, json={"created": 1, "data": [{"b64_json": encoded}]})
    )

    data = await _openai(handler, image_model="dall-e-3").generate_edited_image(b"src", "paint")

    assert data == b"png-bytes"
    body = json.loads(handler.requests[0].content)
    assert body == {
        "model": "dall-e-3",
        "prompt": "paint",
        "n": 1,
        "size": "1024x1024",
        "response_format": "b64_json",
    }


@pytest.mark.asyncio
async def test_openai_does_not_support_video_jobs() -> None:
    handler = RecordingHandler(lambda request: httpx.Response(200, json={}))
    client = _openai(handler)

    with pytest.raises(UnsupportedOperationError):
        await client.submit_job(b"src", "prompt")
    with pytest.raises(UnsupportedOperationError):
        await client.poll_job("job")
    assert handler.requests == []
