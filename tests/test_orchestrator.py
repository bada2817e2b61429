try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import asyncio
import json

import pytest

try:
    from ._fakes import build_orchestrator, poll
except ImportError:  # pragma: no cover - fallback for direct execution
    from _fakes import build_orchestrator, poll  # type: ignore

from aicamera.clients.sqlite_store import SQLiteStore
from aicamera.core.errors import (
    PreconditionError,
    ProtocolError,
    ProviderHTTPError,
    RecordNotFoundError,
    UnsupportedOperationError,
)
from aicamera.models.chunks import ContentChunk, DoneChunk
from aicamera.models.inspiration import (
    CameraPosition,
    Error,
    Finished,
    FocusPoint,
    Idle,
    InspirationPersona,
    Thinking,
)
from aicamera.models.jobs import GenerationJob, JobKind, JobStatus
from aicamera.models.providers import AIProvider
from aicamera.services.job_store import GenerationJobStore


def _answer(text: str) -> list:
    return [ContentChunk(text), DoneChunk()]


@pytest.mark.asyncio
async def test_first_frame_triggers_auto_inspiration(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path, auto_trigger=True)
    doubao.streams.append(_answer("A sunny street"))

    assert orchestrator.on_frame(b"frame-1") is True
    assert orchestrator.on_frame(b"frame-2") is False
    await orchestrator.wait_idle()

    assert orchestrator.state == Finished("A sunny street", 0)
    images, prompt, options = doubao.stream_calls[0]
    # The run reads whichever frame is latest when it starts.
    assert images == [b"frame-2"]
    assert prompt == orchestrator._settings.prompts.assistant  # noqa: SLF001
    assert options.deep_thinking is False
    assert len(doubao.stream_calls) == 1


@pytest.mark.asyncio
async def test_first_frame_does_not_trigger_when_auto_is_off(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path, auto_trigger=False)

    assert orchestrator.on_frame(b"frame") is False
    assert orchestrator.state == Idle()
    assert doubao.stream_calls == []


@pytest.mark.asyncio
async def test_trigger_without_frame_reports_error_state(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path)

    orchestrator.trigger_inspiration()
    await orchestrator.wait_idle()

    assert isinstance(orchestrator.state, Error)
    assert "frame" in orchestrator.state.message
    assert doubao.stream_calls == []


@pytest.mark.asyncio
async def test_focus_sets_point_before_analysis(tmp_path) -> None:
    orchestrator, doubao, _, capture, _ = build_orchestrator(tmp_path)
    orchestrator.on_frame(b"frame")
    doubao.streams.append(_answer("The sign reads 'Open'"))

    orchestrator.focus(FocusPoint(0.25, 0.75))
    assert orchestrator.state == Thinking()
    await orchestrator.wait_idle()

    assert capture.last_focus_point == FocusPoint(0.25, 0.75)
    assert orchestrator.focus_point == FocusPoint(0.25, 0.75)
    assert orchestrator.state == Finished("The sign reads 'Open'", 0)


def test_focus_point_must_be_normalized() -> None:
    with pytest.raises(ValueError):
        FocusPoint(1.2, 0.5)


@pytest.mark.asyncio
async def test_persona_change_retriggers_with_persona_prompt(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path)
    orchestrator.on_frame(b"frame")
    doubao.streams.append(_answer("A short poem"))

    assert orchestrator.set_persona(InspirationPersona.POET) is True
    await orchestrator.wait_idle()
    assert orchestrator.set_persona(InspirationPersona.POET) is False

    assert len(doubao.stream_calls) == 1
    assert doubao.stream_calls[0][1] == orchestrator._settings.prompts.poet  # noqa: SLF001


@pytest.mark.asyncio
async def test_disabling_auto_inspiration_cancels_live_run(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path, auto_trigger=True)
    queue: asyncio.Queue = asyncio.Queue()
    doubao.streams.append(queue)
    orchestrator.on_frame(b"frame")
    await asyncio.sleep(0)

    orchestrator.set_auto_inspiration(False)
    await asyncio.sleep(0)

    assert orchestrator.state == Idle()
    assert orchestrator.auto_inspiration is False
    assert not orchestrator.controller.is_running


@pytest.mark.asyncio
async def test_enabling_auto_inspiration_while_idle_triggers(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path, auto_trigger=False)
    orchestrator.on_frame(b"frame")
    doubao.streams.append(_answer("Hello"))

    orchestrator.set_auto_inspiration(True)
    await orchestrator.wait_idle()

    assert orchestrator.state == Finished("Hello", 0)


@pytest.mark.asyncio
async def test_cancel_with_restart_only_restarts_when_auto_is_on(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path, auto_trigger=False)
    orchestrator.on_frame(b"frame")
    doubao.streams.extend([_answer("one"), _answer("two"), _answer("three")])
    orchestrator.trigger_inspiration()
    await orchestrator.wait_idle()

    orchestrator.cancel_inspiration(restart=True)
    assert orchestrator.state == Idle()
    assert len(doubao.stream_calls) == 1

    orchestrator.set_auto_inspiration(True)
    await orchestrator.wait_idle()
    assert orchestrator.state == Finished("two", 0)

    orchestrator.cancel_inspiration(restart=True)
    await orchestrator.wait_idle()
    assert orchestrator.state == Finished("three", 0)


@pytest.mark.asyncio
async def test_switching_provider_routes_analysis_to_new_client(tmp_path) -> None:
    orchestrator, doubao, openai, _, _ = build_orchestrator(tmp_path)
    orchestrator.on_frame(b"frame")
    openai.streams.append(_answer("From OpenAI"))

    assert orchestrator.use_provider(AIProvider.OPENAI) is True
    assert orchestrator.use_provider(AIProvider.OPENAI) is False
    orchestrator.trigger_inspiration()
    await orchestrator.wait_idle()

    assert orchestrator.state == Finished("From OpenAI", 0)
    assert doubao.stream_calls == []


@pytest.mark.asyncio
async def test_capture_photo_keeps_finished_inspiration(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path)
    orchestrator.on_frame(b"live-frame")
    doubao.streams.append(_answer("Golden hour"))
    orchestrator.trigger_inspiration()
    await orchestrator.wait_idle()

    record = orchestrator.capture_photo(b"photo")

    stored = orchestrator.get_record(record.id)
    assert stored.inspiration_text == "Golden hour"
    assert stored.persona is InspirationPersona.ASSISTANT
    assert orchestrator._records.read_original(stored) == b"photo"  # noqa: SLF001


@pytest.mark.asyncio
async def test_capture_photo_without_finished_state_has_no_text(tmp_path) -> None:
    orchestrator, _, _, _, _ = build_orchestrator(tmp_path)
    with pytest.raises(PreconditionError):
        orchestrator.capture_photo()

    orchestrator.on_frame(b"live-frame")
    record = orchestrator.capture_photo()

    assert record.inspiration_text is None
    assert orchestrator._records.read_original(record) == b"live-frame"  # noqa: SLF001


@pytest.mark.asyncio
async def test_edited_image_is_saved_on_the_record(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path)
    record = orchestrator.capture_photo(b"photo")

    job = orchestrator.generate_edited_image(record.id)
    assert job.kind is JobKind.IMAGE_EDIT
    assert orchestrator.get_record(record.id).is_generating_edited_image is True
    with pytest.raises(PreconditionError):
        orchestrator.generate_edited_image(record.id)
    await orchestrator.wait_idle()

    stored = orchestrator.get_record(record.id)
    assert stored.is_generating_edited_image is False
    assert stored.edited_image_file == f"{record.id}_edited.jpg"
    assert orchestrator._records.read_media(stored.edited_image_file) == b"edited-image"  # noqa: SLF001
    assert doubao.edit_calls == [(b"photo", orchestrator._settings.prompts.image_edit)]  # noqa: SLF001


@pytest.mark.asyncio
async def test_failed_image_edit_raises_an_alert(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path)
    doubao.edited_image = ProviderHTTPError(500, "render farm offline")
    record = orchestrator.capture_photo(b"photo")

    orchestrator.generate_edited_image(record.id)
    await orchestrator.wait_idle()

    alerts = orchestrator.drain_alerts()
    assert [alert.message for alert in alerts] == ["Image edit failed: render farm offline"]
    assert orchestrator.drain_alerts() == []
    assert orchestrator.get_record(record.id).is_generating_edited_image is False


@pytest.mark.asyncio
async def test_video_is_scripted_submitted_and_saved(tmp_path) -> None:
    orchestrator, doubao, _, _, sleep = build_orchestrator(tmp_path)
    record = orchestrator.capture_photo(b"photo")
    doubao.streams.append(_answer("A lighthouse wakes at dawn"))
    doubao.poll_results = [poll("pending"), poll("succeeded", url="https://cdn.test/v.mp4")]

    orchestrator.generate_video(record.id)
    assert orchestrator.get_record(record.id).is_generating_video_script is True
    with pytest.raises(PreconditionError):
        orchestrator.generate_video(record.id)
    await orchestrator.wait_idle()

    assert doubao.stream_calls[0][1] == orchestrator._settings.prompts.video_story  # noqa: SLF001
    assert doubao.submitted == [(b"photo", "A lighthouse wakes at dawn")]
    assert sleep.calls == [5.0]
    stored = orchestrator.get_record(record.id)
    assert stored.video_script == "A lighthouse wakes at dawn"
    assert stored.video_job_id == "job-1"
    assert stored.is_generating_video is False
    assert stored.generated_video_file == f"{record.id}_generated.mp4"
    assert (
        orchestrator._records.read_media(stored.generated_video_file)  # noqa: SLF001
        == b"artifact:https://cdn.test/v.mp4"
    )


@pytest.mark.asyncio
async def test_empty_video_script_is_reported_and_not_submitted(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path)
    record = orchestrator.capture_photo(b"photo")
    doubao.streams.append([DoneChunk()])

    orchestrator.generate_video(record.id)
    await orchestrator.wait_idle()

    assert doubao.submitted == []
    assert orchestrator.drain_alerts()[0].message.startswith("Video script failed")
    assert orchestrator.get_record(record.id).video_busy is False


@pytest.mark.asyncio
async def test_video_timeout_is_reported_as_alert(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path, max_poll_attempts=2)
    record = orchestrator.capture_photo(b"photo")
    doubao.streams.append(_answer("script"))
    doubao.poll_results = [poll("processing"), poll("processing")]

    orchestrator.generate_video(record.id)
    await orchestrator.wait_idle()

    [alert] = orchestrator.drain_alerts()
    assert alert.message.startswith("Video generation failed: Generation did not finish")
    stored = orchestrator.get_record(record.id)
    assert stored.is_generating_video is False
    assert stored.generated_video_file is None


@pytest.mark.asyncio
async def test_video_is_unsupported_for_openai(tmp_path) -> None:
    orchestrator, _, openai, _, _ = build_orchestrator(tmp_path)
    record = orchestrator.capture_photo(b"photo")
    orchestrator.use_provider(AIProvider.OPENAI)

    with pytest.raises(UnsupportedOperationError):
        orchestrator.generate_video(record.id)
    assert openai.stream_calls == []
    assert orchestrator.get_record(record.id).video_busy is False


@pytest.mark.asyncio
async def test_unknown_record_raises_not_found(tmp_path) -> None:
    orchestrator, _, _, _, _ = build_orchestrator(tmp_path)

    with pytest.raises(RecordNotFoundError):
        orchestrator.generate_edited_image("missing")
    with pytest.raises(RecordNotFoundError):
        await orchestrator.generate_highlight_story(["missing"])


@pytest.mark.asyncio
async def test_start_resumes_durable_video_jobs(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path)
    record = orchestrator.capture_photo(b"photo")
    durable = GenerationJob(
        id="job-1",
        kind=JobKind.VIDEO_GENERATION,
        source_ref=record.original_image_file,
        owner_id=record.id,
        provider=AIProvider.DOUBAO,
        status=JobStatus.POLLING,
    )
    job_store = GenerationJobStore(SQLiteStore(str(tmp_path / "aicamera.db")))
    job_store.save(durable)
    doubao.poll_results = [poll("succeeded", url="https://cdn.test/resumed.mp4")]

    resumed = await orchestrator.start()
    assert [job.id for job in resumed] == ["job-1"]
    assert orchestrator.get_record(record.id).is_generating_video is True
    await orchestrator.wait_idle()

    stored = orchestrator.get_record(record.id)
    assert stored.generated_video_file == f"{record.id}_generated.mp4"
    assert stored.is_generating_video is False
    assert job_store.load_pending() == []


@pytest.mark.asyncio
async def test_clip_analysis_uses_record_persona(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path)
    record = orchestrator.capture_photo(b"photo")
    doubao.streams.append(_answer("A day at the beach"))

    updated = await orchestrator.analyze_clip(record.id, [b"f1", b"f2"])

    assert updated.clip_analysis_text == "A day at the beach"
    images, prompt, _ = doubao.stream_calls[0]
    assert images == [b"f1", b"f2"]
    assert orchestrator._settings.prompts.assistant in prompt  # noqa: SLF001


@pytest.mark.asyncio
async def test_clip_analysis_failure_is_stored_as_text(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path)
    record = orchestrator.capture_photo(b"photo")
    doubao.streams.append(ProviderHTTPError(429, "rate limited"))

    updated = await orchestrator.analyze_clip(record.id, [b"f1"])
    empty = await orchestrator.analyze_clip(record.id, [])

    assert updated.clip_analysis_text == "Clip analysis failed: rate limited"
    assert "Frame extraction failed" in (empty.clip_analysis_text or "")


@pytest.mark.asyncio
async def test_highlight_story_parses_json_reply(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path)
    first = orchestrator.capture_photo(b"first")
    second = orchestrator.capture_photo(b"second")
    story = {"title": "Weekend", "caption": "Two days by the sea", "hashtags": ["sea", "sun"]}
    reply = "```json\n" + json.dumps(story) + "\n```"
    doubao.streams.append([ContentChunk(reply[:10]), ContentChunk(reply[10:]), DoneChunk()])

    result = await orchestrator.generate_highlight_story([second.id, first.id])

    assert result.title == "Weekend"
    assert result.hashtags == ["sea", "sun"]
    images, prompt, _ = doubao.stream_calls[0]
    assert images == [b"first", b"second"]
    assert prompt == orchestrator._settings.prompts.highlight_reel  # noqa: SLF001


@pytest.mark.asyncio
async def test_highlight_story_rejects_unparseable_reply(tmp_path) -> None:
    orchestrator, doubao, _, _, _ = build_orchestrator(tmp_path)
    record = orchestrator.capture_photo(b"photo")
    doubao.streams.append(_answer("Here is a lovely story about your trip!"))

    with pytest.raises(ProtocolError):
        await orchestrator.generate_highlight_story([record.id])


@pytest.mark.asyncio
async def test_start_clears_busy_flags_without_a_live_job(tmp_path) -> None:
    orchestrator, _, _, _, _ = build_orchestrator(tmp_path)
    record = orchestrator.capture_photo(b"photo")
    record.is_generating_edited_image = True
    record.is_generating_video_script = True
    orchestrator._records.save(record)  # noqa: SLF001

    assert await orchestrator.start() == []

    stored = orchestrator.get_record(record.id)
    assert stored.is_generating_edited_image is False
    assert stored.video_busy is False


@pytest.mark.asyncio
async def test_stopping_camera_cancels_and_restart_rearms_auto_trigger(tmp_path) -> None:
    orchestrator, doubao, _, capture, _ = build_orchestrator(tmp_path, auto_trigger=True)
    queue: asyncio.Queue = asyncio.Queue()
    doubao.streams.extend([queue, [ContentChunk("Back again"), DoneChunk()]])
    orchestrator.on_frame(b"frame")
    await asyncio.sleep(0)

    orchestrator.set_camera(running=False)
    assert orchestrator.state == Idle()
    assert capture.get_current_frame() is None
    assert orchestrator.on_frame(b"ignored") is False

    orchestrator.set_camera(running=True)
    assert orchestrator.on_frame(b"fresh") is True
    await orchestrator.wait_idle()
    assert orchestrator.state == Finished("Back again", 0)


@pytest.mark.asyncio
async def test_switching_camera_drops_frame_and_focus(tmp_path) -> None:
    orchestrator, doubao, _, capture, _ = build_orchestrator(tmp_path)
    orchestrator.on_frame(b"rear")
    doubao.streams.append(_answer("Rear view"))
    orchestrator.focus(FocusPoint(0.5, 0.5))
    await orchestrator.wait_idle()

    orchestrator.set_camera(position=CameraPosition.FRONT)

    assert capture.position is CameraPosition.FRONT
    assert capture.get_current_frame() is None
    assert orchestrator.focus_point is None
    assert orchestrator.state == Idle()
