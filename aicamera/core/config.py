"""
Application configuration models and helpers.

Centralizes settings management so the HTTP surface, the orchestration core and
the developer scripts share a consistent configuration surface.
"""

from functools import lru_cache
from pathlib import Path

import os

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from aicamera.models.inspiration import InspirationPersona
from aicamera.models.providers import AIProvider


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


_SETTINGS_CONFIG = SettingsConfigDict(populate_by_name=True, extra="ignore")

# The focus marker is drawn onto the frame by the capture source; every persona
# prompt tells the model to use it without mentioning it.
_FOCUS_INSTRUCTION = (
    "Your reply must read like a natural impression of the whole scene. If a "
    "small, translucent blue circle appears in the frame, treat that region as "
    "the focus of your analysis, but never mention the marker, a focus point, "
    "or any coordinates in your reply."
)


class DoubaoSettings(BaseSettings):
    """Configuration for the Doubao (Volcengine Ark) provider."""

    model_config = _SETTINGS_CONFIG

    api_key: str = Field("", validation_alias="DOUBAO_API_KEY")
    base_url: str = Field(
        "https://ark.cn-beijing.volces.com/api/v3", validation_alias="DOUBAO_BASE_URL"
    )
    vlm_model: str = Field(
        "ep-20250719131318-27rck", validation_alias="DOUBAO_VLM_MODEL"
    )
    image_edit_model: str = Field(
        "ep-20250725101032-2zcfj", validation_alias="DOUBAO_IMAGE_EDIT_MODEL"
    )
    video_model: str = Field(
        "doubao-seedance-1-0-pro-250528", validation_alias="DOUBAO_VIDEO_MODEL"
    )
    video_prompt_suffix: str = Field(
        "--dur 10 --resolution 720p --camerafixed false",
        validation_alias="DOUBAO_VIDEO_PROMPT_SUFFIX",
        description="Generation flags appended to every video prompt.",
    )


class OpenAISettings(BaseSettings):
    """Configuration for the OpenAI provider."""

    model_config = _SETTINGS_CONFIG

    api_key: str = Field("", validation_alias="OPENAI_API_KEY")
    base_url: str = Field("https://api.openai.com/v1", validation_alias="OPENAI_BASE_URL")
    vlm_model: str = Field("gpt-4o", validation_alias="OPENAI_VLM_MODEL")
    image_model: str = Field("dall-e-3", validation_alias="OPENAI_IMAGE_MODEL")
    max_completion_tokens: int = Field(
        4096, ge=1, validation_alias="OPENAI_MAX_COMPLETION_TOKENS"
    )


class PromptSettings(BaseSettings):
    """Per-persona prompts plus the prompts used by generation features."""

    model_config = _SETTINGS_CONFIG

    assistant: str = Field(
        "Your task: 1. Study the scene in front of you and find what is "
        "distinctive about it, its mood, or any tension in it. 2. Based on that, "
        "pick the expert role that fits best (photographer, poet, linguist, "
        "naturalist, storyteller, health coach and so on). 3. Answer in that "
        f"role, in Markdown, with your reading of the scene. {_FOCUS_INSTRUCTION}",
        validation_alias="PROMPT_ASSISTANT",
    )
    photography_master: str = Field(
        "As a poet of light, look at the light, colour and composition of this "
        "scene and give the single most important shooting technique or "
        f"composition method for it. {_FOCUS_INSTRUCTION} Reply in Markdown.",
        validation_alias="PROMPT_PHOTOGRAPHY_MASTER",
    )
    poet: str = Field(
        "As a poet, turn the character and mood of this scene into a short poem. "
        f"{_FOCUS_INSTRUCTION} Reply in Markdown.",
        validation_alias="PROMPT_POET",
    )
    translation_assistant: str = Field(
        "As a linguist, identify any foreign text in the frame and translate it, "
        "or share background or trivia about that language and script. "
        f"{_FOCUS_INSTRUCTION} Reply in Markdown.",
        validation_alias="PROMPT_TRANSLATION_ASSISTANT",
    )
    encyclopedia: str = Field(
        "As a naturalist, identify what makes this scene or object notable and "
        "share one related, interesting fact or piece of background. "
        f"{_FOCUS_INSTRUCTION} Reply in Markdown.",
        validation_alias="PROMPT_ENCYCLOPEDIA",
    )
    storyteller: str = Field(
        "As a dream weaver, use this scene to write the opening of a tiny story "
        f"full of suspense or imagination. {_FOCUS_INSTRUCTION} Reply in Markdown.",
        validation_alias="PROMPT_STORYTELLER",
    )
    health_assistant: str = Field(
        "As a wellbeing coach, give one practical health tip that relates to "
        f"this scene. {_FOCUS_INSTRUCTION} Reply in Markdown.",
        validation_alias="PROMPT_HEALTH_ASSISTANT",
    )
    menu_assistant: str = Field(
        "As a menu helper, read the dishes on this menu, explain what they are "
        f"and recommend what to order. {_FOCUS_INSTRUCTION} Reply in Markdown.",
        validation_alias="PROMPT_MENU_ASSISTANT",
    )
    image_edit: str = Field(
        "Redraw this scene as a hand-painted animated film still.",
        validation_alias="PROMPT_IMAGE_EDIT",
    )
    video_story: str = Field(
        "Act as a film director and summarize the core story or emotional "
        "moment of this picture as a single cinematic logline. It will be used "
        "as the script for a short video.",
        validation_alias="PROMPT_VIDEO_STORY",
    )
    highlight_reel: str = Field(
        "You are a top social media video writer. The images I provide are in "
        "chronological order; tell one coherent, engaging story or recap of the "
        "experience. Return a catchy 'title', a 'caption' suitable as voice-over "
        "and a list of 'hashtags'. Respond strictly in JSON.",
        validation_alias="PROMPT_HIGHLIGHT_REEL",
    )

    def for_persona(self, persona: InspirationPersona) -> str:
        """Return the configured prompt for a persona."""
        return getattr(self, persona.value)


class InspirationSettings(BaseSettings):
    """Toggles for the live inspiration feature."""

    model_config = _SETTINGS_CONFIG

    deep_thinking: bool = Field(False, validation_alias="INSPIRATION_DEEP_THINKING")
    auto_trigger: bool = Field(True, validation_alias="INSPIRATION_AUTO_TRIGGER")
    default_persona: InspirationPersona = Field(
        InspirationPersona.ASSISTANT, validation_alias="INSPIRATION_DEFAULT_PERSONA"
    )


class JobSettings(BaseSettings):
    """Polling policy for asynchronous generation jobs."""

    model_config = _SETTINGS_CONFIG

    poll_interval_seconds: float = Field(5.0, validation_alias="JOB_POLL_INTERVAL_SECONDS")
    max_poll_attempts: int = Field(120, validation_alias="JOB_MAX_POLL_ATTEMPTS")
    request_timeout_seconds: float = Field(
        60.0, validation_alias="PROVIDER_REQUEST_TIMEOUT_SECONDS"
    )

    @field_validator("poll_interval_seconds", "request_timeout_seconds")
    @classmethod
    def _positive_seconds(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value

    @field_validator("max_poll_attempts")
    @classmethod
    def _at_least_one_attempt(cls, value: int) -> int:
        if value < 1:
            raise ValueError("must allow at least one poll attempt")
        return value


class AppSettings(BaseSettings):
    """Root settings object for the service."""

    model_config = SettingsConfigDict(
        populate_by_name=True,
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    ai_provider: AIProvider = Field(AIProvider.DOUBAO, validation_alias="AI_PROVIDER")
    database_path: str = Field("data/aicamera.db", validation_alias="AICAMERA_DB_PATH")
    media_dir: str = Field("data/media", validation_alias="AICAMERA_MEDIA_DIR")
    doubao: DoubaoSettings = Field(default_factory=DoubaoSettings)
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    prompts: PromptSettings = Field(default_factory=PromptSettings)
    inspiration: InspirationSettings = Field(default_factory=InspirationSettings)
    jobs: JobSettings = Field(default_factory=JobSettings)

    @field_validator("ai_provider", mode="before")
    @classmethod
    def _normalize_provider(cls, value: object) -> object:
        """Accept provider names regardless of case."""
        if isinstance(value, str):
            return value.strip().lower()
        return value


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()  # type: ignore[call-arg]


__all__ = [
    "AppSettings",
    "DoubaoSettings",
    "InspirationSettings",
    "JobSettings",
    "OpenAISettings",
    "PromptSettings",
    "get_settings",
]
