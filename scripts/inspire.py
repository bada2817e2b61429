#!/usr/bin/env python
"""Lightweight CLI that streams an inspiration for one or more image files."""

from __future__ import annotations

import argparse
import asyncio
import sys
from contextlib import aclosing
from pathlib import Path
from typing import List

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from aicamera.clients import DoubaoClient, OpenAIClient, ProviderClient  # noqa: E402
from aicamera.core.config import AppSettings, get_settings  # noqa: E402
from aicamera.core.errors import ProviderError  # noqa: E402
from aicamera.core.logging import configure_logging  # noqa: E402
from aicamera.models.chunks import (  # noqa: E402
    ContentChunk,
    DoneChunk,
    ErrorChunk,
    ReasoningChunk,
)
from aicamera.models.inspiration import AnalysisOptions, InspirationPersona  # noqa: E402
from aicamera.models.providers import AIProvider  # noqa: E402


def _build_client(settings: AppSettings, provider: AIProvider) -> ProviderClient:
    timeout = settings.jobs.request_timeout_seconds
    if provider is AIProvider.OPENAI:
        return OpenAIClient(settings.openai, timeout_seconds=timeout)
    return DoubaoClient(settings.doubao, timeout_seconds=timeout)


async def stream_once(
    client: ProviderClient,
    images: List[bytes],
    prompt: str,
    options: AnalysisOptions,
) -> int:
    in_reasoning = False
    in_content = False
    async with aclosing(client.stream_analyze(images, prompt, options)) as chunks:
        async for chunk in chunks:
            if isinstance(chunk, ReasoningChunk):
                if not in_reasoning:
                    print("Thinking: ", end="", flush=True)
                    in_reasoning = True
                print(chunk.text, end="", flush=True)
            elif isinstance(chunk, ContentChunk):
                if not in_content:
                    print(f"{chr(10) if in_reasoning else ''}{client.provider.label}: ")
                    in_content = True
                print(chunk.text, end="", flush=True)
            elif isinstance(chunk, ErrorChunk):
                print(f"\nStream error: {chunk.message}", file=sys.stderr)
                return 1
            elif isinstance(chunk, DoneChunk):
                break
    print()
    if not in_content:
        print("(no text response)", file=sys.stderr)
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Stream a live-style inspiration for image files to the terminal."
    )
    parser.add_argument("images", nargs="+", type=Path, help="JPEG files to analyze.")
    parser.add_argument(
        "--provider",
        choices=[provider.value for provider in AIProvider],
        default=None,
        help="Override the configured AI provider.",
    )
    parser.add_argument(
        "--persona",
        choices=[persona.value for persona in InspirationPersona],
        default=None,
        help="Persona whose prompt is used (default: configured persona).",
    )
    parser.add_argument("--prompt", default=None, help="Custom prompt text.")
    parser.add_argument(
        "--deep-thinking",
        action="store_true",
        help="Ask the provider for a reasoning phase when it supports one.",
    )

    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level)
    provider = AIProvider(args.provider) if args.provider else settings.ai_provider
    persona = (
        InspirationPersona(args.persona)
        if args.persona
        else settings.inspiration.default_persona
    )
    prompt = args.prompt or settings.prompts.for_persona(persona)
    options = AnalysisOptions(
        deep_thinking=args.deep_thinking or settings.inspiration.deep_thinking
    )

    try:
        images = [path.read_bytes() for path in args.images]
    except OSError as exc:
        print(f"Could not read image: {exc}", file=sys.stderr)
        return 2

    client = _build_client(settings, provider)
    try:
        return asyncio.run(stream_once(client, images, prompt, options))
    except ProviderError as exc:
        print(f"{provider.label} request failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
