"""
Matching model backends.

Each backend is an (identifier, invoke) pair: invoke takes the finished
prompt and returns the model's text. The chain order comes from
settings.matching_models, e.g.

    gemini:gemini-2.5-flash,gemini:gemini-2.0-flash,openai:gpt-4o-mini

Providers without an API key are left out of the chain.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable

import anthropic
import openai
from google import genai

from app.config import Settings
from app.logging_config import get_logger

logger = get_logger("model_backends")

DEFAULT_PROVIDER = "gemini"
MAX_OUTPUT_TOKENS = 4096


class EmptyModelResponse(Exception):
    """The model answered without any text (e.g. blocked by safety filters)."""


@dataclass(frozen=True)
class ModelBackend:
    identifier: str
    invoke: Callable[[str], Awaitable[str]]


def _require_text(text: str | None, identifier: str) -> str:
    if not text or not text.strip():
        raise EmptyModelResponse(f"{identifier} returned no text")
    return text


def gemini_backend(client: genai.Client, model: str) -> ModelBackend:
    identifier = f"gemini:{model}"

    async def invoke(prompt: str) -> str:
        response = await client.aio.models.generate_content(model=model, contents=prompt)
        return _require_text(response.text, identifier)

    return ModelBackend(identifier, invoke)


def openai_backend(client: openai.AsyncOpenAI, model: str) -> ModelBackend:
    identifier = f"openai:{model}"

    async def invoke(prompt: str) -> str:
        response = await client.chat.completions.create(
            model=model,
            messages=[{"role": "user", "content": prompt}],
            temperature=0.2,
            max_tokens=MAX_OUTPUT_TOKENS
        )
        return _require_text(response.choices[0].message.content, identifier)

    return ModelBackend(identifier, invoke)


def anthropic_backend(client: anthropic.AsyncAnthropic, model: str) -> ModelBackend:
    identifier = f"anthropic:{model}"

    async def invoke(prompt: str) -> str:
        response = await client.messages.create(
            model=model,
            max_tokens=MAX_OUTPUT_TOKENS,
            messages=[{"role": "user", "content": prompt}]
        )
        text = "".join(
            block.text for block in response.content
            if getattr(block, "type", None) == "text"
        )
        return _require_text(text, identifier)

    return ModelBackend(identifier, invoke)


def parse_model_spec(spec: str) -> tuple[str, str]:
    """'openai:gpt-4o-mini' -> ('openai', 'gpt-4o-mini'); bare names are Gemini."""
    provider, sep, model = spec.partition(":")
    if not sep:
        return DEFAULT_PROVIDER, spec.strip()
    return provider.strip().lower(), model.strip()


def build_model_chain(settings: Settings) -> list[ModelBackend]:
    """Build the ordered fallback chain from settings."""
    keys = {
        "gemini": settings.gemini_api_key,
        "openai": settings.openai_api_key,
        "anthropic": settings.anthropic_api_key,
    }
    clients: dict[str, object] = {}
    chain: list[ModelBackend] = []

    for spec in settings.matching_model_chain:
        provider, model = parse_model_spec(spec)
        if provider not in keys:
            raise ValueError(f"Unknown matching provider '{provider}' in '{spec}'")
        if not keys[provider]:
            logger.warning(f"Skipping {provider}:{model} - no API key configured")
            continue

        if provider not in clients:
            if provider == "gemini":
                clients[provider] = genai.Client(api_key=keys[provider])
            elif provider == "openai":
                clients[provider] = openai.AsyncOpenAI(api_key=keys[provider])
            else:
                clients[provider] = anthropic.AsyncAnthropic(api_key=keys[provider])

        factory = {
            "gemini": gemini_backend,
            "openai": openai_backend,
            "anthropic": anthropic_backend,
        }[provider]
        chain.append(factory(clients[provider], model))

    logger.info(f"Matching chain: {[backend.identifier for backend in chain]}")
    return chain
