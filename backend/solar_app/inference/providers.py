"""Vision-capable inference providers behind one capability interface.

Each provider exposes ``classify_image``, ``extract_structured`` and
``generate_text`` and translates its SDK's exceptions into
``solar_app.inference.errors``. Retries and timeouts are owned by the
orchestrator, so SDK-level retries are disabled.
"""

from __future__ import annotations

import base64
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Protocol

import httpx
import openai
from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from solar_app.inference.errors import (
    EmptyResponseError,
    ModelNotFoundError,
    ProviderNotConfiguredError,
    ProviderTransportError,
    RateLimitedError,
)

logger = logging.getLogger(__name__)

OPENAI = "openai"
GEMINI = "gemini"


@dataclass(frozen=True)
class Route:
    """One (provider, model) pair in an ordered fallback list."""

    provider: str
    model: str

    def __str__(self) -> str:
        return f"{self.provider}:{self.model}"


def parse_routes(value: str) -> tuple[Route, ...]:
    """Parse ``"openai:gpt-4o, gemini:gemini-2.0-flash"`` into routes.

    Order is preserved and duplicates are dropped.
    """
    routes: list[Route] = []
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        provider, sep, model = item.partition(":")
        if not sep or not provider.strip() or not model.strip():
            raise ValueError(f"Invalid route '{item}', expected 'provider:model'")
        route = Route(provider.strip().lower(), model.strip())
        if route not in routes:
            routes.append(route)
    return tuple(routes)


class InferenceProvider(Protocol):
    name: str

    @property
    def configured(self) -> bool: ...

    async def classify_image(self, model: str, image: bytes, mime_type: str, prompt: str) -> str: ...

    async def extract_structured(self, model: str, image: bytes, mime_type: str, prompt: str) -> str: ...

    async def generate_text(self, model: str, prompt: str) -> str: ...


# ======================================================================
# OpenAI
# ======================================================================

def _is_model_not_found(message: str) -> bool:
    text = message.lower()
    return "model_not_found" in text or ("model" in text and "does not exist" in text)


class OpenAIProvider:
    """Chat Completions with inline base64 image content."""

    name = OPENAI

    def __init__(self, api_key: str | None, client: openai.AsyncOpenAI | None = None):
        self._client = client
        if client is None and api_key:
            self._client = openai.AsyncOpenAI(api_key=api_key, max_retries=0, timeout=60.0)

    @property
    def configured(self) -> bool:
        return self._client is not None

    def _require_client(self, model: str) -> openai.AsyncOpenAI:
        if self._client is None:
            raise ProviderNotConfiguredError("OpenAI API key not configured", self.name, model)
        return self._client

    @staticmethod
    def _image_content(image: bytes, mime_type: str) -> dict:
        encoded = base64.b64encode(image).decode("ascii")
        return {
            "type": "image_url",
            "image_url": {"url": f"data:{mime_type};base64,{encoded}", "detail": "high"},
        }

    async def _complete(self, model: str, messages: list[dict], **kwargs) -> str:
        client = self._require_client(model)
        try:
            response = await client.chat.completions.create(
                model=model, messages=messages, **kwargs
            )
        except openai.NotFoundError as exc:
            raise ModelNotFoundError(str(exc), self.name, model) from exc
        except openai.RateLimitError as exc:
            raise RateLimitedError(str(exc), self.name, model) from exc
        except openai.BadRequestError as exc:
            if _is_model_not_found(str(exc)):
                raise ModelNotFoundError(str(exc), self.name, model) from exc
            raise ProviderTransportError(str(exc), self.name, model) from exc
        except openai.APIError as exc:
            raise ProviderTransportError(str(exc), self.name, model) from exc

        choices = getattr(response, "choices", None) or []
        content = choices[0].message.content if choices else None
        if not content or not content.strip():
            raise EmptyResponseError("OpenAI returned no content", self.name, model)
        return content.strip()

    async def classify_image(self, model: str, image: bytes, mime_type: str, prompt: str) -> str:
        messages = [{
            "role": "user",
            "content": [{"type": "text", "text": prompt}, self._image_content(image, mime_type)],
        }]
        return await self._complete(
            model, messages, max_tokens=150, temperature=0.0,
            response_format={"type": "json_object"},
        )

    async def extract_structured(self, model: str, image: bytes, mime_type: str, prompt: str) -> str:
        messages = [{
            "role": "user",
            "content": [{"type": "text", "text": prompt}, self._image_content(image, mime_type)],
        }]
        return await self._complete(
            model, messages, max_tokens=1500, temperature=0.2,
            response_format={"type": "json_object"},
        )

    async def generate_text(self, model: str, prompt: str) -> str:
        messages = [{"role": "user", "content": prompt}]
        return await self._complete(model, messages, max_tokens=300, temperature=0.7)


# ======================================================================
# Gemini
# ======================================================================

class GeminiProvider:
    """google-genai async client with inline image parts."""

    name = GEMINI

    def __init__(self, api_key: str | None, client: genai.Client | None = None):
        self._client = client
        if client is None and api_key:
            self._client = genai.Client(api_key=api_key)

    @property
    def configured(self) -> bool:
        return self._client is not None

    def _require_client(self, model: str) -> genai.Client:
        if self._client is None:
            raise ProviderNotConfiguredError("Gemini API key not configured", self.name, model)
        return self._client

    async def _generate(self, model: str, contents: list, config: types.GenerateContentConfig) -> str:
        client = self._require_client(model)
        try:
            response = await client.aio.models.generate_content(
                model=model, contents=contents, config=config
            )
        except genai_errors.ClientError as exc:
            if exc.code == 404:
                raise ModelNotFoundError(str(exc), self.name, model) from exc
            if exc.code == 429:
                raise RateLimitedError(str(exc), self.name, model) from exc
            raise ProviderTransportError(str(exc), self.name, model) from exc
        except genai_errors.APIError as exc:
            raise ProviderTransportError(str(exc), self.name, model) from exc
        except httpx.HTTPError as exc:
            # connection and timeout errors escape the SDK unwrapped
            raise ProviderTransportError(f"{type(exc).__name__}: {exc}", self.name, model) from exc

        text = getattr(response, "text", None)
        if not text or not text.strip():
            raise EmptyResponseError("Gemini returned an empty response", self.name, model)
        return text.strip()

    async def classify_image(self, model: str, image: bytes, mime_type: str, prompt: str) -> str:
        return await self._generate(
            model,
            [prompt, types.Part.from_bytes(data=image, mime_type=mime_type)],
            types.GenerateContentConfig(
                candidate_count=1,
                temperature=0.0,
                max_output_tokens=150,
                response_mime_type="application/json",
            ),
        )

    async def extract_structured(self, model: str, image: bytes, mime_type: str, prompt: str) -> str:
        return await self._generate(
            model,
            [prompt, types.Part.from_bytes(data=image, mime_type=mime_type)],
            types.GenerateContentConfig(
                candidate_count=1,
                temperature=0.2,
                max_output_tokens=1500,
                response_mime_type="application/json",
            ),
        )

    async def generate_text(self, model: str, prompt: str) -> str:
        return await self._generate(
            model,
            [prompt],
            types.GenerateContentConfig(candidate_count=1, temperature=0.7, max_output_tokens=300),
        )


def build_providers(
    openai_api_key: str | None,
    gemini_api_key: str | None,
) -> dict[str, InferenceProvider]:
    providers: dict[str, InferenceProvider] = {
        OPENAI: OpenAIProvider(openai_api_key),
        GEMINI: GeminiProvider(gemini_api_key),
    }
    for name, provider in providers.items():
        if not provider.configured:
            logger.warning("%s API key not configured; routes for it will be skipped", name)
    return providers


def resolve(providers: Mapping[str, InferenceProvider], route: Route) -> InferenceProvider:
    """Return the configured provider for ``route``.

    Raises ``ProviderNotConfiguredError`` for unknown or unconfigured
    providers.
    """
    provider = providers.get(route.provider)
    if provider is None or not provider.configured:
        raise ProviderNotConfiguredError(
            f"provider '{route.provider}' is not configured", route.provider, route.model
        )
    return provider
