"""
Upstream completion client.

Streams text deltas for one prompt from whichever provider serves the
requested model: Anthropic through its Messages API, DeepSeek and OpenAI
through the OpenAI-compatible chat completions API.
"""

from __future__ import annotations

import contextlib
import logging
from collections.abc import AsyncIterator

import anthropic
import openai

from backend.config import settings
from backend.services.errors import ProviderNotConfiguredError
from backend.services.model_registry import ANTHROPIC, ModelSpec
from backend.services.prompt_builder import build_messages, build_system_prompt

logger = logging.getLogger(__name__)


class CompletionClient:
    """Streams completion text from a provider SDK."""

    def __init__(
        self,
        spec: ModelSpec,
        api_key: str,
        base_url: str | None = None,
        max_tokens: int | None = None,
        temperature: float | None = None,
    ):
        """
        Initialize the client for one model.

        Args:
            spec: Registry entry for the requested model
            api_key: Provider API key (empty when not configured)
            base_url: Optional provider endpoint override
            max_tokens: Maximum tokens to generate (defaults to MAX_TOKENS)
            temperature: Sampling temperature (defaults to TEMPERATURE)
        """
        self.spec = spec
        self.api_key = api_key
        self.base_url = base_url
        self.max_tokens = max_tokens or settings.MAX_TOKENS
        self.temperature = settings.TEMPERATURE if temperature is None else temperature

    async def stream(self, prompt: str, system: str | None = None) -> AsyncIterator[str]:
        """
        Stream the completion for a prompt.

        Args:
            prompt: User turn content
            system: System prompt (the component generation prompt when None)

        Yields:
            Text deltas as they arrive

        Raises:
            ProviderNotConfiguredError: No API key for the model's provider
            anthropic.APIError / openai.APIError: Provider failures, unmapped
        """
        if not self.api_key:
            raise ProviderNotConfiguredError(self.spec.provider)

        logger.info(
            "llm_client: stream start provider=%s model=%s prompt_len=%d",
            self.spec.provider,
            self.spec.api_model,
            len(prompt),
        )
        if system is None:
            system = build_system_prompt()
        if self.spec.provider == ANTHROPIC:
            deltas = self._stream_anthropic(prompt, system)
        else:
            deltas = self._stream_openai(prompt, system)
        async with contextlib.aclosing(deltas):
            async for text in deltas:
                yield text

    async def _stream_anthropic(self, prompt: str, system: str) -> AsyncIterator[str]:
        client = anthropic.AsyncAnthropic(api_key=self.api_key, base_url=self.base_url)
        async with client.messages.stream(
            model=self.spec.api_model,
            max_tokens=self.max_tokens,
            system=system,
            messages=build_messages(prompt),
            temperature=self.temperature,
        ) as stream:
            async for text in stream.text_stream:
                yield text

    async def _stream_openai(self, prompt: str, system: str) -> AsyncIterator[str]:
        client = openai.AsyncOpenAI(api_key=self.api_key, base_url=self.base_url)
        completion = await client.chat.completions.create(
            model=self.spec.api_model,
            messages=[{"role": "system", "content": system}, *build_messages(prompt)],
            max_tokens=self.max_tokens,
            temperature=self.temperature,
            stream=True,
        )
        try:
            async for chunk in completion:
                if not chunk.choices:
                    continue
                content = chunk.choices[0].delta.content
                if content:
                    yield content
        finally:
            # Releases the HTTP connection when the consumer stops early
            await completion.close()
