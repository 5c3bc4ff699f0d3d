"""
LLM provider factory.

Returns MockLLM when USE_MOCK_LLM=true (tests / UX simulation)
or a CompletionClient for the provider that serves the requested model.
"""

from __future__ import annotations

from backend.config import settings
from backend.services.llm_client import CompletionClient
from backend.services.mock_llm import MockLLM
from backend.services.model_registry import ANTHROPIC, DEEPSEEK, OPENAI, ModelSpec


def _credentials(provider: str) -> tuple[str, str]:
    if provider == DEEPSEEK:
        return settings.DEEPSEEK_API_KEY, settings.DEEPSEEK_BASE_URL
    if provider == OPENAI:
        return settings.OPENAI_API_KEY, settings.OPENAI_BASE_URL
    if provider == ANTHROPIC:
        return settings.ANTHROPIC_API_KEY, settings.ANTHROPIC_BASE_URL
    raise ValueError(f"Unsupported model provider: {provider}")


def get_llm(spec: ModelSpec) -> MockLLM | CompletionClient:
    """
    Return the configured LLM implementation for a model.

    - USE_MOCK_LLM=true → MockLLM (deterministic, no API calls)
    - otherwise         → CompletionClient for the model's provider

    A missing API key is not an error here; the client raises
    ProviderNotConfiguredError when the stream starts so it reaches the
    caller as an error event.
    """
    if settings.USE_MOCK_LLM:
        return MockLLM()

    api_key, base_url = _credentials(spec.provider)
    return CompletionClient(spec, api_key=api_key, base_url=base_url)
