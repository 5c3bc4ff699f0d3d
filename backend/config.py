"""
uiforge configuration — all environment variables in one place.

Read from environment at runtime. Never hardcode secrets.
"""

from __future__ import annotations

import os


class Settings:
    """Application settings from environment variables."""

    # Application
    ENVIRONMENT: str = os.environ.get("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.environ.get("LOG_LEVEL", "INFO")

    # Serve canned completions instead of calling a provider
    USE_MOCK_LLM: bool = os.environ.get("USE_MOCK_LLM", "").lower() == "true"

    # AI Providers
    DEEPSEEK_API_KEY: str = os.environ.get("DEEPSEEK_API_KEY", "")
    DEEPSEEK_BASE_URL: str = os.environ.get("DEEPSEEK_BASE_URL", "https://api.deepseek.com")
    OPENAI_API_KEY: str = os.environ.get("OPENAI_API_KEY", "")
    OPENAI_BASE_URL: str = os.environ.get("OPENAI_BASE_URL", "https://api.openai.com/v1")
    ANTHROPIC_API_KEY: str = os.environ.get("ANTHROPIC_API_KEY", "")
    ANTHROPIC_BASE_URL: str = os.environ.get("ANTHROPIC_BASE_URL", "https://api.anthropic.com")

    # Generation
    DEFAULT_MODEL: str = os.environ.get("DEFAULT_MODEL", "deepseek-chat")
    MAX_TOKENS: int = int(os.environ.get("MAX_TOKENS", "4000"))
    TEMPERATURE: float = float(os.environ.get("TEMPERATURE", "0.7"))
    MAX_PROMPT_LENGTH: int = int(os.environ.get("MAX_PROMPT_LENGTH", "1000"))
    MAX_CODE_LENGTH: int = int(os.environ.get("MAX_CODE_LENGTH", "50000"))

    # Streaming
    STREAM_CHAR_DELAY_MS: int = int(os.environ.get("STREAM_CHAR_DELAY_MS", "20"))


# Singleton instance
settings = Settings()

# Validate required settings (skip in test mode)
_testing = os.environ.get("TESTING", "").lower() == "true"

if not _testing:
    if settings.STREAM_CHAR_DELAY_MS < 0:
        raise RuntimeError("STREAM_CHAR_DELAY_MS must not be negative")
    if settings.MAX_PROMPT_LENGTH <= 0:
        raise RuntimeError("MAX_PROMPT_LENGTH must be positive")
    if not settings.USE_MOCK_LLM and not (
        settings.DEEPSEEK_API_KEY or settings.OPENAI_API_KEY or settings.ANTHROPIC_API_KEY
    ):
        raise RuntimeError("At least one of DEEPSEEK_API_KEY, OPENAI_API_KEY or ANTHROPIC_API_KEY is required")
