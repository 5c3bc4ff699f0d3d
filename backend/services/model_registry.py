"""
Model registry: which models exist, who serves them, and which subscription
tiers may use them.

Tier resolution itself happens upstream of this service; callers pass the
already-resolved tier name.
"""

from __future__ import annotations

from dataclasses import dataclass

from backend.services.errors import AuthorizationDeniedError, InvalidRequestError

DEEPSEEK = "DeepSeek"
OPENAI = "OpenAI"
ANTHROPIC = "Anthropic"


@dataclass(frozen=True)
class ModelSpec:
    id: str
    name: str
    provider: str
    description: str
    api_model: str  # identifier sent to the provider
    max_tokens: int = 4096


AVAILABLE_MODELS: dict[str, ModelSpec] = {
    "deepseek-chat": ModelSpec(
        id="deepseek-chat",
        name="DeepSeek Chat",
        provider=DEEPSEEK,
        description="Fast and efficient conversational AI",
        api_model="deepseek-chat",
    ),
    "deepseek-coder": ModelSpec(
        id="deepseek-coder",
        name="DeepSeek Coder",
        provider=DEEPSEEK,
        description="Specialized for code generation and programming tasks",
        api_model="deepseek-coder",
    ),
    "gpt-4": ModelSpec(
        id="gpt-4",
        name="GPT-4",
        provider=OPENAI,
        description="Most capable GPT model for complex tasks",
        api_model="gpt-4",
        max_tokens=8192,
    ),
    "gpt-4-turbo": ModelSpec(
        id="gpt-4-turbo",
        name="GPT-4 Turbo",
        provider=OPENAI,
        description="Latest GPT-4 model with improved performance",
        api_model="gpt-4-turbo",
    ),
    "claude-3-opus": ModelSpec(
        id="claude-3-opus",
        name="Claude 3 Opus",
        provider=ANTHROPIC,
        description="Most powerful Claude model for complex reasoning",
        api_model="claude-3-opus-20240229",
    ),
    "claude-3-sonnet": ModelSpec(
        id="claude-3-sonnet",
        name="Claude 3 Sonnet",
        provider=ANTHROPIC,
        description="Balanced model for most tasks",
        api_model="claude-3-sonnet-20240229",
    ),
}

TIER_MODELS: dict[str, list[str]] = {
    "free": ["deepseek-chat"],
    "basic": ["deepseek-chat", "deepseek-coder"],
    "pro": ["deepseek-chat", "deepseek-coder", "gpt-4", "claude-3-sonnet"],
    "premium": list(AVAILABLE_MODELS),
}


def get_model(model_id: str) -> ModelSpec:
    """Look up a model, raising InvalidRequestError for unknown ids."""
    spec = AVAILABLE_MODELS.get(model_id)
    if spec is None:
        raise InvalidRequestError(f"Invalid model: {model_id}")
    return spec


def can_use_model(tier: str, model_id: str) -> bool:
    return model_id in TIER_MODELS.get(tier, [])


def tiers_for(model_id: str) -> list[str]:
    return [tier for tier, models in TIER_MODELS.items() if model_id in models]


def authorize(model_id: str, tier: str | None) -> ModelSpec:
    """
    Resolve a model for a request.

    The tier is optional: when the caller did not resolve one, the model id
    is trusted as-is. Unknown tiers are denied everything.
    """
    spec = get_model(model_id)
    if tier is not None and not can_use_model(tier.lower(), model_id):
        raise AuthorizationDeniedError(f"Access denied: {model_id} requires a higher subscription tier")
    return spec
