"""
Prompt builder for component generation and modification.

System prompts live in backend/prompts/ as markdown so they can be edited
without touching code.
"""

from __future__ import annotations

from pathlib import Path

PROMPTS_DIR = Path(__file__).parent.parent / "prompts"

# Cache loaded prompts in memory (they don't change at runtime)
_cache: dict[str, str] = {}


def _load(name: str) -> str:
    """Load and cache a prompt file."""
    if name not in _cache:
        path = PROMPTS_DIR / f"{name}.md"
        _cache[name] = path.read_text().strip()
    return _cache[name]


def build_system_prompt() -> str:
    return _load("component_system")


def build_modify_system_prompt() -> str:
    return _load("modify_system")


def build_modify_prompt(code: str, instruction: str) -> str:
    """User turn for a modification: the current code in a fence, then the instruction."""
    return (
        f"Current code:\n```typescript\n{code}\n```\n\n"
        f"Instruction: {instruction.strip()}\n\n"
        "Return only the modified code:"
    )


def build_messages(prompt: str) -> list[dict[str, str]]:
    """
    Build the user message list for one generation.

    The system prompt is passed separately because Anthropic takes it as a
    top-level parameter while OpenAI-compatible APIs take it as a message.
    """
    return [{"role": "user", "content": prompt.strip()}]
