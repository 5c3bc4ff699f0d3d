"""
Tests for prompt builder.

Validates the system prompt and user message assembly.
"""

from __future__ import annotations

from backend.services.prompt_builder import (
    build_messages,
    build_modify_prompt,
    build_modify_system_prompt,
    build_system_prompt,
)


def test_system_prompt_loaded_from_markdown():
    prompt = build_system_prompt()

    assert prompt.startswith("Generate a complete React component.")
    assert "Tailwind CSS" in prompt
    assert "function App()" in prompt


def test_system_prompt_cached():
    """Second call returns the same cached string."""
    assert build_system_prompt() is build_system_prompt()


def test_messages_single_user_turn():
    messages = build_messages("  a pricing table  ")

    assert messages == [{"role": "user", "content": "a pricing table"}]


def test_messages_never_include_system_prompt():
    messages = build_messages("a login form")

    assert all(m["role"] != "system" for m in messages)


def test_modify_system_prompt_loaded_from_markdown():
    prompt = build_modify_system_prompt()

    assert prompt.startswith("You are a code modification assistant.")
    assert "Return the complete modified code" in prompt
    assert prompt != build_system_prompt()


def test_modify_prompt_fences_code_before_instruction():
    prompt = build_modify_prompt("function App() { return <div/>; }", "  add a button \n")

    assert prompt == (
        "Current code:\n```typescript\nfunction App() { return <div/>; }\n```\n\n"
        "Instruction: add a button\n\n"
        "Return only the modified code:"
    )
