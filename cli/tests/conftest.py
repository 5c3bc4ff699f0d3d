"""
Pytest fixtures for uiforge CLI tests.
"""

from __future__ import annotations

import json

import pytest


@pytest.fixture
def sse():
    """Encode event dicts as a server-sent event body."""

    def _encode(*events: dict, done: bool = True) -> bytes:
        body = "".join(f"data: {json.dumps(event)}\n\n" for event in events)
        if done:
            body += "data: [DONE]\n\n"
        return body.encode()

    return _encode


@pytest.fixture
def project():
    return {
        "files": {
            "src/App.tsx": "function App() {\n  return <h1>Hi</h1>;\n}",
            "src/index.css": "body { margin: 0; }",
            "package.json": "{}",
        },
        "projectName": "streaming-app",
    }


def char_events(text: str) -> list[dict]:
    return [{"type": "char", "char": c, "totalLength": i} for i, c in enumerate(text, start=1)]


@pytest.fixture
def chars():
    return char_events
