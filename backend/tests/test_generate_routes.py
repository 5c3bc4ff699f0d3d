"""
Tests for backend/routes/generate.py

Streams run against MockLLM (USE_MOCK_LLM=true) with pacing disabled.
"""

from __future__ import annotations

import json

import pytest

from backend.models.generation import ENTRY_FILE
from backend.routes import generate as generate_routes
from backend.services.errors import UpstreamQuotaExhaustedError
from backend.services.mock_llm import SCENARIOS, MockLLM


def parse_stream(body: str) -> tuple[list[dict], bool]:
    """Split an SSE body into event payloads; report whether [DONE] ended it."""
    frames = [frame for frame in body.split("\n\n") if frame]
    done = frames[-1] == "data: [DONE]"
    events = [json.loads(frame.removeprefix("data: ")) for frame in frames if frame != "data: [DONE]"]
    return events, done


@pytest.fixture
def use_llm(monkeypatch):
    """Serve a specific MockLLM for the next request."""

    def _use(llm: MockLLM) -> None:
        monkeypatch.setattr(generate_routes, "get_llm", lambda spec: llm)

    return _use


# ============================================================================
# POST /api/generate-stream
# ============================================================================


class TestGenerateStream:
    async def test_stream_headers(self, client):
        response = await client.post("/api/generate-stream", json={"prompt": "counter"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        assert response.headers["cache-control"] == "no-cache"
        assert response.headers["x-accel-buffering"] == "no"

    async def test_stream_reconstructs_completion(self, client):
        response = await client.post("/api/generate-stream", json={"prompt": "counter"})
        events, done = parse_stream(response.text)

        chars = [e for e in events if e["type"] == "char"]
        assert "".join(e["char"] for e in chars) == SCENARIOS["counter"]
        assert [e["totalLength"] for e in chars] == list(range(1, len(chars) + 1))
        assert done

    async def test_stream_ends_with_complete(self, client):
        response = await client.post("/api/generate-stream", json={"prompt": "widget", "modelId": "deepseek-coder"})
        events, done = parse_stream(response.text)

        assert events[-1]["type"] == "complete"
        project = events[-1]["project"]
        assert project["projectName"] == "streaming-app"
        assert project["files"][ENTRY_FILE].startswith("function Widget()")
        assert json.loads(project["files"]["package.json"])["dependencies"]["react"] == "^18.2.0"
        assert done

    async def test_upstream_failure_is_single_error_event(self, client, use_llm):
        use_llm(MockLLM(text="x" * 30, chunk_size=10, fail_with=UpstreamQuotaExhaustedError(), fail_after=1))

        response = await client.post("/api/generate-stream", json={"prompt": "anything"})
        events, done = parse_stream(response.text)

        assert response.status_code == 200
        assert [e["type"] for e in events] == ["char"] * 10 + ["error"]
        assert events[-1]["statusCode"] == 402
        assert events[-1]["kind"] == "UpstreamQuotaExhausted"
        assert done

    async def test_unknown_model_rejected_before_stream(self, client):
        response = await client.post("/api/generate-stream", json={"prompt": "x", "model": "gpt-9"})

        assert response.status_code == 400
        assert response.json() == {"error": {"kind": "InvalidRequest", "message": "Invalid model: gpt-9"}}

    async def test_blank_prompt_rejected(self, client):
        response = await client.post("/api/generate-stream", json={"prompt": "  "})

        assert response.status_code == 400
        assert response.json() == {"error": {"kind": "InvalidRequest", "message": "Prompt is required"}}

    async def test_missing_prompt_rejected(self, client):
        response = await client.post("/api/generate-stream", json={})

        assert response.status_code == 400
        assert response.json()["error"]["kind"] == "InvalidRequest"

    async def test_tier_denied(self, client):
        response = await client.post(
            "/api/generate-stream",
            json={"prompt": "x", "model": "claude-3-opus"},
            headers={"X-Subscription-Tier": "pro"},
        )

        assert response.status_code == 403
        assert response.json()["error"]["kind"] == "AuthorizationDenied"

    async def test_tier_allowed(self, client):
        response = await client.post(
            "/api/generate-stream",
            json={"prompt": "counter", "model": "claude-3-sonnet"},
            headers={"X-Subscription-Tier": "pro"},
        )

        assert response.status_code == 200


# ============================================================================
# POST /api/modify-code
# ============================================================================

ORIGINAL = "function App() {\n  return <div>Hello</div>;\n}"
REWRITE = "```tsx\nfunction App() {\n  return <div><div>Hello</div><button>Click me</button></div>;\n}\n```"


class TestModifyCode:
    async def test_streams_rewrite_with_modify_prompt(self, client, use_llm):
        llm = MockLLM(text=REWRITE, chunk_size=9)
        use_llm(llm)

        response = await client.post("/api/modify-code", json={"code": ORIGINAL, "instruction": "Add a button"})
        events, done = parse_stream(response.text)

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/event-stream")
        chars = [e for e in events if e["type"] == "char"]
        assert "".join(e["char"] for e in chars) == REWRITE
        assert events[-1]["type"] == "complete"
        assert "<button>Click me</button>" in events[-1]["project"]["files"][ENTRY_FILE]
        assert llm.last_system.startswith("You are a code modification assistant.")
        assert done

    async def test_unusable_completion_keeps_original(self, client, use_llm):
        use_llm(MockLLM(text="Sorry, I can't help with that."))

        response = await client.post("/api/modify-code", json={"code": ORIGINAL, "instruction": "Add a button"})
        events, _ = parse_stream(response.text)

        assert events[-1]["type"] == "complete"
        assert events[-1]["project"]["files"][ENTRY_FILE] == ORIGINAL

    async def test_upstream_failure_is_error_event(self, client, use_llm):
        use_llm(MockLLM(fail_with=UpstreamQuotaExhaustedError()))

        response = await client.post("/api/modify-code", json={"code": ORIGINAL, "instruction": "Add a button"})
        events, done = parse_stream(response.text)

        assert [e["type"] for e in events] == ["error"]
        assert events[0]["kind"] == "UpstreamQuotaExhausted"
        assert done

    @pytest.mark.parametrize(
        "body,message",
        [
            ({"code": "  ", "instruction": "Add a button"}, "Code is required"),
            ({"code": ORIGINAL, "instruction": " \n"}, "Instruction is required"),
        ],
    )
    async def test_blank_fields_rejected(self, client, body, message):
        response = await client.post("/api/modify-code", json=body)

        assert response.status_code == 400
        assert response.json() == {"error": {"kind": "InvalidRequest", "message": message}}

    async def test_tier_denied(self, client):
        response = await client.post(
            "/api/modify-code",
            json={"code": ORIGINAL, "instruction": "Add a button", "modelId": "claude-3-opus"},
            headers={"X-Subscription-Tier": "free"},
        )

        assert response.status_code == 403
        assert response.json()["error"]["kind"] == "AuthorizationDenied"


# ============================================================================
# POST /api/generate
# ============================================================================


class TestGenerate:
    async def test_returns_project(self, client):
        response = await client.post("/api/generate", json={"prompt": "counter"})

        assert response.status_code == 200
        files = response.json()["project"]["files"]
        assert set(files) == {ENTRY_FILE, "src/index.css", "package.json"}
        assert "useState" in files[ENTRY_FILE]

    async def test_upstream_failure_uses_status(self, client, use_llm):
        use_llm(MockLLM(fail_with=UpstreamQuotaExhaustedError()))

        response = await client.post("/api/generate", json={"prompt": "anything"})

        assert response.status_code == 402
        assert response.json()["error"]["kind"] == "UpstreamQuotaExhausted"


# ============================================================================
# GET /api/models
# ============================================================================


async def test_list_models(client):
    response = await client.get("/api/models")

    assert response.status_code == 200
    models = {m["id"]: m for m in response.json()}
    assert len(models) == 6
    assert models["deepseek-chat"]["tiers"] == ["free", "basic", "pro", "premium"]
    assert models["claude-3-opus"]["provider"] == "Anthropic"
