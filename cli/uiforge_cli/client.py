"""HTTP client for uiforge API."""

from __future__ import annotations

import json
import logging
from collections.abc import AsyncIterator
from typing import Any

import httpx

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


class ApiError(Exception):
    """A request the server rejected before any stream started."""

    def __init__(self, status_code: int, kind: str, message: str):
        super().__init__(message)
        self.status_code = status_code
        self.kind = kind
        self.message = message

    @classmethod
    def from_response(cls, response: httpx.Response) -> ApiError:
        """Build from an error body: {"error": {"kind", "message"}} or FastAPI's {"detail"}."""
        try:
            body = response.json()
        except ValueError:
            body = {}
        error = body.get("error") if isinstance(body, dict) else None
        if isinstance(error, dict):
            return cls(response.status_code, error.get("kind", "UpstreamTransportFailure"), error.get("message", ""))
        detail = body.get("detail") if isinstance(body, dict) else None
        return cls(response.status_code, "UpstreamTransportFailure", str(detail or response.reason_phrase))


class ApiClient:
    """HTTP client for uiforge API."""

    def __init__(
        self,
        api_url: str,
        tier: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_url = api_url.rstrip("/")
        self.tier = tier
        self.async_client = httpx.AsyncClient(timeout=60.0, transport=transport)

    def _headers(self, accept: str = "application/json") -> dict:
        """Build request headers."""
        headers = {"Content-Type": "application/json", "Accept": accept}
        if self.tier:
            headers["X-Subscription-Tier"] = self.tier
        return headers

    def stream_generation(self, prompt: str, model: str) -> AsyncIterator[dict[str, Any]]:
        """Request a generation and stream its delivery events."""
        return self._stream_events("/api/generate-stream", {"prompt": prompt, "modelId": model})

    def stream_modification(self, code: str, instruction: str, model: str) -> AsyncIterator[dict[str, Any]]:
        """Request a rewrite of existing code and stream its delivery events."""
        return self._stream_events("/api/modify-code", {"code": code, "instruction": instruction, "modelId": model})

    async def _stream_events(self, path: str, body: dict[str, Any]) -> AsyncIterator[dict[str, Any]]:
        """
        POST a streaming request and yield its delivery events.

        Yields event dicts ({"type": "char" | "complete" | "error", ...}) until
        the [DONE] sentinel.

        Raises:
            ApiError: The request was rejected before the stream started
            httpx.HTTPError: Transport failure
        """
        url = f"{self.api_url}{path}"

        async with self.async_client.stream(
            "POST",
            url,
            json=body,
            headers=self._headers(accept="text/event-stream"),
        ) as response:
            if response.is_error:
                await response.aread()
                raise ApiError.from_response(response)

            async for line in response.aiter_lines():
                line = line.strip()

                if not line.startswith("data: "):
                    continue

                data = line[6:]
                if data == DONE_SENTINEL:
                    return
                try:
                    event = json.loads(data)
                except json.JSONDecodeError:
                    logger.warning("client: skipping malformed event data=%r", data[:80])
                    continue
                yield event
    async def build_preview(self, code: str, files: dict[str, str] | None = None, device: str = "desktop") -> str:
        """Fetch the preview document for a component."""
        url = f"{self.api_url}/api/preview-code"
        response = await self.async_client.post(
            url,
            json={"code": code, "files": files or {}, "device": device},
            headers=self._headers(accept="text/html"),
        )
        if response.is_error:
            raise ApiError.from_response(response)
        return response.text

    async def list_models(self) -> list[dict[str, Any]]:
        """Get the model registry."""
        response = await self.async_client.get(f"{self.api_url}/api/models", headers=self._headers())
        if response.is_error:
            raise ApiError.from_response(response)
        return response.json()

    async def aclose(self):
        """Close client."""
        await self.async_client.aclose()
