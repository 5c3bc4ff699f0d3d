"""
Stream consumer — turns delivery events into a display buffer and a preview.

One run() or modify() per stream. Controls are disabled (busy) while a run is in
flight and re-enabled however it ends: completed, failed, or aborted.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any

import httpx

from uiforge_cli.client import ApiClient, ApiError
from uiforge_cli.refresher import PreviewRefresher

logger = logging.getLogger(__name__)

ENTRY_FILE = "src/App.tsx"


class ConsumerOutcome(str, Enum):
    COMPLETED = "completed"
    FAILED = "failed"
    ABORTED = "aborted"


# One suggestion per error kind; unknown kinds get the transport one.
SUGGESTIONS = {
    "InvalidRequest": "Check the prompt and model, then try again.",
    "AuthorizationDenied": "Choose a model included in your plan.",
    "UpstreamQuotaExhausted": "Top up the provider account, then try again.",
    "UpstreamAuthInvalid": "Check the server's API key configuration.",
    "UpstreamRateLimited": "Wait a moment, then try again.",
    "UpstreamTransportFailure": "Please try again.",
}


def format_error(kind: str | None, error: str | None, details: str | None) -> str:
    """One user-facing message for an error event or rejected request."""
    suggestion = SUGGESTIONS.get(kind or "", SUGGESTIONS["UpstreamTransportFailure"])
    summary = error or "Failed to generate code"
    if details and details != summary:
        summary = f"{summary}: {details}"
    return f"{summary.rstrip('.')}. {suggestion}"


@dataclass
class ConsumerResult:
    outcome: ConsumerOutcome
    text: str = ""
    project: dict[str, Any] | None = None
    preview_path: Path | None = None
    kind: str | None = None
    message: str | None = None


class StreamConsumer:
    """Reads one generation stream and requests its preview."""

    def __init__(
        self,
        client: ApiClient,
        refresher: PreviewRefresher | None = None,
        on_update: Callable[[str, str], None] | None = None,
    ):
        """
        Args:
            client: API client used for the stream
            refresher: Builds the preview once the project arrives
            on_update: Called with (char, buffer) after every char event
        """
        self.client = client
        self.refresher = refresher
        self.on_update = on_update
        self.buffer = ""
        self.project: dict[str, Any] | None = None
        self.busy = False
        self._task: asyncio.Task | None = None
        self._aborted = False

    async def run(self, prompt: str, model: str) -> ConsumerResult:
        return await self._consume(lambda: self.client.stream_generation(prompt, model))

    async def modify(self, code: str, instruction: str, model: str) -> ConsumerResult:
        """Stream a rewrite of code; same outcomes as run()."""
        return await self._consume(lambda: self.client.stream_modification(code, instruction, model))

    async def _consume(self, open_stream: Callable[[], AsyncIterator[dict[str, Any]]]) -> ConsumerResult:
        if self.busy:
            raise RuntimeError("A generation is already in flight")
        self.busy = True
        self.buffer = ""
        self.project = None
        self._aborted = False
        self._task = asyncio.current_task()

        try:
            async for event in open_stream():
                event_type = event.get("type")
                if event_type == "char":
                    self.buffer += event["char"]
                    if self.on_update:
                        self.on_update(event["char"], self.buffer)
                elif event_type == "complete":
                    return await self._complete(event["project"])
                elif event_type == "error":
                    return self._fail(event.get("kind"), event.get("error"), event.get("details"))
            return self._fail("UpstreamTransportFailure", "Stream ended unexpectedly", None)
        except asyncio.CancelledError:
            if not self._aborted:
                raise
            current = asyncio.current_task()
            if current is not None:
                current.uncancel()
            logger.info("consumer: aborted chars=%d", len(self.buffer))
            return ConsumerResult(ConsumerOutcome.ABORTED, text=self.buffer)
        except ApiError as e:
            return self._fail(e.kind, "Request rejected", e.message)
        except httpx.HTTPError as e:
            logger.warning("consumer: transport failed error=%s", e)
            return self._fail("UpstreamTransportFailure", "Connection to the server failed", str(e))
        finally:
            self.busy = False
            self._task = None

    def abort(self) -> bool:
        """Cancel the in-flight run. Returns False when nothing is running."""
        if self._task is None or self._task.done():
            return False
        self._aborted = True
        self._task.cancel()
        return True

    async def _complete(self, project: dict[str, Any]) -> ConsumerResult:
        self.project = project
        preview_path = None
        if self.refresher is not None:
            preview_path = await self.refresher.refresh(project["files"][ENTRY_FILE], project["files"])
        return ConsumerResult(ConsumerOutcome.COMPLETED, text=self.buffer, project=project, preview_path=preview_path)

    def _fail(self, kind: str | None, error: str | None, details: str | None) -> ConsumerResult:
        message = format_error(kind, error, details)
        logger.info("consumer: failed kind=%s", kind)
        return ConsumerResult(ConsumerOutcome.FAILED, text=self.buffer, kind=kind, message=message)
