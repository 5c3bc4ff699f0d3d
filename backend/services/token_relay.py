"""
Token relay — forwards a live completion stream to the client one character
at a time.

Each request gets one TokenRelay feeding one EventChannel:

    STREAMING → FINALIZING → CLOSED     (upstream finished, complete event)
    STREAMING → ERRORED → CLOSED        (upstream failed, one error event)
    STREAMING → CLOSED                  (cancelled, nothing further emitted)

The channel always ends with the [DONE] sentinel once the relay closes it.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from enum import Enum

from backend.config import settings
from backend.models.generation import CharEvent, CompleteEvent, ErrorEvent, ProjectPayload
from backend.services.errors import UpstreamTransportError, classify_upstream_error
from backend.services.project_builder import build_project
from backend.services.sse import encode_done, encode_event

logger = logging.getLogger(__name__)


class RelayState(str, Enum):
    STREAMING = "streaming"
    FINALIZING = "finalizing"
    ERRORED = "errored"
    CLOSED = "closed"


_TRANSITIONS: dict[RelayState, frozenset[RelayState]] = {
    RelayState.STREAMING: frozenset({RelayState.FINALIZING, RelayState.ERRORED, RelayState.CLOSED}),
    RelayState.FINALIZING: frozenset({RelayState.ERRORED, RelayState.CLOSED}),
    RelayState.ERRORED: frozenset({RelayState.CLOSED}),
    RelayState.CLOSED: frozenset(),
}


class RelayStateError(RuntimeError):
    """An illegal relay state transition. Always a programming error."""


# ---------------------------------------------------------------------------
# Event channel
# ---------------------------------------------------------------------------

_END = object()


class EventChannel:
    """
    Ordered, append-only delivery events for one client.

    send() never blocks. Once the channel is closed further sends are dropped
    and report False, so a relay can tell that nobody is listening anymore.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[CharEvent | CompleteEvent | ErrorEvent | object] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, event: CharEvent | CompleteEvent | ErrorEvent) -> bool:
        if self._closed:
            return False
        self._queue.put_nowait(event)
        return True

    def close(self) -> None:
        """Stop accepting events. Readers drain what was already sent."""
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_END)

    def __aiter__(self) -> AsyncIterator[CharEvent | CompleteEvent | ErrorEvent]:
        return self._events()

    async def _events(self) -> AsyncIterator[CharEvent | CompleteEvent | ErrorEvent]:
        while True:
            item = await self._queue.get()
            if item is _END:
                return
            yield item  # type: ignore[misc]

    async def frames(self) -> AsyncIterator[str]:
        """Wire frames for every event, then the [DONE] sentinel."""
        async for event in self:
            yield encode_event(event)
        yield encode_done()


# ---------------------------------------------------------------------------
# Relay
# ---------------------------------------------------------------------------


class TokenRelay:
    """Relays one upstream completion stream into one EventChannel."""

    def __init__(
        self,
        char_delay_ms: int | None = None,
        finalize: Callable[[str], ProjectPayload] = build_project,
    ):
        """
        Args:
            char_delay_ms: Pacing delay between characters (STREAM_CHAR_DELAY_MS
                when None, 0 disables pacing)
            finalize: Builds the project from the accumulated completion text
        """
        delay = settings.STREAM_CHAR_DELAY_MS if char_delay_ms is None else char_delay_ms
        self.char_delay = max(delay, 0) / 1000
        self.finalize = finalize
        self.state = RelayState.STREAMING
        self.total_length = 0
        self._started = False

    def _transition(self, new_state: RelayState) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise RelayStateError(f"Illegal relay transition {self.state.value} -> {new_state.value}")
        self.state = new_state

    def _close(self, channel: EventChannel) -> None:
        if self.state is not RelayState.CLOSED:
            self._transition(RelayState.CLOSED)
        channel.close()

    async def run(
        self,
        deltas: AsyncIterator[str],
        channel: EventChannel,
        cancel: asyncio.Event | None = None,
    ) -> RelayState:
        """
        Consume deltas until upstream ends, fails, or the request is cancelled.

        Returns the state the relay reached before closing (FINALIZING,
        ERRORED, or STREAMING when cancelled).
        """
        if self._started:
            raise RelayStateError("TokenRelay.run() may only be called once")
        self._started = True
        cancel = cancel or asyncio.Event()
        buffer: list[str] = []

        try:
            async for delta in deltas:
                if cancel.is_set():
                    break
                for char in delta:
                    if cancel.is_set():
                        break
                    self.total_length += 1
                    buffer.append(char)
                    if not channel.send(CharEvent(char=char, total_length=self.total_length)):
                        # Client went away
                        cancel.set()
                        break
                    if self.char_delay:
                        await asyncio.sleep(self.char_delay)
                if cancel.is_set():
                    break
        except asyncio.CancelledError:
            logger.info("token_relay: task cancelled chars=%d", self.total_length)
            self._close(channel)
            raise
        except Exception as exc:
            error = classify_upstream_error(exc)
            logger.warning(
                "token_relay: upstream failed kind=%s status=%d chars=%d error=%s",
                error.kind.value,
                error.status_code,
                self.total_length,
                exc,
            )
            self._fail(channel, error.to_event())
            return RelayState.ERRORED
        finally:
            await _close_upstream(deltas)

        if cancel.is_set():
            logger.info("token_relay: cancelled chars=%d", self.total_length)
            self._close(channel)
            return RelayState.STREAMING

        self._transition(RelayState.FINALIZING)
        try:
            project = self.finalize("".join(buffer))
        except Exception:
            logger.exception("token_relay: finalize failed chars=%d", self.total_length)
            self._fail(channel, UpstreamTransportError("Failed to build the generated project").to_event())
            return RelayState.ERRORED

        channel.send(CompleteEvent(project=project))
        logger.info("token_relay: complete chars=%d files=%d", self.total_length, len(project.files))
        self._close(channel)
        return RelayState.FINALIZING

    def _fail(self, channel: EventChannel, event: ErrorEvent) -> None:
        self._transition(RelayState.ERRORED)
        channel.send(event)
        self._close(channel)


async def _close_upstream(deltas: AsyncIterator[str]) -> None:
    aclose = getattr(deltas, "aclose", None)
    if aclose is not None:
        await aclose()
