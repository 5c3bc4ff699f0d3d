"""
Preview refresher — builds preview documents and keeps one on disk.

Manual refreshes build immediately. Auto refreshes wait for a quiet period
and are dropped when a manual refresh is already in flight. Builds never
overlap, and the previous document is removed before a new one is stored.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from pathlib import Path

from uiforge_cli.client import ApiClient

logger = logging.getLogger(__name__)

DEBOUNCE_SECONDS = 1.5


class PreviewRefresher:
    def __init__(
        self,
        client: ApiClient,
        output_dir: Path,
        device: str = "desktop",
        debounce_seconds: float = DEBOUNCE_SECONDS,
    ):
        self.client = client
        self.output_dir = output_dir
        self.device = device
        self.debounce_seconds = debounce_seconds
        self.current: Path | None = None
        self.builds = 0
        self._lock = asyncio.Lock()
        self._manual_in_flight = False
        self._pending: asyncio.Task | None = None

    async def refresh(self, code: str, files: dict[str, str] | None = None) -> Path:
        """Build the preview now, cancelling any scheduled auto refresh."""
        self._cancel_pending()
        self._manual_in_flight = True
        try:
            return await self._build(code, files)
        finally:
            self._manual_in_flight = False

    def schedule(self, code: str, files: dict[str, str] | None = None) -> None:
        """Auto refresh once the code has been quiet for debounce_seconds."""
        self._cancel_pending()
        self._pending = asyncio.create_task(self._debounced(code, files))

    async def wait(self) -> Path | None:
        """Wait for a scheduled auto refresh, if any."""
        if self._pending is None:
            return self.current
        try:
            return await self._pending
        except asyncio.CancelledError:
            return self.current

    def release(self) -> None:
        """Remove the current preview document."""
        if self.current is not None:
            self.current.unlink(missing_ok=True)
            self.current = None

    async def _debounced(self, code: str, files: dict[str, str] | None) -> Path | None:
        await asyncio.sleep(self.debounce_seconds)
        if self._manual_in_flight:
            logger.info("refresher: auto refresh skipped, manual refresh in flight")
            return None
        return await self._build(code, files)

    async def _build(self, code: str, files: dict[str, str] | None) -> Path:
        async with self._lock:
            html = await self.client.build_preview(code, files, self.device)
            self.release()
            self.output_dir.mkdir(parents=True, exist_ok=True)
            path = self.output_dir / f"preview-{uuid.uuid4().hex[:12]}.html"
            path.write_text(html, encoding="utf-8")
            self.current = path
            self.builds += 1
            logger.info("refresher: preview written path=%s bytes=%d", path, len(html))
            return path

    def _cancel_pending(self) -> None:
        if self._pending is not None and not self._pending.done():
            self._pending.cancel()
        self._pending = None
