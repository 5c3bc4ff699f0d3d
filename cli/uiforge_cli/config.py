"""
Configuration management for uiforge CLI.

Config structure (~/.uiforge/config.json):
  {
    "default_url": "http://localhost:8000",
    "default_model": "deepseek-chat",
    "tier": "pro"
  }

API URL resolution order:
  1. UIFORGE_API_URL environment variable
  2. --api-url command line flag (passed via api_url_override)
  3. default_url from config file
  4. Fallback: http://localhost:8000
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8000"
DEFAULT_MODEL = "deepseek-chat"


class Config:
    """Config manager for uiforge CLI."""

    def __init__(self, api_url_override: str | None = None, config_dir: Path | None = None):
        """
        Initialize config.

        Args:
            api_url_override: Optional --api-url flag value
            config_dir: Directory holding config.json (default ~/.uiforge)
        """
        self.config_dir = config_dir or Path.home() / ".uiforge"
        self.config_file = self.config_dir / "config.json"
        self._data: dict = {}
        self._api_url_override = api_url_override
        self._load()

    def _load(self):
        """Load config from disk."""
        if not self.config_file.exists():
            return
        try:
            with open(self.config_file) as f:
                self._data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("config: ignoring unreadable config path=%s error=%s", self.config_file, e)
            self._data = {}

    def _save(self):
        """Save config to disk."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_file, "w") as f:
            json.dump(self._data, f, indent=2)

    @property
    def api_url(self) -> str:
        """Get current API URL (see module docstring for resolution order)."""
        env_url = os.environ.get("UIFORGE_API_URL")
        if env_url:
            return env_url.rstrip("/")

        if self._api_url_override:
            return self._api_url_override.rstrip("/")

        return self._data.get("default_url", DEFAULT_API_URL).rstrip("/")

    @property
    def default_url(self) -> str:
        return self._data.get("default_url", DEFAULT_API_URL)

    @default_url.setter
    def default_url(self, value: str):
        self._data["default_url"] = value.rstrip("/")
        self._save()

    @property
    def default_model(self) -> str:
        return self._data.get("default_model", DEFAULT_MODEL)

    @default_model.setter
    def default_model(self, value: str):
        self._data["default_model"] = value
        self._save()

    @property
    def tier(self) -> str | None:
        """Subscription tier sent as X-Subscription-Tier, if any."""
        return self._data.get("tier")

    @tier.setter
    def tier(self, value: str | None):
        if value:
            self._data["tier"] = value
        else:
            self._data.pop("tier", None)
        self._save()

    @property
    def preview_dir(self) -> Path:
        """Where preview documents are written."""
        return self.config_dir / "previews"
