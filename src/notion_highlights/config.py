"""Configuration helpers for the Notion highlight synchroniser."""
from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

from dotenv import load_dotenv

from .notion import NOTION_VERSION
from .sync import BATCH_DELAY_SECONDS

TOKEN_ENV = "NOTION_TOKEN"
DATABASE_ENV = "BOOK_DB_ID"


@dataclass
class SyncConfig:
    """Holds configuration for syncing highlights."""

    clippings_path: Path = Path("resources/My Clippings.txt")
    export_path: Path = Path("data/grouped-clippings.json")
    cache_path: Path = Path("cache/sync.json")
    notion_token: Optional[str] = None
    database_id: Optional[str] = None
    notion_version: str = NOTION_VERSION
    batch_delay: float = BATCH_DELAY_SECONDS
    dry_run: bool = False

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "SyncConfig":
        kwargs: Dict[str, Any] = {}
        for key in ("clippings_path", "export_path", "cache_path"):
            if data.get(key):
                kwargs[key] = Path(data[key])
        for key in ("notion_token", "database_id", "notion_version"):
            if data.get(key):
                kwargs[key] = str(data[key])
        if data.get("batch_delay") is not None:
            kwargs["batch_delay"] = float(data["batch_delay"])
        if "dry_run" in data:
            kwargs["dry_run"] = bool(data["dry_run"])
        return cls(**kwargs)

    def apply_environment(self, environ: Optional[Mapping[str, str]] = None) -> "SyncConfig":
        """Override credentials with ``NOTION_TOKEN`` and ``BOOK_DB_ID`` when set."""

        env = os.environ if environ is None else environ
        token = (env.get(TOKEN_ENV) or "").strip()
        database_id = (env.get(DATABASE_ENV) or "").strip()
        if token:
            self.notion_token = token
        if database_id:
            self.database_id = database_id
        return self

    def missing_credentials(self) -> list[str]:
        missing = []
        if not self.notion_token:
            missing.append(TOKEN_ENV)
        if not self.database_id:
            missing.append(DATABASE_ENV)
        return missing


def load_config(path: Optional[Path]) -> Dict[str, Any]:
    """Load a JSON configuration file if provided."""

    if path is None:
        return {}
    with path.expanduser().resolve().open("r", encoding="utf-8") as handle:
        return json.load(handle)


def load_environment(dotenv_path: Optional[Path] = None) -> None:
    """Populate ``os.environ`` from a ``.env`` file without overriding set values."""

    load_dotenv(dotenv_path=dotenv_path, override=False)
