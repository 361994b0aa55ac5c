"""Utilities for syncing Kindle clippings into a Notion database."""

from .config import SyncConfig
from .models import BookGroup, ReconciledHighlight, SyncRecord
from .parsers import MyClippingsParser
from .sync import NotionSync

__all__ = [
    "SyncConfig",
    "BookGroup",
    "ReconciledHighlight",
    "SyncRecord",
    "MyClippingsParser",
    "NotionSync",
]
