"""Helpers for reading exports and persisting sync state."""
from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from .models import BookGroup, SyncRecord


def read_clippings_file(path: Path) -> str:
    return path.expanduser().resolve().read_text(encoding="utf-8-sig")


def write_json(data: Any, path: Path) -> None:
    """Serialise ``data`` to ``path`` as indented UTF-8 JSON."""

    path = path.expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as handle:
        json.dump(data, handle, indent=2, ensure_ascii=False)
        handle.write("\n")


def export_grouped_clippings(books: Iterable[BookGroup], path: Path) -> None:
    write_json([book.to_dict() for book in books], path)


class SyncCache:
    """Per-book count of highlights already delivered to Notion.

    The file is a JSON object keyed by book title; each value holds the
    author and the ``highlightCount`` reached at the last complete sync.
    """

    def __init__(self, path: Path, records: Optional[Dict[str, SyncRecord]] = None) -> None:
        self.path = path
        self.records: Dict[str, SyncRecord] = dict(records or {})

    @classmethod
    def load(cls, path: Path) -> "SyncCache":
        path = path.expanduser()
        if not path.exists():
            return cls(path)
        with path.open("r", encoding="utf-8") as handle:
            raw = json.load(handle)
        if not isinstance(raw, dict):
            raise ValueError(f"Sync cache {path} must contain a JSON object")
        records = {
            str(title): SyncRecord.from_mapping(str(title), value)
            for title, value in raw.items()
            if isinstance(value, dict)
        }
        return cls(path, records)

    def save(self) -> None:
        write_json({title: record.to_dict() for title, record in self.records.items()}, self.path)

    def record_for(self, title: str) -> Optional[SyncRecord]:
        return self.records.get(title)

    def synced_count(self, title: str) -> int:
        record = self.records.get(title)
        return record.highlight_count if record else 0

    def unsynced_books(self, books: Iterable[BookGroup]) -> List[BookGroup]:
        """Return each book cut down to the highlights not yet delivered."""

        pending: List[BookGroup] = []
        for book in books:
            remaining = book.highlights[self.synced_count(book.title):]
            if remaining:
                pending.append(BookGroup(title=book.title, author=book.author, highlights=list(remaining)))
        return pending

    def mark_synced(self, book: BookGroup) -> SyncRecord:
        """Record every highlight of ``book`` as delivered."""

        count = len(book.highlights)
        record = self.records.get(book.title)
        if record is None:
            record = self.records[book.title] = SyncRecord(title=book.title, author=book.author)
        record.author = book.author
        record.highlight_count = max(record.highlight_count, count)
        return record
