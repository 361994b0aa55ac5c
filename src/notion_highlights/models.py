"""Data models for Kindle clippings synchronization."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional


@dataclass(frozen=True)
class RawEntry:
    """A single record from ``My Clippings.txt`` after classification."""

    title: str
    author: str
    page: str
    location: str
    body: str
    is_note: bool


@dataclass
class PendingHighlight:
    """A highlight waiting for a note that may annotate it."""

    title: str
    author: str
    page: str
    location: str
    text: str
    order: int = 0


@dataclass(frozen=True)
class ReconciledHighlight:
    """A highlight combined with its note, if one was found."""

    text: str
    note: Optional[str]
    page: str
    location: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "text": self.text,
            "note": self.note,
            "page": self.page,
            "location": self.location,
        }


@dataclass(frozen=True)
class Clipping:
    """A reconciled highlight tagged with the book it belongs to."""

    title: str
    author: str
    highlight: ReconciledHighlight


@dataclass
class BookGroup:
    """Grouping of highlights for a single book."""

    title: str
    author: str
    highlights: List[ReconciledHighlight] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "title": self.title,
            "author": self.author,
            "highlights": [highlight.to_dict() for highlight in self.highlights],
        }


@dataclass
class SyncRecord:
    """Number of highlights already delivered to Notion for a book."""

    title: str
    author: str
    highlight_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"author": self.author, "highlightCount": self.highlight_count}

    @classmethod
    def from_mapping(cls, title: str, data: Dict[str, Any]) -> "SyncRecord":
        return cls(
            title=title,
            author=str(data.get("author") or ""),
            highlight_count=int(data.get("highlightCount") or 0),
        )
