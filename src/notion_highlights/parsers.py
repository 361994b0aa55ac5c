"""Parsers that turn a Kindle ``My Clippings.txt`` export into book groups."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .models import BookGroup, Clipping, PendingHighlight, RawEntry, ReconciledHighlight
from .storage import read_clippings_file

logger = logging.getLogger(__name__)

BOM = "\ufeff"
SEPARATOR_PATTERN = re.compile(r"^={3,}\r*\n", re.MULTILINE)
HEADER_PATTERN = re.compile(r"(.+) \((.+)\)")
META_PATTERN = re.compile(r"page (\d+) \| location (\d+(?:-\d+)?)", re.IGNORECASE)
NOTE_MARKER = "Your Note"


@dataclass
class ReconcileResult:
    """Reconciled clippings in output order and the number of skipped records."""

    clippings: List[Clipping] = field(default_factory=list)
    skipped: int = 0


def format_author_name(author: str) -> str:
    """Return ``author`` as ``First Last`` when written as ``Last, First``."""

    author = author.strip()
    if "," not in author:
        return author
    parts = [part.strip() for part in author.split(",") if part.strip()]
    return " ".join(reversed(parts))


def segment_clippings(text: str) -> List[str]:
    """Split a raw export into record strings.

    Whatever follows the last separator is trailing content and is dropped,
    as are records holding nothing but whitespace.
    """

    cleaned = text.replace(BOM, "")
    segments = SEPARATOR_PATTERN.split(cleaned)[:-1]
    return [segment for segment in segments if segment.strip()]


def parse_entry(record: str) -> Optional[RawEntry]:
    """Classify a single record, returning ``None`` when it is malformed."""

    lines = [line.rstrip("\r") for line in record.strip().split("\n")]
    if len(lines) < 3:
        return None

    header_match = HEADER_PATTERN.match(lines[0])
    if not header_match:
        return None

    meta_line = lines[1]
    meta_match = META_PATTERN.search(meta_line)
    if not meta_match:
        return None

    return RawEntry(
        title=header_match.group(1).strip(),
        author=format_author_name(header_match.group(2)),
        page=meta_match.group(1),
        location=meta_match.group(2),
        body="\n".join(lines[2:]).strip(),
        is_note=NOTE_MARKER in meta_line,
    )


def _take_matching_highlight(
    pending: Dict[Tuple[str, str], List[PendingHighlight]], note: RawEntry
) -> Optional[PendingHighlight]:
    candidates = pending.get((note.title, note.page))
    if not candidates:
        return None
    for index, candidate in enumerate(candidates):
        # A note on a ranged highlight only cites the range's end.
        if candidate.location.endswith(note.location) or candidate.location == note.location:
            del candidates[index]
            if not candidates:
                del pending[(note.title, note.page)]
            return candidate
    return None


def reconcile(records: Iterable[str]) -> ReconcileResult:
    """Match notes to the highlights they annotate.

    Highlights are held back until either a note claims them or the input
    ends. Notes that find no highlight are kept as orphans with empty text.
    """

    result = ReconcileResult()
    pending: Dict[Tuple[str, str], List[PendingHighlight]] = {}
    order = 0

    for record in records:
        if not record.strip():
            continue
        entry = parse_entry(record)
        if entry is None:
            result.skipped += 1
            logger.debug("Skipping malformed clipping: %r", record.strip()[:80])
            continue

        if not entry.is_note:
            pending.setdefault((entry.title, entry.page), []).append(
                PendingHighlight(
                    title=entry.title,
                    author=entry.author,
                    page=entry.page,
                    location=entry.location,
                    text=entry.body,
                    order=order,
                )
            )
            order += 1
            continue

        match = _take_matching_highlight(pending, entry)
        if match is not None:
            highlight = ReconciledHighlight(
                text=match.text, note=entry.body, page=entry.page, location=match.location
            )
        else:
            highlight = ReconciledHighlight(
                text="", note=entry.body, page=entry.page, location=entry.location
            )
        result.clippings.append(Clipping(title=entry.title, author=entry.author, highlight=highlight))

    leftovers = sorted(
        (item for items in pending.values() for item in items), key=lambda item: item.order
    )
    for item in leftovers:
        result.clippings.append(
            Clipping(
                title=item.title,
                author=item.author,
                highlight=ReconciledHighlight(
                    text=item.text, note=None, page=item.page, location=item.location
                ),
            )
        )

    if result.skipped:
        logger.warning("Skipped %d malformed clipping(s)", result.skipped)
    return result


def group_clippings(items: Iterable[Union[Clipping, BookGroup]]) -> List[BookGroup]:
    """Group clippings by title and drop highlights with repeated text.

    Book groups are accepted too, so the output can be grouped again.
    """

    groups: Dict[str, BookGroup] = {}
    for item in items:
        if isinstance(item, BookGroup):
            highlights = list(item.highlights)
        else:
            highlights = [item.highlight]
        group = groups.get(item.title)
        if group is None:
            group = groups[item.title] = BookGroup(title=item.title, author=item.author)
        group.highlights.extend(highlights)

    for group in groups.values():
        seen = set()
        unique: List[ReconciledHighlight] = []
        for highlight in group.highlights:
            if highlight.text in seen:
                continue
            seen.add(highlight.text)
            unique.append(highlight)
        group.highlights = unique
    return list(groups.values())


def books_with_notes(groups: Iterable[BookGroup]) -> List[BookGroup]:
    filtered: List[BookGroup] = []
    for group in groups:
        noted = [highlight for highlight in group.highlights if highlight.note is not None]
        if noted:
            filtered.append(BookGroup(title=group.title, author=group.author, highlights=noted))
    return filtered


class MyClippingsParser:
    """Parses the Kindle `My Clippings.txt` export into book groups."""

    def __init__(self) -> None:
        self.last_skipped = 0

    def parse_text(self, text: str) -> List[BookGroup]:
        result = reconcile(segment_clippings(text))
        self.last_skipped = result.skipped
        return group_clippings(result.clippings)

    def parse(self, path: Path) -> List[BookGroup]:
        return self.parse_text(read_clippings_file(path))
