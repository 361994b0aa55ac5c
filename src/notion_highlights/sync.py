"""Incremental delivery of book highlights to a Notion database."""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Sequence

from .blocks import MAX_BLOCKS_PER_REQUEST, MAX_TEXT_LENGTH, format_blocks
from .models import BookGroup, ReconciledHighlight
from .notion import CreatePageParams, NotionApiError, title_filter
from .storage import SyncCache

logger = logging.getLogger(__name__)

BATCH_DELAY_SECONDS = 0.5


@dataclass
class SyncReport:
    """Summary of a completed sync run."""

    books_synced: List[str] = field(default_factory=list)
    highlights_synced: int = 0


class NotionSync:
    """Push unsynced highlights to Notion, one book and one batch at a time.

    The cache entry for a book is only advanced once every pending highlight
    of that book has been delivered. A failure part way through a book leaves
    the entry untouched, so the next run resends that book from the old
    cursor even if some of its blocks already reached Notion.
    """

    def __init__(
        self,
        client: Any,
        cache: SyncCache,
        database_id: str,
        *,
        batch_delay: float = BATCH_DELAY_SECONDS,
        max_blocks: int = MAX_BLOCKS_PER_REQUEST,
        max_text_length: int = MAX_TEXT_LENGTH,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.client = client
        self.cache = cache
        self.database_id = database_id
        self.batch_delay = batch_delay
        self.max_blocks = max_blocks
        self.max_text_length = max_text_length
        self._sleep = sleep

    def get_id_from_book_name(self, book_name: str) -> Optional[str]:
        response = self.client.query_database(self.database_id, title_filter(book_name))
        results = response.get("results") or []
        if not results:
            return None
        return str(results[0]["id"])

    def sync_highlights(self, books: Iterable[BookGroup]) -> SyncReport:
        report = SyncReport()
        pending = [(book, self._unsynced(book)) for book in books]
        pending = [(book, remaining) for book, remaining in pending if remaining]
        if not pending:
            logger.info("Every book is already synced")
            return report

        logger.info("Syncing %d book(s) to Notion", len(pending))
        try:
            for book, remaining in pending:
                self._sync_book(book, remaining)
                self.cache.mark_synced(book)
                self.cache.save()
                report.books_synced.append(book.title)
                report.highlights_synced += len(remaining)
        except Exception:
            logger.exception("Failed to sync highlights")
            raise
        logger.info(
            "Synced %d highlight(s) across %d book(s)",
            report.highlights_synced,
            len(report.books_synced),
        )
        return report

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _unsynced(self, book: BookGroup) -> List[ReconciledHighlight]:
        return list(book.highlights[self.cache.synced_count(book.title):])

    def _sync_book(self, book: BookGroup, highlights: Sequence[ReconciledHighlight]) -> None:
        logger.info("Syncing book: %s (%d new highlight(s))", book.title, len(highlights))
        page_id = self.get_id_from_book_name(book.title)
        if page_id is not None:
            logger.info("Book already present, appending highlights")
            self._append_batches(page_id, highlights, 0)
            return

        logger.info("Book not present, creating Notion page")
        processed = self._create_book_page(book, highlights)
        if processed < len(highlights):
            page_id = self.get_id_from_book_name(book.title)
            if page_id is None:
                raise NotionApiError(f"Created page for {book.title!r} could not be found")
            self._pause()
            self._append_batches(page_id, highlights, processed)

    def _create_book_page(self, book: BookGroup, highlights: Sequence[ReconciledHighlight]) -> int:
        batch = format_blocks(highlights, self.max_blocks, self.max_text_length)
        logger.info(
            "Initial page will contain %d highlight(s) (%d blocks)",
            batch.processed_count,
            len(batch.blocks),
        )
        self.client.create_page(
            CreatePageParams(
                parent_database_id=self.database_id,
                title=book.title,
                author=book.author,
                book_name=book.title,
                children=batch.blocks,
            )
        )
        return batch.processed_count

    def _append_batches(self, page_id: str, highlights: Sequence[ReconciledHighlight], start: int) -> None:
        cursor = start
        while cursor < len(highlights):
            batch = format_blocks(highlights[cursor:], self.max_blocks, self.max_text_length)
            logger.info(
                "Syncing batch of %d highlight(s) (%d to %d)",
                batch.processed_count,
                cursor + 1,
                cursor + batch.processed_count,
            )
            self.client.append_block_children(page_id, batch.blocks)
            cursor += batch.processed_count
            if cursor < len(highlights):
                self._pause()

    def _pause(self) -> None:
        if self.batch_delay > 0:
            self._sleep(self.batch_delay)
