"""Command line entry point for syncing Kindle clippings into a Notion database."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Iterable, List

from notion_highlights.config import SyncConfig, load_config, load_environment
from notion_highlights.models import BookGroup
from notion_highlights.notion import NotionApiError, NotionClient
from notion_highlights.parsers import MyClippingsParser, books_with_notes
from notion_highlights.storage import SyncCache, export_grouped_clippings
from notion_highlights.sync import NotionSync


def _parse_args(argv: Iterable[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("--config", type=Path, help="Path to JSON configuration file", default=None)
    parser.add_argument("--clippings", type=Path, help="Path to 'My Clippings.txt'", default=None)
    parser.add_argument("--export", type=Path, help="Where to write the grouped clippings JSON", default=None)
    parser.add_argument("--cache", type=Path, help="Path to the sync state file", default=None)
    parser.add_argument("--database-id", help="Notion database holding the book pages", default=None)
    parser.add_argument("--dry-run", action="store_true", help="Report unsynced highlights without contacting Notion")
    parser.add_argument(
        "--list", action="store_true", dest="list_only", help="Print per-book stats and stop"
    )
    parser.add_argument(
        "--with-notes", action="store_true", help="Print only the highlights that carry a note"
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Show debug logging")
    return parser.parse_args(list(argv))


def _combine_config(args: argparse.Namespace) -> SyncConfig:
    try:
        file_config = load_config(args.config)
    except FileNotFoundError as exc:  # pragma: no cover - user error
        raise SystemExit(f"Configuration file not found: {args.config}") from exc
    except OSError as exc:  # pragma: no cover - user error
        raise SystemExit(f"Failed to read configuration file: {exc}") from exc
    config = SyncConfig.from_mapping(file_config)

    load_environment()
    config.apply_environment()

    if args.clippings is not None:
        config.clippings_path = args.clippings
    if args.export is not None:
        config.export_path = args.export
    if args.cache is not None:
        config.cache_path = args.cache
    if args.database_id is not None:
        config.database_id = args.database_id
    if args.dry_run:
        config.dry_run = True
    return config


def _print_stats(books: List[BookGroup]) -> None:
    for book in books:
        print("--------------------------------------")
        print(f"Title: {book.title}")
        print(f"Author: {book.author}")
        print(f"Highlights Count: {len(book.highlights)}")
    print("--------------------------------------")


def _print_notes(books: List[BookGroup]) -> None:
    for book in books_with_notes(books):
        print(f"{book.title} ({book.author})")
        for highlight in book.highlights:
            quote = highlight.text or "(no highlight text)"
            print(f"  p.{highlight.page} loc.{highlight.location}: {quote}")
            print(f"    Note: {highlight.note}")


def main(argv: Iterable[str] | None = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(levelname)s %(name)s: %(message)s",
    )
    config = _combine_config(args)

    parser = MyClippingsParser()
    try:
        books = parser.parse(config.clippings_path)
    except OSError as exc:
        print(f"Failed to read clippings from {config.clippings_path}: {exc}")
        return 1

    if not books:
        print("No highlights found in the provided clippings.")
        return 1

    export_grouped_clippings(books, config.export_path)
    total = sum(len(book.highlights) for book in books)
    print(f"Found {total} highlights across {len(books)} books ({parser.last_skipped} malformed skipped).")
    print(f"Grouped clippings written to {config.export_path}.")
    _print_stats(books)

    if args.with_notes:
        _print_notes(books)

    if args.list_only:
        return 0

    cache = SyncCache.load(config.cache_path)

    if config.dry_run:
        unsynced = cache.unsynced_books(books)
        for book in unsynced:
            print(
                f"[DRY-RUN] Would sync {len(book.highlights)} highlight(s) for {book.title!r} "
                f"({cache.synced_count(book.title)} already synced)."
            )
        if not unsynced:
            print("[DRY-RUN] Every book is already synced.")
        print("Dry-run complete; nothing was sent to Notion.")
        return 0

    missing = config.missing_credentials()
    if missing:
        raise SystemExit(f"Missing configuration: {', '.join(missing)}")

    client = NotionClient(config.notion_token, version=config.notion_version)
    syncer = NotionSync(client, cache, config.database_id, batch_delay=config.batch_delay)
    try:
        report = syncer.sync_highlights(books)
    except (NotionApiError, ValueError, OSError) as exc:
        print(f"Failed to sync highlights: {exc}")
        return 1

    print(
        f"Sync complete: {report.highlights_synced} highlight(s) sent for {len(report.books_synced)} book(s)."
    )
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
