import json
from pathlib import Path

import pytest

from notion_highlights.models import BookGroup, ReconciledHighlight, SyncRecord
from notion_highlights.storage import SyncCache, export_grouped_clippings, read_clippings_file


def make_book(count: int, title: str = "The Example Book") -> BookGroup:
    highlights = [
        ReconciledHighlight(text=f"Highlight {index}", note=None, page=str(index), location=str(index * 10))
        for index in range(count)
    ]
    return BookGroup(title=title, author="Jane Doe", highlights=highlights)


def test_missing_cache_file_is_empty(tmp_path: Path) -> None:
    cache = SyncCache.load(tmp_path / "cache" / "sync.json")

    assert cache.records == {}
    assert cache.synced_count("Anything") == 0


def test_unsynced_books_slices_from_cursor(tmp_path: Path) -> None:
    cache = SyncCache(tmp_path / "sync.json", {"The Example Book": SyncRecord("The Example Book", "Jane Doe", 2)})
    done = make_book(3, title="Finished Book")
    cache.mark_synced(done)

    unsynced = cache.unsynced_books([make_book(5), done])

    assert len(unsynced) == 1
    assert [h.text for h in unsynced[0].highlights] == ["Highlight 2", "Highlight 3", "Highlight 4"]


def test_mark_synced_never_decreases(tmp_path: Path) -> None:
    cache = SyncCache(tmp_path / "sync.json")
    cache.mark_synced(make_book(4))
    record = cache.mark_synced(make_book(2))

    assert record.highlight_count == 4


def test_cache_round_trips_through_json(tmp_path: Path) -> None:
    path = tmp_path / "cache" / "sync.json"
    cache = SyncCache(path)
    cache.mark_synced(make_book(3))
    cache.save()

    assert json.loads(path.read_text(encoding="utf-8")) == {
        "The Example Book": {"author": "Jane Doe", "highlightCount": 3}
    }
    reloaded = SyncCache.load(path)
    assert reloaded.record_for("The Example Book") == SyncRecord("The Example Book", "Jane Doe", 3)


def test_cache_rejects_non_object(tmp_path: Path) -> None:
    path = tmp_path / "sync.json"
    path.write_text("[]", encoding="utf-8")

    with pytest.raises(ValueError):
        SyncCache.load(path)


def test_export_grouped_clippings_writes_json_array(tmp_path: Path) -> None:
    path = tmp_path / "data" / "grouped-clippings.json"
    book = make_book(1)
    book.highlights.append(ReconciledHighlight(text="", note="Orphan", page="7", location="70"))

    export_grouped_clippings([book], path)

    assert json.loads(path.read_text(encoding="utf-8")) == [
        {
            "title": "The Example Book",
            "author": "Jane Doe",
            "highlights": [
                {"text": "Highlight 0", "note": None, "page": "0", "location": "0"},
                {"text": "", "note": "Orphan", "page": "7", "location": "70"},
            ],
        }
    ]


def test_read_clippings_file_strips_byte_order_mark(tmp_path: Path) -> None:
    path = tmp_path / "My Clippings.txt"
    path.write_bytes("\ufeffBook (Author)\n".encode("utf-8"))

    assert read_clippings_file(path) == "Book (Author)\n"


def test_read_clippings_file_propagates_missing_file(tmp_path: Path) -> None:
    with pytest.raises(OSError):
        read_clippings_file(tmp_path / "missing.txt")
