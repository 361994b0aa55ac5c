import re

import pytest

from notion_highlights.blocks import (
    BlockLimitError,
    chunk_text,
    format_blocks,
    highlight_blocks,
)
from notion_highlights.models import ReconciledHighlight


def squash(text: str) -> str:
    return re.sub(r"\s+", "", text)


def test_chunk_text_returns_short_text_unchanged() -> None:
    assert chunk_text("short text", 20) == ["short text"]
    assert chunk_text("", 20) == [""]


def test_chunk_text_prefers_word_boundaries() -> None:
    text = "alpha beta gamma delta epsilon"

    chunks = chunk_text(text, 12)

    assert chunks == ["alpha beta", "gamma delta", "epsilon"]


def test_chunk_text_prefers_sentence_end_over_space() -> None:
    text = "a" * 17 + " b." + "c" * 10

    chunks = chunk_text(text, 20)

    assert chunks == ["a" * 17 + " b.", "c" * 10]


def test_chunk_text_hard_cuts_without_boundaries() -> None:
    chunks = chunk_text("x" * 25, 10)

    assert chunks == ["x" * 10, "x" * 10, "x" * 5]


@pytest.mark.parametrize(
    "text",
    [
        "word " * 900,
        "Sentence one is here. " * 200,
        "line\n" * 700 + "tail",
        "y" * 4500,
    ],
)
def test_chunk_text_keeps_content_and_bounds(text: str) -> None:
    chunks = chunk_text(text, 2000)

    assert all(len(chunk) <= 2000 for chunk in chunks)
    assert squash("".join(chunks)) == squash(text)


def test_highlight_blocks_layout() -> None:
    highlight = ReconciledHighlight(text="Hello world", note="A note", page="5", location="100-105")

    blocks = highlight_blocks(highlight)

    assert [block["type"] for block in blocks] == ["paragraph", "paragraph", "quote", "divider"]
    assert blocks[0]["paragraph"]["rich_text"][0]["text"]["content"] == "Hello world"
    meta = blocks[1]["paragraph"]["rich_text"][0]
    assert meta["text"]["content"] == "Page: 5, Location: 100-105"
    assert meta["annotations"] == {"italic": True}
    label, body = blocks[2]["quote"]["rich_text"]
    assert label["text"]["content"] == "Note: "
    assert label["annotations"] == {"italic": True}
    assert body["text"]["content"] == "A note"


def test_highlight_blocks_for_orphan_note_and_missing_metadata() -> None:
    highlight = ReconciledHighlight(text="", note="x " * 1500, page="", location="")

    blocks = highlight_blocks(highlight)

    assert [block["type"] for block in blocks] == ["paragraph", "quote", "quote", "divider"]
    assert blocks[0]["paragraph"]["rich_text"][0]["text"]["content"] == "Page: N/A, Location: N/A"
    assert len(blocks[1]["quote"]["rich_text"]) == 2
    assert len(blocks[2]["quote"]["rich_text"]) == 1


def test_format_blocks_stops_within_margin() -> None:
    highlights = [ReconciledHighlight(f"text {i}", None, "1", str(i)) for i in range(50)]

    batch = format_blocks(highlights)

    # three blocks per highlight; 96 blocks is within five of the cap
    assert batch.processed_count == 32
    assert len(batch.blocks) == 96


def test_format_blocks_never_splits_a_highlight() -> None:
    long_text = "z" * 2000 * 9
    highlights = [ReconciledHighlight(f"text {i}", None, "1", str(i)) for i in range(30)]
    highlights.append(ReconciledHighlight(long_text, "note", "2", "2"))

    batch = format_blocks(highlights)

    assert batch.processed_count == 30
    assert len(batch.blocks) == 90
    assert batch.blocks[-1]["type"] == "divider"

    rest = format_blocks(highlights[batch.processed_count:])
    assert rest.processed_count == 1
    assert len(rest.blocks) == 9 + 3


def test_format_blocks_rejects_oversized_highlight() -> None:
    highlight = ReconciledHighlight("w" * 2000 * 120, None, "1", "1")

    with pytest.raises(BlockLimitError):
        format_blocks([highlight])


def test_format_blocks_empty_input() -> None:
    batch = format_blocks([])

    assert batch.blocks == []
    assert batch.processed_count == 0
