"""Rendering of highlights as Notion blocks."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from .models import ReconciledHighlight

logger = logging.getLogger(__name__)

# Notion rejects requests with more than 100 children and text objects
# longer than 2000 characters.
MAX_BLOCKS_PER_REQUEST = 100
MAX_TEXT_LENGTH = 2000
BLOCK_MARGIN = 5
BREAK_THRESHOLD = 0.8

Block = Dict[str, Any]


class BlockLimitError(ValueError):
    """Raised when a single highlight needs more blocks than one request allows."""


@dataclass
class BlockBatch:
    """Blocks for one request and how many highlights they fully cover."""

    blocks: List[Block] = field(default_factory=list)
    processed_count: int = 0


def chunk_text(text: str, max_length: int = MAX_TEXT_LENGTH) -> List[str]:
    """Split ``text`` into pieces no longer than ``max_length``.

    Pieces end at a sentence, line or word boundary when one falls in the
    last fifth of the window; otherwise the text is cut at ``max_length``.
    """

    if not text or len(text) <= max_length:
        return [text]

    chunks: List[str] = []
    remaining = text
    threshold = max_length * BREAK_THRESHOLD
    while remaining:
        break_point = max_length
        if len(remaining) > max_length:
            window = remaining[:max_length]
            last_space = window.rfind(" ")
            last_newline = window.rfind("\n")
            last_period = window.rfind(".")

            if last_space > threshold:
                break_point = last_space
            if last_newline > threshold and last_newline > last_space:
                break_point = last_newline
            if last_period > threshold and last_period > break_point:
                break_point = last_period + 1

        chunks.append(remaining[:break_point])
        remaining = remaining[break_point:].strip()
    return chunks


def _text(content: str, italic: bool = False) -> Dict[str, Any]:
    rich_text: Dict[str, Any] = {"type": "text", "text": {"content": content}}
    if italic:
        rich_text["annotations"] = {"italic": True}
    return rich_text


def paragraph_block(content: str, italic: bool = False) -> Block:
    return {
        "object": "block",
        "type": "paragraph",
        "paragraph": {"rich_text": [_text(content, italic=italic)]},
    }


def quote_block(content: str, label: Optional[str] = None) -> Block:
    rich_text = [_text(label, italic=True)] if label else []
    rich_text.append(_text(content))
    return {"object": "block", "type": "quote", "quote": {"rich_text": rich_text}}


def divider_block() -> Block:
    return {"object": "block", "type": "divider", "divider": {}}


def highlight_blocks(highlight: ReconciledHighlight, max_text_length: int = MAX_TEXT_LENGTH) -> List[Block]:
    """Render one highlight: body, page/location line, note, divider."""

    blocks: List[Block] = []
    if highlight.text and highlight.text.strip():
        blocks.extend(paragraph_block(chunk) for chunk in chunk_text(highlight.text, max_text_length))

    page = highlight.page or "N/A"
    location = highlight.location or "N/A"
    blocks.append(paragraph_block(f"Page: {page}, Location: {location}", italic=True))

    if highlight.note:
        note_chunks = chunk_text(highlight.note, max_text_length)
        blocks.append(quote_block(note_chunks[0], label="Note: "))
        blocks.extend(quote_block(chunk) for chunk in note_chunks[1:])

    blocks.append(divider_block())
    return blocks


def format_blocks(
    highlights: Sequence[ReconciledHighlight],
    max_blocks: int = MAX_BLOCKS_PER_REQUEST,
    max_text_length: int = MAX_TEXT_LENGTH,
) -> BlockBatch:
    """Render as many leading highlights as fit in a single request.

    Highlights are never split across batches. Once the batch is within
    ``BLOCK_MARGIN`` blocks of ``max_blocks`` no further highlight is added.
    """

    batch = BlockBatch()
    for highlight in highlights:
        if len(batch.blocks) >= max_blocks:
            break
        rendered = highlight_blocks(highlight, max_text_length)
        if len(batch.blocks) + len(rendered) > max_blocks:
            if batch.processed_count == 0:
                raise BlockLimitError(
                    f"Highlight at page {highlight.page}, location {highlight.location} "
                    f"needs {len(rendered)} blocks; at most {max_blocks} fit in one request"
                )
            break
        batch.blocks.extend(rendered)
        batch.processed_count += 1
        if len(batch.blocks) + BLOCK_MARGIN >= max_blocks:
            break

    logger.debug("Created %d blocks for %d highlights", len(batch.blocks), batch.processed_count)
    return batch
