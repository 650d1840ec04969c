"""Chunk balancing — packs semantic blocks into size-targeted chunks."""

from __future__ import annotations

import logging
import math

from .normalize import visible_length

logger = logging.getLogger(__name__)

TARGET_MIN_WORDS = 140
TARGET_MAX_WORDS = 280
MIN_CHUNK_CHARS = 80
DEFAULT_MAX_CHUNKS = 24

CHUNK_JOINER = "\n\n"


def count_words(text: str) -> int:
    """Count whitespace-delimited words."""
    if not text:
        return 0
    return len(text.split())


def pack_blocks(
    blocks: list[str],
    min_words: int = TARGET_MIN_WORDS,
    max_words: int = TARGET_MAX_WORDS,
) -> list[str]:
    """Greedily pack blocks into chunks without splitting a block.

    The current chunk is closed before a block is added when the block would
    push it past ``max_words`` or when it already holds ``min_words``.
    """
    chunks: list[str] = []
    current: list[str] = []
    current_words = 0

    for block in blocks:
        words = count_words(block)
        if current and (current_words + words > max_words or current_words >= min_words):
            chunks.append(CHUNK_JOINER.join(current))
            current = []
            current_words = 0
        current.append(block)
        current_words += words

    if current:
        chunks.append(CHUNK_JOINER.join(current))

    return chunks


def reduce_chunks(chunks: list[str], max_chunks: int) -> list[str]:
    """Merge consecutive chunks in equal batches until at most ``max_chunks`` remain."""
    if max_chunks < 1:
        raise ValueError(f"max_chunks must be a positive integer, got {max_chunks}")
    if len(chunks) <= max_chunks:
        return list(chunks)

    ratio = math.ceil(len(chunks) / max_chunks)
    reduced = [
        CHUNK_JOINER.join(chunks[i:i + ratio])
        for i in range(0, len(chunks), ratio)
    ]
    logger.debug(
        "Reduced %d raw chunks to %d (batches of %d)", len(chunks), len(reduced), ratio
    )
    return reduced[:max_chunks]


def drop_thin_chunks(chunks: list[str], min_chars: int = MIN_CHUNK_CHARS) -> list[str]:
    """Drop chunks with ``min_chars`` or fewer non-whitespace characters."""
    return [c for c in chunks if visible_length(c) > min_chars]


def chunk_blocks(blocks: list[str], max_chunks: int = DEFAULT_MAX_CHUNKS) -> list[str]:
    """Run the full chunking pass: pack, reduce to the ceiling, drop thin chunks."""
    raw = pack_blocks(blocks)
    reduced = reduce_chunks(raw, max_chunks)
    kept = drop_thin_chunks(reduced)
    if len(kept) < len(reduced):
        logger.debug("Dropped %d thin chunks", len(reduced) - len(kept))
    return kept
