"""Text normalization and semantic block splitting."""

from __future__ import annotations

import re

MIN_BLOCK_CHARS = 40

_HORIZONTAL_SPACE = re.compile(r"[ \u00a0]+")
_EXCESS_NEWLINES = re.compile(r"\n{3,}")
_BLOCK_SEPARATOR = re.compile(r"\n\n+")
_WHITESPACE = re.compile(r"\s+")


def normalize_text(text: str) -> str:
    """Canonicalize whitespace and line endings of extracted text.

    Applies in order:
    1. Strip carriage returns and byte-order marks
    2. Tabs to single spaces
    3. Collapse runs of space / no-break space
    4. Collapse 3+ newlines to exactly 2
    5. Trim
    """
    if not text:
        return ""
    text = text.replace("\r", "").replace("\ufeff", "")
    text = text.replace("\t", " ")
    text = _HORIZONTAL_SPACE.sub(" ", text)
    text = _EXCESS_NEWLINES.sub("\n\n", text)
    return text.strip()


def visible_length(text: str) -> int:
    """Character count with all whitespace removed."""
    return len(_WHITESPACE.sub("", text))


def split_semantic_blocks(text: str, min_chars: int = MIN_BLOCK_CHARS) -> list[str]:
    """Split normalized text into blank-line-delimited blocks.

    Blocks with fewer than ``min_chars`` non-whitespace characters are dropped.
    """
    blocks = [b.strip() for b in _BLOCK_SEPARATOR.split(text)]
    return [b for b in blocks if b and visible_length(b) >= min_chars]
