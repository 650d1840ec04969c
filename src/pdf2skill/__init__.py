"""PDF to skill-pack compiler."""

from __future__ import annotations

import logging
from pathlib import Path

from .compiler import SourceText
from .errors import InputNotFound

__version__ = "0.2.0"

logger = logging.getLogger(__name__)

PAGE_SEPARATOR = "\n\n"


def extract_text(pdf_path: str | Path) -> str:
    """Extract the text of a PDF using pymupdf, pages separated by a blank line.

    Args:
        pdf_path: Path to the PDF file.

    Returns:
        The document text (possibly empty for image-only PDFs).

    Raises:
        InputNotFound: If the PDF file does not exist.
    """
    pdf_path = Path(pdf_path)
    if not pdf_path.exists():
        raise InputNotFound(f"Input PDF not found: {pdf_path}")

    import pymupdf

    pages: list[str] = []
    with pymupdf.open(str(pdf_path)) as doc:
        for page in doc:
            pages.append(page.get_text())
    logger.debug("Extracted %d pages from %s", len(pages), pdf_path)
    return PAGE_SEPARATOR.join(pages)


def read_sources(paths: list[str | Path]) -> list[SourceText]:
    """Check that every path exists, then extract each PDF into a SourceText.

    Raises:
        InputNotFound: If any path is missing; nothing is extracted in that case.
    """
    resolved = [Path(p).resolve() for p in paths]
    for path in resolved:
        if not path.exists():
            raise InputNotFound(f"Input PDF not found: {path}")
    return [SourceText(name=path.name, text=extract_text(path)) for path in resolved]
