"""Shared pytest fixtures for the pdf2skill test suite."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import pytest

from pdf2skill.profile import load_profile


def build_pdf(pages: list[str]) -> bytes:
    """Render one PDF page per string with pymupdf and return the document bytes."""
    import pymupdf

    doc = pymupdf.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((50, 72), text, fontsize=10)
    data = doc.tobytes()
    doc.close()
    return data


def repeat_words(words: list[str], count: int) -> str:
    """A single-line paragraph of ``count`` words cycling through ``words``."""
    return " ".join(words[i % len(words)] for i in range(count))


# ── Profile Fixtures ──────────────────────────────────────────────


@pytest.fixture
def default_profile_path() -> Path:
    return Path(__file__).resolve().parent.parent / "src" / "pdf2skill" / "profiles" / "default.yaml"


@pytest.fixture
def default_profile(default_profile_path):
    return load_profile(default_profile_path)


# ── Sample Text Fixtures ─────────────────────────────────────────


@pytest.fixture
def procedure_page_text() -> str:
    """A service procedure with numbered steps and a conditional clause."""
    return """\
Hydraulic pump maintenance
1. Open the main valve slowly
2. Drain the hydraulic fluid into a container
3. Replace the worn pump gasket
If pressure exceeds limit then shut down the pump"""


@pytest.fixture
def inspection_page_text() -> str:
    """An inspection checklist with bullets and a 'when' clause."""
    return """\
Hydraulic valve inspection
- Check the valve seat for wear
- Inspect the pump pressure sensor
When the sensor reading drifts, recalibrate the hydraulic pump"""


@pytest.fixture
def two_paragraph_text() -> str:
    """Two blank-line-separated paragraphs, well under 280 words combined."""
    return (
        "The hydraulic pump supplies pressure to the main valve assembly during normal operation.\n\n"
        "Inspect the pressure sensor wiring harness every month and replace damaged connectors."
    )


@pytest.fixture
def overlapping_chunks_text() -> str:
    """Two 160-word paragraphs sharing half of their vocabulary."""
    first = repeat_words(["pump", "valve", "pressure", "sensor"], 160)
    second = repeat_words(["pump", "valve", "filter", "gasket"], 160)
    return f"{first}\n\n{second}"


# ── PDF Fixtures ──────────────────────────────────────────────────


@pytest.fixture
def sample_pdf_bytes(procedure_page_text, inspection_page_text) -> bytes:
    return build_pdf([procedure_page_text, inspection_page_text])


@pytest.fixture
def pdf_factory(tmp_path: Path) -> Callable[[str, list[str]], Path]:
    """Write a PDF with the given page texts into ``tmp_path`` and return its path."""

    def _make(name: str, pages: list[str]) -> Path:
        path = tmp_path / name
        path.write_bytes(build_pdf(pages))
        return path

    return _make


@pytest.fixture
def sample_pdf(pdf_factory, procedure_page_text, inspection_page_text) -> Path:
    return pdf_factory("pump-manual.pdf", [procedure_page_text, inspection_page_text])
