"""Skill-pack compiler — turns extracted document text into a CompiledPack."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from .chunking import DEFAULT_MAX_CHUNKS, chunk_blocks
from .errors import EmptyExtraction, InvalidName, NoSemanticContent
from .extraction import extract_conditions, extract_steps
from .graph import DependencyEdge, build_dependencies
from .keywords import ITEM_KEYWORD_LIMIT, resolve_language_mode, top_keywords
from .normalize import normalize_text, split_semantic_blocks
from .profile import LanguageProfile, compile_patterns, default_profile
from .scoring import estimate_routing_score, self_probe

logger = logging.getLogger(__name__)

DEFAULT_MIN_SCORE = 55
MAX_TITLE_CHARS = 42
MAX_TRIGGER_CHARS = 24

_SLUG_SEPARATORS = re.compile(r"[^a-z0-9\u4e00-\u9fa5]+")
_TITLE_LEAD = re.compile(r"^[-*#0-9.\s]+")
_TITLE_TRAIL = re.compile(r"[。.!?；;:：]+$")


@dataclass(frozen=True)
class SourceText:
    """One source document's extracted text."""
    name: str
    text: str


@dataclass(frozen=True)
class CompileConfig:
    """Per-invocation compile settings."""
    skill_name: str
    language_mode: str = "auto"
    max_chunks: int = DEFAULT_MAX_CHUNKS
    min_score: int = DEFAULT_MIN_SCORE


@dataclass(frozen=True)
class SkillItem:
    """One atomic knowledge unit derived from a chunk."""
    id: str
    title: str
    trigger: str
    content: str
    keywords: tuple[str, ...]
    steps: tuple[str, ...]
    conditions: tuple[str, ...]
    base_score: int


@dataclass(frozen=True)
class CompiledPack:
    """The complete, immutable result of one compile."""
    skill_name: str
    items: tuple[SkillItem, ...]
    dependencies: tuple[DependencyEdge, ...]
    language_mode: str
    min_score: int
    source_count: int
    source_text: str = field(repr=False)


def sanitize_skill_name(raw: str | None) -> str:
    """Lower-case slug with runs of anything but ``a-z0-9``/CJK collapsed to one hyphen."""
    slug = _SLUG_SEPARATORS.sub("-", str(raw or "").strip().lower())
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def skill_id(index: int) -> str:
    """Zero-padded id for the item at 0-based ``index``."""
    return f"skill-{index + 1:03d}"


def make_title(line: str, index: int) -> str:
    """Title from a chunk's first line, without list markers or closing punctuation."""
    clean = _TITLE_LEAD.sub("", line)
    clean = _TITLE_TRAIL.sub("", clean).strip()
    if not clean:
        return skill_id(index)
    return clean[:MAX_TITLE_CHARS]


def make_trigger(title: str) -> str:
    if len(title) > MAX_TRIGGER_CHARS:
        return f"{title[:MAX_TRIGGER_CHARS]}..."
    return title


def combine_sources(sources: list[SourceText]) -> str:
    """Normalize each source, label it with a header, and join the non-empty ones."""
    sections: list[str] = []
    for source in sources:
        normalized = normalize_text(source.text)
        if not normalized:
            logger.warning("No text extracted from %s", source.name)
            continue
        sections.append(f"## Source: {Path(source.name).name}\n\n{normalized}")
    return normalize_text("\n\n".join(sections))


def build_skill_item(
    chunk: str,
    index: int,
    language_mode: str = "auto",
    profile: LanguageProfile | None = None,
) -> SkillItem:
    """Derive one SkillItem (keywords, steps, conditions, score) from a chunk."""
    profile = profile or default_profile()
    patterns = compile_patterns(profile)

    title = make_title(chunk.split("\n")[0], index)
    keywords = top_keywords(chunk, ITEM_KEYWORD_LIMIT, language_mode, profile)
    steps = extract_steps(chunk, patterns)
    conditions = extract_conditions(chunk, patterns)
    score = estimate_routing_score(keywords, steps, conditions, self_probe(keywords))

    return SkillItem(
        id=skill_id(index),
        title=title,
        trigger=make_trigger(title),
        content=chunk,
        keywords=tuple(keywords),
        steps=tuple(steps),
        conditions=tuple(conditions),
        base_score=score,
    )


def compile_text(
    text: str,
    config: CompileConfig,
    source_count: int = 1,
    profile: LanguageProfile | None = None,
) -> CompiledPack:
    """Compile already-combined source text into a CompiledPack.

    Raises:
        InvalidName: If the skill name sanitizes to an empty slug.
        EmptyExtraction: If the normalized text is empty.
        NoSemanticContent: If no block or chunk survives the length filters.
        ValueError: If ``config.max_chunks`` is below 1.
    """
    skill_name = sanitize_skill_name(config.skill_name)
    if not skill_name:
        raise InvalidName(f"Skill name is invalid: {config.skill_name!r}")

    language_mode = resolve_language_mode(config.language_mode)
    profile = profile or default_profile()

    normalized = normalize_text(text)
    if not normalized:
        raise EmptyExtraction("Failed to extract text from source (empty output)")

    blocks = split_semantic_blocks(normalized)
    chunks = chunk_blocks(blocks, config.max_chunks)
    logger.info("Split %d blocks into %d chunks", len(blocks), len(chunks))
    if not chunks:
        raise NoSemanticContent("No meaningful semantic chunks extracted from source")

    items = tuple(
        build_skill_item(chunk, idx, language_mode, profile)
        for idx, chunk in enumerate(chunks)
    )
    dependencies = build_dependencies([(item.id, item.keywords) for item in items])
    logger.info("Compiled %d skills with %d dependency edges", len(items), len(dependencies))

    return CompiledPack(
        skill_name=skill_name,
        items=items,
        dependencies=tuple(dependencies),
        language_mode=language_mode,
        min_score=config.min_score,
        source_count=source_count,
        source_text=normalized,
    )


def compile_sources(
    sources: list[SourceText],
    config: CompileConfig,
    profile: LanguageProfile | None = None,
) -> CompiledPack:
    """Combine source documents and compile them into a single pack."""
    return compile_text(combine_sources(sources), config, len(sources), profile)
