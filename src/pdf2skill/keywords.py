"""Language detection, tokenization, and keyword ranking."""

from __future__ import annotations

import re
from collections import Counter

from .profile import LanguageProfile, default_profile

LANGUAGE_MODES = ("auto", "zh", "en")
ITEM_KEYWORD_LIMIT = 12

_CJK_CHAR = re.compile(r"[\u4e00-\u9fa5]")
_LATIN_CHAR = re.compile(r"[A-Za-z]")
_CJK_TOKEN = re.compile(r"[\u4e00-\u9fa5]{2,}")
_LATIN_TOKEN = re.compile(r"[a-z0-9]{3,}")
_MIXED_TOKEN = re.compile(r"[a-z0-9]{3,}|[\u4e00-\u9fa5]{2,}")


def resolve_language_mode(value: str | None) -> str:
    """Map a user-supplied mode onto ``auto``/``zh``/``en``; unknown values mean ``auto``."""
    mode = str(value or "auto").strip().lower()
    return mode if mode in LANGUAGE_MODES else "auto"


def detect_language(text: str) -> str:
    """Classify text as ``zh`` or ``en`` by script counts, or ``auto`` if it has neither."""
    zh_count = len(_CJK_CHAR.findall(text))
    en_count = len(_LATIN_CHAR.findall(text))
    if zh_count == 0 and en_count == 0:
        return "auto"
    return "zh" if zh_count >= en_count else "en"


def _cjk_tokens(text: str, stopwords: frozenset[str]) -> list[str]:
    return [t for t in _CJK_TOKEN.findall(text) if t not in stopwords]


def _latin_tokens(text: str, stopwords: frozenset[str]) -> list[str]:
    return [t for t in _LATIN_TOKEN.findall(text.lower()) if t not in stopwords]


def tokenize(
    text: str, language_mode: str = "auto", profile: LanguageProfile | None = None
) -> list[str]:
    """Extract stopword-filtered tokens in document order.

    In ``auto`` mode the language is detected from ``text`` itself. ``zh``
    takes CJK runs and falls back to Latin runs when none survive, ``en`` is
    the reverse. Text with no letters of either script takes both kinds.
    """
    profile = profile or default_profile()
    selected = detect_language(text) if language_mode == "auto" else language_mode

    if selected == "zh":
        tokens = _cjk_tokens(text, profile.chinese_stopwords)
        return tokens or _latin_tokens(text, profile.english_stopwords)
    if selected == "en":
        tokens = _latin_tokens(text, profile.english_stopwords)
        return tokens or _cjk_tokens(text, profile.chinese_stopwords)

    return [
        t for t in _MIXED_TOKEN.findall(text.lower())
        if t not in profile.combined_stopwords
    ]


def rank_tokens(tokens: list[str], limit: int) -> list[str]:
    """Most frequent tokens first; ties keep first-appearance order."""
    counts = Counter(tokens)
    ranked = sorted(counts.items(), key=lambda kv: -kv[1])
    return [token for token, _ in ranked[:limit]]


def top_keywords(
    text: str,
    limit: int = ITEM_KEYWORD_LIMIT,
    language_mode: str = "auto",
    profile: LanguageProfile | None = None,
) -> list[str]:
    """Tokenize ``text`` and return its ``limit`` most frequent tokens."""
    return rank_tokens(tokenize(text, language_mode, profile), limit)
