"""Language profile system — loads, validates, and compiles the YAML stopword/pattern tables."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any

import yaml

DEFAULT_PROFILE_PATH = Path(__file__).parent / "profiles" / "default.yaml"


@dataclass(frozen=True)
class ConditionPattern:
    """A conditional-clause regex and the flags it is compiled with."""
    pattern: str
    ignore_case: bool = False
    ascii: bool = False


@dataclass(frozen=True)
class LanguageProfile:
    """Immutable stopword and pattern tables loaded from YAML."""
    profile_id: str
    schema_version: str
    english_stopwords: frozenset[str]
    chinese_stopwords: frozenset[str]
    combined_stopwords: frozenset[str]
    step_patterns: tuple[str, ...]
    condition_patterns: tuple[ConditionPattern, ...]


@dataclass(frozen=True)
class CompiledPatterns:
    """Pre-compiled regexes for the step and condition extractors."""
    step_patterns: tuple[re.Pattern, ...]
    condition_patterns: tuple[re.Pattern, ...]


def _string_set(values: Any, key: str) -> frozenset[str]:
    if values is None:
        return frozenset()
    if not isinstance(values, list):
        raise ValueError(f"stopwords.{key} must be a list.")
    return frozenset(str(v) for v in values)


def _parse_condition(entry: Any) -> ConditionPattern:
    if isinstance(entry, str):
        return ConditionPattern(pattern=entry)
    if not isinstance(entry, dict) or "pattern" not in entry:
        raise ValueError(f"Invalid condition pattern entry: {entry!r}")
    return ConditionPattern(
        pattern=str(entry["pattern"]),
        ignore_case=bool(entry.get("ignore_case", False)),
        ascii=bool(entry.get("ascii", False)),
    )


def load_profile(path: str | Path | None = None) -> LanguageProfile:
    """Load a language profile from a YAML file.

    Args:
        path: Path to the YAML profile file. Defaults to the bundled
            ``profiles/default.yaml``.

    Returns:
        A LanguageProfile instance.

    Raises:
        FileNotFoundError: If the profile file does not exist.
        ValueError: If the profile is not a mapping or has malformed tables.
    """
    path = Path(path) if path is not None else DEFAULT_PROFILE_PATH
    if not path.exists():
        raise FileNotFoundError(f"Profile file not found: {path}")

    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if not isinstance(data, dict):
        raise ValueError("Profile YAML must be a mapping at the top level.")

    stopwords = data.get("stopwords", {}) or {}
    if not isinstance(stopwords, dict):
        raise ValueError("stopwords must be a mapping.")

    step_patterns = data.get("step_patterns", []) or []
    condition_patterns = data.get("condition_patterns", []) or []
    if not isinstance(step_patterns, list) or not isinstance(condition_patterns, list):
        raise ValueError("step_patterns and condition_patterns must be lists.")

    return LanguageProfile(
        profile_id=str(data.get("profile_id", "")),
        schema_version=str(data.get("schema_version", "")),
        english_stopwords=_string_set(stopwords.get("english"), "english"),
        chinese_stopwords=_string_set(stopwords.get("chinese"), "chinese"),
        combined_stopwords=_string_set(stopwords.get("combined"), "combined"),
        step_patterns=tuple(str(p) for p in step_patterns),
        condition_patterns=tuple(_parse_condition(c) for c in condition_patterns),
    )


def validate_profile(profile: LanguageProfile) -> list[str]:
    """Validate a loaded profile for completeness and correctness.

    Returns a list of validation error messages. Empty list means valid.
    """
    errors: list[str] = []

    if not profile.english_stopwords:
        errors.append("stopwords.english must not be empty.")
    if not profile.chinese_stopwords:
        errors.append("stopwords.chinese must not be empty.")
    if not profile.combined_stopwords:
        errors.append("stopwords.combined must not be empty.")

    if not profile.step_patterns:
        errors.append("At least one step pattern must be defined.")
    if not profile.condition_patterns:
        errors.append("At least one condition pattern must be defined.")

    for p in profile.step_patterns:
        try:
            re.compile(p)
        except re.error as e:
            errors.append(f"Invalid step pattern {p!r}: {e}")

    for c in profile.condition_patterns:
        try:
            re.compile(c.pattern)
        except re.error as e:
            errors.append(f"Invalid condition pattern {c.pattern!r}: {e}")

    return errors


@lru_cache(maxsize=8)
def compile_patterns(profile: LanguageProfile) -> CompiledPatterns:
    """Pre-compile the step and condition regexes of a profile for runtime use."""
    conditions: list[re.Pattern] = []
    for c in profile.condition_patterns:
        flags = 0
        if c.ignore_case:
            flags |= re.IGNORECASE
        if c.ascii:
            # ASCII word boundaries so CJK text next to "if" still counts as a boundary
            flags |= re.ASCII
        conditions.append(re.compile(c.pattern, flags))

    return CompiledPatterns(
        step_patterns=tuple(re.compile(p) for p in profile.step_patterns),
        condition_patterns=tuple(conditions),
    )


@lru_cache(maxsize=1)
def default_profile() -> LanguageProfile:
    """The bundled default profile, loaded once per process."""
    return load_profile(DEFAULT_PROFILE_PATH)
