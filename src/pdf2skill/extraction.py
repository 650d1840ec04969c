"""Pattern-based extraction of procedural steps and conditional clauses."""

from __future__ import annotations

import re

from .profile import CompiledPatterns, compile_patterns, default_profile

MAX_STEPS = 8
MAX_CONDITIONS = 8
MIN_STEP_CHARS = 5
MIN_CONDITION_CHARS = 8
MAX_CONDITION_CHARS = 100

_WHITESPACE = re.compile(r"\s+")


def _default_patterns() -> CompiledPatterns:
    return compile_patterns(default_profile())


def extract_steps(text: str, patterns: CompiledPatterns | None = None) -> list[str]:
    """Collect step clauses from lines that open with an ordinal, bullet, or step marker.

    Each line is tried against the step patterns in order and the first
    match wins, even when its remainder is too short to keep.

    Returns:
        At most ``MAX_STEPS`` step texts, in document order.
    """
    patterns = patterns or _default_patterns()
    steps: list[str] = []

    for line in text.split("\n"):
        for pat in patterns.step_patterns:
            match = pat.match(line)
            if not match:
                continue
            groups = match.groups()
            value = ""
            if len(groups) >= 2 and groups[1]:
                value = groups[1]
            elif groups and groups[0]:
                value = groups[0]
            value = value.strip()
            if len(value) >= MIN_STEP_CHARS:
                steps.append(value)
            break

    return steps[:MAX_STEPS]


def extract_conditions(text: str, patterns: CompiledPatterns | None = None) -> list[str]:
    """Collect whitespace-collapsed conditional clauses matched anywhere in ``text``.

    Every match of every condition pattern is considered; clauses outside
    ``MIN_CONDITION_CHARS``..``MAX_CONDITION_CHARS`` are dropped and the rest
    are deduplicated in first-seen order.
    """
    patterns = patterns or _default_patterns()
    found: list[str] = []

    for pat in patterns.condition_patterns:
        for match in pat.finditer(text):
            clause = _WHITESPACE.sub(" ", match.group(0)).strip()
            if MIN_CONDITION_CHARS <= len(clause) <= MAX_CONDITION_CHARS:
                found.append(clause)

    return list(dict.fromkeys(found))[:MAX_CONDITIONS]
