"""Routing score heuristic for skill items."""

from __future__ import annotations

import math
from collections.abc import Sequence

PROBE_SIZE = 5
EMPTY_PROBE_SCORE = 60

OVERLAP_WEIGHT, OVERLAP_CAP = 8, 40
DENSITY_CAP = 25
DENSITY_FULL_AT = 12
CONDITION_WEIGHT, CONDITION_CAP = 4, 20
STEP_WEIGHT, STEP_CAP = 3, 15


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positive values."""
    return math.floor(value + 0.5)


def estimate_routing_score(
    keywords: Sequence[str],
    steps: Sequence[str],
    conditions: Sequence[str],
    probe: Sequence[str],
) -> int:
    """Score an item 0-100 from probe overlap, keyword density, and extracted structure.

    The compiler passes the item's own top keywords as ``probe``, so the overlap
    term saturates for any item with enough keywords. It measures completeness,
    not relevance to a user query.
    """
    if not probe:
        return EMPTY_PROBE_SCORE

    keyword_set = set(keywords)
    overlap = sum(1 for token in probe if token in keyword_set)

    overlap_score = min(OVERLAP_CAP, overlap * OVERLAP_WEIGHT)
    density = min(DENSITY_CAP, round_half_up(len(keywords) / DENSITY_FULL_AT * DENSITY_CAP))
    condition_bonus = min(CONDITION_CAP, len(conditions) * CONDITION_WEIGHT)
    step_bonus = min(STEP_CAP, len(steps) * STEP_WEIGHT)

    return max(0, min(100, overlap_score + density + condition_bonus + step_bonus))


def self_probe(keywords: Sequence[str]) -> list[str]:
    """The item's own leading keywords, used as its routing probe."""
    return list(keywords[:PROBE_SIZE])
