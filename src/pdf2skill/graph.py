"""Keyword-overlap dependency graph between skill items."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal

logger = logging.getLogger(__name__)

EDGE_THRESHOLD = 0.22


@dataclass(frozen=True)
class DependencyEdge:
    """A directed, weighted link between two skill items."""
    source: str
    target: str
    weight: float

    def to_dict(self) -> dict[str, str | float]:
        # whole weights serialize as 1, not 1.0
        weight = int(self.weight) if float(self.weight).is_integer() else self.weight
        return {"from": self.source, "to": self.target, "weight": weight}


def jaccard(a: Iterable[str], b: Iterable[str]) -> float:
    """Jaccard similarity of two token collections; 0.0 when both are empty."""
    sa, sb = set(a), set(b)
    if not sa and not sb:
        return 0.0
    inter = len(sa & sb)
    union = len(sa) + len(sb) - inter
    return inter / union if union else 0.0


def round_weight(value: float) -> float:
    """Round to 2 decimals, halves up, using the exact binary value of ``value``."""
    return float(Decimal(value).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def build_dependencies(
    items: Sequence[tuple[str, Sequence[str]]],
    threshold: float = EDGE_THRESHOLD,
) -> list[DependencyEdge]:
    """Link every ordered pair of distinct items whose keyword similarity reaches ``threshold``.

    Args:
        items: ``(item_id, keywords)`` pairs in item order.
        threshold: Minimum raw Jaccard similarity for an edge.

    Returns:
        Edges in enumeration order, deduplicated by ``(source, target)``.
        Similarity is symmetric, so linked pairs appear in both directions.
    """
    edges: dict[tuple[str, str], DependencyEdge] = {}

    for i, (id_a, kw_a) in enumerate(items):
        for j, (id_b, kw_b) in enumerate(items):
            if i == j:
                continue
            score = jaccard(kw_a, kw_b)
            if score >= threshold:
                edges[(id_a, id_b)] = DependencyEdge(id_a, id_b, round_weight(score))

    logger.debug("Built %d dependency edges across %d items", len(edges), len(items))
    return list(edges.values())
