# fedrank/domain/services/ciss.py
# Pure domain services: no I/O, deterministic, no external libraries.
"""CiSS: resource score as the area under a resource's log-rank / exp-score curve."""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from typing import Any

from fedrank.domain.models import Resource, ScoredItem
from fedrank.domain.regression import exp_or_inf
from fedrank.domain.services.selection import (
    DEFAULT_COMPLETE_RANK_CUTOFF,
    Documents,
    Resources,
    ResourceScorer,
    ResourceSelection,
    group_by_resource,
)

# (resource, its documents above the cutoff, best first) -> resource score
CurveScore = Callable[[Resource, Sequence[ScoredItem[Any]]], float]


def max_rank(resource: Resource, documents: Sequence[ScoredItem[Any]]) -> float:
    """Estimated complete rank of the resource's last document above the cutoff.

    Below the document count when the resource is smaller than its sample
    (``full_size < sample_size``); the closing segment of the curve then runs
    backwards and subtracts area, so such resources can score below zero.
    """
    return resource.size_ratio * len(documents)


def _trapezoid(width: float, left: float, right: float) -> float:
    # a zero-width segment adds nothing, even under an infinite height
    if width == 0:
        return 0.0
    return width * (left + right) / 2


def integral_score(resource: Resource, documents: Sequence[ScoredItem[Any]]) -> float:
    """Trapezoidal area under (log(rank), exp(score)).

    The curve runs through the resource's documents at 1-based ranks and ends at
    (log(max_rank), 0). Scores beyond the double range give an infinite area.
    """
    if not documents:
        return 0.0

    area = 0.0
    left_x, left_y = math.log(1), exp_or_inf(documents[0].score)
    for i in range(1, len(documents)):
        right_x, right_y = math.log(i + 1), exp_or_inf(documents[i].score)
        area += _trapezoid(right_x - left_x, left_y, right_y)
        left_x, left_y = right_x, right_y

    area += _trapezoid(math.log(max_rank(resource, documents)) - left_x, left_y, 0.0)
    return area


def approx_integral_score(resource: Resource, documents: Sequence[ScoredItem[Any]]) -> float:
    """Two-point approximation: exp(top score) * log(max_rank) / 2."""
    if not documents:
        return 0.0
    return _trapezoid(
        math.log(max_rank(resource, documents)), exp_or_inf(documents[0].score), 0.0
    )


def ciss_scorer(curve_score: CurveScore = integral_score) -> ResourceScorer:
    def scorer(documents: Documents, resources: Resources, cutoff: int) -> dict[Resource, float]:
        grouped = group_by_resource(documents[:cutoff], resources[:cutoff])
        return {resource: curve_score(resource, docs) for resource, docs in grouped.items()}

    return scorer


def ciss(
    complete_rank_cutoff: int = DEFAULT_COMPLETE_RANK_CUTOFF,
    sample_rank_cutoff: int | None = None,
) -> ResourceSelection:
    return ResourceSelection(
        ciss_scorer(integral_score), complete_rank_cutoff, sample_rank_cutoff, name="ciss"
    )


def ciss_approx(
    complete_rank_cutoff: int = DEFAULT_COMPLETE_RANK_CUTOFF,
    sample_rank_cutoff: int | None = None,
) -> ResourceSelection:
    return ResourceSelection(
        ciss_scorer(approx_integral_score),
        complete_rank_cutoff,
        sample_rank_cutoff,
        name="ciss-approx",
    )
