# fedrank/domain/services/redde.py
# Pure domain services: no I/O, deterministic, no external libraries.
"""ReDDE and the rank-scoring variants built on it (CRCS, GAVG, ReDDE.top).

Each of the first ``cutoff`` sample documents votes for its resource with
``score_at_rank(doc_score, rank, cutoff)`` (rank is 0-based); the summed votes are
scaled by the resource size ratio ``full_size / sample_size``.
"""

from __future__ import annotations

import math
from collections.abc import Callable

from fedrank.domain.errors import InvalidArgumentError
from fedrank.domain.models import Resource
from fedrank.domain.regression import log_or_neg_inf
from fedrank.domain.services.selection import (
    DEFAULT_COMPLETE_RANK_CUTOFF,
    Documents,
    Resources,
    ResourceScorer,
    ResourceSelection,
)

RankScore = Callable[[float, int, int], float]

DEFAULT_CRCS_BETA = 0.5


def uniform(score: float, rank: int, cutoff: int) -> float:
    """Plain ReDDE: every document above the cutoff counts once."""
    return 1.0


def crcs_linear_weight(score: float, rank: int, cutoff: int) -> float:
    return float(max(cutoff - rank, 0))


def gavg_log_weight(score: float, rank: int, cutoff: int) -> float:
    # Scores must be positive; log(0) and below give -inf.
    return log_or_neg_inf(score)


def top_score_weight(score: float, rank: int, cutoff: int) -> float:
    return score


def crcs_exp_weight(beta: float = DEFAULT_CRCS_BETA) -> RankScore:
    if beta <= 0:
        raise InvalidArgumentError(f"CRCS beta must be > 0: {beta}")

    def weight(score: float, rank: int, cutoff: int) -> float:
        return math.exp(-beta * rank)

    return weight


def redde_scorer(score_at_rank: RankScore = uniform) -> ResourceScorer:
    def scorer(documents: Documents, resources: Resources, cutoff: int) -> dict[Resource, float]:
        totals: dict[Resource, float] = {}
        for i in range(min(len(documents), cutoff)):
            resource = resources[i]
            totals[resource] = totals.get(resource, 0.0) + score_at_rank(
                documents[i].score, i, cutoff
            )
        return {resource: total * resource.size_ratio for resource, total in totals.items()}

    return scorer


def redde(
    complete_rank_cutoff: int = DEFAULT_COMPLETE_RANK_CUTOFF,
    sample_rank_cutoff: int | None = None,
) -> ResourceSelection:
    return ResourceSelection(
        redde_scorer(uniform), complete_rank_cutoff, sample_rank_cutoff, name="redde"
    )


def crcs_exp(
    complete_rank_cutoff: int = DEFAULT_COMPLETE_RANK_CUTOFF,
    sample_rank_cutoff: int | None = None,
    beta: float = DEFAULT_CRCS_BETA,
) -> ResourceSelection:
    return ResourceSelection(
        redde_scorer(crcs_exp_weight(beta)),
        complete_rank_cutoff,
        sample_rank_cutoff,
        name="crcs-exp",
    )


def crcs_linear(
    complete_rank_cutoff: int = DEFAULT_COMPLETE_RANK_CUTOFF,
    sample_rank_cutoff: int | None = None,
) -> ResourceSelection:
    return ResourceSelection(
        redde_scorer(crcs_linear_weight),
        complete_rank_cutoff,
        sample_rank_cutoff,
        name="crcs-linear",
    )


def gavg_log(
    complete_rank_cutoff: int = DEFAULT_COMPLETE_RANK_CUTOFF,
    sample_rank_cutoff: int | None = None,
) -> ResourceSelection:
    return ResourceSelection(
        redde_scorer(gavg_log_weight), complete_rank_cutoff, sample_rank_cutoff, name="gavg-log"
    )


def redde_top(
    complete_rank_cutoff: int = DEFAULT_COMPLETE_RANK_CUTOFF,
    sample_rank_cutoff: int | None = None,
) -> ResourceSelection:
    return ResourceSelection(
        redde_scorer(top_score_weight),
        complete_rank_cutoff,
        sample_rank_cutoff,
        name="redde-top",
    )
