# fedrank/domain/services/sushi.py
# Pure domain services: no I/O, deterministic, no external libraries.
"""SUSHI: resource selection by extrapolating per-resource rank/score curves.

For each resource the sample documents above the cutoff give points
(estimated complete rank, score). Three curves are fitted (linear, logarithmic,
exponential in the rank) and the best one by r^2 predicts the scores the resource
would return at complete ranks 1..rank_threshold. Resources with too few points
keep their sample documents instead. All of these compete in one merged ranking;
a resource's score is the sum of its scores inside the top ``rank_threshold``.
"""

from __future__ import annotations

import math

from fedrank.domain.errors import InvalidArgumentError
from fedrank.domain.models import Resource, ScoredItem, sort_scored
from fedrank.domain.regression import (
    TransformedRegression,
    best_fit,
    exp_or_inf,
    linear,
    log_or_neg_inf,
)
from fedrank.domain.services.selection import (
    DEFAULT_COMPLETE_RANK_CUTOFF,
    Documents,
    Resources,
    ResourceScorer,
    ResourceSelection,
)

SUSHI_TRANSFORMS = (linear, log_or_neg_inf, exp_or_inf)

DEFAULT_MIN_DOCS = 5
DEFAULT_RANK_THRESHOLD = 1000


def fit_resource_curves(
    documents: Documents, resources: Resources, cutoff: int, min_docs: int
) -> dict[Resource, TransformedRegression]:
    """Best-fitting rank/score curve per resource having at least ``min_docs`` points.

    A document's complete rank is estimated as the complete rank reached by the
    documents before it plus half of its own resource's size ratio.
    """
    curves: dict[Resource, list[TransformedRegression]] = {}
    complete_rank = 0.0
    for i in range(min(len(documents), cutoff)):
        resource = resources[i]
        ratio = resource.size_ratio
        doc_rank = complete_rank + 0.5 * ratio
        complete_rank += ratio

        regressions = curves.setdefault(
            resource, [TransformedRegression(f) for f in SUSHI_TRANSFORMS]
        )
        for regression in regressions:
            regression.add(doc_rank, documents[i].score)

    fitted: dict[Resource, TransformedRegression] = {}
    for resource, regressions in curves.items():
        best = best_fit(regressions, lambda reg: reg.r_square)
        if best.n >= min_docs:
            fitted[resource] = best
    return fitted


def sushi_scorer(
    min_docs: int = DEFAULT_MIN_DOCS, rank_threshold: int = DEFAULT_RANK_THRESHOLD
) -> ResourceScorer:
    if min_docs < 2:
        raise InvalidArgumentError(f"SUSHI minimum number of documents must be >= 2: {min_docs}")
    if rank_threshold <= 0:
        raise InvalidArgumentError(f"SUSHI rank threshold must be > 0: {rank_threshold}")

    def scorer(documents: Documents, resources: Resources, cutoff: int) -> dict[Resource, float]:
        fitted = fit_resource_curves(documents, resources, cutoff, min_docs)

        # Sample documents of resources without a usable curve compete as they are.
        # Pool entries are keyed (resource, origin, position).
        pool: list[ScoredItem[tuple[Resource, str, int]]] = []
        for i in range(min(len(documents), cutoff)):
            if resources[i] not in fitted:
                pool.append(ScoredItem((resources[i], "sample", i), documents[i].score))

        for resource, curve in fitted.items():
            for rank in range(1, rank_threshold + 1):
                score = curve.predict(rank)
                if not math.isfinite(score):
                    continue
                pool.append(ScoredItem((resource, "estimate", rank), score))

        scores: dict[Resource, float] = {entry.value[0]: 0.0 for entry in pool}
        for entry in sort_scored(pool)[:rank_threshold]:
            scores[entry.value[0]] += entry.score
        return scores

    return scorer


def sushi(
    complete_rank_cutoff: int = DEFAULT_COMPLETE_RANK_CUTOFF,
    sample_rank_cutoff: int | None = None,
    min_docs: int = DEFAULT_MIN_DOCS,
    rank_threshold: int = DEFAULT_RANK_THRESHOLD,
) -> ResourceSelection:
    return ResourceSelection(
        sushi_scorer(min_docs, rank_threshold),
        complete_rank_cutoff,
        sample_rank_cutoff,
        name="sushi",
    )
