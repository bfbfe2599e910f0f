"""Results merging: per-source score calibration with query-specific context.

Why (SAM): merging methods need per-query evidence (how relevant the source is,
which of its documents were sampled and how they scored centrally, how many
source documents one sample document stands for). That evidence travels in an
immutable ``MergeContext`` passed to every ``normalize`` call, so one merger
instance can serve any number of queries without reset steps.

Methods:
- CORI: base normalization weighted by the source relevance
- SSL:  linear regression from source scores to centralized scores of overlap docs
- SAFE: best of four rank->score regressions over the sampled ranking

SSL and SAFE return an empty list when fewer than three training points exist
(insufficient evidence); callers decide on a fallback.
"""

from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import dataclass, field
from typing import Protocol, TypeVar

from fedrank.domain.errors import InvalidArgumentError, MissingInputError
from fedrank.domain.models import ScoredItem
from fedrank.domain.regression import (
    SimpleRegression,
    TransformedRegression,
    best_fit,
    fit_all,
    linear,
    log_or_neg_inf,
    reciprocal_or_zero,
    sqrt_or_zero,
)
from fedrank.domain.services.normalization import ScoreNormalization, minmax

T = TypeVar("T")

MIN_TRAINING_POINTS = 3
SSL_MAX_TRAINING_POINTS = 10
SAFE_TRANSFORMS = (linear, log_or_neg_inf, sqrt_or_zero, reciprocal_or_zero)
DEFAULT_CORI_LAMBDA = 0.4


@dataclass(frozen=True)
class MergeContext:
    """
    Query-specific evidence for merging one source's result list.

    - relevance:    source relevance in [0, 1] (CORI), e.g. its normalized selection score
    - sampled_docs: the source's documents in the centralized sample ranking, with
                    their centralized scores, best first (SSL, SAFE)
    - rank_ratio:   full_size / sample_size of the source (SAFE), > 0
    """

    relevance: float = 1.0
    sampled_docs: Sequence[ScoredItem] = field(default_factory=tuple)
    rank_ratio: float = 1.0

    def __post_init__(self) -> None:
        if not 0.0 <= self.relevance <= 1.0:
            raise InvalidArgumentError(
                f"result list relevance is outside [0, 1]: {self.relevance}"
            )
        if self.sampled_docs is None:
            raise MissingInputError("list of sampled documents is None")
        if self.rank_ratio <= 0:
            raise InvalidArgumentError(f"rank ratio must be > 0: {self.rank_ratio}")


DEFAULT_CONTEXT = MergeContext()


class ResultsMerging(Protocol):
    """Normalization that calibrates with a per-query ``MergeContext``."""

    name: str

    def normalize(
        self, docs: Sequence[ScoredItem[T]], context: MergeContext | None = None
    ) -> list[ScoredItem[T]]: ...


def _require_docs(docs: Sequence[ScoredItem[T]] | None) -> None:
    if docs is None:
        raise MissingInputError("list of scored documents is None")


@dataclass(frozen=True)
class CORI:
    """CORI merging: ``norm * (1 + lam * relevance) / (1 + lam)``."""

    lam: float = DEFAULT_CORI_LAMBDA
    base: ScoreNormalization = field(default_factory=minmax)
    name: str = "cori"

    def __post_init__(self) -> None:
        if self.lam < 0:
            raise InvalidArgumentError(f"CORI lambda is negative: {self.lam}")
        if self.base is None:
            raise MissingInputError("base normalization is None")

    def weight(self, relevance: float) -> float:
        return (1 + self.lam * relevance) / (1 + self.lam)

    def normalize(
        self, docs: Sequence[ScoredItem[T]], context: MergeContext | None = None
    ) -> list[ScoredItem[T]]:
        _require_docs(docs)
        ctx = context or DEFAULT_CONTEXT
        w = self.weight(ctx.relevance)
        return [ScoredItem(d.value, d.score * w) for d in self.base.normalize(docs)]


@dataclass(frozen=True)
class SSL:
    """Semi-supervised learning merge (Si & Callan).

    Documents present both in the source list and in ``context.sampled_docs`` give
    (source score, centralized score) pairs; at most ten of them, in source-list
    order, skipping repeated source scores. The fitted line maps every source score
    onto the centralized scale.
    """

    max_points: int = SSL_MAX_TRAINING_POINTS
    name: str = "ssl"

    def __post_init__(self) -> None:
        if self.max_points < MIN_TRAINING_POINTS:
            raise InvalidArgumentError(
                f"SSL needs at least {MIN_TRAINING_POINTS} training points: {self.max_points}"
            )

    def training_regression(
        self, docs: Sequence[ScoredItem[T]], centralized: dict[Hashable, float]
    ) -> SimpleRegression:
        regression = SimpleRegression()
        seen_x: set[float] = set()
        for d in docs:
            if d.value in centralized and d.score not in seen_x:
                regression.add(d.score, centralized[d.value])
                seen_x.add(d.score)
                if regression.n >= self.max_points:
                    break
        return regression

    def normalize(
        self, docs: Sequence[ScoredItem[T]], context: MergeContext | None = None
    ) -> list[ScoredItem[T]]:
        _require_docs(docs)
        ctx = context or DEFAULT_CONTEXT
        centralized = {d.value: d.score for d in ctx.sampled_docs}

        regression = self.training_regression(docs, centralized)
        if regression.n < MIN_TRAINING_POINTS:
            return []
        return [ScoredItem(d.value, regression.predict(d.score)) for d in docs]


def rank_to_score(
    sampled_docs: Sequence[ScoredItem], docs: Sequence[ScoredItem], rank_ratio: float
) -> dict[int, float]:
    """SAFE training data: source rank -> centralized score.

    Sampled documents found in ``docs`` use their real 1-based source rank. Sampled
    documents ranked after the last such overlap are placed beyond the end of
    ``docs``, ``rank_ratio`` source ranks apart. Ranks are truncated to integers and
    a later entry for the same rank replaces an earlier one.
    """
    doc_rank = {d.value: rank for rank, d in enumerate(docs, start=1)}

    mapping: dict[int, float] = {}
    last_overlap = -1
    for i, sampled in enumerate(sampled_docs):
        if sampled.value in doc_rank:
            mapping[doc_rank[sampled.value]] = sampled.score
            last_overlap = i

    offset = len(docs)
    for i in range(last_overlap + 1, len(sampled_docs)):
        rank = int(offset + (i - last_overlap - 0.5) * rank_ratio)
        mapping[rank] = sampled_docs[i].score
    return mapping


@dataclass(frozen=True)
class SAFE:
    """Sample-Agglomerate Fitting Estimate (Shokouhi & Zobel).

    Fits score ~ f(rank) for f in (x, log x, sqrt x, 1/x) on ``rank_to_score`` and
    keeps the fit with the highest |r|; each document is scored by its own rank.
    """

    name: str = "safe"

    def fit(self, docs: Sequence[ScoredItem], context: MergeContext) -> TransformedRegression:
        points = list(rank_to_score(context.sampled_docs, docs, context.rank_ratio).items())
        return best_fit(fit_all(SAFE_TRANSFORMS, points), lambda reg: abs(reg.r))

    def normalize(
        self, docs: Sequence[ScoredItem[T]], context: MergeContext | None = None
    ) -> list[ScoredItem[T]]:
        _require_docs(docs)
        curve = self.fit(docs, context or DEFAULT_CONTEXT)
        if curve.n < MIN_TRAINING_POINTS:
            return []
        return [ScoredItem(d.value, curve.predict(rank)) for rank, d in enumerate(docs, start=1)]
