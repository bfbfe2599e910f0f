"""Pure domain functions for linear score normalization.

Why (SAM): result lists from different sources carry scores on unrelated scales.
A linear normalization maps each score to ``(score - shift) / divisor``; the
algorithms differ only in how (shift, divisor) is fitted, so the fit is a plug-in
(``LinearFit``) and ``ScoreNormalization`` owns the shared rank-cutoff handling.

Fits:
- identity_fit: (0, 1)
- minmax_fit:   (min, max - min)
- zscore_fit:   (mean, sample standard deviation), single pass
- sum_fit:      (min, sum of min-shifted scores)

A zero divisor is replaced by 1 in every fit.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import TypeVar

from fedrank.domain.errors import InvalidArgumentError, MissingInputError
from fedrank.domain.models import ScoredItem

T = TypeVar("T")

LinearFit = Callable[[Sequence[float]], tuple[float, float]]


def identity_fit(scores: Sequence[float]) -> tuple[float, float]:
    return 0.0, 1.0


def minmax_fit(scores: Sequence[float]) -> tuple[float, float]:
    """Shift by the minimum, divide by the range.

    Examples:
        >>> minmax_fit([1.0, 2.0, 3.0])
        (1.0, 2.0)
        >>> minmax_fit([5.0, 5.0])
        (5.0, 1.0)
    """
    lo, hi = min(scores), max(scores)
    return lo, (hi - lo) or 1.0


def zscore_fit(scores: Sequence[float]) -> tuple[float, float]:
    """Mean and sample standard deviation via Welford's online update."""
    mu = 0.0
    m2 = 0.0
    for i, x in enumerate(scores):
        delta = x - mu
        mu += delta / (i + 1)
        m2 += delta * (x - mu)
    sigma = math.sqrt(m2 / (len(scores) - 1)) if len(scores) > 1 else 0.0
    return mu, sigma or 1.0


def sum_fit(scores: Sequence[float]) -> tuple[float, float]:
    lo = min(scores)
    total = sum(s - lo for s in scores)
    return lo, total or 1.0


@dataclass(frozen=True)
class ScoreNormalization:
    """
    Rescales a result list with a linear fit.

    - fit:         computes (shift, divisor) from a window of scores
    - rank_cutoff: when set, the fit sees exactly ``rank_cutoff`` scores: the top of
                   the list, padded with zeros if the list is shorter
    - name:        label used in logs and metrics

    The fitted transform is applied to every input document, so the output always
    has the input's length and order of values.
    """

    fit: LinearFit
    rank_cutoff: int | None = None
    name: str = "custom"

    def __post_init__(self) -> None:
        if self.fit is None:
            raise MissingInputError("normalization fit is None")
        if self.rank_cutoff is not None and self.rank_cutoff <= 0:
            raise InvalidArgumentError(f"rank cutoff must be > 0: {self.rank_cutoff}")

    def window(self, scores: Sequence[float]) -> list[float]:
        if self.rank_cutoff is None:
            return list(scores)
        top = list(scores[: self.rank_cutoff])
        return top + [0.0] * (self.rank_cutoff - len(top))

    def normalize(self, docs: Sequence[ScoredItem[T]]) -> list[ScoredItem[T]]:
        """Normalize scores of ``docs``; values and their order are unchanged.

        Raises:
            MissingInputError: if ``docs`` is None
        """
        if docs is None:
            raise MissingInputError("list of unnormalized scored documents is None")
        if not docs:
            return []

        shift, divisor = self.fit(self.window([d.score for d in docs]))
        return [ScoredItem(d.value, (d.score - shift) / divisor) for d in docs]


def identity(rank_cutoff: int | None = None) -> ScoreNormalization:
    return ScoreNormalization(identity_fit, rank_cutoff, name="identity")


def minmax(rank_cutoff: int | None = None) -> ScoreNormalization:
    return ScoreNormalization(minmax_fit, rank_cutoff, name="minmax")


def zscore(rank_cutoff: int | None = None) -> ScoreNormalization:
    return ScoreNormalization(zscore_fit, rank_cutoff, name="zscore")


def sum_norm(rank_cutoff: int | None = None) -> ScoreNormalization:
    return ScoreNormalization(sum_fit, rank_cutoff, name="sum")
