"""Online simple linear regression with transformed regressors.

Why: SUSHI, SAFE and SSL all fit y ~ a * f(x) + b incrementally and pick the
transform f with the best fit. Sums are updated with the numerically stable
centered form, so no second pass over the data is needed.
"""

from __future__ import annotations

import math
from collections.abc import Callable, Sequence

from fedrank.domain.errors import InvalidArgumentError

Transform = Callable[[float], float]

# Smallest positive subnormal double; a Sxx below 10x this is treated as zero.
_TINY = 5e-324


def linear(x: float) -> float:
    return x


def log_or_neg_inf(x: float) -> float:
    """log(x); -inf for x <= 0."""
    if x <= 0:
        return -math.inf
    return math.log(x)


def exp_or_inf(x: float) -> float:
    """exp(x); +inf where the result overflows a double."""
    try:
        return math.exp(x)
    except OverflowError:
        return math.inf


def sqrt_or_zero(x: float) -> float:
    """sqrt(x); 0 for x < 0."""
    if x < 0:
        return 0.0
    return math.sqrt(x)


def reciprocal_or_zero(x: float) -> float:
    """1/x; 0 for x == 0."""
    if x == 0:
        return 0.0
    return 1.0 / x


class SimpleRegression:
    """Least-squares fit of y against x from a stream of (x, y) pairs.

    Keeps n, the running means and the centered sums Sxx, Syy, Sxy.
    Statistics that are undefined for the data seen so far are NaN
    (fewer than two points, zero variance in x or y, infinite inputs).
    """

    def __init__(self) -> None:
        self.n = 0
        self._sum_x = 0.0
        self._sum_y = 0.0
        self._sum_xx = 0.0
        self._sum_yy = 0.0
        self._sum_xy = 0.0
        self._x_bar = 0.0
        self._y_bar = 0.0

    def add(self, x: float, y: float) -> None:
        if self.n == 0:
            self._x_bar = x
            self._y_bar = y
        else:
            fact = self.n / (self.n + 1.0)
            dx = x - self._x_bar
            dy = y - self._y_bar
            self._sum_xx += dx * dx * fact
            self._sum_yy += dy * dy * fact
            self._sum_xy += dx * dy * fact
            self._x_bar += dx / (self.n + 1.0)
            self._y_bar += dy / (self.n + 1.0)
        self._sum_x += x
        self._sum_y += y
        self.n += 1

    @property
    def slope(self) -> float:
        if self.n < 2 or abs(self._sum_xx) < 10 * _TINY:
            return math.nan
        return self._sum_xy / self._sum_xx

    @property
    def intercept(self) -> float:
        if self.n == 0:
            return math.nan
        return (self._sum_y - self.slope * self._sum_x) / self.n

    @property
    def sum_squared_errors(self) -> float:
        if self._sum_xx == 0:
            return math.nan
        sse = self._sum_yy - self._sum_xy * self._sum_xy / self._sum_xx
        # clamp tiny negatives from rounding, keep NaN
        return 0.0 if sse < 0 else sse

    @property
    def r_square(self) -> float:
        if self.n < 2:
            return math.nan
        ssto = self._sum_yy
        if ssto == 0:
            return math.nan
        return (ssto - self.sum_squared_errors) / ssto

    @property
    def r(self) -> float:
        rsq = self.r_square
        result = math.nan if math.isnan(rsq) else math.sqrt(rsq)
        if self.slope < 0:
            return -result
        return result

    def predict(self, x: float) -> float:
        return self.intercept + self.slope * x


class TransformedRegression:
    """Regression of y on f(x) for a fixed transform f.

    With fewer than two observations ``predict``, ``r`` and ``r_square`` return 0.
    """

    def __init__(self, transform: Transform) -> None:
        self.transform = transform
        self._reg = SimpleRegression()

    @property
    def n(self) -> int:
        return self._reg.n

    def add(self, x: float, y: float) -> None:
        self._reg.add(self.transform(x), y)

    def predict(self, x: float) -> float:
        if self.n < 2:
            return 0.0
        return self._reg.slope * self.transform(x) + self._reg.intercept

    @property
    def r_square(self) -> float:
        if self.n < 2:
            return 0.0
        return self._reg.r_square

    @property
    def r(self) -> float:
        if self.n < 2:
            return 0.0
        return self._reg.r


def fit_all(
    transforms: Sequence[Transform], points: Sequence[tuple[float, float]]
) -> list[TransformedRegression]:
    """One regression per transform, each fed every (x, y) point in order."""
    regressions = [TransformedRegression(f) for f in transforms]
    for reg in regressions:
        for x, y in points:
            reg.add(x, y)
    return regressions


def best_fit(
    regressions: Sequence[TransformedRegression],
    quality: Callable[[TransformedRegression], float],
) -> TransformedRegression:
    """Linear scan for the highest quality; the first one wins ties.

    A NaN quality never replaces the current best.
    """
    if not regressions:
        raise InvalidArgumentError("no regressions to choose from")
    best = regressions[0]
    for candidate in regressions[1:]:
        if quality(best) < quality(candidate):
            best = candidate
    return best
