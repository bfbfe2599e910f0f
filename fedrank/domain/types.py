"""Result type returned by application use cases.

Why: expected failures (bad requests, failing searchers, missing calibration
evidence) are values, not exceptions crossing the application boundary.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")
E = TypeVar("E", bound=BaseException)


@dataclass(frozen=True)
class Result(Generic[T, E]):
    """Either ``value`` (ok=True) or ``error`` (ok=False)."""

    ok: bool
    value: T | None = None
    error: E | None = None

    @classmethod
    def success(cls, value: T) -> Result[T, E]:
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: E) -> Result[T, E]:
        return cls(ok=False, error=error)

    @classmethod
    def attempt(cls, step: Callable[[], T], *expected: type[E]) -> Result[T, E]:
        """Run ``step``; an exception of an ``expected`` type becomes a failure.

        Other exceptions propagate.
        """
        try:
            return cls.success(step())
        except expected as ex:
            return cls.failure(ex)
