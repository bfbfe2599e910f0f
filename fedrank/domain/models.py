# fedrank/domain/models.py
# Domain models must be pure (no I/O, no external libs)
from __future__ import annotations

from collections.abc import Hashable, Sequence
from dataclasses import dataclass
from typing import Generic, TypeVar

from fedrank.domain.errors import InvalidArgumentError, MissingInputError

T = TypeVar("T")


@dataclass(frozen=True, eq=False)
class ScoredItem(Generic[T]):
    """
    Immutable (value, score) pair passed between every selection/merging step.

    - value: the scored entity (document id, Resource, ...); never None
    - score: the entity score

    NOTE: equality and ordering are deliberately inconsistent.
    Two items are equal iff their values are equal (score ignored, also for hashing),
    while <, <=, >, >= compare scores only. Membership checks such as
    ``ScoredItem(resource, 0.0) in ranking`` therefore match by value.
    """

    value: T
    score: float

    def __post_init__(self) -> None:
        if self.value is None:
            raise MissingInputError("scored item value is None")

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ScoredItem):
            return NotImplemented
        return self.value == other.value

    def __hash__(self) -> int:
        return hash(self.value)

    def __lt__(self, other: ScoredItem) -> bool:
        return self.score < other.score

    def __le__(self, other: ScoredItem) -> bool:
        return self.score <= other.score

    def __gt__(self, other: ScoredItem) -> bool:
        return self.score > other.score

    def __ge__(self, other: ScoredItem) -> bool:
        return self.score >= other.score

    def __str__(self) -> str:
        return f"{self.value}:{round(self.score, 2)}"


@dataclass(frozen=True, eq=False)
class Resource:
    """
    A searchable source as seen by resource selection.

    - id:          opaque, hashable resource key
    - full_size:   number of documents in the full resource (> 0)
    - sample_size: number of documents sampled into the centralized index (> 0)

    Equality and hash use ``id`` only.
    """

    id: Hashable
    full_size: int
    sample_size: int

    def __post_init__(self) -> None:
        if self.id is None:
            raise MissingInputError("resource id is None")
        if self.full_size <= 0:
            raise InvalidArgumentError(f"resource size must be > 0: {self.full_size}")
        if self.sample_size <= 0:
            raise InvalidArgumentError(f"resource sample size must be > 0: {self.sample_size}")

    @property
    def size_ratio(self) -> float:
        """How many full-resource documents one sampled document stands for."""
        return self.full_size / self.sample_size

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Resource):
            return NotImplemented
        return self.id == other.id

    def __hash__(self) -> int:
        return hash(self.id)

    def __str__(self) -> str:
        return str(self.id)


def sort_scored(items: Sequence[ScoredItem[T]], ascending: bool = False) -> list[ScoredItem[T]]:
    """Stable sort of scored items by score; returns a new list.

    Equal scores keep their input order in both directions.
    """
    if items is None:
        raise MissingInputError("list of scored items is None")
    return sorted(items, key=lambda it: it.score, reverse=not ascending)


def is_sorted_desc(items: Sequence[ScoredItem[T]]) -> bool:
    return all(items[i].score >= items[i + 1].score for i in range(len(items) - 1))
