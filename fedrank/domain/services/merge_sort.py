# fedrank/domain/services/merge_sort.py
# Pure domain services: no I/O, deterministic, no external libraries.
from __future__ import annotations

from collections.abc import Sequence
from typing import Any, TypeVar

from fedrank.domain.errors import InvalidArgumentError, MissingInputError

T = TypeVar("T", bound=Any)


def _check_desc(items: Sequence[T], name: str) -> None:
    for i in range(len(items) - 1):
        if items[i] < items[i + 1]:
            raise InvalidArgumentError(
                f"{name} is not sorted descending at position {i}: {items[i]} < {items[i + 1]}"
            )


def merge_sorted(a: Sequence[T], b: Sequence[T]) -> list[T]:
    """
    Merge two descending-sorted sequences into one descending list.

    Elements are compared with their natural order (score order for ScoredItem).
    On ties the element from ``a`` comes first, so repeated merging of per-source
    lists keeps earlier sources ahead of later ones.

    Raises:
        MissingInputError: if ``a`` or ``b`` is None.
        InvalidArgumentError: if either input is not sorted descending.

    Examples:
        >>> merge_sorted([9, 5, 1], [8, 5, 2])
        [9, 8, 5, 5, 2, 1]
    """
    if a is None or b is None:
        raise MissingInputError("list to merge is None")
    _check_desc(a, "left list")
    _check_desc(b, "right list")

    result: list[T] = []
    i = j = 0
    while i < len(a) and j < len(b):
        if a[i] >= b[j]:
            result.append(a[i])
            i += 1
        else:
            result.append(b[j])
            j += 1
    result.extend(a[i:])
    result.extend(b[j:])
    return result
