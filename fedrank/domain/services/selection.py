"""Sample-based resource selection: shared orchestration.

Why (SAM): every selection algorithm works the same way around its scoring step:
validate the parallel lists, make sure the sample ranking is sorted descending,
resolve how deep into the ranking to look, score resources, then return every
distinct input resource exactly once, best first. Only the scoring step differs,
so it is a plug-in (``ResourceScorer``) instead of a subclass.

Functions:
- complete_to_sample_rank: map a rank in the full collections to a sample rank
- sort_in_lockstep: descending stable sort of documents, resources follow
- group_by_resource: split a ranking into per-resource document lists
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from fedrank.domain.errors import InvalidArgumentError, MissingInputError
from fedrank.domain.models import Resource, ScoredItem, is_sorted_desc, sort_scored

Documents = Sequence[ScoredItem[Any]]
Resources = Sequence[Resource]

# (documents sorted descending, parallel resources, sample rank cutoff) -> scores
ResourceScorer = Callable[[Documents, Resources, int], dict[Resource, float]]

DEFAULT_COMPLETE_RANK_CUTOFF = 100


def complete_to_sample_rank(documents: Documents, resources: Resources, complete_rank: int) -> int:
    """Sample rank at which the estimated complete rank first reaches ``complete_rank``.

    Each sampled document stands for ``full_size / sample_size`` documents of its
    resource. Walking the ranking, these ratios accumulate into an estimate of the
    complete rank; the 1-based position where it first reaches ``complete_rank``
    is returned, or the ranking length if it never does.
    """
    rank = 0.0
    for i in range(len(documents)):
        rank += resources[i].size_ratio
        if rank >= complete_rank:
            return i + 1
    return len(resources)


def sort_in_lockstep(documents: Documents, resources: Resources) -> tuple[list, list]:
    """Stable descending sort by document score; resources are reordered alongside."""
    order = sorted(range(len(documents)), key=lambda i: documents[i].score, reverse=True)
    return [documents[i] for i in order], [resources[i] for i in order]


def group_by_resource(
    documents: Documents, resources: Resources
) -> dict[Resource, list[ScoredItem[Any]]]:
    """Per-resource document lists, preserving ranking order inside each list."""
    grouped: dict[Resource, list[ScoredItem[Any]]] = {}
    for doc, resource in zip(documents, resources, strict=True):
        grouped.setdefault(resource, []).append(doc)
    return grouped


@dataclass(frozen=True)
class ResourceSelection:
    """
    Ranks resources from a centralized sample ranking.

    - scorer:               the algorithm-specific scoring step
    - complete_rank_cutoff: depth of interest in the (hypothetical) complete ranking
    - sample_rank_cutoff:   depth in the sample ranking; when set, overrides
                            ``complete_rank_cutoff``
    - name:                 label used in logs and metrics
    """

    scorer: ResourceScorer
    complete_rank_cutoff: int = DEFAULT_COMPLETE_RANK_CUTOFF
    sample_rank_cutoff: int | None = None
    name: str = "custom"

    def __post_init__(self) -> None:
        if self.scorer is None:
            raise MissingInputError("resource scorer is None")
        if self.complete_rank_cutoff <= 0:
            raise InvalidArgumentError(
                f"complete rank cutoff must be > 0: {self.complete_rank_cutoff}"
            )
        if self.sample_rank_cutoff is not None and self.sample_rank_cutoff <= 0:
            raise InvalidArgumentError(f"sample rank cutoff must be > 0: {self.sample_rank_cutoff}")

    def cutoff_for(self, documents: Documents, resources: Resources) -> int:
        if self.sample_rank_cutoff is not None:
            return self.sample_rank_cutoff
        return complete_to_sample_rank(documents, resources, self.complete_rank_cutoff)

    def select(self, documents: Documents, resources: Resources) -> list[ScoredItem[Resource]]:
        """Rank the distinct resources of ``resources``, highest score first.

        Args:
            documents: Scored documents of the centralized sample ranking
            resources: ``resources[i]`` is the resource that holds ``documents[i]``

        Returns:
            One ScoredItem per distinct input resource, sorted descending.
            Resources the scorer did not score get 0.

        Raises:
            MissingInputError: if either list is None
            InvalidArgumentError: if the lists differ in length
        """
        if documents is None:
            raise MissingInputError("list of scored documents is None")
        if resources is None:
            raise MissingInputError("list of resources is None")
        if len(documents) != len(resources):
            raise InvalidArgumentError(
                "documents and resources differ in length: "
                f"{len(documents)} != {len(resources)}"
            )

        docs, res = list(documents), list(resources)
        if not is_sorted_desc(docs):
            docs, res = sort_in_lockstep(docs, res)

        scores = self.scorer(docs, res, self.cutoff_for(docs, res))

        ranked = [ScoredItem(resource, score) for resource, score in scores.items()]
        for resource in res:
            zero = ScoredItem(resource, 0.0)
            if zero not in ranked:
                ranked.append(zero)
        return sort_scored(ranked)
