# fedrank/application/dto/merge_dto.py
from __future__ import annotations

from dataclasses import dataclass, field

from fedrank.domain.models import Resource, ScoredItem


@dataclass(frozen=True)
class MergeRequest:
    """
    DTO for one federated query.

    - query_id: query identifier passed to every searcher (non-empty)
    - max_resources: how many top-ranked resources to search and merge (0 = all)
    - require_all: fail instead of skipping a source whose calibration lacks evidence
    """

    query_id: str
    max_resources: int = 0
    require_all: bool = False


@dataclass(frozen=True)
class MergeOutcome:
    """Resource ranking, merged document ranking and the sources left out of it."""

    resource_ranking: list[ScoredItem[Resource]]
    documents: list[ScoredItem[str]]
    skipped: list[Resource] = field(default_factory=list)
