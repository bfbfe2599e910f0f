from __future__ import annotations

from collections.abc import Mapping, Sequence

from fedrank.application.ports import SearcherPort
from fedrank.domain.models import ScoredItem, sort_scored


class InMemorySearcher(SearcherPort):
    """Serves precomputed result lists per query id (evaluation runs, tests).

    Lists are stored sorted best first and cut at ``top_n`` (0 = keep all).
    """

    def __init__(
        self, results: Mapping[str, Sequence[tuple[str, float]]] | None = None, top_n: int = 0
    ) -> None:
        self.top_n = top_n
        self._results: dict[str, list[ScoredItem[str]]] = {}
        for query_id, hits in (results or {}).items():
            self.add(query_id, hits)

    def add(self, query_id: str, hits: Sequence[tuple[str, float]]) -> None:
        ranked = sort_scored([ScoredItem(doc_id, float(score)) for doc_id, score in hits])
        self._results[query_id] = ranked[: self.top_n] if self.top_n > 0 else ranked

    def search(self, query_id: str) -> list[ScoredItem[str]]:
        return list(self._results.get(query_id, []))
