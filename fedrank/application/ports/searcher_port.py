"""Searcher port for ranked result lists.

Why (SAM): Application defines the interface (port), infrastructure provides
concrete adapters. The same port serves the centralized sample index and every
source-specific search engine.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from fedrank.domain.models import ScoredItem


class SearcherPort(ABC):
    """Port for running one query against one index."""

    @abstractmethod
    def search(self, query_id: str) -> list[ScoredItem[str]]:
        """Return the ranked, scored documents for a query.

        Args:
            query_id: Identifier of the query to run

        Returns:
            Scored document ids, best first. Empty if the index has no results.

        Raises:
            RuntimeError: If the search backend fails (wrapped to RetrievalError by use case)
        """
        ...
