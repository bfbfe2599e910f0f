"""Federated query use case: resource selection followed by results merging.

Why: One query runs against the centralized sample index, the sources are ranked
from that sample, and each selected source's own result list is calibrated and
merged into one ranking.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from typing import Any

from fedrank.application.dto.merge_dto import MergeOutcome, MergeRequest
from fedrank.application.ports import SearcherPort, TelemetryPort
from fedrank.domain.errors import (
    DomainError,
    InsufficientEvidenceError,
    RetrievalError,
    ValidationError,
)
from fedrank.domain.models import Resource, ScoredItem, is_sorted_desc, sort_scored
from fedrank.domain.services.merge_sort import merge_sorted
from fedrank.domain.services.merging import MergeContext, ResultsMerging
from fedrank.domain.services.normalization import minmax
from fedrank.domain.services.selection import (
    ResourceSelection,
    group_by_resource,
    sort_in_lockstep,
)
from fedrank.domain.types import Result

logger = logging.getLogger(__name__)


class MergeFederatedResults:
    """
    Application Use-Case orchestrating selection and merging for one query.
    No I/O of its own, uses only ports; handles errors via Result[T, E].

    Pipeline:
    1. Validate request
    2. Sample search, attach resources (documents of unknown resources are dropped)
    3. Resource selection, MinMax-normalized into relevances in [0, 1]
    4. Per selected resource: source search, calibration with a MergeContext
    5. Skip sources without calibration evidence (or fail if require_all)
    6. Merge calibrated lists, best first
    """

    def __init__(
        self,
        sample_searcher: SearcherPort,
        resource_searchers: Mapping[Resource, SearcherPort],
        doc_to_resource: Mapping[str, Resource],
        selection: ResourceSelection,
        merging: ResultsMerging,
        telemetry: TelemetryPort | None = None,
    ) -> None:
        self.sample_searcher = sample_searcher
        self.resource_searchers = resource_searchers
        self.doc_to_resource = doc_to_resource
        self.selection = selection
        self.merging = merging
        self.telemetry = telemetry

    def execute(self, req: MergeRequest) -> Result[MergeOutcome, DomainError]:
        # 1) Validate
        if not req.query_id or not req.query_id.strip():
            return Result.failure(ValidationError("query_id must not be empty"))
        if req.max_resources < 0:
            return Result.failure(ValidationError("max_resources must be >= 0"))

        # 2) Centralized sample ranking
        try:
            sample = list(self.sample_searcher.search(req.query_id))
        except Exception as ex:
            return Result.failure(RetrievalError(f"sample search failed: {ex}"))

        docs, resources = self._attach_resources(sample)
        if not is_sorted_desc(docs):
            docs, resources = sort_in_lockstep(docs, resources)
        logger.debug(
            f"query {req.query_id}: {len(docs)} of {len(sample)} sample documents "
            f"from {len(set(resources))} resources"
        )

        # 3) Resource selection
        selection = Result.attempt(lambda: self.selection.select(docs, resources), ValidationError)
        if not selection.ok:
            return Result.failure(selection.error)
        ranking = selection.value
        relevances = self._relevances(ranking)
        self._incr("fedrank.selection.runs", {"method": self.selection.name})

        selected = relevances[: req.max_resources] if req.max_resources else relevances
        sampled_by_resource = group_by_resource(docs, resources)

        # 4) + 5) Calibrate and merge each selected source
        merged: list[ScoredItem[str]] = []
        skipped: list[Resource] = []
        for relevance in selected:
            resource = relevance.value
            searcher = self.resource_searchers.get(resource)
            if searcher is None:
                logger.warning(f"no searcher for resource {resource}, skipping")
                skipped.append(resource)
                continue

            try:
                results = list(searcher.search(req.query_id))
            except Exception as ex:
                return Result.failure(RetrievalError(f"search in resource {resource} failed: {ex}"))

            calibration = Result.attempt(
                lambda: self.merging.normalize(
                    results,
                    MergeContext(
                        relevance=relevance.score,
                        sampled_docs=tuple(sampled_by_resource.get(resource, ())),
                        rank_ratio=resource.size_ratio,
                    ),
                ),
                ValidationError,
            )
            if not calibration.ok:
                return Result.failure(calibration.error)
            calibrated = calibration.value

            if results and not calibrated:
                if req.require_all:
                    return Result.failure(
                        InsufficientEvidenceError(resource_id=resource.id, method=self.merging.name)
                    )
                logger.warning(
                    f"{self.merging.name}: not enough evidence to calibrate resource "
                    f"{resource} for query {req.query_id}, skipping"
                )
                self._incr("fedrank.merge.skipped", {"method": self.merging.name})
                skipped.append(resource)
                continue

            # 6) Merge
            merged = merge_sorted(merged, sort_scored(calibrated))

        self._observe("fedrank.merge.documents", len(merged), {"method": self.merging.name})
        return Result.success(
            MergeOutcome(resource_ranking=ranking, documents=merged, skipped=skipped)
        )

    @staticmethod
    def _relevances(ranking: list[ScoredItem[Resource]]) -> list[ScoredItem[Resource]]:
        """MinMax over the finite resource scores, in ranking order.

        Selection may score a resource -inf (GAVG-log over non-positive document
        scores); such resources get relevance 0, +inf gets 1.
        """
        finite = [item for item in ranking if math.isfinite(item.score)]
        normalized = {item.value: item.score for item in minmax().normalize(finite)}
        relevances = []
        for item in ranking:
            fallback = 1.0 if item.score == math.inf else 0.0
            relevances.append(ScoredItem(item.value, normalized.get(item.value, fallback)))
        return relevances

    def _attach_resources(
        self, sample: list[ScoredItem[str]]
    ) -> tuple[list[ScoredItem[str]], list[Resource]]:
        docs: list[ScoredItem[str]] = []
        resources: list[Resource] = []
        for doc in sample:
            resource = self.doc_to_resource.get(doc.value)
            if resource is not None:
                docs.append(doc)
                resources.append(resource)
        return docs, resources

    def _incr(self, name: str, tags: dict[str, Any]) -> None:
        if self.telemetry is None:
            return
        try:
            self.telemetry.incr(name, tags)
        except Exception as ex:
            # metric errors never break selection or merging
            logger.warning(f"telemetry counter {name} failed: {ex}")

    def _observe(self, name: str, value: float, tags: dict[str, Any]) -> None:
        if self.telemetry is None:
            return
        try:
            self.telemetry.observe(name, value, tags)
        except Exception as ex:
            logger.warning(f"telemetry histogram {name} failed: {ex}")
