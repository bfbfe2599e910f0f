"""Tests for MergeFederatedResults use case."""

import math
from typing import Any

import pytest

from fedrank.application.dto.merge_dto import MergeRequest
from fedrank.application.ports import SearcherPort
from fedrank.application.use_cases.merge_federated_results import MergeFederatedResults
from fedrank.domain.errors import (
    InsufficientEvidenceError,
    RetrievalError,
    ValidationError,
)
from fedrank.domain.models import Resource, ScoredItem
from fedrank.domain.services.merging import CORI, SSL
from fedrank.domain.services.redde import gavg_log, redde

R1 = Resource("R1", 100, 10)  # ratio 10
R2 = Resource("R2", 50, 10)  # ratio 5


class FakeSearcher(SearcherPort):
    """Fake searcher returning a fixed result list for any query."""

    def __init__(self, hits: list[tuple[str, float]]) -> None:
        self.hits = [ScoredItem(doc_id, score) for doc_id, score in hits]
        self.queries: list[str] = []

    def search(self, query_id: str) -> list[ScoredItem[str]]:
        self.queries.append(query_id)
        return list(self.hits)


class FailingSearcher(SearcherPort):
    """Fake searcher that always fails."""

    def search(self, query_id: str) -> list[ScoredItem[str]]:
        raise RuntimeError("index offline")


class FakeTelemetry:
    """Records counter and histogram calls."""

    def __init__(self) -> None:
        self.counters: list[tuple[str, dict[str, Any] | None]] = []
        self.observations: list[tuple[str, float]] = []

    def incr(self, name: str, tags: dict[str, Any] | None = None) -> None:
        self.counters.append((name, tags))

    def observe(self, name: str, value: float, tags: dict[str, Any] | None = None) -> None:
        self.observations.append((name, value))


class RaisingTelemetry:
    """Telemetry whose backend is unreachable."""

    def incr(self, name: str, tags: dict[str, Any] | None = None) -> None:
        raise RuntimeError("collector down")

    def observe(self, name: str, value: float, tags: dict[str, Any] | None = None) -> None:
        raise RuntimeError("collector down")


def sample_searcher() -> FakeSearcher:
    # R1 gets 2 votes * ratio 10 = 20, R2 gets 2 * 5 = 10; "unknown" has no resource
    return FakeSearcher([("s1", 9.0), ("s2", 8.0), ("unknown", 7.5), ("s3", 7.0), ("s4", 6.0)])


DOC_TO_RESOURCE = {"s1": R1, "s2": R1, "s3": R2, "s4": R2}


def build_use_case(
    merging=None,
    resource_searchers=None,
    sample=None,
    telemetry=None,
) -> MergeFederatedResults:
    if resource_searchers is None:
        resource_searchers = {
            R1: FakeSearcher([("r1a", 10.0), ("r1b", 5.0), ("r1c", 0.0)]),
            R2: FakeSearcher([("r2a", 3.0), ("r2b", 1.0)]),
        }
    return MergeFederatedResults(
        sample_searcher=sample or sample_searcher(),
        resource_searchers=resource_searchers,
        doc_to_resource=DOC_TO_RESOURCE,
        selection=redde(sample_rank_cutoff=4),
        merging=merging or CORI(),
        telemetry=telemetry,
    )


class TestMergeFederatedResults:
    def test_merges_calibrated_lists(self) -> None:
        """R1 relevance 1 keeps its scores; R2 relevance 0 is damped by 1/1.4."""
        res = build_use_case().execute(MergeRequest(query_id="q1"))

        assert res.ok
        assert [str(item.value) for item in res.value.resource_ranking] == ["R1", "R2"]
        assert [item.score for item in res.value.resource_ranking] == pytest.approx([20.0, 10.0])
        assert [d.value for d in res.value.documents] == ["r1a", "r2a", "r1b", "r1c", "r2b"]
        assert res.value.documents[1].score == pytest.approx(1 / 1.4)
        assert res.value.skipped == []

    def test_max_resources_limits_searched_sources(self) -> None:
        searchers = {
            R1: FakeSearcher([("r1a", 10.0), ("r1b", 5.0)]),
            R2: FakeSearcher([("r2a", 3.0)]),
        }
        res = build_use_case(resource_searchers=searchers).execute(
            MergeRequest(query_id="q1", max_resources=1)
        )

        assert res.ok
        assert [d.value for d in res.value.documents] == ["r1a", "r1b"]
        assert searchers[R2].queries == []
        # the resource ranking still covers every resource
        assert len(res.value.resource_ranking) == 2

    def test_source_without_searcher_is_skipped(self) -> None:
        searchers = {R1: FakeSearcher([("r1a", 10.0)])}
        res = build_use_case(resource_searchers=searchers).execute(MergeRequest(query_id="q1"))

        assert res.ok
        assert [d.value for d in res.value.documents] == ["r1a"]
        assert res.value.skipped == [R2]

    def test_insufficient_evidence_skips_source(self) -> None:
        """SSL needs three overlapping documents; each resource has two."""
        telemetry = FakeTelemetry()
        res = build_use_case(merging=SSL(), telemetry=telemetry).execute(
            MergeRequest(query_id="q1")
        )

        assert res.ok
        assert res.value.documents == []
        assert res.value.skipped == [R1, R2]
        skipped = [name for name, _ in telemetry.counters if name == "fedrank.merge.skipped"]
        assert len(skipped) == 2

    def test_insufficient_evidence_fails_when_all_required(self) -> None:
        res = build_use_case(merging=SSL()).execute(MergeRequest(query_id="q1", require_all=True))

        assert not res.ok
        assert isinstance(res.error, InsufficientEvidenceError)
        assert res.error.resource_id == "R1"
        assert res.error.method == "ssl"

    def test_ssl_calibrates_with_sampled_overlap(self) -> None:
        searchers = {
            R1: FakeSearcher([("s1", 90.0), ("s2", 80.0), ("r1x", 40.0)]),
            R2: FakeSearcher([("s3", 70.0), ("s4", 60.0)]),
        }
        sample = FakeSearcher(
            [("s1", 9.0), ("s2", 8.0), ("s5", 7.5), ("s3", 7.0), ("s4", 6.0)]
        )
        doc_to_resource = dict(DOC_TO_RESOURCE, s5=R1)
        use_case = MergeFederatedResults(
            sample_searcher=sample,
            resource_searchers=searchers,
            doc_to_resource=doc_to_resource,
            selection=redde(sample_rank_cutoff=5),
            merging=SSL(),
        )
        # R1 overlap has only s1, s2 (s5 is not in its result list): skipped
        res = use_case.execute(MergeRequest(query_id="q1"))
        assert res.ok
        assert res.value.skipped == [R1, R2]

        searchers[R1] = FakeSearcher([("s1", 90.0), ("s2", 80.0), ("s5", 75.0), ("r1x", 40.0)])
        res = use_case.execute(MergeRequest(query_id="q1"))
        assert res.ok
        assert res.value.skipped == [R2]
        assert [d.value for d in res.value.documents] == ["s1", "s2", "s5", "r1x"]
        assert res.value.documents[0].score == pytest.approx(9.0)
        assert res.value.documents[-1].score == pytest.approx(4.0)

    def test_telemetry_records_runs_and_sizes(self) -> None:
        telemetry = FakeTelemetry()
        build_use_case(telemetry=telemetry).execute(MergeRequest(query_id="q1"))

        assert ("fedrank.selection.runs", {"method": "redde"}) in telemetry.counters
        assert ("fedrank.merge.documents", 5) in telemetry.observations

    @pytest.mark.parametrize("query_id", ["", "   "])
    def test_empty_query_fails(self, query_id: str) -> None:
        res = build_use_case().execute(MergeRequest(query_id=query_id))
        assert not res.ok
        assert isinstance(res.error, ValidationError)

    def test_negative_max_resources_fails(self) -> None:
        res = build_use_case().execute(MergeRequest(query_id="q1", max_resources=-1))
        assert not res.ok
        assert isinstance(res.error, ValidationError)

    def test_sample_search_failure_is_mapped(self) -> None:
        res = build_use_case(sample=FailingSearcher()).execute(MergeRequest(query_id="q1"))
        assert not res.ok
        assert isinstance(res.error, RetrievalError)

    def test_source_search_failure_is_mapped(self) -> None:
        searchers = {R1: FailingSearcher(), R2: FakeSearcher([("r2a", 1.0)])}
        res = build_use_case(resource_searchers=searchers).execute(MergeRequest(query_id="q1"))
        assert not res.ok
        assert isinstance(res.error, RetrievalError)
        assert "R1" in str(res.error)

    def test_unsorted_sample_is_sorted(self) -> None:
        sample = FakeSearcher([("s3", 7.0), ("s1", 9.0), ("s4", 6.0), ("s2", 8.0)])
        res = build_use_case(sample=sample).execute(MergeRequest(query_id="q1"))
        assert res.ok
        assert [item.score for item in res.value.resource_ranking] == pytest.approx([20.0, 10.0])

    def test_failing_telemetry_does_not_break_merge(self) -> None:
        """Metric errors are logged; the merge result is still returned."""
        res = build_use_case(telemetry=RaisingTelemetry()).execute(MergeRequest(query_id="q1"))

        assert res.ok
        assert [d.value for d in res.value.documents] == ["r1a", "r2a", "r1b", "r1c", "r2b"]

    def test_gavg_log_with_zero_sample_score(self) -> None:
        """log(0) scores R2 -inf; it ranks last with relevance 0 and is still merged."""
        sample = FakeSearcher([("s1", 9.0), ("s2", 8.0), ("s3", 7.0), ("s4", 0.0)])
        use_case = MergeFederatedResults(
            sample_searcher=sample,
            resource_searchers={
                R1: FakeSearcher([("r1a", 10.0), ("r1b", 5.0), ("r1c", 0.0)]),
                R2: FakeSearcher([("r2a", 3.0), ("r2b", 1.0)]),
            },
            doc_to_resource=DOC_TO_RESOURCE,
            selection=gavg_log(sample_rank_cutoff=4),
            merging=CORI(),
        )

        res = use_case.execute(MergeRequest(query_id="q1"))

        assert res.ok
        ranking = res.value.resource_ranking
        assert [str(item.value) for item in ranking] == ["R1", "R2"]
        assert ranking[-1].score == -math.inf
        assert len(res.value.documents) == 5
        assert all(math.isfinite(d.score) for d in res.value.documents)


class TestRelevances:
    def test_finite_scores_minmax_normalized(self) -> None:
        ranking = [ScoredItem(R1, 20.0), ScoredItem(R2, 10.0)]
        relevances = MergeFederatedResults._relevances(ranking)
        assert [item.score for item in relevances] == [1.0, 0.0]

    def test_infinite_scores_map_to_bounds(self) -> None:
        r3 = Resource("R3", 10, 10)
        ranking = [
            ScoredItem(r3, math.inf),
            ScoredItem(R1, 20.0),
            ScoredItem(R2, 10.0),
            ScoredItem(Resource("R4", 10, 10), -math.inf),
        ]
        relevances = MergeFederatedResults._relevances(ranking)
        assert [item.score for item in relevances] == [1.0, 1.0, 0.0, 0.0]
        assert [item.value for item in relevances] == [item.value for item in ranking]

    def test_only_infinite_scores(self) -> None:
        relevances = MergeFederatedResults._relevances([ScoredItem(R1, -math.inf)])
        assert [item.score for item in relevances] == [0.0]
