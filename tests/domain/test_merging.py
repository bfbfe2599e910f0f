"""Tests for results merging (CORI, SSL, SAFE) with per-query MergeContext."""

import pytest

from fedrank.domain.errors import InvalidArgumentError, MissingInputError
from fedrank.domain.models import ScoredItem
from fedrank.domain.regression import reciprocal_or_zero
from fedrank.domain.services.merging import CORI, SAFE, SSL, MergeContext, rank_to_score
from fedrank.domain.services.normalization import identity


def make_docs(**scored: float) -> list[ScoredItem[str]]:
    return [ScoredItem(doc_id, score) for doc_id, score in scored.items()]


def scores(items: list[ScoredItem]) -> list[float]:
    return [it.score for it in items]


class TestMergeContext:
    @pytest.mark.parametrize("relevance", [-0.1, 1.5])
    def test_relevance_outside_unit_interval_rejected(self, relevance: float) -> None:
        with pytest.raises(InvalidArgumentError):
            MergeContext(relevance=relevance)

    @pytest.mark.parametrize("rank_ratio", [0.0, -2.0])
    def test_non_positive_rank_ratio_rejected(self, rank_ratio: float) -> None:
        with pytest.raises(InvalidArgumentError):
            MergeContext(rank_ratio=rank_ratio)

    def test_missing_sampled_docs_rejected(self) -> None:
        with pytest.raises(MissingInputError):
            MergeContext(sampled_docs=None)


class TestCORI:
    def test_full_relevance_keeps_base_scores(self) -> None:
        result = CORI().normalize(make_docs(a=4.0, b=2.0, c=0.0), MergeContext(relevance=1.0))
        assert scores(result) == pytest.approx([1.0, 0.5, 0.0])

    def test_zero_relevance_damps_scores(self) -> None:
        result = CORI(lam=0.4).normalize(make_docs(a=4.0, b=2.0), MergeContext(relevance=0.0))
        assert scores(result) == pytest.approx([1 / 1.4, 0.0])

    def test_default_context_means_full_relevance(self) -> None:
        assert scores(CORI().normalize(make_docs(a=4.0, b=2.0))) == pytest.approx([1.0, 0.0])

    def test_custom_base_normalization(self) -> None:
        cori = CORI(lam=1.0, base=identity())
        result = cori.normalize(make_docs(a=3.0), MergeContext(relevance=0.0))
        assert scores(result) == pytest.approx([1.5])

    def test_same_instance_serves_several_queries(self) -> None:
        cori = CORI()
        docs = make_docs(a=4.0, b=2.0)
        low = cori.normalize(docs, MergeContext(relevance=0.0))
        high = cori.normalize(docs, MergeContext(relevance=1.0))
        assert low[0].score < high[0].score
        assert cori.normalize(docs)[0].score == pytest.approx(high[0].score)

    def test_negative_lambda_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError):
            CORI(lam=-0.1)

    def test_none_docs_rejected(self) -> None:
        with pytest.raises(MissingInputError):
            CORI().normalize(None)


class TestSSL:
    sampled = tuple(make_docs(a=0.9, b=0.6, c=0.3))

    def test_maps_source_scores_onto_centralized_scale(self) -> None:
        docs = make_docs(a=30.0, b=20.0, c=10.0, d=5.0)
        result = SSL().normalize(docs, MergeContext(sampled_docs=self.sampled))
        assert [it.value for it in result] == ["a", "b", "c", "d"]
        assert scores(result) == pytest.approx([0.9, 0.6, 0.3, 0.15])

    def test_fewer_than_three_overlaps_gives_empty(self) -> None:
        docs = make_docs(a=30.0, b=20.0, x=10.0)
        assert SSL().normalize(docs, MergeContext(sampled_docs=self.sampled)) == []

    def test_repeated_source_scores_count_once(self) -> None:
        docs = make_docs(a=30.0, b=30.0, c=10.0)
        regression = SSL().training_regression(docs, {d.value: d.score for d in self.sampled})
        assert regression.n == 2

    def test_training_stops_at_max_points(self) -> None:
        sampled = {f"d{i}": float(i) for i in range(20)}
        docs = [ScoredItem(f"d{i}", float(i)) for i in reversed(range(20))]
        assert SSL(max_points=5).training_regression(docs, sampled).n == 5

    def test_without_sampled_docs_gives_empty(self) -> None:
        assert SSL().normalize(make_docs(a=3.0, b=2.0, c=1.0)) == []

    def test_too_small_max_points_rejected(self) -> None:
        with pytest.raises(InvalidArgumentError):
            SSL(max_points=2)


class TestSAFE:
    def test_rank_to_score_extrapolates_beyond_last_overlap(self) -> None:
        sampled = make_docs(a=0.9, b=0.5, x=0.3, y=0.2)
        docs = make_docs(a=10.0, c=8.0, b=6.0)
        mapping = rank_to_score(sampled, docs, rank_ratio=2.0)
        assert mapping == {1: 0.9, 3: 0.5, 4: 0.3, 6: 0.2}

    def test_rank_to_score_without_overlap_starts_after_list(self) -> None:
        mapping = rank_to_score(make_docs(x=0.5), make_docs(a=1.0, b=0.5), rank_ratio=4.0)
        assert mapping == {4: 0.5}

    def test_picks_reciprocal_curve(self) -> None:
        sampled = tuple(make_docs(d1=1.0, d2=0.5, d3=1 / 3, d4=0.25))
        docs = make_docs(d1=40.0, d2=30.0, d3=20.0, d4=10.0, d5=5.0)
        context = MergeContext(sampled_docs=sampled, rank_ratio=1.0)

        assert SAFE().fit(docs, context).transform is reciprocal_or_zero
        result = SAFE().normalize(docs, context)
        assert [it.value for it in result] == ["d1", "d2", "d3", "d4", "d5"]
        assert scores(result) == pytest.approx([1.0, 0.5, 1 / 3, 0.25, 0.2])

    def test_fewer_than_three_points_gives_empty(self) -> None:
        context = MergeContext(sampled_docs=tuple(make_docs(a=0.9, b=0.5)))
        assert SAFE().normalize(make_docs(a=3.0, b=2.0, c=1.0), context) == []

    def test_empty_docs(self) -> None:
        assert SAFE().normalize([]) == []

    def test_none_docs_rejected(self) -> None:
        with pytest.raises(MissingInputError):
            SAFE().normalize(None)
