"""
Tests for artisan_match.core.matching.similarity_search.

The index is the in-memory fake from conftest, seeded with five artisans
whose cosine similarity to the x axis is known exactly.
"""

import math
import time

import numpy as np
import pytest

from artisan_match.core.exceptions import (
    DimensionMismatchError,
    OperationTimeoutError,
    VectorNotFoundError,
)
from artisan_match.core.matching import (
    SearchFilters,
    SimilaritySearchEngine,
    SimilaritySearchQuery,
    SimilaritySearchResult,
)
from artisan_match.data.models import InteractionRecord
from artisan_match.ml.embeddings.vector_store import IndexMatch
from artisan_match.utils.constants import MATCH_REASONS, MatchConfidenceLevel, SearchMode

from tests.conftest import InMemoryVectorIndex, TEST_DIMENSION


def _vector(x: float, y: float) -> np.ndarray:
    vector = np.zeros(TEST_DIMENSION)
    vector[0], vector[1] = x, y
    return vector


# id -> (vector, metadata); similarity to the x axis is the x component
SEED = {
    "a1": (_vector(1.0, 0.0), {
        "verified": True, "rating": 4.8, "experience_level": "expert",
        "materials": "clay,terracotta", "skills": "pottery,glazing",
        "price_min": 1500.0, "price_max": 6000.0,
    }),
    "a2": (_vector(0.8, 0.6), {
        "verified": False, "rating": 4.0, "experience_level": "master",
        "materials": "teak,sheesham", "skills": "carving,joinery",
        "price_min": 8000.0, "price_max": 40000.0,
    }),
    "a3": (_vector(0.6, 0.8), {
        "verified": True, "rating": 4.6, "experience_level": "advanced",
        "materials": "silver", "skills": "filigree",
    }),
    "a4": (_vector(0.0, 1.0), {
        "verified": False, "rating": 3.0, "experience_level": "beginner",
        "materials": "", "skills": "",
    }),
    "a5": (_vector(0.9, math.sqrt(1 - 0.81)), {
        "verified": False, "rating": 3.0, "experience_level": "expert",
        "materials": "clay", "skills": "pottery",
    }),
}


@pytest.fixture
def seeded_index(memory_index):
    memory_index.upsert(
        list(SEED),
        [vector for vector, _ in SEED.values()],
        [metadata for _, metadata in SEED.values()],
    )
    return memory_index


@pytest.fixture
def engine(seeded_index, search_engine):
    return search_engine


@pytest.fixture
def x_axis(unit_vector):
    return unit_vector(0)


def _ids(results):
    return [r.artisan_id for r in results]


# ── search ──────────────────────────────────────────────────────────────────


class TestSearch:
    def test_ranked_by_similarity(self, engine, x_axis):
        results, metrics = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=5))

        assert _ids(results) == ["a1", "a5", "a2", "a3", "a4"]
        assert [r.rank for r in results] == [1, 2, 3, 4, 5]
        assert results[0].similarity == pytest.approx(1.0)
        assert metrics.results_count == 5
        assert not metrics.cache_hit

    def test_top_k_limits_results(self, engine, x_axis):
        results, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3))
        assert len(results) == 3
        assert [r.rank for r in results] == [1, 2, 3]

    def test_top_k_capped_at_max_results(self, engine, seeded_index, x_axis):
        engine.search(SimilaritySearchQuery(vector=x_axis, top_k=500))
        assert seeded_index.query_calls[-1]["top_k"] == 20

    def test_threshold(self, engine, x_axis):
        results, metrics = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=5, threshold=0.7))
        assert _ids(results) == ["a1", "a5", "a2"]
        assert all(r.similarity >= 0.7 for r in results)
        assert metrics.filtered_out == 2

    def test_default_threshold(self, seeded_index, x_axis):
        engine = SimilaritySearchEngine(index=seeded_index, dimension=TEST_DIMENSION, default_threshold=0.85)
        results, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=5))
        assert _ids(results) == ["a1", "a5"]

    def test_ties_broken_by_id(self, memory_index, search_engine, x_axis):
        memory_index.upsert(["b", "a", "c"], [x_axis, x_axis, _vector(0.5, 0.5)])
        results, _ = search_engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3))
        assert _ids(results) == ["a", "b", "c"]
        assert [r.rank for r in results] == [1, 2, 3]

    def test_empty_index(self, search_engine, x_axis):
        results, metrics = search_engine.search(SimilaritySearchQuery(vector=x_axis))
        assert results == []
        assert metrics.average_similarity == 0.0

    def test_zero_vector_returns_nothing(self, engine, seeded_index):
        results, _ = engine.search(SimilaritySearchQuery(vector=np.zeros(TEST_DIMENSION)))
        assert results == []
        assert seeded_index.query_calls == []

    def test_include_values(self, engine, x_axis):
        results, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=1, include_values=True))
        np.testing.assert_allclose(results[0].vector, x_axis)

    def test_timeout(self, x_axis):
        class SlowIndex(InMemoryVectorIndex):
            def query(self, *args, **kwargs):
                time.sleep(0.5)
                return super().query(*args, **kwargs)

        engine = SimilaritySearchEngine(index=SlowIndex(), dimension=TEST_DIMENSION)
        with pytest.raises(OperationTimeoutError):
            engine.search(SimilaritySearchQuery(vector=x_axis), timeout=0.05)


# ── validation ──────────────────────────────────────────────────────────────


class TestValidation:
    def test_dimension_mismatch(self, engine):
        with pytest.raises(DimensionMismatchError):
            engine.search(SimilaritySearchQuery(vector=np.ones(TEST_DIMENSION + 2)))

    def test_non_finite_vector(self, engine):
        vector = np.ones(TEST_DIMENSION)
        vector[3] = np.nan
        with pytest.raises(ValueError):
            engine.search(SimilaritySearchQuery(vector=vector))

    @pytest.mark.parametrize("threshold", [-0.1, 1.5])
    def test_threshold_out_of_range(self, engine, x_axis, threshold):
        with pytest.raises(ValueError):
            engine.search(SimilaritySearchQuery(vector=x_axis, threshold=threshold))

    def test_top_k_must_be_positive(self, engine, x_axis):
        with pytest.raises(ValueError):
            engine.search(SimilaritySearchQuery(vector=x_axis, top_k=0))

    def test_validate_returns_errors(self, engine, x_axis):
        assert engine.validate_search_query(SimilaritySearchQuery(vector=x_axis, top_k=5)) == []
        errors = engine.validate_search_query(SimilaritySearchQuery(vector=x_axis, top_k=0, threshold=2.0))
        assert len(errors) == 2


# ── filters ─────────────────────────────────────────────────────────────────


class TestFilters:
    def test_verified_pushed_down(self, engine, seeded_index, x_axis):
        results, _ = engine.search(
            SimilaritySearchQuery(vector=x_axis, top_k=5, filters=SearchFilters(verified_only=True))
        )
        assert _ids(results) == ["a1", "a3"]
        assert seeded_index.query_calls[-1]["where"] == {"verified": {"$eq": True}}

    def test_min_rating_pushed_down(self, engine, seeded_index, x_axis):
        results, _ = engine.search(
            SimilaritySearchQuery(vector=x_axis, top_k=5, filters=SearchFilters(min_rating=4.5))
        )
        assert _ids(results) == ["a1", "a3"]
        assert seeded_index.query_calls[-1]["where"] == {"rating": {"$gte": 4.5}}

    def test_experience_levels(self, engine, x_axis):
        filters = SearchFilters(experience_levels=["master", "advanced"])
        results, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=5, filters=filters))
        assert _ids(results) == ["a2", "a3"]

    def test_no_filters_no_where(self, engine, seeded_index, x_axis):
        engine.search(SimilaritySearchQuery(vector=x_axis, top_k=5))
        assert seeded_index.query_calls[-1]["where"] is None
        assert seeded_index.query_calls[-1]["top_k"] == 5

    def test_exclusion(self, engine, x_axis):
        filters = SearchFilters(artisan_ids=["!a1"])
        results, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=5, filters=filters))
        assert "a1" not in _ids(results)
        assert results[0].rank == 1

    def test_excluded_match_from_index_is_dropped(self, engine, seeded_index, x_axis):
        seeded_index.injected = [IndexMatch(id="ghost", score=0.99, metadata={})]
        filters = SearchFilters(artisan_ids=["!ghost"])
        results, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=5, filters=filters))
        assert "ghost" not in _ids(results)

    def test_inclusion(self, engine, x_axis):
        filters = SearchFilters(artisan_ids=["a2", "a3"])
        results, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=5, filters=filters))
        assert _ids(results) == ["a2", "a3"]

    def test_post_filters_over_fetch(self, engine, seeded_index, x_axis):
        filters = SearchFilters(materials=["clay"])
        engine.search(SimilaritySearchQuery(vector=x_axis, top_k=1, filters=filters))
        assert seeded_index.query_calls[-1]["top_k"] == 20

    def test_materials(self, engine, x_axis):
        filters = SearchFilters(materials=["Teak"])
        results, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=5, filters=filters))
        assert _ids(results) == ["a2"]

    def test_skills(self, engine, x_axis):
        filters = SearchFilters(skills=["pottery"])
        results, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=5, filters=filters))
        assert _ids(results) == ["a1", "a5"]

    def test_price_range_overlap(self, engine, x_axis):
        filters = SearchFilters(price_range=(5000, 7000))
        results, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=5, filters=filters))
        assert _ids(results) == ["a1"]

    def test_index_filter_translation(self):
        filters = SearchFilters(experience_levels=["expert"], min_rating=4.0, verified_only=True)
        assert filters.to_index_filter() == {
            "experience_level": {"$in": ["expert"]},
            "rating": {"$gte": 4.0},
            "verified": {"$eq": True},
        }

    def test_fingerprint_ignores_list_order(self):
        first = SearchFilters(materials=["clay", "teak"])
        second = SearchFilters(materials=["teak", "clay"])
        assert first.cache_fingerprint() == second.cache_fingerprint()


# ── hybrid ranking ──────────────────────────────────────────────────────────


class TestHybridRanking:
    def test_boosts_clamped(self, engine, x_axis):
        results, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=5, mode=SearchMode.HYBRID))
        by_id = {r.artisan_id: r for r in results}

        assert by_id["a1"].similarity == pytest.approx(1.0)
        assert by_id["a3"].similarity == pytest.approx(0.6 * 1.1 * 1.05)
        assert by_id["a2"].similarity == pytest.approx(0.8)
        assert all(r.similarity <= 1.0 for r in results)

    def test_boost_can_reorder(self, memory_index, search_engine, x_axis):
        memory_index.upsert(
            ["plain", "verified"],
            [_vector(0.85, math.sqrt(1 - 0.85 ** 2)), _vector(0.8, 0.6)],
            [{"verified": False, "rating": 3.0}, {"verified": True, "rating": 4.0}],
        )
        approximate, _ = search_engine.search(SimilaritySearchQuery(vector=x_axis, top_k=2))
        hybrid, _ = search_engine.search(SimilaritySearchQuery(vector=x_axis, top_k=2, mode=SearchMode.HYBRID))

        assert _ids(approximate) == ["plain", "verified"]
        assert _ids(hybrid) == ["verified", "plain"]

    def test_hybrid_score(self, search_engine):
        assert search_engine.hybrid_score(0.95, {"verified": True, "rating": 4.9}) == 1.0
        assert search_engine.hybrid_score(0.5, {"verified": False, "rating": 4.5}) == pytest.approx(0.5)
        assert search_engine.hybrid_score(0.5, {}) == pytest.approx(0.5)


# ── explanations ────────────────────────────────────────────────────────────


class TestExplain:
    def _result(self, similarity, **metadata):
        return SimilaritySearchResult(artisan_id="x", similarity=similarity, rank=1, metadata=metadata)

    def test_excellent_verified_highly_rated(self, search_engine):
        explanation = search_engine.explain(self._result(0.9, verified=True, rating=4.8))
        assert explanation.match_reasons == [
            MATCH_REASONS["excellent"],
            MATCH_REASONS["verified"],
            MATCH_REASONS["highly_rated"],
        ]
        assert explanation.confidence == 1.0
        assert explanation.confidence_level == MatchConfidenceLevel.HIGH

    def test_tiers_are_strict(self, search_engine):
        assert search_engine.explain(self._result(0.8)).match_reasons == [MATCH_REASONS["strong"]]
        assert search_engine.explain(self._result(0.6)).match_reasons == [MATCH_REASONS["good"]]
        assert search_engine.explain(self._result(0.4)).match_reasons == []

    def test_facet_breakdown(self, search_engine):
        explanation = search_engine.explain(self._result(0.5))
        assert explanation.facet_similarities == pytest.approx({"profile": 0.5, "skills": 0.45, "portfolio": 0.4})
        assert explanation.confidence == pytest.approx(0.6)
        assert explanation.confidence_level == MatchConfidenceLevel.MEDIUM

    def test_attached_to_results(self, engine, x_axis):
        results, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=1))
        data = results[0].to_dict()
        assert data["explanation"]["confidence_level"] == "high"

    def test_disabled(self, seeded_index, x_axis):
        engine = SimilaritySearchEngine(index=seeded_index, enable_explanations=False, default_threshold=0.0)
        results, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=1))
        assert results[0].explanation is None


# ── caching ─────────────────────────────────────────────────────────────────


class TestSearchCache:
    def test_repeat_search_hits_cache(self, engine, seeded_index, x_axis):
        first, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3))
        second, metrics = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3))

        assert metrics.cache_hit
        assert len(seeded_index.query_calls) == 1
        assert _ids(first) == _ids(second)

    def test_cached_results_isolated_from_callers(self, engine, x_axis):
        first, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3))
        first[0].similarity = -5.0
        first[0].rank = 99
        first[0].metadata["rating"] = 0.0

        second, metrics = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3))
        second[0].explanation.match_reasons.clear()
        third, _ = engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3))

        assert metrics.cache_hit
        assert second[0].artisan_id == "a1"
        assert second[0].similarity == pytest.approx(1.0)
        assert second[0].rank == 1
        assert second[0].metadata["rating"] == 4.8
        assert third[0].explanation.match_reasons

    def test_different_parameters_miss(self, engine, seeded_index, x_axis):
        engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3))
        engine.search(SimilaritySearchQuery(vector=x_axis, top_k=4))
        engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3, filters=SearchFilters(verified_only=True)))
        engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3, mode=SearchMode.HYBRID))
        assert len(seeded_index.query_calls) == 4

    def test_caching_disabled(self, seeded_index, x_axis):
        engine = SimilaritySearchEngine(index=seeded_index, enable_caching=False, default_threshold=0.0)
        engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3))
        engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3))
        assert len(seeded_index.query_calls) == 2

    def test_clear_cache(self, engine, seeded_index, x_axis):
        engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3))
        engine.clear_cache()
        engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3))
        assert len(seeded_index.query_calls) == 2

    def test_stats(self, engine, x_axis):
        engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3))
        engine.search(SimilaritySearchQuery(vector=x_axis, top_k=3))
        stats = engine.get_search_stats()
        assert stats["total_searches"] == 2
        assert stats["cache_hits"] == 1
        assert stats["cache_hit_rate"] == pytest.approx(0.5)


class TestSearchBatch:
    def test_aggregate_metrics(self, engine, x_axis, unit_vector):
        queries = [
            SimilaritySearchQuery(vector=x_axis, top_k=2),
            SimilaritySearchQuery(vector=unit_vector(1), top_k=2),
            SimilaritySearchQuery(vector=x_axis, top_k=2),
        ]
        all_results, metrics = engine.search_batch(queries)

        assert len(all_results) == 3
        assert _ids(all_results[1])[0] == "a4"
        assert metrics.results_count == 6
        assert metrics.cache_hit_rate == pytest.approx(1 / 3)


# ── artisan-anchored searches ───────────────────────────────────────────────


class TestFindSimilar:
    def test_excludes_target(self, engine):
        results = engine.find_similar("a1", top_k=2)
        assert _ids(results) == ["a5", "a2"]
        assert [r.rank for r in results] == [1, 2]

    def test_uses_similar_threshold(self, engine):
        results = engine.find_similar("a1", top_k=10)
        assert "a4" not in _ids(results)
        assert all(r.similarity >= 0.5 for r in results)

    def test_keeps_caller_filters(self, engine):
        filters = SearchFilters(verified_only=True)
        results = engine.find_similar("a1", top_k=5, filters=filters)
        assert _ids(results) == ["a3"]
        assert filters.artisan_ids == []

    def test_unknown_artisan(self, engine):
        with pytest.raises(VectorNotFoundError):
            engine.find_similar("nobody")


class TestRecommendations:
    def test_preference_vector(self, engine):
        history = [InteractionRecord(artisan_id="a1", weight=1.0), InteractionRecord(artisan_id="a4", weight=1.0)]
        preference = engine.build_preference_vector(history)
        np.testing.assert_allclose(preference, _vector(1 / math.sqrt(2), 1 / math.sqrt(2)), atol=1e-9)

    def test_weights_shift_preference(self, engine):
        history = [InteractionRecord(artisan_id="a1", weight=3.0), InteractionRecord(artisan_id="a4", weight=1.0)]
        preference = engine.build_preference_vector(history)
        assert preference[0] > preference[1]

    def test_excludes_history(self, engine):
        results = engine.get_recommendations([InteractionRecord(artisan_id="a1", weight=1.0)], top_k=5)
        assert _ids(results) == ["a5", "a2", "a3"]

    def test_missing_vector_raises(self, engine):
        history = [InteractionRecord(artisan_id="a1"), InteractionRecord(artisan_id="unknown")]
        with pytest.raises(VectorNotFoundError) as exc_info:
            engine.get_recommendations(history)
        assert exc_info.value.artisan_id == "unknown"

    def test_empty_history(self, engine):
        with pytest.raises(ValueError):
            engine.build_preference_vector([])

    def test_zero_weights(self, engine):
        with pytest.raises(ValueError):
            engine.build_preference_vector([InteractionRecord(artisan_id="a1", weight=0.0)])
