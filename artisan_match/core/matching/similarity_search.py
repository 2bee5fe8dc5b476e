"""
Similarity search over the composite-vector index.

Owns ranking, filtering and explanation of index results:
- Index-expressible filters are pushed down to the index
- Identifier, material, skill and price filters are applied afterwards
- Hybrid mode boosts verified and highly rated artisans
- Results are cached by (vector hash, top_k, threshold, filters, mode)
"""

import copy
import json
import time
from dataclasses import asdict, dataclass, field, replace
from typing import Any, Optional

import numpy as np

from artisan_match.core.exceptions import DimensionMismatchError, VectorNotFoundError
from artisan_match.data.models import InteractionRecord
from artisan_match.ml.embeddings.vector_math import (
    hash_vector,
    is_valid_vector,
    is_zero_vector,
    normalize,
    weighted_average,
)
from artisan_match.ml.embeddings.vector_store import IndexMatch, VectorIndex, get_vector_index
from artisan_match.utils.cache import TTLCache
from artisan_match.utils.concurrency import call_with_timeout
from artisan_match.utils.config import get_settings
from artisan_match.utils.constants import (
    EXCLUSION_MARKER,
    EXPLANATION_CONFIDENCE_SCALE,
    EXPLANATION_FACET_FACTORS,
    MATCH_REASONS,
    SIMILARITY_TIERS,
    MatchConfidenceLevel,
    SearchMode,
)
from artisan_match.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class SearchFilters:
    """
    Filters for a similarity search.

    experience_levels, min_rating and verified_only are pushed down to the
    index. The rest are applied to the returned matches.

    artisan_ids entries prefixed with "!" exclude that artisan; unprefixed
    entries restrict results to only those artisans.
    """

    experience_levels: list[str] = field(default_factory=list)
    min_rating: Optional[float] = None
    verified_only: bool = False
    artisan_ids: list[str] = field(default_factory=list)
    materials: list[str] = field(default_factory=list)
    skills: list[str] = field(default_factory=list)
    price_range: Optional[tuple[float, float]] = None

    @property
    def excluded_ids(self) -> set[str]:
        return {
            i[len(EXCLUSION_MARKER):] for i in self.artisan_ids if i.startswith(EXCLUSION_MARKER)
        }

    @property
    def included_ids(self) -> set[str]:
        return {i for i in self.artisan_ids if not i.startswith(EXCLUSION_MARKER)}

    @property
    def has_post_filters(self) -> bool:
        return bool(self.artisan_ids or self.materials or self.skills or self.price_range)

    def to_index_filter(self) -> Optional[dict[str, Any]]:
        """Translate the index-expressible filters into Mongo-style where syntax."""
        where: dict[str, Any] = {}
        if self.experience_levels:
            where["experience_level"] = {"$in": list(self.experience_levels)}
        if self.min_rating:
            where["rating"] = {"$gte": float(self.min_rating)}
        if self.verified_only:
            where["verified"] = {"$eq": True}
        return where or None

    def cache_fingerprint(self) -> str:
        data = asdict(self)
        for key in ("experience_levels", "artisan_ids", "materials", "skills"):
            data[key] = sorted(data[key])
        return json.dumps(data, sort_keys=True, default=str)


@dataclass
class SimilaritySearchQuery:
    """A vector search request."""

    vector: np.ndarray
    top_k: int = 50
    threshold: Optional[float] = None
    filters: Optional[SearchFilters] = None
    mode: SearchMode = SearchMode.APPROXIMATE
    include_values: bool = False


@dataclass
class MatchExplanation:
    """Why a result matched."""

    facet_similarities: dict[str, float]
    match_reasons: list[str]
    confidence: float
    confidence_level: MatchConfidenceLevel

    def to_dict(self) -> dict[str, Any]:
        return {
            "facet_similarities": self.facet_similarities,
            "match_reasons": self.match_reasons,
            "confidence": self.confidence,
            "confidence_level": self.confidence_level.value,
        }


@dataclass
class SimilaritySearchResult:
    """One ranked search result."""

    artisan_id: str
    similarity: float
    rank: int
    metadata: dict[str, Any] = field(default_factory=dict)
    vector: Optional[np.ndarray] = None
    explanation: Optional[MatchExplanation] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "artisan_id": self.artisan_id,
            "similarity": self.similarity,
            "rank": self.rank,
            "metadata": self.metadata,
            "explanation": self.explanation.to_dict() if self.explanation else None,
        }


@dataclass
class SearchMetrics:
    """Timing and volume for one search (or an aggregate of several)."""

    search_time_ms: float = 0.0
    index_time_ms: float = 0.0
    filtering_time_ms: float = 0.0
    ranking_time_ms: float = 0.0
    results_count: int = 0
    filtered_out: int = 0
    average_similarity: float = 0.0
    cache_hit: bool = False
    cache_hit_rate: float = 0.0


class SimilaritySearchEngine:
    """
    Ranked, filtered and explained similarity search.

    The engine never recomputes distances for index results; it only
    compares the scores the index returns. Raw vectors are used directly
    only to build preference vectors and to look up a target artisan.
    """

    def __init__(
        self,
        index: Optional[VectorIndex] = None,
        dimension: Optional[int] = None,
        default_top_k: Optional[int] = None,
        default_threshold: Optional[float] = None,
        max_results: Optional[int] = None,
        enable_caching: Optional[bool] = None,
        cache_size: Optional[int] = None,
        cache_ttl_seconds: Optional[float] = None,
        enable_explanations: Optional[bool] = None,
        query_timeout: Optional[float] = None,
    ):
        settings = get_settings().search

        self.index = index or get_vector_index()
        self.dimension = dimension
        self.default_top_k = default_top_k or settings.default_top_k
        self.default_threshold = (
            default_threshold if default_threshold is not None else settings.default_threshold
        )
        self.max_results = max_results or settings.max_results
        self.enable_caching = settings.enable_caching if enable_caching is None else enable_caching
        self.enable_explanations = (
            settings.enable_explanations if enable_explanations is None else enable_explanations
        )
        self.query_timeout = query_timeout if query_timeout is not None else settings.query_timeout

        self.similar_threshold = settings.similar_threshold
        self.recommendation_threshold = settings.recommendation_threshold
        self.verified_boost = settings.verified_boost
        self.rating_boost = settings.rating_boost
        self.rating_boost_min = settings.rating_boost_min

        self._cache: TTLCache[str, list[SimilaritySearchResult]] = TTLCache(
            cache_size or settings.cache_size,
            cache_ttl_seconds or settings.cache_ttl_seconds,
        )

        self._total_searches = 0
        self._total_cache_hits = 0
        self._total_search_time_ms = 0.0

    # =========================================================================
    # Search
    # =========================================================================

    def search(
        self,
        query: SimilaritySearchQuery,
        timeout: Optional[float] = None,
    ) -> tuple[list[SimilaritySearchResult], SearchMetrics]:
        """
        Run a similarity search.

        Args:
            query: Search request; top_k is capped at max_results
            timeout: Deadline for the index call (defaults to configuration)

        Returns:
            Ranked results and metrics

        Raises:
            DimensionMismatchError: Query vector has the wrong length
            ValueError: Query is otherwise invalid
            OperationTimeoutError: The index call exceeded the deadline
        """
        start = time.perf_counter()
        query = replace(query, top_k=min(query.top_k, self.max_results))

        vector = np.asarray(query.vector, dtype=np.float64)
        if self.dimension is not None and vector.shape[0] != self.dimension:
            raise DimensionMismatchError(self.dimension, vector.shape[0], "search query")

        errors = self.validate_search_query(query)
        if errors:
            raise ValueError(f"Invalid search query: {'; '.join(errors)}")

        filters = query.filters or SearchFilters()
        threshold = query.threshold if query.threshold is not None else self.default_threshold

        if is_zero_vector(vector):
            logger.debug("Zero query vector, returning no results")
            return [], self._finish(start, [], SearchMetrics())

        cache_key = self._cache_key(vector, query, threshold, filters)
        if self.enable_caching:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug("Returning cached search results")
                metrics = SearchMetrics(cache_hit=True, cache_hit_rate=1.0)
                return copy.deepcopy(cached), self._finish(start, cached, metrics)

        # Over-fetch when post-filters may discard matches
        request_k = self.max_results if filters.has_post_filters else query.top_k

        index_start = time.perf_counter()
        matches = call_with_timeout(
            self.index.query,
            timeout if timeout is not None else self.query_timeout,
            "vector_index_query",
            vector,
            request_k,
            filters.to_index_filter(),
            True,
            query.include_values,
        )
        index_time = (time.perf_counter() - index_start) * 1000
        logger.debug(f"Vector index returned {len(matches)} matches")

        filter_start = time.perf_counter()
        kept = [m for m in matches if m.score >= threshold and self._passes_post_filters(m, filters)]
        filtering_time = (time.perf_counter() - filter_start) * 1000

        rank_start = time.perf_counter()
        results = self._rank(kept, query.mode)[:query.top_k]
        results = self._assign_ranks(results)
        if self.enable_explanations:
            for result in results:
                result.explanation = self.explain(result)
        ranking_time = (time.perf_counter() - rank_start) * 1000

        if self.enable_caching:
            # Cached entries must not alias the results handed to callers
            self._cache.put(cache_key, copy.deepcopy(results))

        metrics = SearchMetrics(
            index_time_ms=index_time,
            filtering_time_ms=filtering_time,
            ranking_time_ms=ranking_time,
            filtered_out=len(matches) - len(kept),
        )
        return results, self._finish(start, results, metrics)

    def _finish(
        self,
        start: float,
        results: list[SimilaritySearchResult],
        metrics: SearchMetrics,
    ) -> SearchMetrics:
        metrics.search_time_ms = (time.perf_counter() - start) * 1000
        metrics.results_count = len(results)
        metrics.average_similarity = (
            sum(r.similarity for r in results) / len(results) if results else 0.0
        )

        self._total_searches += 1
        self._total_search_time_ms += metrics.search_time_ms
        if metrics.cache_hit:
            self._total_cache_hits += 1

        logger.info(
            f"Similarity search returned {metrics.results_count} results "
            f"in {metrics.search_time_ms:.1f}ms (cache hit: {metrics.cache_hit})"
        )
        return metrics

    @staticmethod
    def _cache_key(
        vector: np.ndarray,
        query: SimilaritySearchQuery,
        threshold: float,
        filters: SearchFilters,
    ) -> str:
        mode = query.mode.value if isinstance(query.mode, SearchMode) else str(query.mode)
        return "|".join([
            hash_vector(vector),
            str(query.top_k),
            repr(threshold),
            mode,
            str(query.include_values),
            filters.cache_fingerprint(),
        ])

    def search_batch(
        self,
        queries: list[SimilaritySearchQuery],
        timeout: Optional[float] = None,
    ) -> tuple[list[list[SimilaritySearchResult]], SearchMetrics]:
        """Run several searches sequentially; metrics are aggregated."""
        start = time.perf_counter()
        all_results: list[list[SimilaritySearchResult]] = []
        cache_hits = 0

        for query in queries:
            results, metrics = self.search(query, timeout=timeout)
            all_results.append(results)
            if metrics.cache_hit:
                cache_hits += 1

        flat = [r for results in all_results for r in results]
        aggregate = SearchMetrics(
            search_time_ms=(time.perf_counter() - start) * 1000,
            results_count=len(flat),
            average_similarity=sum(r.similarity for r in flat) / len(flat) if flat else 0.0,
            cache_hit_rate=cache_hits / len(queries) if queries else 0.0,
        )
        logger.info(f"Batch search of {len(queries)} queries completed in {aggregate.search_time_ms:.1f}ms")
        return all_results, aggregate

    # =========================================================================
    # Filtering and ranking
    # =========================================================================

    @staticmethod
    def _as_set(value: Any) -> set[str]:
        if value is None:
            return set()
        if isinstance(value, str):
            items = value.split(",")
        else:
            items = value
        return {str(item).strip().lower() for item in items if str(item).strip()}

    def _passes_post_filters(self, match: IndexMatch, filters: SearchFilters) -> bool:
        if match.id in filters.excluded_ids:
            return False

        included = filters.included_ids
        if included and match.id not in included:
            return False

        metadata = match.metadata or {}

        if filters.materials:
            wanted = {m.strip().lower() for m in filters.materials}
            if not wanted & self._as_set(metadata.get("materials")):
                return False

        if filters.skills:
            wanted = {s.strip().lower() for s in filters.skills}
            if not wanted & self._as_set(metadata.get("skills")):
                return False

        if filters.price_range:
            low, high = filters.price_range
            price_min = metadata.get("price_min")
            price_max = metadata.get("price_max")
            if price_min is None or price_max is None:
                return False
            if price_max < low or price_min > high:
                return False

        return True

    def _rank(self, matches: list[IndexMatch], mode: SearchMode) -> list[SimilaritySearchResult]:
        results = [
            SimilaritySearchResult(
                artisan_id=m.id,
                similarity=float(m.score),
                rank=0,
                metadata=dict(m.metadata or {}),
                vector=m.values,
            )
            for m in matches
        ]

        if mode == SearchMode.HYBRID:
            for result in results:
                result.similarity = self.hybrid_score(result.similarity, result.metadata)

        # Stable order: similarity descending, then identifier
        results.sort(key=lambda r: (-r.similarity, r.artisan_id))
        return results

    def hybrid_score(self, similarity: float, metadata: dict[str, Any]) -> float:
        """
        Multiplicative boosts for verified and highly rated artisans.

        Boosted scores are clamped at 1.0 and unboosted scores are left as
        they are, so once the clamp saturates the two are not on one scale.
        """
        boosted = similarity
        if metadata.get("verified"):
            boosted *= self.verified_boost
        if (metadata.get("rating") or 0) > self.rating_boost_min:
            boosted *= self.rating_boost
        return min(1.0, boosted)

    @staticmethod
    def _assign_ranks(results: list[SimilaritySearchResult]) -> list[SimilaritySearchResult]:
        for position, result in enumerate(results, start=1):
            result.rank = position
        return results

    # =========================================================================
    # Explanations
    # =========================================================================

    def explain(self, result: SimilaritySearchResult) -> MatchExplanation:
        """Coarse per-facet breakdown, match reasons and a confidence level."""
        similarity = result.similarity
        facets = {
            facet: similarity * factor for facet, factor in EXPLANATION_FACET_FACTORS.items()
        }

        reasons = []
        for tier in ("excellent", "strong", "good"):
            if similarity > SIMILARITY_TIERS[tier]:
                reasons.append(MATCH_REASONS[tier])
                break
        if result.metadata.get("verified"):
            reasons.append(MATCH_REASONS["verified"])
        if (result.metadata.get("rating") or 0) > self.rating_boost_min:
            reasons.append(MATCH_REASONS["highly_rated"])

        confidence = max(0.0, min(1.0, similarity * EXPLANATION_CONFIDENCE_SCALE))
        return MatchExplanation(
            facet_similarities=facets,
            match_reasons=reasons,
            confidence=confidence,
            confidence_level=MatchConfidenceLevel.from_score(confidence),
        )

    # =========================================================================
    # Artisan-anchored searches
    # =========================================================================

    def get_artisan_vector(self, artisan_id: str) -> np.ndarray:
        """
        Stored composite vector for an artisan.

        Raises:
            VectorNotFoundError: If the index has no vector for the id
        """
        found = self.index.fetch([artisan_id])
        match = found.get(artisan_id)
        if match is None or match.values is None:
            raise VectorNotFoundError(artisan_id)
        return np.asarray(match.values, dtype=np.float64)

    def find_similar(
        self,
        artisan_id: str,
        top_k: int = 10,
        threshold: Optional[float] = None,
        filters: Optional[SearchFilters] = None,
        mode: SearchMode = SearchMode.APPROXIMATE,
        timeout: Optional[float] = None,
    ) -> list[SimilaritySearchResult]:
        """Artisans most similar to the given one, never including it."""
        vector = self.get_artisan_vector(artisan_id)

        filters = replace(filters) if filters else SearchFilters()
        filters.artisan_ids = list(filters.artisan_ids) + [f"{EXCLUSION_MARKER}{artisan_id}"]

        # One extra to make up for the target matching itself
        results, _ = self.search(
            SimilaritySearchQuery(
                vector=vector,
                top_k=top_k + 1,
                threshold=threshold if threshold is not None else self.similar_threshold,
                filters=filters,
                mode=mode,
            ),
            timeout=timeout,
        )
        similar = [r for r in results if r.artisan_id != artisan_id][:top_k]
        return self._assign_ranks([replace(r) for r in similar])

    def build_preference_vector(self, history: list[InteractionRecord]) -> np.ndarray:
        """
        Normalized weighted average of the stored vectors in a history.

        Raises:
            ValueError: Empty history or all weights zero
            VectorNotFoundError: Any artisan in the history has no stored vector
        """
        if not history:
            raise ValueError("Interaction history is empty")

        ids = list(dict.fromkeys(record.artisan_id for record in history))
        found = self.index.fetch(ids)
        for artisan_id in ids:
            if artisan_id not in found or found[artisan_id].values is None:
                raise VectorNotFoundError(artisan_id)

        weighted = [
            (found[record.artisan_id].values, record.effective_weight()) for record in history
        ]
        if sum(weight for _, weight in weighted) <= 0:
            raise ValueError("Interaction weights sum to zero")

        return normalize(weighted_average(weighted))

    def get_recommendations(
        self,
        history: list[InteractionRecord],
        top_k: int = 20,
        threshold: Optional[float] = None,
        filters: Optional[SearchFilters] = None,
        mode: SearchMode = SearchMode.APPROXIMATE,
        timeout: Optional[float] = None,
    ) -> list[SimilaritySearchResult]:
        """Recommend artisans from an interaction history, excluding those already seen."""
        preference = self.build_preference_vector(history)

        filters = replace(filters) if filters else SearchFilters()
        filters.artisan_ids = list(filters.artisan_ids) + [
            f"{EXCLUSION_MARKER}{record.artisan_id}" for record in history
        ]

        results, _ = self.search(
            SimilaritySearchQuery(
                vector=preference,
                top_k=top_k,
                threshold=threshold if threshold is not None else self.recommendation_threshold,
                filters=filters,
                mode=mode,
            ),
            timeout=timeout,
        )
        logger.info(f"Generated {len(results)} recommendations from {len(history)} interactions")
        return results

    # =========================================================================
    # Validation and stats
    # =========================================================================

    def validate_search_query(self, query: SimilaritySearchQuery) -> list[str]:
        """Problems with a query; empty when it is valid."""
        errors = []
        if not is_valid_vector(query.vector):
            errors.append("vector contains non-finite values")
        elif self.dimension is not None and len(query.vector) != self.dimension:
            errors.append(f"vector has {len(query.vector)} dimensions, expected {self.dimension}")
        if not 0 < query.top_k <= self.max_results:
            errors.append(f"top_k must be between 1 and {self.max_results}")
        if query.threshold is not None and not 0.0 <= query.threshold <= 1.0:
            errors.append("threshold must be between 0 and 1")
        return errors

    def get_search_stats(self) -> dict[str, Any]:
        return {
            "total_searches": self._total_searches,
            "cache_hits": self._total_cache_hits,
            "cache_hit_rate": (
                self._total_cache_hits / self._total_searches if self._total_searches else 0.0
            ),
            "average_search_time_ms": (
                self._total_search_time_ms / self._total_searches if self._total_searches else 0.0
            ),
            "cache": self._cache.stats().to_dict(),
        }

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Search cache cleared")
