"""Similarity search and matching service module."""

from .similarity_search import (
    MatchExplanation,
    SearchFilters,
    SearchMetrics,
    SimilaritySearchEngine,
    SimilaritySearchQuery,
    SimilaritySearchResult,
)

from .matching_service import (
    IndexingReport,
    MatchingService,
    SearchResponse,
    get_matching_service,
)

__all__ = [
    "MatchExplanation",
    "SearchFilters",
    "SearchMetrics",
    "SimilaritySearchEngine",
    "SimilaritySearchQuery",
    "SimilaritySearchResult",
    "IndexingReport",
    "MatchingService",
    "SearchResponse",
    "get_matching_service",
]
