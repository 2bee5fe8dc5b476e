"""
NLP pipeline for Artisan Match.

Provides query processing, facet text extraction and profile enrichment.

Main Components:
- QueryProcessor: Cleans, classifies and expands buyer queries
- ProfileEnrichmentPipeline: Runs the enrichment analyzers and merges their output
- extract_facet_texts: Profile, skills and portfolio facet texts
"""

from .facets import (
    FacetTexts,
    extract_facet_texts,
)

from .query_processor import (
    ProcessedQuery,
    QueryMetadata,
    QueryProcessor,
    get_query_processor,
)

from .enrichment import (
    EnrichedProfile,
    ProfileEnrichmentPipeline,
    get_enrichment_pipeline,
)

__all__ = [
    # Facets
    "FacetTexts",
    "extract_facet_texts",
    # Query processing
    "ProcessedQuery",
    "QueryMetadata",
    "QueryProcessor",
    "get_query_processor",
    # Enrichment
    "EnrichedProfile",
    "ProfileEnrichmentPipeline",
    "get_enrichment_pipeline",
]
