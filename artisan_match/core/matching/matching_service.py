"""
Matching service.

Wires enrichment, fusion, query processing and similarity search together
behind the operations exposed to the API layer:
enrich, embed, index, process a query, search, find similar and recommend.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

import numpy as np

from artisan_match.core.exceptions import InvalidEmbeddingError
from artisan_match.core.matching.similarity_search import (
    SearchFilters,
    SearchMetrics,
    SimilaritySearchEngine,
    SimilaritySearchQuery,
    SimilaritySearchResult,
)
from artisan_match.data.models import ArtisanProfile, InteractionRecord
from artisan_match.ml.embeddings.fusion import (
    ArtisanEmbedding,
    EmbeddingFusionSystem,
    QueryEmbedding,
    get_fusion_system,
)
from artisan_match.ml.embeddings.vector_store import VectorIndex, get_vector_index
from artisan_match.ml.nlp.enrichment import (
    EnrichedProfile,
    ProfileEnrichmentPipeline,
    get_enrichment_pipeline,
)
from artisan_match.ml.nlp.query_processor import ProcessedQuery
from artisan_match.utils.constants import SearchMode
from artisan_match.utils.logger import audit_log, get_logger

logger = get_logger(__name__)


@dataclass
class IndexingReport:
    """Outcome of an indexing run."""

    indexed: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    failed: dict[str, str] = field(default_factory=dict)

    @property
    def total(self) -> int:
        return len(self.indexed) + len(self.skipped) + len(self.failed)


@dataclass
class SearchResponse:
    """Text search results together with the processed query."""

    query: QueryEmbedding
    results: list[SimilaritySearchResult]
    metrics: SearchMetrics


class MatchingService:
    """
    Facade over the matching components.

    Remembers the content hash last written to the index for each artisan,
    so unchanged profiles are not re-embedded or re-upserted.
    """

    def __init__(
        self,
        enrichment: Optional[ProfileEnrichmentPipeline] = None,
        fusion: Optional[EmbeddingFusionSystem] = None,
        index: Optional[VectorIndex] = None,
        search_engine: Optional[SimilaritySearchEngine] = None,
        use_enrichment: bool = True,
    ):
        self.enrichment = enrichment or get_enrichment_pipeline()
        self.fusion = fusion or get_fusion_system()
        self.index = index or (search_engine.index if search_engine else get_vector_index())
        self.search_engine = search_engine or SimilaritySearchEngine(index=self.index)
        self.use_enrichment = use_enrichment

        self._indexed_hashes: dict[str, str] = {}

    # =========================================================================
    # Profiles
    # =========================================================================

    def enrich_profile(self, profile: ArtisanProfile) -> EnrichedProfile:
        return self.enrichment.enrich_profile(profile)

    def generate_artisan_embedding(self, profile: ArtisanProfile) -> ArtisanEmbedding:
        """Enrich (when enabled) and embed one profile."""
        enriched = self.enrichment.enrich_profile(profile) if self.use_enrichment else None
        return self.fusion.generate_artisan_embedding(profile, enriched)

    def generate_batch_artisan_embeddings(
        self, profiles: list[ArtisanProfile]
    ) -> list[ArtisanEmbedding]:
        enriched = None
        if self.use_enrichment:
            enriched = {e.artisan_id: e for e in self.enrichment.enrich_profiles(profiles)}
        return self.fusion.generate_batch_artisan_embeddings(profiles, enriched)

    def is_stale(self, profile: ArtisanProfile) -> bool:
        """True when the profile changed since it was last indexed."""
        return self._indexed_hashes.get(profile.artisan_id) != profile.content_hash()

    # =========================================================================
    # Indexing
    # =========================================================================

    def ensure_index(self) -> bool:
        """Create the configured index if missing. Returns True when created."""
        name = self.index.index_name
        if name in self.index.list_indexes():
            return False

        self.index.create_index(name, self.fusion.dimension, self.index.metric)
        audit_log(
            "index_created",
            {"index": name, "dimensions": self.fusion.dimension, "metric": self.index.metric},
            audit_type="INDEX",
        )
        return True

    def index_profile(self, profile: ArtisanProfile, force: bool = False) -> Optional[ArtisanEmbedding]:
        """
        Embed and upsert one profile.

        Returns None when the profile is unchanged since its last write.

        Raises:
            InvalidEmbeddingError: The embedding failed validation; nothing is written
        """
        if not force and not self.is_stale(profile):
            logger.debug(f"Skipping unchanged profile {profile.artisan_id}")
            return None

        embedding = self.fusion.ensure_valid(self.generate_artisan_embedding(profile))
        self._upsert([(profile, embedding)])
        return embedding

    def index_profiles(self, profiles: list[ArtisanProfile], force: bool = False) -> IndexingReport:
        """
        Embed and upsert many profiles.

        Unchanged profiles are skipped. Profiles whose embedding fails are
        reported and never written.
        """
        report = IndexingReport()
        stale = []
        for profile in profiles:
            if force or self.is_stale(profile):
                stale.append(profile)
            else:
                report.skipped.append(profile.artisan_id)

        by_id = {p.artisan_id: p for p in stale}
        enriched = None
        if self.use_enrichment and stale:
            enriched = {e.artisan_id: e for e in self.enrichment.enrich_profiles(stale)}

        embeddings = self.fusion.generate_batch_artisan_embeddings(
            stale, enriched, skip_failures=True
        )
        embedded_ids = {e.artisan_id for e in embeddings}
        for profile in stale:
            if profile.artisan_id not in embedded_ids:
                report.failed[profile.artisan_id] = "embedding generation failed"

        valid = []
        for embedding in embeddings:
            try:
                self.fusion.ensure_valid(embedding)
            except InvalidEmbeddingError as e:
                report.failed[embedding.artisan_id] = str(e)
                continue
            valid.append((by_id[embedding.artisan_id], embedding))

        if valid:
            self._upsert(valid)
            report.indexed.extend(profile.artisan_id for profile, _ in valid)

        logger.info(
            f"Indexing complete: {len(report.indexed)} indexed, "
            f"{len(report.skipped)} unchanged, {len(report.failed)} failed"
        )
        return report

    def _upsert(self, items: list[tuple[ArtisanProfile, ArtisanEmbedding]]) -> None:
        ids, vectors, metadatas = [], [], []
        for profile, embedding in items:
            metadata = profile.index_metadata()
            metadata.update({
                "content_hash": embedding.content_hash,
                "model_version": embedding.model_version,
                "confidence": embedding.confidence,
                "generated_at": embedding.generated_at.isoformat(),
            })
            ids.append(profile.artisan_id)
            vectors.append(embedding.composite_vector)
            metadatas.append(metadata)

        self.index.upsert(ids, vectors, metadatas)

        for profile, embedding in items:
            self._indexed_hashes[profile.artisan_id] = embedding.content_hash
            audit_log(
                "vector_upserted",
                {
                    "artisan_id": profile.artisan_id,
                    "content_hash": embedding.content_hash,
                    "model_version": embedding.model_version,
                },
                audit_type="INDEX",
            )

        # Results may now be out of date
        self.search_engine.clear_cache()

    # =========================================================================
    # Queries
    # =========================================================================

    def process_query(self, text: str) -> ProcessedQuery:
        return self.fusion.query_processor.process_query(text)

    def search(
        self,
        text: str,
        top_k: Optional[int] = None,
        threshold: Optional[float] = None,
        filters: Optional[SearchFilters] = None,
        mode: SearchMode = SearchMode.APPROXIMATE,
        timeout: Optional[float] = None,
    ) -> SearchResponse:
        """Embed a free-text query and search the index with it."""
        query = self.fusion.embed_query(text, timeout=timeout)
        results, metrics = self.search_vector(
            query.query_vector, top_k, threshold, filters, mode, timeout
        )
        return SearchResponse(query=query, results=results, metrics=metrics)

    def search_vector(
        self,
        vector: np.ndarray,
        top_k: Optional[int] = None,
        threshold: Optional[float] = None,
        filters: Optional[SearchFilters] = None,
        mode: SearchMode = SearchMode.APPROXIMATE,
        timeout: Optional[float] = None,
    ) -> tuple[list[SimilaritySearchResult], SearchMetrics]:
        return self.search_engine.search(
            SimilaritySearchQuery(
                vector=vector,
                top_k=top_k or self.search_engine.default_top_k,
                threshold=threshold,
                filters=filters,
                mode=mode,
            ),
            timeout=timeout,
        )

    def find_similar_artisans(self, artisan_id: str, top_k: int = 10) -> list[SimilaritySearchResult]:
        return self.search_engine.find_similar(artisan_id, top_k)

    def get_recommendations(
        self, history: list[InteractionRecord], top_k: int = 20
    ) -> list[SimilaritySearchResult]:
        return self.search_engine.get_recommendations(history, top_k)

    def get_stats(self) -> dict[str, Any]:
        return {
            "indexed_artisans": len(self._indexed_hashes),
            "embedding_cache": self.fusion.get_cache_stats(),
            "enrichment_cache": self.enrichment.get_cache_stats(),
            "search": self.search_engine.get_search_stats(),
            "generated_at": datetime.now(timezone.utc).isoformat(),
        }


# Singleton instance
_matching_service: Optional[MatchingService] = None


def get_matching_service() -> MatchingService:
    """Get or create the singleton matching service."""
    global _matching_service
    if _matching_service is None:
        _matching_service = MatchingService()
    return _matching_service
