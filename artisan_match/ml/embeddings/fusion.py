"""
Multi-facet embedding fusion.

Turns one artisan profile into one composite vector (three facet embeddings
fused by weighted average) and one free-text query into one query vector.
"""

import time
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import partial
from typing import Callable, Optional

import numpy as np

from artisan_match.core.exceptions import InvalidEmbeddingError
from artisan_match.data.models import ArtisanProfile
from artisan_match.ml.embeddings.embedding_client import EmbeddingClient, get_embedding_client
from artisan_match.ml.embeddings.vector_math import (
    is_valid_vector,
    normalize,
    weighted_average,
)
from artisan_match.ml.nlp.enrichment import EnrichedProfile
from artisan_match.ml.nlp.facets import FacetTexts, extract_facet_texts
from artisan_match.ml.nlp.query_processor import (
    QueryMetadata,
    QueryProcessor,
    get_query_processor,
)
from artisan_match.utils.concurrency import run_concurrently
from artisan_match.utils.config import get_settings
from artisan_match.utils.constants import FACET_NAMES, QueryType
from artisan_match.utils.logger import audit_log, get_logger

logger = get_logger(__name__)


@dataclass
class ArtisanEmbedding:
    """Facet and composite vectors for one profile version."""

    artisan_id: str
    profile_vector: np.ndarray
    skills_vector: np.ndarray
    portfolio_vector: np.ndarray
    composite_vector: np.ndarray
    confidence: float
    content_hash: str
    model_version: str
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    tokens_used: int = 0

    @property
    def dimensions(self) -> int:
        return int(self.composite_vector.shape[0])

    def vectors(self) -> dict[str, np.ndarray]:
        return {
            "profile": self.profile_vector,
            "skills": self.skills_vector,
            "portfolio": self.portfolio_vector,
            "composite": self.composite_vector,
        }


@dataclass
class QueryEmbedding:
    """A processed and embedded search query."""

    query_text: str
    cleaned_query: str
    expanded_query: str
    extracted_concepts: list[str]
    query_vector: np.ndarray
    query_type: QueryType
    confidence: float
    processing_time_ms: float = 0.0
    metadata: QueryMetadata = field(default_factory=QueryMetadata)
    literal_fallback: bool = False


class EmbeddingFusionSystem:
    """
    Owns the logic that turns facet vectors into a composite.

    Facet texts are embedded through the shared EmbeddingClient, so an
    unchanged facet reuses its cache entry even when another facet changed.
    """

    def __init__(
        self,
        client: Optional[EmbeddingClient] = None,
        query_processor: Optional[QueryProcessor] = None,
        weights: Optional[dict[str, float]] = None,
        batch_size: Optional[int] = None,
        batch_delay_seconds: Optional[float] = None,
        max_workers: Optional[int] = None,
        model_version_suffix: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        settings = get_settings().fusion

        self.client = client or get_embedding_client()
        self.query_processor = query_processor or get_query_processor()
        self.weights = weights or {
            "profile": settings.profile_weight,
            "skills": settings.skills_weight,
            "portfolio": settings.portfolio_weight,
        }
        if any(w < 0 for w in self.weights.values()):
            raise ValueError("Fusion weights must be non-negative")

        self.batch_size = batch_size or settings.batch_size
        self.batch_delay_seconds = (
            batch_delay_seconds if batch_delay_seconds is not None else settings.batch_delay_seconds
        )
        self.max_workers = max_workers or settings.max_workers
        self.model_version_suffix = model_version_suffix or settings.model_version_suffix
        self._sleep = sleep

    @property
    def dimension(self) -> int:
        return self.client.dimension

    @property
    def model_version(self) -> str:
        return f"{self.client.default_model}-{self.model_version_suffix}"

    # =========================================================================
    # Profile embeddings
    # =========================================================================

    @staticmethod
    def facet_texts(profile: ArtisanProfile, enriched: Optional[EnrichedProfile] = None) -> FacetTexts:
        """
        Facet texts for a profile, augmented with enrichment output when given.

        Inferred skills join the skills facet; dominant styles and selling
        points join the portfolio facet.
        """
        texts = enriched.textual_content if enriched is not None else extract_facet_texts(profile)
        if enriched is None:
            return texts

        skills_extra = " ".join(enriched.inferred_skills)
        portfolio_extra = " ".join(
            enriched.portfolio_analysis.dominant_styles
            + enriched.market_positioning.unique_selling_points
        )
        return FacetTexts(
            profile_text=texts.profile_text,
            skills_text=" ".join(p for p in (texts.skills_text, skills_extra) if p).lower(),
            portfolio_text=" ".join(p for p in (texts.portfolio_text, portfolio_extra) if p).lower(),
        )

    def generate_artisan_embedding(
        self,
        profile: ArtisanProfile,
        enriched: Optional[EnrichedProfile] = None,
        timeout: Optional[float] = None,
    ) -> ArtisanEmbedding:
        """
        Generate facet and composite embeddings for one profile.

        The three facet embeddings are requested concurrently and joined
        before fusion. Any facet failure propagates.

        Raises:
            EmbeddingProviderError: Provider failure on any facet
            OperationTimeoutError: A facet call exceeded the deadline
            DimensionMismatchError: Facet vectors disagree in length
        """
        start = time.perf_counter()
        texts = self.facet_texts(profile, enriched).as_dict()

        tasks = {
            facet: partial(self.client.embed, texts[facet], None, timeout)
            for facet in FACET_NAMES
        }
        outcomes = run_concurrently(tasks, max_workers=self.max_workers)

        for facet in FACET_NAMES:
            if not outcomes[facet].ok:
                logger.error(
                    f"Facet '{facet}' embedding failed for {profile.artisan_id}: {outcomes[facet].error}"
                )
                raise outcomes[facet].error

        facet_vectors = {facet: normalize(outcomes[facet].value.vector) for facet in FACET_NAMES}
        tokens_used = sum(outcomes[facet].value.tokens_used for facet in FACET_NAMES)

        composite = self.fuse_vectors([
            (facet_vectors[facet], self.weights[facet]) for facet in FACET_NAMES
        ])

        confidence = self.calculate_profile_confidence(profile, texts)
        if enriched is not None:
            confidence = (confidence + enriched.confidence) / 2

        embedding = ArtisanEmbedding(
            artisan_id=profile.artisan_id,
            profile_vector=facet_vectors["profile"],
            skills_vector=facet_vectors["skills"],
            portfolio_vector=facet_vectors["portfolio"],
            composite_vector=composite,
            confidence=confidence,
            content_hash=profile.content_hash(),
            model_version=self.model_version,
            tokens_used=tokens_used,
        )

        latency = (time.perf_counter() - start) * 1000
        logger.info(
            f"Generated embedding for {profile.artisan_id} in {latency:.1f}ms "
            f"(confidence: {confidence:.2f}, tokens: {tokens_used})"
        )
        return embedding

    def generate_batch_artisan_embeddings(
        self,
        profiles: list[ArtisanProfile],
        enriched: Optional[dict[str, EnrichedProfile]] = None,
        skip_failures: bool = False,
    ) -> list[ArtisanEmbedding]:
        """
        Generate embeddings for many profiles in batches with a pause between batches.

        Args:
            profiles: Profiles to embed
            enriched: Optional enrichment results keyed by artisan_id
            skip_failures: Log and skip profiles whose embedding fails instead of raising
        """
        enriched = enriched or {}
        results: list[ArtisanEmbedding] = []
        total_batches = (len(profiles) + self.batch_size - 1) // self.batch_size

        for offset in range(0, len(profiles), self.batch_size):
            if offset > 0 and self.batch_delay_seconds > 0:
                self._sleep(self.batch_delay_seconds)

            logger.debug(f"Embedding batch {offset // self.batch_size + 1}/{total_batches}")

            for profile in profiles[offset:offset + self.batch_size]:
                try:
                    results.append(
                        self.generate_artisan_embedding(profile, enriched.get(profile.artisan_id))
                    )
                except Exception as e:
                    if not skip_failures:
                        raise
                    logger.error(f"Skipping {profile.artisan_id}: {e}")

        logger.info(f"Generated embeddings for {len(results)}/{len(profiles)} artisans")
        return results

    @staticmethod
    def fuse_vectors(weighted_vectors: list[tuple[np.ndarray, float]]) -> np.ndarray:
        """
        Weighted average of facet vectors, normalized to unit length.

        Raises:
            ValueError: If no vectors are given
            DimensionMismatchError: If vector lengths differ
        """
        if not weighted_vectors:
            raise ValueError("At least one vector is required for fusion")
        return normalize(weighted_average(weighted_vectors))

    @staticmethod
    def calculate_profile_confidence(profile: ArtisanProfile, texts: dict[str, str]) -> float:
        """Mean weight of the facet-richness factors that pass their threshold."""
        factors = [
            (len(texts["profile"]) > 50, 0.3),
            (len(texts["skills"]) > 30, 0.3),
            (len(texts["portfolio"]) > 20, 0.2),
            (profile.is_verified, 0.2),
        ]
        passing = [weight for passed, weight in factors if passed]
        if not passing:
            return 0.0
        return min(1.0, sum(passing) / len(passing))

    def validate_embedding(self, embedding: ArtisanEmbedding) -> list[str]:
        """Names of vectors with the wrong dimension or non-finite values."""
        return [
            name for name, vector in embedding.vectors().items()
            if not is_valid_vector(vector, self.dimension)
        ]

    def ensure_valid(self, embedding: ArtisanEmbedding) -> ArtisanEmbedding:
        """
        Block invalid embeddings from reaching the index.

        Raises:
            InvalidEmbeddingError: If any vector fails validation
        """
        failing = self.validate_embedding(embedding)
        if failing:
            audit_log(
                "embedding_blocked",
                {"artisan_id": embedding.artisan_id, "failing_vectors": failing},
                audit_type="BLOCKED",
            )
            raise InvalidEmbeddingError(embedding.artisan_id, failing)
        return embedding

    # =========================================================================
    # Query embeddings
    # =========================================================================

    def embed_query(self, query: str, timeout: Optional[float] = None) -> QueryEmbedding:
        """
        Process, expand and embed a search query.

        A query that fails validation but is not blank is embedded as a
        single literal concept. A blank query yields a zero vector.
        """
        start = time.perf_counter()
        processed = self.query_processor.process_query(query)
        used_fallback = False

        if not self.query_processor.validate_processed_query(processed) and processed.cleaned_query:
            processed = self.query_processor.literal_fallback(processed)
            used_fallback = True
            logger.debug(f"Using literal fallback for query '{processed.cleaned_query}'")

        result = self.client.embed(processed.expanded_query, timeout=timeout)
        vector = normalize(result.vector)

        return QueryEmbedding(
            query_text=query,
            cleaned_query=processed.cleaned_query,
            expanded_query=processed.expanded_query,
            extracted_concepts=processed.extracted_concepts,
            query_vector=vector,
            query_type=processed.query_type,
            confidence=self.calculate_query_confidence(
                processed.cleaned_query, processed.extracted_concepts
            ),
            processing_time_ms=(time.perf_counter() - start) * 1000,
            metadata=processed.metadata,
            literal_fallback=used_fallback,
        )

    @staticmethod
    def calculate_query_confidence(query: str, concepts: list[str]) -> float:
        """Longer, multi-concept queries score higher; clipped to [0, 1]."""
        confidence = 0.0
        if len(query) > 10:
            confidence += 0.3
        if len(query) > 30:
            confidence += 0.2
        if len(concepts) > 1:
            confidence += 0.3
        if len(concepts) > 3:
            confidence += 0.2
        return min(1.0, confidence)

    def get_cache_stats(self) -> dict:
        return self.client.get_cache_stats()


# Singleton instance
_fusion_system: Optional[EmbeddingFusionSystem] = None


def get_fusion_system() -> EmbeddingFusionSystem:
    """Get or create the singleton fusion system."""
    global _fusion_system
    if _fusion_system is None:
        _fusion_system = EmbeddingFusionSystem()
    return _fusion_system
