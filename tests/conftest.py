"""
Shared test fixtures for the Artisan Match test suite.

Sets environment variables before any package imports so settings load in
testing mode, then provides a deterministic fake embedding provider, an
in-memory vector index and sample artisan profiles. No external service is
touched.
"""

import os

# === Set environment BEFORE any package imports ===
os.environ.setdefault("APP_ENVIRONMENT", "testing")
os.environ.setdefault("EMBEDDING_PROVIDER", "local")

import hashlib
import threading
from typing import Any, Optional

import numpy as np
import pytest

from artisan_match.core.exceptions import EmbeddingProviderError
from artisan_match.core.matching import MatchingService, SimilaritySearchEngine
from artisan_match.data.models import (
    ArtisanProfile,
    CulturalCertification,
    CustomerReview,
    MatchingData,
    PerformanceMetrics,
    PriceRange,
    SkillTag,
    VerificationStatus,
)
from artisan_match.ml.embeddings.embedding_client import EmbeddingClient
from artisan_match.ml.embeddings.fusion import EmbeddingFusionSystem
from artisan_match.ml.embeddings.providers import EmbeddingProvider, ProviderResponse
from artisan_match.ml.embeddings.vector_math import cosine_similarity
from artisan_match.ml.embeddings.vector_store import IndexMatch, VectorIndex, matches_filter
from artisan_match.ml.nlp.enrichment import ProfileEnrichmentPipeline
from artisan_match.ml.nlp.query_processor import QueryProcessor

TEST_DIMENSION = 16


def _no_sleep(_seconds: float) -> None:
    return None


# ---------------------------------------------------------------------------
# Fakes for the external services
# ---------------------------------------------------------------------------


class FakeEmbeddingProvider(EmbeddingProvider):
    """
    Deterministic bag-of-words provider.

    Every word is hashed into one bucket, so texts that share words get
    similar vectors. Calls are recorded for assertions.
    """

    name = "fake"

    def __init__(self, dimension: int = TEST_DIMENSION, fail_on: Optional[str] = None):
        self._dimension = dimension
        self.fail_on = fail_on
        self.calls: list[list[str]] = []
        self._lock = threading.Lock()

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def default_model(self) -> str:
        return "fake-embedding"

    @property
    def texts_embedded(self) -> list[str]:
        return [text for batch in self.calls for text in batch]

    def vector_for(self, text: str) -> np.ndarray:
        vector = np.zeros(self._dimension, dtype=np.float64)
        for word in text.lower().split():
            bucket = int(hashlib.sha256(word.encode("utf-8")).hexdigest(), 16) % self._dimension
            vector[bucket] += 1.0
        return vector

    def embed_batch(self, texts: list[str], model: Optional[str] = None) -> ProviderResponse:
        with self._lock:
            self.calls.append(list(texts))

        if self.fail_on and any(self.fail_on in text for text in texts):
            raise EmbeddingProviderError("fake provider failure", provider=self.name, status_code=500)

        return ProviderResponse(
            vectors=[self.vector_for(text) for text in texts],
            tokens_used=sum(len(text.split()) for text in texts),
        )


class InMemoryVectorIndex(VectorIndex):
    """Brute-force cosine index over a dict, with query call recording."""

    def __init__(self, index_name: str = "test-index"):
        super().__init__(index_name=index_name, metric="cosine")
        self.indexes: dict[str, dict[str, tuple[np.ndarray, dict[str, Any]]]] = {}
        self.query_calls: list[dict[str, Any]] = []
        self.injected: list[IndexMatch] = []

    def create_index(self, name: str, dimensions: int, metric: Optional[str] = None) -> None:
        self.indexes.setdefault(name, {})

    def list_indexes(self) -> list[str]:
        return list(self.indexes)

    def upsert(self, ids, vectors, metadatas=None, index_name=None) -> None:
        store = self.indexes.setdefault(self._resolve(index_name), {})
        for i, artisan_id in enumerate(ids):
            store[artisan_id] = (np.asarray(vectors[i], dtype=np.float64), dict(metadatas[i] if metadatas else {}))

    def query(self, vector, top_k=10, where=None, include_metadata=True, include_values=False, index_name=None):
        self.query_calls.append({"top_k": top_k, "where": where})
        store = self.indexes.get(self._resolve(index_name), {})

        matches = [
            IndexMatch(
                id=artisan_id,
                score=cosine_similarity(vector, stored),
                metadata=dict(metadata) if include_metadata else None,
                values=stored if include_values else None,
            )
            for artisan_id, (stored, metadata) in store.items()
            if matches_filter(metadata, where)
        ]
        matches.extend(self.injected)
        matches.sort(key=lambda m: -m.score)
        return matches[:top_k]

    def fetch(self, ids, index_name=None):
        store = self.indexes.get(self._resolve(index_name), {})
        return {
            artisan_id: IndexMatch(id=artisan_id, score=1.0, metadata=dict(store[artisan_id][1]), values=store[artisan_id][0])
            for artisan_id in ids
            if artisan_id in store
        }

    def delete(self, ids, index_name=None) -> None:
        store = self.indexes.get(self._resolve(index_name), {})
        for artisan_id in ids:
            store.pop(artisan_id, None)

    def count(self, index_name=None) -> int:
        return len(self.indexes.get(self._resolve(index_name), {}))


# ---------------------------------------------------------------------------
# Component fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def fake_provider():
    return FakeEmbeddingProvider()


@pytest.fixture
def embedding_client(fake_provider):
    return EmbeddingClient(
        provider=fake_provider,
        cache_size=100,
        provider_batch_size=4,
        batch_delay_seconds=0.0,
        verify_dimension=False,
        sleep=_no_sleep,
    )


@pytest.fixture
def query_processor():
    return QueryProcessor()


@pytest.fixture
def enrichment_pipeline():
    return ProfileEnrichmentPipeline(batch_size=2, batch_delay_seconds=0.0, cache_size=50, sleep=_no_sleep)


@pytest.fixture
def fusion_system(embedding_client, query_processor):
    return EmbeddingFusionSystem(
        client=embedding_client,
        query_processor=query_processor,
        batch_size=2,
        batch_delay_seconds=0.0,
        sleep=_no_sleep,
    )


@pytest.fixture
def memory_index():
    index = InMemoryVectorIndex()
    index.create_index(index.index_name, TEST_DIMENSION)
    return index


@pytest.fixture
def search_engine(memory_index):
    return SimilaritySearchEngine(
        index=memory_index,
        dimension=TEST_DIMENSION,
        default_threshold=0.0,
        max_results=20,
        cache_size=10,
        cache_ttl_seconds=60.0,
    )


@pytest.fixture
def matching_service(enrichment_pipeline, fusion_system, memory_index, search_engine):
    return MatchingService(
        enrichment=enrichment_pipeline,
        fusion=fusion_system,
        index=memory_index,
        search_engine=search_engine,
    )


@pytest.fixture
def unit_vector():
    """Factory for a unit vector along one axis."""

    def _factory(axis: int, dimension: int = TEST_DIMENSION) -> np.ndarray:
        vector = np.zeros(dimension, dtype=np.float64)
        vector[axis] = 1.0
        return vector

    return _factory


# ---------------------------------------------------------------------------
# Sample profiles
# ---------------------------------------------------------------------------


@pytest.fixture
def make_profile():
    """Factory that returns a callable to build ArtisanProfile models."""

    def _factory(
        artisan_id: str = "artisan-1",
        name: str = "Meera Devi",
        profession: Optional[str] = "potter",
        description: Optional[str] = (
            "Third generation potter crafting traditional terracotta and glazed "
            "stoneware pieces using wheel throwing and hand building techniques."
        ),
        skills: Optional[list[str]] = None,
        materials: Optional[list[str]] = None,
        techniques: Optional[list[str]] = None,
        portfolio_keywords: Optional[list[str]] = None,
        price_range: Optional[tuple[float, float]] = (1500, 6000),
        experience_level: Optional[str] = "expert",
        verified: bool = True,
        rating: Optional[float] = 4.8,
        response_time_hours: Optional[float] = 4,
        accepts_custom_orders: bool = True,
        reviews: Optional[list[str]] = None,
        **kwargs,
    ) -> ArtisanProfile:
        if skills is None:
            skills = ["pottery", "glazing", "wheel throwing"]
        if materials is None:
            materials = ["clay", "terracotta"]
        if techniques is None:
            techniques = ["wheel throwing", "hand building"]
        if portfolio_keywords is None:
            portfolio_keywords = ["bowls", "vases", "dinner sets"]

        return ArtisanProfile(
            artisan_id=artisan_id,
            name=name,
            profession=profession,
            description=description,
            location="Jaipur",
            specializations=["terracotta pottery"],
            cultural_certifications=[CulturalCertification(name="Rajasthan Craft Council")],
            portfolio_highlights=["handmade dinner set for a heritage hotel"],
            skill_tags=[SkillTag(skill="Pottery", proficiency="expert")],
            accepts_custom_orders=accepts_custom_orders,
            matching_data=MatchingData(
                skills=skills,
                materials=materials,
                techniques=techniques,
                category_tags=["home decor"],
                portfolio_keywords=portfolio_keywords,
                price_range=PriceRange(min=price_range[0], max=price_range[1]) if price_range else None,
                experience_level=experience_level,
                typical_timeline="2-3 weeks",
                verification=VerificationStatus(skills_verified=verified),
            ),
            performance=PerformanceMetrics(
                customer_satisfaction=rating,
                response_time_hours=response_time_hours,
            ),
            reviews=[CustomerReview(text=text) for text in (reviews or [])],
            **kwargs,
        )

    return _factory


@pytest.fixture
def sample_profile(make_profile):
    return make_profile()


@pytest.fixture
def minimal_profile():
    return ArtisanProfile(artisan_id="artisan-min", name="Ravi")


@pytest.fixture
def woodworker_profile(make_profile):
    return make_profile(
        artisan_id="artisan-2",
        name="Arjun Singh",
        profession="woodworker",
        description="Carves teak and sheesham furniture with traditional joinery.",
        skills=["woodworking", "carving", "joinery"],
        materials=["teak", "sheesham"],
        techniques=["hand carving", "joinery"],
        portfolio_keywords=["tables", "chairs", "cabinets"],
        price_range=(8000, 40000),
        experience_level="master",
        verified=False,
        rating=4.2,
        response_time_hours=30,
        accepts_custom_orders=False,
    )


@pytest.fixture
def jeweler_profile(make_profile):
    return make_profile(
        artisan_id="artisan-3",
        name="Lakshmi Rao",
        profession="jeweler",
        description="Silver filigree jewelry with temple motifs.",
        skills=["jewelry making", "filigree"],
        materials=["silver", "gemstones"],
        techniques=["filigree", "stone setting"],
        portfolio_keywords=["necklaces", "earrings"],
        price_range=(3000, 20000),
        experience_level="advanced",
        verified=True,
        rating=4.6,
    )
