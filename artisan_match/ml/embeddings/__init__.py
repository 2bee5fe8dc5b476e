"""
Embedding generation, vector fusion and vector index access.

Components:
- vector_math: Pure numeric vector operations
- EmbeddingClient: Cached, batched text embedding over a provider
- EmbeddingFusionSystem: Facet embeddings fused into composite vectors
- VectorIndex: Abstraction for the vector index (ChromaDB/FAISS)
"""

from .providers import (
    EmbeddingProvider,
    OpenAIEmbeddingProvider,
    SentenceTransformerProvider,
    get_embedding_provider,
)

from .embedding_client import (
    BatchEmbeddingResult,
    EmbeddingClient,
    EmbeddingResult,
    get_embedding_client,
)

from .fusion import (
    ArtisanEmbedding,
    EmbeddingFusionSystem,
    QueryEmbedding,
    get_fusion_system,
)

from .vector_store import (
    ChromaVectorIndex,
    FAISSVectorIndex,
    IndexMatch,
    VectorIndex,
    get_vector_index,
)

__all__ = [
    # Providers
    "EmbeddingProvider",
    "OpenAIEmbeddingProvider",
    "SentenceTransformerProvider",
    "get_embedding_provider",
    # Client
    "BatchEmbeddingResult",
    "EmbeddingClient",
    "EmbeddingResult",
    "get_embedding_client",
    # Fusion
    "ArtisanEmbedding",
    "EmbeddingFusionSystem",
    "QueryEmbedding",
    "get_fusion_system",
    # Vector index
    "ChromaVectorIndex",
    "FAISSVectorIndex",
    "IndexMatch",
    "VectorIndex",
    "get_vector_index",
]
