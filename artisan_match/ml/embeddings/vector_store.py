"""
Vector index abstraction for composite artisan embeddings.

Supports ChromaDB and FAISS backends. The index owns durable storage of
vectors and their metadata; this package only reads and writes through it.
Writes are upserts keyed by artisan id, so re-indexing is idempotent.
"""

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import numpy as np

from artisan_match.core.exceptions import DimensionMismatchError, VectorIndexError
from artisan_match.ml.embeddings.vector_math import normalize
from artisan_match.utils.config import get_settings
from artisan_match.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class IndexMatch:
    """One hit returned by a vector index."""

    id: str
    score: float
    metadata: Optional[dict[str, Any]] = None
    values: Optional[np.ndarray] = None


def matches_filter(metadata: dict[str, Any], where: Optional[dict[str, Any]]) -> bool:
    """
    Evaluate a Mongo-style metadata filter.

    Supports plain equality plus $eq, $ne, $in, $nin, $gt, $gte, $lt, $lte,
    and the $and / $or combinators. This is the same filter dialect that
    ChromaDB accepts natively.
    """
    if not where:
        return True

    for key, condition in where.items():
        if key == "$and":
            if not all(matches_filter(metadata, sub) for sub in condition):
                return False
            continue
        if key == "$or":
            if not any(matches_filter(metadata, sub) for sub in condition):
                return False
            continue

        value = metadata.get(key)
        if not isinstance(condition, dict):
            if value != condition:
                return False
            continue

        for op, expected in condition.items():
            if op == "$eq" and value != expected:
                return False
            if op == "$ne" and value == expected:
                return False
            if op == "$in" and value not in expected:
                return False
            if op == "$nin" and value in expected:
                return False
            if op in ("$gt", "$gte", "$lt", "$lte"):
                if value is None:
                    return False
                if op == "$gt" and not value > expected:
                    return False
                if op == "$gte" and not value >= expected:
                    return False
                if op == "$lt" and not value < expected:
                    return False
                if op == "$lte" and not value <= expected:
                    return False
    return True


def _clean_metadata(metadata: Optional[dict[str, Any]]) -> dict[str, Any]:
    # Index backends store scalars only and reject None
    return {k: v for k, v in (metadata or {}).items() if v is not None}


class VectorIndex(ABC):
    """
    Abstract base class for vector indexes.

    Every operation takes an optional index_name and falls back to the
    configured default index.
    """

    def __init__(self, index_name: Optional[str] = None, metric: Optional[str] = None):
        settings = get_settings().vector_store
        self.index_name = index_name or settings.index_name
        self.metric = metric or settings.metric

    def _resolve(self, index_name: Optional[str]) -> str:
        return index_name or self.index_name

    @abstractmethod
    def create_index(self, name: str, dimensions: int, metric: Optional[str] = None) -> None:
        """Create an index if it does not exist yet."""
        pass

    @abstractmethod
    def list_indexes(self) -> list[str]:
        """Names of all existing indexes."""
        pass

    @abstractmethod
    def upsert(
        self,
        ids: list[str],
        vectors: list[np.ndarray],
        metadatas: Optional[list[dict[str, Any]]] = None,
        index_name: Optional[str] = None,
    ) -> None:
        """Insert or overwrite vectors by id."""
        pass

    @abstractmethod
    def query(
        self,
        vector: np.ndarray,
        top_k: int = 10,
        where: Optional[dict[str, Any]] = None,
        include_metadata: bool = True,
        include_values: bool = False,
        index_name: Optional[str] = None,
    ) -> list[IndexMatch]:
        """Nearest neighbours of vector, best first."""
        pass

    @abstractmethod
    def fetch(self, ids: list[str], index_name: Optional[str] = None) -> dict[str, IndexMatch]:
        """Stored vectors and metadata by id; unknown ids are absent from the result."""
        pass

    @abstractmethod
    def delete(self, ids: list[str], index_name: Optional[str] = None) -> None:
        """Delete vectors by id."""
        pass

    @abstractmethod
    def count(self, index_name: Optional[str] = None) -> int:
        """Number of vectors in the index."""
        pass


class ChromaVectorIndex(VectorIndex):
    """
    ChromaDB-based vector index.

    Provides persistent storage with native metadata filtering. Each index
    is a Chroma collection.
    """

    SPACES = {"cosine": "cosine", "dotproduct": "ip", "euclidean": "l2"}

    def __init__(
        self,
        index_name: Optional[str] = None,
        persist_directory: Optional[Path] = None,
        metric: Optional[str] = None,
    ):
        super().__init__(index_name, metric)
        settings = get_settings().vector_store
        self.persist_directory = persist_directory or settings.persist_directory

        self._client = None
        self._collections: dict[str, Any] = {}
        self._initialized = False

    def _initialize(self) -> None:
        """Lazy initialization of ChromaDB client."""
        if self._initialized:
            return

        try:
            import chromadb
            from chromadb.config import Settings as ChromaSettings

            self.persist_directory.mkdir(parents=True, exist_ok=True)

            logger.info(f"Initializing ChromaDB at: {self.persist_directory}")

            self._client = chromadb.PersistentClient(
                path=str(self.persist_directory),
                settings=ChromaSettings(
                    anonymized_telemetry=False,
                    allow_reset=True,
                ),
            )
            self._initialized = True

        except ImportError:
            logger.error(
                "chromadb not installed. Install with: pip install chromadb"
            )
            raise
        except Exception as e:
            logger.error(f"Failed to initialize ChromaDB: {e}")
            raise

    @property
    def client(self):
        if not self._initialized:
            self._initialize()
        return self._client

    def _collection(self, index_name: Optional[str] = None):
        name = self._resolve(index_name)
        if name not in self._collections:
            self._collections[name] = self.client.get_or_create_collection(
                name=name,
                metadata={"hnsw:space": self.SPACES[self.metric]},
            )
        return self._collections[name]

    def _to_score(self, distance: float) -> float:
        # Chroma returns distances; l2 is squared
        if self.metric == "euclidean":
            return 1.0 / (1.0 + distance)
        return 1.0 - distance

    def create_index(self, name: str, dimensions: int, metric: Optional[str] = None) -> None:
        space = self.SPACES[metric or self.metric]
        self._collections[name] = self.client.get_or_create_collection(
            name=name,
            metadata={"hnsw:space": space, "dimensions": dimensions},
        )
        logger.info(f"Chroma index ready: {name} ({dimensions} dims, {space})")

    def list_indexes(self) -> list[str]:
        # Newer chromadb returns names, older returns Collection objects
        return [c if isinstance(c, str) else c.name for c in self.client.list_collections()]

    def upsert(
        self,
        ids: list[str],
        vectors: list[np.ndarray],
        metadatas: Optional[list[dict[str, Any]]] = None,
        index_name: Optional[str] = None,
    ) -> None:
        if len(ids) == 0:
            return

        self._collection(index_name).upsert(
            ids=ids,
            embeddings=[np.asarray(v, dtype=np.float32).tolist() for v in vectors],
            metadatas=[_clean_metadata(m) for m in metadatas] if metadatas else None,
        )

        logger.debug(f"Upserted {len(ids)} vectors to {self._resolve(index_name)}")

    def query(
        self,
        vector: np.ndarray,
        top_k: int = 10,
        where: Optional[dict[str, Any]] = None,
        include_metadata: bool = True,
        include_values: bool = False,
        index_name: Optional[str] = None,
    ) -> list[IndexMatch]:
        collection = self._collection(index_name)
        n_results = min(top_k, collection.count())
        if n_results <= 0:
            return []

        include = ["distances", "metadatas"]
        if include_values:
            include.append("embeddings")

        results = collection.query(
            query_embeddings=[np.asarray(vector, dtype=np.float32).tolist()],
            n_results=n_results,
            where=self._to_where(where),
            include=include,
        )

        matches = []
        if results["ids"] and results["ids"][0]:
            distances = results["distances"][0]
            metadatas = results["metadatas"][0] if results.get("metadatas") is not None else None
            embeddings = results["embeddings"][0] if results.get("embeddings") is not None else None

            for i, doc_id in enumerate(results["ids"][0]):
                matches.append(IndexMatch(
                    id=doc_id,
                    score=self._to_score(distances[i]),
                    metadata=(metadatas[i] or {}) if include_metadata and metadatas is not None else None,
                    values=np.asarray(embeddings[i], dtype=np.float64) if embeddings is not None else None,
                ))

        return matches

    @staticmethod
    def _to_where(where: Optional[dict[str, Any]]) -> Optional[dict[str, Any]]:
        """Chroma wants several top-level conditions combined under $and."""
        if not where:
            return None
        if len(where) == 1:
            return where
        return {"$and": [{key: condition} for key, condition in where.items()]}

    def fetch(self, ids: list[str], index_name: Optional[str] = None) -> dict[str, IndexMatch]:
        if not ids:
            return {}

        results = self._collection(index_name).get(
            ids=ids,
            include=["embeddings", "metadatas"],
        )

        embeddings = results.get("embeddings")
        metadatas = results.get("metadatas")

        found = {}
        for i, doc_id in enumerate(results["ids"]):
            found[doc_id] = IndexMatch(
                id=doc_id,
                score=1.0,
                metadata=(metadatas[i] or {}) if metadatas is not None else {},
                values=np.asarray(embeddings[i], dtype=np.float64) if embeddings is not None else None,
            )
        return found

    def delete(self, ids: list[str], index_name: Optional[str] = None) -> None:
        if ids:
            self._collection(index_name).delete(ids=ids)
            logger.debug(f"Deleted {len(ids)} vectors from {self._resolve(index_name)}")

    def count(self, index_name: Optional[str] = None) -> int:
        return self._collection(index_name).count()


class FAISSVectorIndex(VectorIndex):
    """
    FAISS-based vector index.

    Fast in-memory search with optional persistence. Metadata filters are
    evaluated after the nearest-neighbour scan since FAISS cannot filter.
    """

    def __init__(
        self,
        index_name: Optional[str] = None,
        dimension: Optional[int] = None,
        persist_path: Optional[Path] = None,
        metric: Optional[str] = None,
    ):
        super().__init__(index_name, metric)
        settings = get_settings()
        self.dimension = dimension or settings.embedding.dimension
        self.persist_path = persist_path or (
            settings.vector_store.persist_directory / "faiss"
        )

        self._indexes: dict[str, Any] = {}
        self._dimensions: dict[str, int] = {}
        self._metrics: dict[str, str] = {}
        # Per index: external id <-> internal int64 id, and metadata by external id
        self._id_to_key: dict[str, dict[str, int]] = {}
        self._key_to_id: dict[str, dict[int, str]] = {}
        self._metadata: dict[str, dict[str, dict[str, Any]]] = {}
        self._next_key: dict[str, int] = {}
        self._initialized = False

    def _initialize(self) -> None:
        """Lazy initialization of FAISS and any persisted indexes."""
        if self._initialized:
            return

        try:
            import faiss  # noqa: F401

            self._initialized = True
            if self.persist_path.exists():
                self._load()

            logger.info(f"FAISS initialized ({len(self._indexes)} indexes)")

        except ImportError:
            logger.error(
                "faiss not installed. Install with: pip install faiss-cpu"
            )
            raise
        except Exception as e:
            logger.error(f"Failed to initialize FAISS: {e}")
            raise

    @staticmethod
    def _new_faiss_index(dimensions: int, metric: str):
        import faiss

        base = faiss.IndexFlatL2(dimensions) if metric == "euclidean" else faiss.IndexFlatIP(dimensions)
        return faiss.IndexIDMap2(base)

    def _get(self, index_name: Optional[str], create: bool = False):
        if not self._initialized:
            self._initialize()

        name = self._resolve(index_name)
        if name not in self._indexes:
            if not create:
                raise VectorIndexError(f"Index '{name}' does not exist")
            self.create_index(name, self.dimension)
        return name, self._indexes[name]

    def _prepare(self, name: str, vector: np.ndarray) -> np.ndarray:
        vector = np.asarray(vector, dtype=np.float64)
        if vector.shape[0] != self._dimensions[name]:
            raise DimensionMismatchError(self._dimensions[name], vector.shape[0], f"index '{name}'")
        if self._metrics[name] == "cosine":
            vector = normalize(vector)
        return vector.astype(np.float32)

    def create_index(self, name: str, dimensions: int, metric: Optional[str] = None) -> None:
        if not self._initialized:
            self._initialize()
        if name in self._indexes:
            return

        metric = metric or self.metric
        self._indexes[name] = self._new_faiss_index(dimensions, metric)
        self._dimensions[name] = dimensions
        self._metrics[name] = metric
        self._id_to_key[name] = {}
        self._key_to_id[name] = {}
        self._metadata[name] = {}
        self._next_key[name] = 0
        logger.info(f"FAISS index ready: {name} ({dimensions} dims, {metric})")

    def list_indexes(self) -> list[str]:
        if not self._initialized:
            self._initialize()
        return list(self._indexes.keys())

    def upsert(
        self,
        ids: list[str],
        vectors: list[np.ndarray],
        metadatas: Optional[list[dict[str, Any]]] = None,
        index_name: Optional[str] = None,
    ) -> None:
        if len(ids) == 0:
            return

        name, index = self._get(index_name, create=True)
        # Validate every vector before touching the stored state
        matrix = np.vstack([self._prepare(name, v) for v in vectors])
        id_to_key = self._id_to_key[name]

        existing = [id_to_key[ext_id] for ext_id in ids if ext_id in id_to_key]
        if existing:
            index.remove_ids(np.asarray(existing, dtype=np.int64))

        keys = []
        for i, ext_id in enumerate(ids):
            key = id_to_key.get(ext_id)
            if key is None:
                key = self._next_key[name]
                self._next_key[name] += 1
                id_to_key[ext_id] = key
                self._key_to_id[name][key] = ext_id
            keys.append(key)
            self._metadata[name][ext_id] = _clean_metadata(metadatas[i] if metadatas else None)

        index.add_with_ids(matrix, np.asarray(keys, dtype=np.int64))

        logger.debug(f"Upserted {len(ids)} vectors to FAISS index {name}")

    def query(
        self,
        vector: np.ndarray,
        top_k: int = 10,
        where: Optional[dict[str, Any]] = None,
        include_metadata: bool = True,
        include_values: bool = False,
        index_name: Optional[str] = None,
    ) -> list[IndexMatch]:
        name, index = self._get(index_name)
        if index.ntotal == 0 or top_k <= 0:
            return []

        query = self._prepare(name, vector).reshape(1, -1)
        # Scan everything when filtering so filtered-out hits do not starve top_k
        k = index.ntotal if where else min(top_k, index.ntotal)
        scores, keys = index.search(query, k)

        matches = []
        for score, key in zip(scores[0], keys[0]):
            if key < 0:
                continue

            ext_id = self._key_to_id[name].get(int(key))
            if ext_id is None:
                continue

            metadata = self._metadata[name].get(ext_id, {})
            if not matches_filter(metadata, where):
                continue

            if self._metrics[name] == "euclidean":
                # IndexFlatL2 reports squared distances
                score = 1.0 / (1.0 + float(score))

            matches.append(IndexMatch(
                id=ext_id,
                score=float(score),
                metadata=dict(metadata) if include_metadata else None,
                values=index.reconstruct(int(key)).astype(np.float64) if include_values else None,
            ))
            if len(matches) >= top_k:
                break

        return matches

    def fetch(self, ids: list[str], index_name: Optional[str] = None) -> dict[str, IndexMatch]:
        name, index = self._get(index_name)
        found = {}
        for ext_id in ids:
            key = self._id_to_key[name].get(ext_id)
            if key is None:
                continue
            found[ext_id] = IndexMatch(
                id=ext_id,
                score=1.0,
                metadata=dict(self._metadata[name].get(ext_id, {})),
                values=index.reconstruct(key).astype(np.float64),
            )
        return found

    def delete(self, ids: list[str], index_name: Optional[str] = None) -> None:
        name, index = self._get(index_name)
        keys = [self._id_to_key[name].pop(ext_id) for ext_id in ids if ext_id in self._id_to_key[name]]
        if keys:
            index.remove_ids(np.asarray(keys, dtype=np.int64))
            for key in keys:
                ext_id = self._key_to_id[name].pop(key)
                self._metadata[name].pop(ext_id, None)
        logger.debug(f"Deleted {len(keys)} vectors from FAISS index {name}")

    def count(self, index_name: Optional[str] = None) -> int:
        if not self._initialized:
            self._initialize()
        name = self._resolve(index_name)
        if name not in self._indexes:
            return 0
        return self._indexes[name].ntotal

    def save(self) -> None:
        """Save all indexes to disk."""
        if not self._initialized or not self._indexes:
            return

        import faiss

        for name, index in self._indexes.items():
            directory = self.persist_path / name
            directory.mkdir(parents=True, exist_ok=True)

            faiss.write_index(index, str(directory / "index.faiss"))

            meta = {
                "dimensions": self._dimensions[name],
                "metric": self._metrics[name],
                "id_map": self._id_to_key[name],
                "metadata": self._metadata[name],
                "next_key": self._next_key[name],
            }
            with open(directory / "metadata.json", "w") as f:
                json.dump(meta, f)

        logger.info(f"Saved {len(self._indexes)} FAISS indexes to {self.persist_path}")

    def _load(self) -> None:
        """Load persisted indexes from disk."""
        import faiss

        for directory in sorted(p for p in self.persist_path.iterdir() if p.is_dir()):
            index_path = directory / "index.faiss"
            meta_path = directory / "metadata.json"
            if not index_path.exists() or not meta_path.exists():
                continue

            with open(meta_path) as f:
                meta = json.load(f)

            name = directory.name
            self._indexes[name] = faiss.read_index(str(index_path))
            self._dimensions[name] = meta["dimensions"]
            self._metrics[name] = meta["metric"]
            self._id_to_key[name] = {k: int(v) for k, v in meta["id_map"].items()}
            self._key_to_id[name] = {v: k for k, v in self._id_to_key[name].items()}
            self._metadata[name] = meta["metadata"]
            self._next_key[name] = meta["next_key"]

            logger.info(f"Loaded FAISS index {name} from {directory}")


def get_vector_index(
    provider: Optional[str] = None,
    **kwargs,
) -> VectorIndex:
    """
    Factory function to get a vector index instance.

    Args:
        provider: Vector index provider ('chromadb' or 'faiss').
                 Defaults to config setting.
        **kwargs: Additional arguments for the vector index.
    """
    settings = get_settings()
    provider = provider or settings.vector_store.provider

    if provider == "chromadb":
        return ChromaVectorIndex(**kwargs)
    elif provider == "faiss":
        return FAISSVectorIndex(**kwargs)
    else:
        raise ValueError(f"Unknown vector index provider: {provider}")
