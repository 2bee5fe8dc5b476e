"""
Embedding client with truncation, batching and an LRU result cache.

Wraps an EmbeddingProvider so that callers get cached, validated vectors and
usage/latency accounting for every call.
"""

import hashlib
import time
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np

from artisan_match.core.exceptions import EmbeddingConfigError, EmbeddingProviderError
from artisan_match.ml.embeddings.providers import EmbeddingProvider, get_embedding_provider
from artisan_match.ml.embeddings.vector_math import is_valid_vector
from artisan_match.utils.cache import LRUCache
from artisan_match.utils.concurrency import call_with_timeout
from artisan_match.utils.config import get_settings
from artisan_match.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class EmbeddingResult:
    """A single embedding with its cost."""

    vector: np.ndarray
    tokens_used: int
    latency_ms: float
    cached: bool = False


@dataclass
class BatchEmbeddingResult:
    """Embeddings for a batch of texts, in input order."""

    vectors: list[np.ndarray]
    tokens_used: int
    latency_ms: float
    cache_hits: int = 0
    provider_calls: int = 0


class EmbeddingClient:
    """
    Turns text into fixed-dimension vectors.

    Empty text yields a zero vector without a provider call. Text over the
    token budget is cut at the nearest preceding word boundary. Results are
    cached by (model, lower-cased trimmed text); a cache hit reports zero
    token usage. Cached vectors are read-only.
    """

    def __init__(
        self,
        provider: Optional[EmbeddingProvider] = None,
        cache_size: Optional[int] = None,
        max_input_tokens: Optional[int] = None,
        chars_per_token: Optional[int] = None,
        provider_batch_size: Optional[int] = None,
        batch_delay_seconds: Optional[float] = None,
        request_timeout: Optional[float] = None,
        verify_dimension: Optional[bool] = None,
        expected_dimension: Optional[int] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the embedding client.

        Args:
            provider: Embedding provider (defaults to the configured one)
            cache_size: Maximum cached embeddings
            max_input_tokens: Token budget per text
            chars_per_token: Characters assumed per token when truncating
            provider_batch_size: Maximum texts per provider request
            batch_delay_seconds: Pause between provider sub-batches
            request_timeout: Default deadline for provider calls
            verify_dimension: Probe the provider once and fail fast on mismatch
            expected_dimension: Dimension to verify against
            sleep: Sleep function, injectable for tests
        """
        settings = get_settings().embedding

        self.provider = provider or get_embedding_provider(settings)
        self.max_input_tokens = max_input_tokens or settings.max_input_tokens
        self.chars_per_token = chars_per_token or settings.chars_per_token
        self.provider_batch_size = provider_batch_size or settings.provider_batch_size
        self.batch_delay_seconds = (
            batch_delay_seconds if batch_delay_seconds is not None else settings.batch_delay_seconds
        )
        self.request_timeout = request_timeout if request_timeout is not None else settings.request_timeout
        self._sleep = sleep

        self._cache: LRUCache[str, np.ndarray] = LRUCache(cache_size or settings.cache_size)

        should_verify = settings.verify_dimension_on_startup if verify_dimension is None else verify_dimension
        if should_verify:
            self.verify_dimension(expected_dimension or settings.dimension)

    @property
    def dimension(self) -> int:
        return self.provider.dimension

    @property
    def default_model(self) -> str:
        return self.provider.default_model

    @property
    def max_input_chars(self) -> int:
        return self.max_input_tokens * self.chars_per_token

    @staticmethod
    def cache_key(text: str, model: str) -> str:
        """Cache key over the model id and the normalized text."""
        normalized = text.strip().lower()
        return hashlib.sha256(f"{model}\x00{normalized}".encode("utf-8")).hexdigest()

    def truncate(self, text: str) -> str:
        """Cut text to the token budget at the nearest preceding word boundary."""
        limit = self.max_input_chars
        if len(text) <= limit:
            return text

        truncated = text[:limit]
        boundary = truncated.rfind(" ")
        if boundary > 0:
            truncated = truncated[:boundary]

        logger.debug(f"Truncated embedding input from {len(text)} to {len(truncated)} chars")
        return truncated.rstrip()

    def _zero_vector(self) -> np.ndarray:
        vector = np.zeros(self.dimension, dtype=np.float64)
        vector.setflags(write=False)
        return vector

    def _validate(self, vector: np.ndarray) -> np.ndarray:
        if not is_valid_vector(vector, self.dimension):
            raise EmbeddingProviderError(
                f"Provider returned an invalid vector (length {len(vector)}, expected {self.dimension})",
                provider=self.provider.name,
            )
        vector = np.array(vector, dtype=np.float64)
        vector.setflags(write=False)
        return vector

    def embed(
        self,
        text: str,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> EmbeddingResult:
        """
        Embed a single text.

        Raises:
            EmbeddingProviderError: Provider failure
            OperationTimeoutError: The provider call exceeded the deadline
        """
        start = time.perf_counter()
        model_name = model or self.default_model

        stripped = text.strip() if text else ""
        if not stripped:
            return EmbeddingResult(vector=self._zero_vector(), tokens_used=0, latency_ms=0.0)

        key = self.cache_key(stripped, model_name)
        cached = self._cache.get(key)
        if cached is not None:
            latency = (time.perf_counter() - start) * 1000
            return EmbeddingResult(vector=cached, tokens_used=0, latency_ms=latency, cached=True)

        response = call_with_timeout(
            self.provider.embed_batch,
            timeout if timeout is not None else self.request_timeout,
            "embedding",
            [self.truncate(stripped)],
            model_name,
        )

        vector = self._validate(response.vectors[0])
        self._cache.put(key, vector)

        latency = (time.perf_counter() - start) * 1000
        return EmbeddingResult(vector=vector, tokens_used=response.tokens_used, latency_ms=latency)

    def embed_batch(
        self,
        texts: list[str],
        model: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> BatchEmbeddingResult:
        """
        Embed many texts, sending only cache misses to the provider.

        Misses are split into provider-sized sub-batches with a pause between
        them. Each completed sub-batch is cached immediately, so a failure or
        timeout in a later sub-batch keeps earlier work.
        """
        start = time.perf_counter()
        model_name = model or self.default_model
        deadline = timeout if timeout is not None else self.request_timeout

        vectors: list[Optional[np.ndarray]] = [None] * len(texts)
        cache_hits = 0

        # key -> (normalized text, positions needing it)
        pending: dict[str, tuple[str, list[int]]] = {}

        for i, text in enumerate(texts):
            stripped = text.strip() if text else ""
            if not stripped:
                vectors[i] = self._zero_vector()
                continue

            key = self.cache_key(stripped, model_name)
            if key in pending:
                pending[key][1].append(i)
                continue

            cached = self._cache.get(key)
            if cached is not None:
                vectors[i] = cached
                cache_hits += 1
            else:
                pending[key] = (stripped, [i])

        keys = list(pending.keys())
        tokens_used = 0
        provider_calls = 0

        for offset in range(0, len(keys), self.provider_batch_size):
            if offset > 0 and self.batch_delay_seconds > 0:
                self._sleep(self.batch_delay_seconds)

            batch_keys = keys[offset:offset + self.provider_batch_size]
            batch_texts = [self.truncate(pending[k][0]) for k in batch_keys]

            response = call_with_timeout(
                self.provider.embed_batch,
                deadline,
                "embedding_batch",
                batch_texts,
                model_name,
            )
            provider_calls += 1
            tokens_used += response.tokens_used

            if len(response.vectors) != len(batch_keys):
                raise EmbeddingProviderError(
                    f"Provider returned {len(response.vectors)} vectors for {len(batch_keys)} texts",
                    provider=self.provider.name,
                )

            for key, raw in zip(batch_keys, response.vectors):
                vector = self._validate(raw)
                self._cache.put(key, vector)
                for position in pending[key][1]:
                    vectors[position] = vector

        latency = (time.perf_counter() - start) * 1000
        logger.debug(
            f"Embedded {len(texts)} texts: {cache_hits} cache hits, "
            f"{len(keys)} sent in {provider_calls} requests ({latency:.1f}ms)"
        )

        return BatchEmbeddingResult(
            vectors=vectors,  # type: ignore[arg-type]
            tokens_used=tokens_used,
            latency_ms=latency,
            cache_hits=cache_hits,
            provider_calls=provider_calls,
        )

    def verify_dimension(self, expected: int) -> None:
        """
        Probe the provider once and compare its vector length to configuration.

        Raises:
            EmbeddingConfigError: On mismatch
        """
        response = self.provider.embed_batch(["dimension probe"], self.default_model)
        actual = len(response.vectors[0])
        if actual != expected:
            raise EmbeddingConfigError(
                f"Provider '{self.provider.name}' returns {actual}-dimensional vectors, "
                f"configuration expects {expected}"
            )
        logger.info(f"Embedding provider '{self.provider.name}' verified at dimension {actual}")

    def get_cache_stats(self) -> dict:
        return self._cache.stats().to_dict()

    def clear_cache(self) -> None:
        self._cache.clear()
        logger.info("Embedding cache cleared")


# Singleton instance
_embedding_client: Optional[EmbeddingClient] = None


def get_embedding_client() -> EmbeddingClient:
    """Get or create the singleton embedding client."""
    global _embedding_client
    if _embedding_client is None:
        _embedding_client = EmbeddingClient()
    return _embedding_client
