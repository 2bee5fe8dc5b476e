"""
Embedding provider strategies.

A provider turns a batch of texts into vectors and reports token usage.
Two implementations exist: the hosted OpenAI embeddings API and a local
sentence-transformers model. Which one is used is decided once, from
configuration, by get_embedding_provider().
"""

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional

import numpy as np

from artisan_match.core.exceptions import EmbeddingConfigError, EmbeddingProviderError
from artisan_match.utils.config import EmbeddingSettings, get_settings
from artisan_match.utils.logger import audit_log, get_logger

logger = get_logger(__name__)


@dataclass
class ProviderResponse:
    """Raw provider output for one batch."""

    vectors: list[np.ndarray]
    tokens_used: int


class EmbeddingProvider(ABC):
    """Abstract base class for embedding providers."""

    name: str = "base"

    @property
    @abstractmethod
    def dimension(self) -> int:
        """Dimensionality of vectors this provider returns."""
        pass

    @property
    @abstractmethod
    def default_model(self) -> str:
        pass

    @abstractmethod
    def embed_batch(self, texts: list[str], model: Optional[str] = None) -> ProviderResponse:
        """
        Embed a batch of non-empty texts.

        Raises:
            EmbeddingProviderError: On any provider-side failure
        """
        pass

    def embed(self, text: str, model: Optional[str] = None) -> tuple[np.ndarray, int]:
        response = self.embed_batch([text], model)
        return response.vectors[0], response.tokens_used


class OpenAIEmbeddingProvider(EmbeddingProvider):
    """Hosted embeddings through the OpenAI API."""

    name = "openai"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        dimension: Optional[int] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
    ):
        settings = get_settings().embedding
        self.api_key = api_key or settings.api_key or os.environ.get("OPENAI_API_KEY")
        self.model = model or settings.model
        self._dimension = dimension or settings.dimension
        self.base_url = base_url or settings.base_url
        self.timeout = timeout or settings.request_timeout

        self._client = None

    @property
    def client(self):
        """Lazily construct the OpenAI client."""
        if self._client is None:
            from openai import OpenAI

            self._client = OpenAI(
                api_key=self.api_key,
                base_url=self.base_url,
                timeout=self.timeout,
            )
        return self._client

    @property
    def dimension(self) -> int:
        return self._dimension

    @property
    def default_model(self) -> str:
        return self.model

    def embed_batch(self, texts: list[str], model: Optional[str] = None) -> ProviderResponse:
        import openai

        model_name = model or self.model
        try:
            response = self.client.embeddings.create(model=model_name, input=texts)
        except openai.OpenAIError as e:
            raise EmbeddingProviderError(
                f"OpenAI embedding request failed: {e}",
                provider=self.name,
                status_code=getattr(e, "status_code", None),
            ) from e

        data = sorted(response.data, key=lambda item: item.index)
        if len(data) != len(texts):
            raise EmbeddingProviderError(
                f"OpenAI returned {len(data)} embeddings for {len(texts)} inputs",
                provider=self.name,
            )

        vectors = [np.asarray(item.embedding, dtype=np.float64) for item in data]
        tokens = response.usage.total_tokens if response.usage else 0
        return ProviderResponse(vectors=vectors, tokens_used=tokens)


class SentenceTransformerProvider(EmbeddingProvider):
    """
    Local embeddings with a sentence-transformers model.

    Used as the fallback when the hosted provider is not configured. Token
    usage is estimated from whitespace-separated words since no billing applies.
    """

    name = "local"

    def __init__(
        self,
        model_name: Optional[str] = None,
        device: Optional[str] = None,
        batch_size: int = 32,
    ):
        settings = get_settings().embedding
        self.model_name = model_name or settings.local_model
        self.device = device or settings.device
        self.batch_size = batch_size

        self._model = None
        self._initialized = False

    def _load_model(self) -> None:
        """Lazy load the sentence-transformers model."""
        if self._initialized:
            return

        try:
            from sentence_transformers import SentenceTransformer

            logger.info(f"Loading local embedding model: {self.model_name}")
            self._model = SentenceTransformer(self.model_name, device=self.device)
            self._initialized = True
            logger.info(f"Local embedding model loaded on device: {self.device}")

        except ImportError:
            logger.error(
                "sentence-transformers not installed. "
                "Install with: pip install sentence-transformers"
            )
            raise
        except Exception as e:
            raise EmbeddingProviderError(
                f"Failed to load local embedding model {self.model_name}: {e}",
                provider=self.name,
            ) from e

    @property
    def model(self):
        if not self._initialized:
            self._load_model()
        return self._model

    @property
    def dimension(self) -> int:
        return int(self.model.get_sentence_embedding_dimension())

    @property
    def default_model(self) -> str:
        return self.model_name

    def embed_batch(self, texts: list[str], model: Optional[str] = None) -> ProviderResponse:
        if model and model != self.model_name:
            logger.debug(f"Local provider ignores requested model {model}, using {self.model_name}")

        try:
            embeddings = self.model.encode(
                texts,
                batch_size=self.batch_size,
                show_progress_bar=False,
                normalize_embeddings=False,
                convert_to_numpy=True,
            )
        except EmbeddingProviderError:
            raise
        except Exception as e:
            raise EmbeddingProviderError(
                f"Local embedding failed: {e}", provider=self.name
            ) from e

        vectors = [np.asarray(row, dtype=np.float64) for row in embeddings]
        tokens = sum(len(text.split()) for text in texts)
        return ProviderResponse(vectors=vectors, tokens_used=tokens)


def get_embedding_provider(settings: Optional[EmbeddingSettings] = None) -> EmbeddingProvider:
    """
    Build the configured embedding provider.

    A hosted provider without credentials falls back to the local model when
    fallback_to_local is set; otherwise EmbeddingConfigError is raised.
    """
    settings = settings or get_settings().embedding

    if settings.provider == "local":
        return SentenceTransformerProvider(model_name=settings.local_model, device=settings.device)

    api_key = settings.api_key or os.environ.get("OPENAI_API_KEY")
    if api_key:
        return OpenAIEmbeddingProvider(
            api_key=api_key,
            model=settings.model,
            dimension=settings.dimension,
            base_url=settings.base_url,
            timeout=settings.request_timeout,
        )

    if not settings.fallback_to_local:
        raise EmbeddingConfigError(
            "EMBEDDING_API_KEY is not set and fallback to the local model is disabled"
        )

    logger.warning("No OpenAI API key configured, falling back to local embeddings")
    audit_log(
        "provider_fallback",
        {"from": "openai", "to": "local", "local_model": settings.local_model},
        audit_type="CONFIG",
    )
    return SentenceTransformerProvider(model_name=settings.local_model, device=settings.device)
