"""
Configuration management for Artisan Match.

Uses Pydantic Settings for type-safe configuration with environment variable support.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Base paths
ROOT_DIR = Path(__file__).parent.parent.parent
PACKAGE_DIR = ROOT_DIR / "artisan_match"
DATA_DIR = ROOT_DIR / "data"


class EmbeddingSettings(BaseSettings):
    """Embedding provider and client configuration."""

    model_config = SettingsConfigDict(env_prefix="EMBEDDING_")

    # Provider selection is a configuration-time decision
    provider: Literal["openai", "local"] = "openai"
    fallback_to_local: bool = True

    # Hosted provider
    model: str = "text-embedding-3-small"
    api_key: str | None = None
    base_url: str | None = None
    request_timeout: float = 30.0

    # Local provider
    local_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    device: Literal["cpu", "cuda", "mps", "auto"] = Field(default="auto", validate_default=True)

    dimension: int = 1536
    verify_dimension_on_startup: bool = False

    # Truncation budget
    max_input_tokens: int = 8191
    chars_per_token: int = 4

    # Batching
    provider_batch_size: int = 100
    batch_delay_seconds: float = 0.1

    # LRU cache
    cache_size: int = 10000

    @field_validator("device")
    @classmethod
    def validate_device(cls, v: str) -> str:
        """Auto-detect device if set to auto."""
        if v == "auto":
            try:
                import torch

                if torch.cuda.is_available():
                    return "cuda"
                elif torch.backends.mps.is_available():
                    return "mps"
            except ImportError:
                pass
            return "cpu"
        return v


class FusionSettings(BaseSettings):
    """Multi-facet fusion configuration."""

    model_config = SettingsConfigDict(env_prefix="FUSION_")

    profile_weight: float = 0.4
    skills_weight: float = 0.4
    portfolio_weight: float = 0.2

    batch_size: int = 10
    batch_delay_seconds: float = 1.0
    max_workers: int = 3
    model_version_suffix: str = "v1.0"


class EnrichmentSettings(BaseSettings):
    """Profile enrichment pipeline configuration."""

    model_config = SettingsConfigDict(env_prefix="ENRICHMENT_")

    enable_keyword_extraction: bool = True
    enable_skill_inference: bool = True
    enable_portfolio_analysis: bool = True
    enable_review_analysis: bool = True
    enable_market_positioning: bool = True

    batch_size: int = 10
    batch_delay_seconds: float = 0.5
    max_workers: int = 5
    cache_size: int = 5000
    enrichment_version: str = "1.0"


class SearchSettings(BaseSettings):
    """Similarity search engine configuration."""

    model_config = SettingsConfigDict(env_prefix="SEARCH_")

    default_top_k: int = 50
    default_threshold: float = 0.3
    max_results: int = 100

    enable_caching: bool = True
    cache_size: int = 1000
    cache_ttl_seconds: float = 600.0

    enable_explanations: bool = True
    query_timeout: float | None = None

    similar_threshold: float = 0.5
    recommendation_threshold: float = 0.4

    # Hybrid ranking boosts
    verified_boost: float = 1.1
    rating_boost: float = 1.05
    rating_boost_min: float = 4.5


class VectorIndexSettings(BaseSettings):
    """Vector index configuration for composite embeddings."""

    model_config = SettingsConfigDict(env_prefix="VECTOR_")

    provider: Literal["chromadb", "faiss"] = "chromadb"
    index_name: str = "artisan-profiles"
    metric: Literal["cosine", "dotproduct", "euclidean"] = "cosine"
    persist_directory: Path = DATA_DIR / "vectors"


class LoggingSettings(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: str = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} | {message}"
    file_path: Path = ROOT_DIR / "logs" / "artisan_match.log"
    rotation: str = "10 MB"
    retention: str = "30 days"
    console_output: bool = True


class AppSettings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Application metadata
    name: str = "Artisan Match"
    version: str = "0.1.0"
    description: str = "Semantic artisan matching and recommendation engine"
    debug: bool = False

    # Environment
    environment: Literal["development", "production", "testing"] = "development"

    # Nested settings
    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    fusion: FusionSettings = Field(default_factory=FusionSettings)
    enrichment: EnrichmentSettings = Field(default_factory=EnrichmentSettings)
    search: SearchSettings = Field(default_factory=SearchSettings)
    vector_store: VectorIndexSettings = Field(default_factory=VectorIndexSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


# Global settings instance (singleton pattern)
_settings: AppSettings | None = None


def get_settings() -> AppSettings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = AppSettings()
    return _settings


def reload_settings() -> AppSettings:
    """Force reload settings from environment."""
    global _settings
    _settings = AppSettings()
    return _settings


# Convenience exports
settings = get_settings()
