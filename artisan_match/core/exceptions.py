"""
Custom exceptions for Artisan Match.
"""

from typing import Optional


class ArtisanMatchError(Exception):
    """Base exception for all Artisan Match errors."""
    pass


class DimensionMismatchError(ArtisanMatchError, ValueError):
    """
    Vectors of different lengths were combined.

    Always a programming error; never recovered.
    """

    def __init__(self, expected: int, actual: int, context: str = ""):
        message = f"Vector dimension mismatch: expected {expected}, got {actual}"
        if context:
            message = f"{message} ({context})"
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class EmbeddingProviderError(ArtisanMatchError):
    """
    Error communicating with an embedding provider.

    Raised when:
    - Provider is unreachable
    - Provider returns an error response
    - Provider returns vectors of an unexpected shape
    """

    def __init__(self, message: str, provider: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class EmbeddingConfigError(ArtisanMatchError):
    """
    Embedding provider is misconfigured.

    Raised when:
    - Hosted provider has no credentials and fallback is disabled
    - Provider reports a dimensionality different from configuration
    """
    pass


class VectorNotFoundError(ArtisanMatchError):
    """A requested artisan has no stored vector in the index."""

    def __init__(self, artisan_id: str):
        super().__init__(f"No stored vector for artisan '{artisan_id}'")
        self.artisan_id = artisan_id


class InvalidEmbeddingError(ArtisanMatchError):
    """Fusion produced an embedding that must not be written to the index."""

    def __init__(self, artisan_id: str, facets: list[str]):
        super().__init__(
            f"Invalid embedding for artisan '{artisan_id}': failing vectors {', '.join(facets)}"
        )
        self.artisan_id = artisan_id
        self.facets = facets


class OperationTimeoutError(ArtisanMatchError, TimeoutError):
    """A bounded external call exceeded its deadline."""

    def __init__(self, operation: str, timeout: float):
        super().__init__(f"Operation '{operation}' timed out after {timeout:.2f}s")
        self.operation = operation
        self.timeout = timeout


class VectorIndexError(ArtisanMatchError):
    """Error raised by a vector index adapter."""
    pass
