"""
Base analyzer class for profile enrichment.
"""

from abc import ABC, abstractmethod
from typing import Any

from artisan_match.data.models import ArtisanProfile
from artisan_match.ml.nlp.facets import FacetTexts


class BaseAnalyzer(ABC):
    """
    Abstract base class for enrichment analyzers.

    Analyzers are independent of one another: each reads the profile and its
    facet texts and returns its own output. When an analyzer raises, the
    pipeline substitutes default_output() instead.
    """

    name: str = "base"

    @abstractmethod
    def analyze(self, profile: ArtisanProfile, texts: FacetTexts) -> Any:
        """Analyze a profile and return this analyzer's facet output."""
        pass

    @abstractmethod
    def default_output(self) -> Any:
        """Neutral output used when analysis fails or is disabled."""
        pass
