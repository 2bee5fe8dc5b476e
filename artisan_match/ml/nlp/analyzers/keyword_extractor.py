"""
Frequency-based keyword extraction from profile text.
"""

import re
from collections import Counter

from artisan_match.data.models import ArtisanProfile
from artisan_match.ml.nlp.facets import FacetTexts
from artisan_match.utils.constants import STOP_WORDS

from .base import BaseAnalyzer


class KeywordExtractor(BaseAnalyzer):
    """Extracts the most frequent meaningful words of the profile facet."""

    name = "keywords"

    def __init__(self, max_keywords: int = 10, min_length: int = 3):
        self.max_keywords = max_keywords
        self.min_length = min_length

    def analyze(self, profile: ArtisanProfile, texts: FacetTexts) -> list[str]:
        return self.extract(texts.profile_text)

    def extract(self, text: str) -> list[str]:
        if not text or not text.strip():
            return []

        words = re.sub(r"[^\w\s]", " ", text.lower()).split()
        counts = Counter(
            word for word in words
            if len(word) >= self.min_length and word not in STOP_WORDS
        )
        # most_common keeps first-seen order among equal counts
        return [word for word, _ in counts.most_common(self.max_keywords)]

    def default_output(self) -> list[str]:
        return []
