"""
Customer review sentiment summarization.

Uses a small aspect/polarity lexicon over review texts when the profile has
any; otherwise derives the summary from the satisfaction rating alone.
"""

import re
from dataclasses import dataclass, field

from artisan_match.data.models import ArtisanProfile, CustomerReview
from artisan_match.ml.nlp.facets import FacetTexts

from .base import BaseAnalyzer


@dataclass
class ReviewSentiment:
    """Output of the review analyzer."""

    positive: list[str] = field(default_factory=list)
    constructive: list[str] = field(default_factory=list)
    overall_sentiment: float = 0.0


class ReviewAnalyzer(BaseAnalyzer):
    """Summarizes what customers praise and what they would improve."""

    name = "reviews"

    DEFAULT_RATING = 4.0

    POSITIVE_WORDS: frozenset[str] = frozenset({
        "beautiful", "excellent", "amazing", "great", "wonderful", "perfect", "love",
        "loved", "stunning", "fast", "quick", "timely", "friendly", "responsive",
        "gorgeous", "lovely", "skilled", "recommend", "impressive", "fantastic",
    })

    NEGATIVE_WORDS: frozenset[str] = frozenset({
        "late", "delay", "delayed", "slow", "poor", "bad", "broken", "damaged",
        "rude", "unresponsive", "disappointing", "disappointed", "overpriced",
        "cracked", "wrong", "careless",
    })

    ASPECT_KEYWORDS: dict[str, list[str]] = {
        "craftsmanship": ["craftsmanship", "quality", "finish", "detail", "made", "work"],
        "delivery": ["delivery", "shipping", "arrived", "time", "timeline", "deadline"],
        "communication": ["communication", "responsive", "unresponsive", "reply", "response", "contact"],
        "design": ["design", "beautiful", "style", "look", "pattern"],
        "value": ["price", "value", "worth", "cost", "affordable", "overpriced"],
    }

    POSITIVE_LABELS: dict[str, str] = {
        "craftsmanship": "excellent craftsmanship",
        "delivery": "timely delivery",
        "communication": "responsive communication",
        "design": "beautiful work",
        "value": "good value",
    }

    CONSTRUCTIVE_LABELS: dict[str, str] = {
        "craftsmanship": "could improve finishing",
        "delivery": "could improve delivery times",
        "communication": "could improve communication",
        "design": "could refine design",
        "value": "could improve pricing",
    }

    def analyze(self, profile: ArtisanProfile, texts: FacetTexts) -> ReviewSentiment:
        reviews = [r for r in profile.reviews if r.text and r.text.strip()]
        if reviews:
            return self._analyze_texts(reviews)

        rating = profile.rating or self.DEFAULT_RATING
        return self._from_rating(rating)

    def _from_rating(self, rating: float) -> ReviewSentiment:
        if rating > 4.0:
            positive = ["excellent craftsmanship", "timely delivery", "beautiful work"]
        else:
            positive = ["good quality"]
        constructive = ["could improve communication"] if rating < 4.0 else []
        return ReviewSentiment(
            positive=positive,
            constructive=constructive,
            overall_sentiment=min(1.0, rating / 5),
        )

    def _analyze_texts(self, reviews: list[CustomerReview]) -> ReviewSentiment:
        positive: list[str] = []
        constructive: list[str] = []
        scores: list[float] = []

        for review in reviews:
            words = re.findall(r"[a-z]+", review.text.lower())
            polarity = self._polarity(words)

            if review.rating is not None:
                scores.append(review.rating / 5)
            else:
                scores.append((polarity + 1) / 2)

            if polarity == 0:
                continue

            labels = self.POSITIVE_LABELS if polarity > 0 else self.CONSTRUCTIVE_LABELS
            target = positive if polarity > 0 else constructive
            for aspect in self._aspects(words):
                if labels[aspect] not in target:
                    target.append(labels[aspect])

        if not positive and scores and sum(scores) / len(scores) > 0.6:
            positive.append("positive customer feedback")

        overall = sum(scores) / len(scores) if scores else 0.0
        return ReviewSentiment(
            positive=positive,
            constructive=constructive,
            overall_sentiment=min(1.0, max(0.0, overall)),
        )

    def _polarity(self, words: list[str]) -> float:
        pos = sum(1 for w in words if w in self.POSITIVE_WORDS)
        neg = sum(1 for w in words if w in self.NEGATIVE_WORDS)
        if pos + neg == 0:
            return 0.0
        return (pos - neg) / (pos + neg)

    def _aspects(self, words: list[str]) -> list[str]:
        present = set(words)
        return [
            aspect for aspect, keywords in self.ASPECT_KEYWORDS.items()
            if any(kw in present for kw in keywords)
        ]

    def default_output(self) -> ReviewSentiment:
        return ReviewSentiment()
