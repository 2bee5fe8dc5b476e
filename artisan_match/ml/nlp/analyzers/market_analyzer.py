"""
Market positioning from pricing, responsiveness and ratings.
"""

from dataclasses import dataclass, field

from artisan_match.data.models import ArtisanProfile
from artisan_match.ml.nlp.facets import FacetTexts
from artisan_match.utils.constants import PriceCategory

from .base import BaseAnalyzer


@dataclass
class MarketPositioning:
    """Output of the market positioning analyzer."""

    price_category: str = PriceCategory.MID_RANGE.value
    unique_selling_points: list[str] = field(default_factory=list)
    competitive_advantages: list[str] = field(default_factory=list)


class MarketPositioningAnalyzer(BaseAnalyzer):
    """Classifies the price band and derives selling points."""

    name = "market"

    DEFAULT_RESPONSE_HOURS = 24.0
    DEFAULT_RATING = 4.0

    QUICK_RESPONSE_HOURS = 12.0
    SAME_DAY_RESPONSE_HOURS = 6.0
    EXCELLENT_RATING = 4.5

    DEFAULT_SELLING_POINTS = ("handcrafted", "quality materials")

    def analyze(self, profile: ArtisanProfile, texts: FacetTexts) -> MarketPositioning:
        price_range = profile.matching_data.price_range
        response_hours = profile.performance.response_time_hours
        if response_hours is None:
            response_hours = self.DEFAULT_RESPONSE_HOURS
        rating = profile.rating or self.DEFAULT_RATING

        category = (
            PriceCategory.from_average_price(price_range.average)
            if price_range is not None
            else PriceCategory.MID_RANGE
        )

        selling_points: list[str] = []
        if profile.accepts_custom_orders:
            selling_points.append("custom designs")
        if response_hours < self.QUICK_RESPONSE_HOURS:
            selling_points.append("quick response")
        if rating > self.EXCELLENT_RATING:
            selling_points.append("excellent reviews")
        if not selling_points:
            selling_points.extend(self.DEFAULT_SELLING_POINTS)

        advantages: list[str] = []
        if response_hours < self.SAME_DAY_RESPONSE_HOURS:
            advantages.append("same day response")
        if category == PriceCategory.BUDGET:
            advantages.append("affordable pricing")
        if category in (PriceCategory.PREMIUM, PriceCategory.LUXURY):
            advantages.append("premium quality")

        return MarketPositioning(
            price_category=category.value,
            unique_selling_points=selling_points,
            competitive_advantages=advantages,
        )

    def default_output(self) -> MarketPositioning:
        return MarketPositioning()
