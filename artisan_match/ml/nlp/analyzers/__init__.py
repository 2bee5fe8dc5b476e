"""
Profile enrichment analyzers.

Each analyzer derives one independent facet of signal from a profile.
"""

from .base import BaseAnalyzer
from .keyword_extractor import KeywordExtractor
from .market_analyzer import MarketPositioning, MarketPositioningAnalyzer
from .portfolio_analyzer import PortfolioAnalysis, PortfolioAnalyzer
from .review_analyzer import ReviewAnalyzer, ReviewSentiment
from .skill_inferencer import SkillInferencer

__all__ = [
    "BaseAnalyzer",
    "KeywordExtractor",
    "MarketPositioning",
    "MarketPositioningAnalyzer",
    "PortfolioAnalysis",
    "PortfolioAnalyzer",
    "ReviewAnalyzer",
    "ReviewSentiment",
    "SkillInferencer",
]
