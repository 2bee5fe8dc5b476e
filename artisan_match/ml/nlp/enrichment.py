"""
Profile enrichment pipeline.

Runs the independent enrichment analyzers concurrently over one profile and
merges their outputs into an enriched text plus structured facets. A failing
analyzer degrades the result instead of aborting it.
"""

import time
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, Optional

from artisan_match.data.models import ArtisanProfile
from artisan_match.ml.nlp.analyzers import (
    BaseAnalyzer,
    KeywordExtractor,
    MarketPositioning,
    MarketPositioningAnalyzer,
    PortfolioAnalysis,
    PortfolioAnalyzer,
    ReviewAnalyzer,
    ReviewSentiment,
    SkillInferencer,
)
from artisan_match.ml.nlp.facets import FacetTexts, extract_facet_texts
from artisan_match.utils.cache import LRUCache
from artisan_match.utils.concurrency import run_concurrently
from artisan_match.utils.config import get_settings
from artisan_match.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class EnrichedProfile:
    """Derived enrichment of one profile; recomputed when its content hash changes."""

    artisan_id: str
    textual_content: FacetTexts
    extracted_keywords: list[str] = field(default_factory=list)
    inferred_skills: list[str] = field(default_factory=list)
    portfolio_analysis: PortfolioAnalysis = field(default_factory=PortfolioAnalysis)
    review_sentiment: ReviewSentiment = field(default_factory=ReviewSentiment)
    market_positioning: MarketPositioning = field(default_factory=MarketPositioning)
    enriched_text: str = ""
    confidence: float = 0.0
    content_hash: str = ""
    enrichment_version: str = "1.0"
    enriched_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    processing_time_ms: float = 0.0
    failed_analyzers: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["enriched_at"] = self.enriched_at.isoformat()
        return data


class ProfileEnrichmentPipeline:
    """
    Enriches artisan profiles before embedding.

    Analyzers run as one concurrent task each and are joined before merging.
    Results are cached per (artisan_id, content hash), so an unchanged
    profile is never re-analyzed.
    """

    def __init__(
        self,
        analyzers: Optional[dict[str, BaseAnalyzer]] = None,
        enabled: Optional[dict[str, bool]] = None,
        batch_size: Optional[int] = None,
        batch_delay_seconds: Optional[float] = None,
        max_workers: Optional[int] = None,
        cache_size: Optional[int] = None,
        enrichment_version: Optional[str] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the enrichment pipeline.

        Args:
            analyzers: Analyzer instances keyed by name (defaults to the five built-ins)
            enabled: Per-analyzer enable flags (defaults to configuration)
            batch_size: Profiles per batch in enrich_profiles
            batch_delay_seconds: Pause between batches
            max_workers: Thread pool size for analyzer fan-out
            cache_size: Maximum cached enrichments
            enrichment_version: Version tag stamped on results
            sleep: Sleep function, injectable for tests
        """
        settings = get_settings().enrichment

        self.analyzers: dict[str, BaseAnalyzer] = analyzers or {
            KeywordExtractor.name: KeywordExtractor(),
            SkillInferencer.name: SkillInferencer(),
            PortfolioAnalyzer.name: PortfolioAnalyzer(),
            ReviewAnalyzer.name: ReviewAnalyzer(),
            MarketPositioningAnalyzer.name: MarketPositioningAnalyzer(),
        }
        self.enabled: dict[str, bool] = {
            KeywordExtractor.name: settings.enable_keyword_extraction,
            SkillInferencer.name: settings.enable_skill_inference,
            PortfolioAnalyzer.name: settings.enable_portfolio_analysis,
            ReviewAnalyzer.name: settings.enable_review_analysis,
            MarketPositioningAnalyzer.name: settings.enable_market_positioning,
        }
        if enabled:
            self.enabled.update(enabled)

        self.batch_size = batch_size or settings.batch_size
        self.batch_delay_seconds = (
            batch_delay_seconds if batch_delay_seconds is not None else settings.batch_delay_seconds
        )
        self.max_workers = max_workers or settings.max_workers
        self.enrichment_version = enrichment_version or settings.enrichment_version
        self._sleep = sleep

        self._cache: LRUCache[tuple[str, str], EnrichedProfile] = LRUCache(
            cache_size or settings.cache_size
        )

    def enrich_profile(self, profile: ArtisanProfile, use_cache: bool = True) -> EnrichedProfile:
        """
        Enrich a single artisan profile.

        Always returns a usable result; failed analyzers contribute their
        neutral default and are listed in failed_analyzers.
        """
        start = time.perf_counter()
        content_hash = profile.content_hash()
        cache_key = (profile.artisan_id, content_hash)

        if use_cache:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug(f"Enrichment cache hit for {profile.artisan_id}")
                return cached

        texts = extract_facet_texts(profile)
        outputs, failed = self._run_analyzers(profile, texts)

        enriched = EnrichedProfile(
            artisan_id=profile.artisan_id,
            textual_content=texts,
            extracted_keywords=outputs[KeywordExtractor.name],
            inferred_skills=outputs[SkillInferencer.name],
            portfolio_analysis=outputs[PortfolioAnalyzer.name],
            review_sentiment=outputs[ReviewAnalyzer.name],
            market_positioning=outputs[MarketPositioningAnalyzer.name],
            content_hash=content_hash,
            enrichment_version=self.enrichment_version,
            failed_analyzers=failed,
        )
        enriched.enriched_text = self.create_enriched_text(enriched)
        enriched.confidence = self.calculate_confidence(enriched)
        enriched.processing_time_ms = (time.perf_counter() - start) * 1000

        self._cache.put(cache_key, enriched)

        logger.info(
            f"Enriched profile {profile.artisan_id} in {enriched.processing_time_ms:.1f}ms "
            f"(confidence: {enriched.confidence:.2f})"
        )
        return enriched

    def _run_analyzers(
        self, profile: ArtisanProfile, texts: FacetTexts
    ) -> tuple[dict[str, Any], list[str]]:
        tasks = {
            name: partial(analyzer.analyze, profile, texts)
            for name, analyzer in self.analyzers.items()
            if self.enabled.get(name, True)
        }
        outcomes = run_concurrently(tasks, max_workers=self.max_workers)

        outputs: dict[str, Any] = {}
        failed: list[str] = []

        for name, analyzer in self.analyzers.items():
            outcome = outcomes.get(name)
            if outcome is None:
                outputs[name] = analyzer.default_output()
            elif outcome.ok:
                outputs[name] = outcome.value
            else:
                logger.warning(
                    f"Analyzer '{name}' failed for {profile.artisan_id}: {outcome.error}"
                )
                outputs[name] = analyzer.default_output()
                failed.append(name)

        return outputs, failed

    def enrich_profiles(self, profiles: list[ArtisanProfile]) -> list[EnrichedProfile]:
        """Enrich profiles in batches, pausing between batches."""
        results: list[EnrichedProfile] = []
        total_batches = (len(profiles) + self.batch_size - 1) // self.batch_size

        for offset in range(0, len(profiles), self.batch_size):
            if offset > 0 and self.batch_delay_seconds > 0:
                self._sleep(self.batch_delay_seconds)

            batch = profiles[offset:offset + self.batch_size]
            logger.debug(f"Enriching batch {offset // self.batch_size + 1}/{total_batches}")
            results.extend(self.enrich_profile(profile) for profile in batch)

        logger.info(f"Enriched {len(results)} profiles")
        return results

    @staticmethod
    def create_enriched_text(enriched: EnrichedProfile) -> str:
        """Lower-cased concatenation of the facet texts and analyzer outputs."""
        texts = enriched.textual_content
        parts = [
            texts.profile_text,
            texts.skills_text,
            texts.portfolio_text,
            " ".join(enriched.extracted_keywords),
            " ".join(enriched.inferred_skills),
            " ".join(enriched.portfolio_analysis.dominant_styles),
            " ".join(enriched.portfolio_analysis.techniques),
            " ".join(enriched.portfolio_analysis.materials),
            " ".join(enriched.review_sentiment.positive),
            " ".join(enriched.market_positioning.unique_selling_points),
            " ".join(enriched.market_positioning.competitive_advantages),
        ]
        return " ".join(p for p in parts if p).lower().strip()

    @staticmethod
    def calculate_confidence(enriched: EnrichedProfile) -> float:
        """
        Mean weight of the quality factors that pass their threshold.

        Factors that do not pass are left out of the denominator. With no
        passing factor the confidence is 0.
        """
        factors = [
            (len(enriched.textual_content.profile_text) > 50, 0.2),
            (len(enriched.extracted_keywords) > 3, 0.15),
            (len(enriched.inferred_skills) > 2, 0.15),
            (len(enriched.portfolio_analysis.techniques) > 1, 0.15),
            (len(enriched.review_sentiment.positive) > 0, 0.1),
            (len(enriched.market_positioning.unique_selling_points) > 1, 0.1),
            (len(enriched.enriched_text) > 100, 0.15),
        ]
        passing = [weight for passed, weight in factors if passed]
        if not passing:
            return 0.0
        return min(1.0, sum(passing) / len(passing))

    def get_cache_stats(self) -> dict:
        return self._cache.stats().to_dict()

    def clear_cache(self) -> None:
        self._cache.clear()


# Singleton instance
_enrichment_pipeline: Optional[ProfileEnrichmentPipeline] = None


def get_enrichment_pipeline() -> ProfileEnrichmentPipeline:
    """Get or create the singleton enrichment pipeline."""
    global _enrichment_pipeline
    if _enrichment_pipeline is None:
        _enrichment_pipeline = ProfileEnrichmentPipeline()
    return _enrichment_pipeline
