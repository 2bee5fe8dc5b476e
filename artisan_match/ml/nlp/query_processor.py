"""
Query processing for semantic artisan search.

Cleans, tokenizes, classifies and expands free-text buyer queries into a
semantically richer string plus a list of extracted craft concepts.
"""

import re
import time
from dataclasses import asdict, dataclass, field
from typing import Any, Optional

from artisan_match.utils.constants import (
    CONCEPT_MAPPINGS,
    CRAFT_KEYWORDS,
    CRAFT_PHRASES,
    DESCRIPTIVE_WORDS,
    INTENT_PRODUCT_WORDS,
    INTENT_WORDS,
    MIXED_QUERY_EXPANSIONS,
    QUERY_EXPANSION_RULES,
    QUERY_TYPE_KEYWORDS,
    STOP_WORDS,
    QueryType,
)
from artisan_match.utils.logger import get_logger

logger = get_logger(__name__)

# Anything that is not a word character, whitespace or hyphen
_PUNCTUATION_PATTERN = re.compile(r"[^\w\s-]")
_WHITESPACE_PATTERN = re.compile(r"\s+")

MIN_CONCEPT_LENGTH = 3
MAX_EXPANSION_SUGGESTIONS = 10


@dataclass
class QueryMetadata:
    """Auxiliary query signals, exposed for explanation and telemetry only."""

    language: str = "en"
    intent_clarity: float = 0.0
    specificity_score: float = 0.0
    expanded_terms: list[str] = field(default_factory=list)


@dataclass
class ProcessedQuery:
    """Result of processing one raw query string."""

    original_query: str
    cleaned_query: str
    expanded_query: str
    extracted_concepts: list[str]
    query_type: QueryType
    confidence: float
    processing_time_ms: float = 0.0
    metadata: QueryMetadata = field(default_factory=QueryMetadata)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["query_type"] = self.query_type.value
        return data


class QueryProcessor:
    """
    Pure transformation pipeline for search queries.

    Steps: clean, extract concepts, classify, expand, score. No state is
    kept between calls, so one instance can serve concurrent requests.
    """

    def __init__(
        self,
        craft_keywords: Optional[dict[str, list[str]]] = None,
        expansion_rules: Optional[list[dict]] = None,
        concept_mappings: Optional[dict[str, dict]] = None,
        stop_words: Optional[frozenset[str]] = None,
        query_type_keywords: Optional[dict[str, list[str]]] = None,
    ):
        self.craft_keywords = craft_keywords or CRAFT_KEYWORDS
        self.query_type_keywords = query_type_keywords or QUERY_TYPE_KEYWORDS
        self.expansion_rules = expansion_rules or QUERY_EXPANSION_RULES
        self.concept_mappings = concept_mappings or CONCEPT_MAPPINGS
        self.stop_words = stop_words or STOP_WORDS

    def process_query(self, query: str) -> ProcessedQuery:
        """
        Process and expand a user query.

        Empty or whitespace-only input short-circuits to an empty result
        with confidence 0 and type mixed.

        Args:
            query: Raw query text

        Returns:
            ProcessedQuery with cleaned/expanded text, concepts and scores
        """
        start = time.perf_counter()
        query = query or ""

        cleaned = self.clean_query(query)
        if not cleaned:
            return ProcessedQuery(
                original_query=query,
                cleaned_query="",
                expanded_query="",
                extracted_concepts=[],
                query_type=QueryType.MIXED,
                confidence=0.0,
                processing_time_ms=(time.perf_counter() - start) * 1000,
            )

        concepts = self.extract_concepts(cleaned)
        query_type = self.classify(concepts)
        expanded = self.expand_query(cleaned, concepts, query_type)
        confidence = self.calculate_confidence(cleaned, concepts, expanded)
        metadata = self._generate_metadata(cleaned, expanded, concepts)

        processed = ProcessedQuery(
            original_query=query,
            cleaned_query=cleaned,
            expanded_query=expanded,
            extracted_concepts=concepts,
            query_type=query_type,
            confidence=confidence,
            processing_time_ms=(time.perf_counter() - start) * 1000,
            metadata=metadata,
        )

        logger.debug(
            f"Processed query '{cleaned}': type={query_type.value}, "
            f"concepts={len(concepts)}, confidence={confidence:.2f}"
        )
        return processed

    def process_queries(self, queries: list[str]) -> list[ProcessedQuery]:
        """Process several queries, preserving input order."""
        results = [self.process_query(q) for q in queries]
        logger.info(f"Processed {len(results)} queries")
        return results

    @staticmethod
    def clean_query(query: str) -> str:
        """Lower-case, replace punctuation (except hyphens) with spaces, collapse whitespace."""
        text = query.lower().strip()
        text = _PUNCTUATION_PATTERN.sub(" ", text)
        text = _WHITESPACE_PATTERN.sub(" ", text)
        return text.strip()

    def extract_concepts(self, cleaned_query: str) -> list[str]:
        """
        Extract single-word concepts and known craft phrases.

        Words of two characters or fewer and stop words are dropped. Phrases
        keep their spaces. Order of first appearance is preserved.
        """
        concepts: list[str] = []

        for word in cleaned_query.split():
            if len(word) >= MIN_CONCEPT_LENGTH and word not in self.stop_words:
                concepts.append(word)

        for phrase in CRAFT_PHRASES:
            if phrase in cleaned_query:
                concepts.append(phrase)

        return list(dict.fromkeys(concepts))

    def classify(self, concepts: list[str]) -> QueryType:
        """
        Score concepts against the query type keyword lists.

        The strictly highest category wins; no signal or a tie is mixed.
        """
        scores = {
            category: sum(
                1 for concept in concepts if any(keyword in concept for keyword in keywords)
            )
            for category, keywords in self.query_type_keywords.items()
        }

        best = max(scores.values(), default=0)
        if best == 0:
            return QueryType.MIXED

        leaders = [category for category, score in scores.items() if score == best]
        if len(leaders) > 1:
            return QueryType.MIXED

        return QueryType(leaders[0])

    def expand_query(self, cleaned_query: str, concepts: list[str], query_type: QueryType) -> str:
        """Build the expanded query string from category terms, rules and concept mappings."""
        expansions: list[str] = [cleaned_query]

        if query_type == QueryType.MIXED:
            expansions.extend(MIXED_QUERY_EXPANSIONS)
        else:
            expansions.extend(self._expand_category(concepts, query_type.value))

        # Trigger rules match in either direction
        for concept in concepts:
            for rule in self.expansion_rules:
                trigger = rule["trigger"]
                if trigger in concept or concept in trigger:
                    expansions.extend(rule["expansions"])

        for concept in concepts:
            mapping = self.concept_mappings.get(concept)
            if mapping:
                expansions.extend(mapping["synonyms"])
                expansions.extend(mapping["related"])

        return " ".join(dict.fromkeys(expansions))

    def _expand_category(self, concepts: list[str], category: str) -> list[str]:
        keywords = self.craft_keywords.get(category, [])
        return [
            keyword
            for concept in concepts
            for keyword in keywords
            if keyword in concept or concept in keyword
        ]

    @staticmethod
    def calculate_confidence(cleaned_query: str, concepts: list[str], expanded_query: str) -> float:
        """Confidence from query length, concept count and expansion ratio, clipped to [0, 1]."""
        if not cleaned_query:
            return 0.0

        confidence = 0.0
        length = len(cleaned_query)

        if length > 5:
            confidence += 0.2
        if length > 15:
            confidence += 0.2
        if length > 30:
            confidence += 0.1

        if len(concepts) > 1:
            confidence += 0.2
        if len(concepts) > 3:
            confidence += 0.2

        expansion_ratio = len(expanded_query) / length
        if expansion_ratio > 1.5:
            confidence += 0.1
        if expansion_ratio > 2.0:
            confidence += 0.1

        return min(1.0, confidence)

    def _generate_metadata(self, cleaned_query: str, expanded_query: str, concepts: list[str]) -> QueryMetadata:
        expanded_terms = [
            word for word in dict.fromkeys(expanded_query.split()) if word not in cleaned_query
        ]
        return QueryMetadata(
            language="en",
            intent_clarity=self._calculate_intent_clarity(cleaned_query),
            specificity_score=self._calculate_specificity(cleaned_query, concepts),
            expanded_terms=expanded_terms,
        )

    @staticmethod
    def _calculate_intent_clarity(query: str) -> float:
        clarity = 0.0
        if any(word in query for word in INTENT_WORDS):
            clarity += 0.3
        if any(word in query for word in INTENT_PRODUCT_WORDS):
            clarity += 0.4
        if any(word in query for word in DESCRIPTIVE_WORDS):
            clarity += 0.3
        return min(1.0, clarity)

    @staticmethod
    def _calculate_specificity(query: str, concepts: list[str]) -> float:
        specificity = 0.0
        if len(query) > 20:
            specificity += 0.3
        if len(query) > 50:
            specificity += 0.2
        if len(concepts) > 2:
            specificity += 0.3
        if len(concepts) > 4:
            specificity += 0.2
        return min(1.0, specificity)

    def get_expansion_suggestions(self, query: str) -> list[str]:
        """Up to ten synonym/related terms for the concepts in a query."""
        concepts = self.extract_concepts(self.clean_query(query or ""))
        suggestions: list[str] = []

        for concept in concepts:
            mapping = self.concept_mappings.get(concept)
            if mapping:
                suggestions.extend(mapping["synonyms"])
                suggestions.extend(mapping["related"])

        return list(dict.fromkeys(suggestions))[:MAX_EXPANSION_SUGGESTIONS]

    @staticmethod
    def validate_processed_query(processed: ProcessedQuery) -> bool:
        """
        A processed query is usable when all three strings are non-empty,
        confidence is in [0, 1] and at least one concept was extracted.
        """
        return (
            bool(processed.original_query)
            and bool(processed.cleaned_query)
            and bool(processed.expanded_query)
            and 0.0 <= processed.confidence <= 1.0
            and len(processed.extracted_concepts) > 0
        )

    @staticmethod
    def literal_fallback(processed: ProcessedQuery) -> ProcessedQuery:
        """
        Treat the raw text as a single literal concept.

        Used when a processed query fails validation but the raw text is not
        blank, so the search can proceed instead of failing.
        """
        literal = (processed.cleaned_query or processed.original_query).strip().lower()
        return ProcessedQuery(
            original_query=processed.original_query,
            cleaned_query=literal,
            expanded_query=literal,
            extracted_concepts=[literal] if literal else [],
            query_type=QueryType.MIXED,
            confidence=processed.confidence,
            processing_time_ms=processed.processing_time_ms,
            metadata=processed.metadata,
        )


# Singleton instance
_query_processor: Optional[QueryProcessor] = None


def get_query_processor() -> QueryProcessor:
    """Get or create the singleton query processor."""
    global _query_processor
    if _query_processor is None:
        _query_processor = QueryProcessor()
    return _query_processor
