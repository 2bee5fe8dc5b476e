"""
Application-wide constants for Artisan Match.

This module contains the fixed craft vocabularies, fusion weights and scoring
thresholds used throughout the matching pipeline. Modify these values to tune
behavior without changing code logic.
"""

from enum import Enum
from typing import Final


# =============================================================================
# Application Constants
# =============================================================================

APP_NAME: Final[str] = "artisan-match"
APP_DISPLAY_NAME: Final[str] = "Artisan Match"
VERSION: Final[str] = "0.1.0"


# =============================================================================
# Fusion Constants
# =============================================================================

# Facet weights for composite vector fusion
DEFAULT_FUSION_WEIGHTS: Final[dict[str, float]] = {
    "profile": 0.4,
    "skills": 0.4,
    "portfolio": 0.2,
}

FACET_NAMES: Final[tuple[str, ...]] = ("profile", "skills", "portfolio")

# Decimal places kept before hashing a vector for cache keys
VECTOR_HASH_PRECISION: Final[int] = 6


# =============================================================================
# Query Processing Constants
# =============================================================================

STOP_WORDS: Final[frozenset[str]] = frozenset({
    "the", "a", "an", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with", "by",
    "i", "you", "he", "she", "it", "we", "they", "am", "is", "are", "was", "were", "be",
    "been", "being", "have", "has", "had", "do", "does", "did", "will", "would", "could",
    "should", "may", "might", "must", "can", "this", "that", "these", "those", "my", "your",
    "his", "her", "its", "our", "their", "me", "him", "us", "them", "myself", "yourself",
    "himself", "herself", "itself", "ourselves", "yourselves", "themselves",
})

# Multi-word (and a few single-word) craft phrases detected as one concept
CRAFT_PHRASES: Final[tuple[str, ...]] = (
    "hand made", "handmade", "hand crafted", "handcrafted",
    "custom made", "bespoke", "one of a kind", "unique piece",
    "traditional craft", "heritage craft", "folk art",
    "home decor", "wall art", "table decoration",
    "wedding gift", "birthday gift", "anniversary gift",
    "natural materials", "eco friendly", "sustainable",
    "vintage style", "modern design", "contemporary art",
)

# Category keyword table used for category expansion
CRAFT_KEYWORDS: Final[dict[str, list[str]]] = {
    "product": [
        "bowl", "vase", "pot", "plate", "cup", "mug", "jar", "sculpture",
        "table", "chair", "cabinet", "shelf", "box", "frame",
        "necklace", "bracelet", "ring", "earrings", "pendant", "brooch",
        "bag", "purse", "wallet", "belt", "shoes", "sandals",
        "scarf", "shawl", "blanket", "cushion", "tapestry", "rug",
    ],
    "skill": [
        "pottery", "ceramics", "woodworking", "carpentry", "carving", "turning",
        "jewelry making", "metalworking", "silversmithing", "goldsmithing",
        "weaving", "embroidery", "knitting", "crocheting", "quilting",
        "leather working", "tanning", "tooling", "stitching",
        "painting", "drawing", "sculpting", "modeling",
    ],
    "material": [
        "clay", "ceramic", "porcelain", "stoneware", "earthenware",
        "wood", "oak", "pine", "teak", "mahogany", "bamboo",
        "metal", "silver", "gold", "copper", "brass", "bronze", "iron",
        "fabric", "cotton", "silk", "wool", "linen", "hemp",
        "leather", "hide", "suede", "canvas",
        "glass", "crystal", "stone", "marble", "granite",
    ],
    "style": [
        "traditional", "modern", "contemporary", "vintage", "antique",
        "rustic", "country", "farmhouse", "industrial", "minimalist",
        "ornate", "decorative", "elegant", "simple", "complex",
        "colorful", "monochrome", "natural", "artistic", "functional",
    ],
}

# Smaller keyword lists used only to classify a query. "handmade" leans a
# query towards a finished product.
QUERY_TYPE_KEYWORDS: Final[dict[str, list[str]]] = {
    "product": [
        "bowl", "vase", "jewelry", "necklace", "bracelet", "table", "chair", "lamp", "bag", "scarf",
        "handmade", "handcrafted",
    ],
    "skill": ["pottery", "woodworking", "weaving", "carving", "painting", "sculpting", "embroidery"],
    "material": ["wood", "clay", "metal", "fabric", "leather", "glass", "stone", "ceramic"],
    "style": ["traditional", "modern", "vintage", "rustic", "elegant", "minimalist", "ornate"],
}

# Generic craft terms appended to queries that do not lean on one category
MIXED_QUERY_EXPANSIONS: Final[tuple[str, ...]] = (
    "handmade", "artisan", "craft", "handcrafted", "traditional", "custom",
)

# trigger -> expansion terms (trigger matched as a substring of a concept)
QUERY_EXPANSION_RULES: Final[list[dict]] = [
    {
        "trigger": "pottery",
        "expansions": ["ceramics", "clay work", "earthenware", "stoneware", "porcelain", "glazed", "kiln fired"],
        "weight": 1.0,
        "category": "craft",
    },
    {
        "trigger": "woodworking",
        "expansions": ["carpentry", "furniture", "wood craft", "timber work", "joinery", "carving"],
        "weight": 1.0,
        "category": "craft",
    },
    {
        "trigger": "jewelry",
        "expansions": ["accessories", "ornaments", "precious metals", "gems", "handcrafted jewelry"],
        "weight": 1.0,
        "category": "craft",
    },
    {
        "trigger": "textiles",
        "expansions": ["fabric work", "weaving", "embroidery", "cloth", "fiber art", "handloom"],
        "weight": 1.0,
        "category": "craft",
    },
    {
        "trigger": "leather",
        "expansions": ["hide work", "leather craft", "tanning", "leather goods", "accessories"],
        "weight": 1.0,
        "category": "craft",
    },
    {
        "trigger": "handmade",
        "expansions": ["artisan", "handcrafted", "hand made", "crafted", "artisanal", "traditional"],
        "weight": 0.8,
        "category": "quality",
    },
    {
        "trigger": "custom",
        "expansions": ["bespoke", "personalized", "made to order", "tailored", "unique"],
        "weight": 0.8,
        "category": "service",
    },
    {
        "trigger": "traditional",
        "expansions": ["heritage", "cultural", "authentic", "classic", "time honored"],
        "weight": 0.7,
        "category": "style",
    },
]

# concept -> synonyms / related terms
CONCEPT_MAPPINGS: Final[dict[str, dict]] = {
    "pottery": {
        "synonyms": ["ceramics", "clay work", "earthenware"],
        "related": ["glazing", "kiln firing", "wheel throwing", "hand building"],
        "category": "craft",
        "weight": 1.0,
    },
    "woodworking": {
        "synonyms": ["carpentry", "wood craft", "timber work"],
        "related": ["furniture making", "carving", "joinery", "finishing"],
        "category": "craft",
        "weight": 1.0,
    },
    "jewelry": {
        "synonyms": ["jewellery", "accessories", "ornaments"],
        "related": ["metalworking", "gem setting", "wire work", "beading"],
        "category": "craft",
        "weight": 1.0,
    },
    "handmade": {
        "synonyms": ["handcrafted", "hand made", "artisanal"],
        "related": ["traditional", "authentic", "crafted", "artisan made"],
        "category": "quality",
        "weight": 0.9,
    },
    "custom": {
        "synonyms": ["bespoke", "personalized", "made to order"],
        "related": ["unique", "tailored", "individual", "special"],
        "category": "service",
        "weight": 0.8,
    },
}

# Words that signal purchase intent / concrete asks (auxiliary metadata only)
INTENT_WORDS: Final[tuple[str, ...]] = ("need", "want", "looking for", "buy", "purchase", "find", "get")
INTENT_PRODUCT_WORDS: Final[tuple[str, ...]] = ("bowl", "vase", "table", "chair", "jewelry", "necklace")
DESCRIPTIVE_WORDS: Final[tuple[str, ...]] = ("beautiful", "unique", "custom", "handmade", "traditional")


# =============================================================================
# Search & Ranking Constants
# =============================================================================

# Marker prefixed to an artisan id in a filter list to exclude it
EXCLUSION_MARKER: Final[str] = "!"

# Similarity tiers used for match reasons (strict lower bounds)
SIMILARITY_TIERS: Final[dict[str, float]] = {
    "excellent": 0.8,
    "strong": 0.6,
    "good": 0.4,
}

MATCH_REASONS: Final[dict[str, str]] = {
    "excellent": "Excellent semantic match with your requirements",
    "strong": "Strong conceptual alignment with your needs",
    "good": "Good thematic match for your project",
    "verified": "Verified artisan profile",
    "highly_rated": "Highly rated by customers",
}

# Coarse facet breakdown factors applied to the composite similarity
EXPLANATION_FACET_FACTORS: Final[dict[str, float]] = {
    "profile": 1.0,
    "skills": 0.9,
    "portfolio": 0.8,
}

# Confidence level = min(1, similarity * scale)
EXPLANATION_CONFIDENCE_SCALE: Final[float] = 1.2


# =============================================================================
# Enums
# =============================================================================


class QueryType(str, Enum):
    """Classification of a processed search query."""

    PRODUCT = "product"
    SKILL = "skill"
    MATERIAL = "material"
    STYLE = "style"
    MIXED = "mixed"


class PriceCategory(str, Enum):
    """Market positioning price band."""

    BUDGET = "budget"
    MID_RANGE = "mid-range"
    PREMIUM = "premium"
    LUXURY = "luxury"

    @classmethod
    def from_average_price(cls, average: float) -> "PriceCategory":
        """Convert an average project price to a band."""
        if average < 2000:
            return cls.BUDGET
        elif average < 10000:
            return cls.MID_RANGE
        elif average < 50000:
            return cls.PREMIUM
        return cls.LUXURY


class ExperienceLevel(str, Enum):
    """Self-reported artisan experience level."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"
    MASTER = "master"


class InteractionKind(str, Enum):
    """Kinds of buyer interactions with an artisan."""

    VIEWED = "viewed"
    CONTACTED = "contacted"
    HIRED = "hired"


class SearchMode(str, Enum):
    """Ranking mode for similarity search."""

    EXACT = "exact"
    APPROXIMATE = "approximate"
    HYBRID = "hybrid"


class MatchConfidenceLevel(Enum):
    """Categorical levels for explanation confidence."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @classmethod
    def from_score(cls, score: float) -> "MatchConfidenceLevel":
        """Convert a numeric confidence to a level."""
        if score >= 0.8:
            return cls.HIGH
        elif score >= 0.5:
            return cls.MEDIUM
        return cls.LOW
