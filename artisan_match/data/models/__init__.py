"""
Pydantic data models for Artisan Match.

This module provides the profile read model and interaction records used
throughout the matching pipeline.
"""

# Base models
from .base import EmbeddedModel

# Profile models
from .profile import (
    ArtisanProfile,
    CulturalCertification,
    CustomerReview,
    MatchingData,
    PerformanceMetrics,
    PriceRange,
    SkillTag,
    VerificationStatus,
)

# Interaction models
from .interaction import INTERACTION_KIND_WEIGHTS, InteractionRecord

__all__ = [
    # Base
    "EmbeddedModel",
    # Profile
    "ArtisanProfile",
    "CulturalCertification",
    "CustomerReview",
    "MatchingData",
    "PerformanceMetrics",
    "PriceRange",
    "SkillTag",
    "VerificationStatus",
    # Interaction
    "INTERACTION_KIND_WEIGHTS",
    "InteractionRecord",
]
