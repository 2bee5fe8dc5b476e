"""
Artisan profile read model.

Mirrors the profile data produced by the profile-management service:
identity, description, profession and structured matching data. Every
optional field is explicit so the matching pipeline never probes for
attributes that may not exist.
"""

import hashlib
import json
from datetime import datetime
from typing import Any, Optional

from pydantic import Field, field_validator, model_validator

from artisan_match.utils.constants import ExperienceLevel

from .base import EmbeddedModel


class CulturalCertification(EmbeddedModel):
    """A cultural or heritage craft certification."""

    name: str
    issuer: Optional[str] = None
    year: Optional[int] = None


class SkillTag(EmbeddedModel):
    """A skill with a self-reported proficiency."""

    skill: str
    proficiency: Optional[str] = None  # e.g., "beginner", "expert"

    @field_validator("skill")
    @classmethod
    def normalize_skill(cls, v: str) -> str:
        return v.strip().lower()


class PriceRange(EmbeddedModel):
    """Typical project price range."""

    min_price: float = Field(alias="min", ge=0)
    max_price: float = Field(alias="max", ge=0)

    @model_validator(mode="after")
    def validate_order(self) -> "PriceRange":
        if self.max_price < self.min_price:
            raise ValueError("max price must not be below min price")
        return self

    @property
    def average(self) -> float:
        return (self.min_price + self.max_price) / 2


class VerificationStatus(EmbeddedModel):
    """Verification flags set by the marketplace."""

    skills_verified: bool = False
    portfolio_verified: bool = False
    identity_verified: bool = False


class MatchingData(EmbeddedModel):
    """Structured fields used for semantic matching."""

    skills: list[str] = Field(default_factory=list)
    materials: list[str] = Field(default_factory=list)
    techniques: list[str] = Field(default_factory=list)
    category_tags: list[str] = Field(default_factory=list)
    portfolio_keywords: list[str] = Field(default_factory=list)
    price_range: Optional[PriceRange] = None
    experience_level: Optional[ExperienceLevel] = None
    typical_timeline: Optional[str] = None
    verification: VerificationStatus = Field(default_factory=VerificationStatus)
    last_profile_update: Optional[datetime] = None


class PerformanceMetrics(EmbeddedModel):
    """Marketplace performance signals."""

    customer_satisfaction: Optional[float] = Field(default=None, ge=0, le=5)
    response_time_hours: Optional[float] = Field(default=None, ge=0)
    completion_rate: Optional[float] = Field(default=None, ge=0, le=1)


class CustomerReview(EmbeddedModel):
    """A single customer review."""

    text: str
    rating: Optional[float] = Field(default=None, ge=0, le=5)


class ArtisanProfile(EmbeddedModel):
    """
    Artisan profile as consumed by enrichment and fusion.

    Only artisan_id and name are required; every other field may be absent.
    """

    artisan_id: str
    name: str
    profession: Optional[str] = None
    description: Optional[str] = None
    location: Optional[str] = None

    specializations: list[str] = Field(default_factory=list)
    cultural_certifications: list[CulturalCertification] = Field(default_factory=list)
    portfolio_highlights: list[str] = Field(default_factory=list)
    skill_tags: list[SkillTag] = Field(default_factory=list)
    accepts_custom_orders: bool = False

    matching_data: MatchingData = Field(default_factory=MatchingData)
    performance: PerformanceMetrics = Field(default_factory=PerformanceMetrics)
    reviews: list[CustomerReview] = Field(default_factory=list)

    @field_validator("artisan_id")
    @classmethod
    def validate_artisan_id(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("artisan_id must not be empty")
        if v.startswith("!"):
            raise ValueError("artisan_id must not start with the exclusion marker '!'")
        return v

    @property
    def is_verified(self) -> bool:
        verification = self.matching_data.verification
        return verification.skills_verified or verification.portfolio_verified

    @property
    def rating(self) -> Optional[float]:
        return self.performance.customer_satisfaction

    def content_hash(self) -> str:
        """
        Hash over the fields that feed enrichment and facet extraction.

        Changes to other fields (e.g. location) do not trigger re-embedding.
        """
        content = self.model_dump(
            include={
                "name",
                "profession",
                "description",
                "specializations",
                "cultural_certifications",
                "portfolio_highlights",
                "skill_tags",
                "accepts_custom_orders",
                "matching_data",
                "performance",
                "reviews",
            },
            mode="json",
        )
        serialized = json.dumps(content, sort_keys=True, ensure_ascii=False)
        return hashlib.md5(serialized.encode("utf-8")).hexdigest()

    def index_metadata(self) -> dict[str, Any]:
        """
        Flat metadata stored next to the composite vector.

        Values are scalars only so every index backend can store them; list
        fields are joined with commas.
        """
        data = self.matching_data
        metadata: dict[str, Any] = {
            "name": self.name,
            "profession": self.profession or "",
            "experience_level": data.experience_level or "",
            "rating": float(self.rating) if self.rating is not None else 0.0,
            "verified": self.is_verified,
            "skills": ",".join(s.strip().lower() for s in data.skills),
            "materials": ",".join(m.strip().lower() for m in data.materials),
        }
        if data.price_range is not None:
            metadata["price_min"] = data.price_range.min_price
            metadata["price_max"] = data.price_range.max_price
        return metadata
