"""
Facet text extraction for artisan profiles.

Derives the three lower-cased facet texts (profile, skills, portfolio) that
are embedded separately and later fused into one composite vector.
"""

from dataclasses import dataclass

from artisan_match.data.models import ArtisanProfile


@dataclass
class FacetTexts:
    """The three facet texts of one profile."""

    profile_text: str = ""
    skills_text: str = ""
    portfolio_text: str = ""

    def as_dict(self) -> dict[str, str]:
        return {
            "profile": self.profile_text,
            "skills": self.skills_text,
            "portfolio": self.portfolio_text,
        }


def _join(parts: list[str]) -> str:
    return " ".join(p.strip() for p in parts if p and p.strip()).lower().strip()


def extract_profile_text(profile: ArtisanProfile) -> str:
    """Identity, description, specializations and certifications."""
    return _join([
        profile.name,
        profile.profession or "",
        profile.description or "",
        " ".join(profile.specializations),
        " ".join(cert.name for cert in profile.cultural_certifications),
        " ".join(profile.portfolio_highlights),
    ])


def extract_skills_text(profile: ArtisanProfile) -> str:
    """Skill, technique, material, category and experience tags."""
    data = profile.matching_data
    skill_tags = [
        f"{tag.skill} proficiency {tag.proficiency}" if tag.proficiency else tag.skill
        for tag in profile.skill_tags
    ]
    return _join([
        " ".join(data.skills),
        " ".join(data.techniques),
        " ".join(data.materials),
        " ".join(data.category_tags),
        data.experience_level or "",
        " ".join(skill_tags),
    ])


def extract_portfolio_text(profile: ArtisanProfile) -> str:
    """
    Portfolio keywords plus price-range and timeline phrases.

    Only parts that are present contribute, so a profile without portfolio
    data yields an empty facet.
    """
    data = profile.matching_data
    parts = [
        " ".join(data.portfolio_keywords),
        " ".join(profile.portfolio_highlights),
    ]
    if data.price_range is not None:
        parts.append(
            f"price range {data.price_range.min_price:g} to {data.price_range.max_price:g}"
        )
    if data.typical_timeline:
        parts.append(f"timeline {data.typical_timeline}")
    if data.experience_level:
        parts.append(f"experience level {data.experience_level}")
    return _join(parts)


def extract_facet_texts(profile: ArtisanProfile) -> FacetTexts:
    return FacetTexts(
        profile_text=extract_profile_text(profile),
        skills_text=extract_skills_text(profile),
        portfolio_text=extract_portfolio_text(profile),
    )
