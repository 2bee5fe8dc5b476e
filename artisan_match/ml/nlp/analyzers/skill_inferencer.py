"""
Skill inference from profession, profile text, materials and techniques.
"""

from artisan_match.data.models import ArtisanProfile
from artisan_match.ml.nlp.facets import FacetTexts

from .base import BaseAnalyzer


class SkillInferencer(BaseAnalyzer):
    """Infers related skills the artisan did not list explicitly."""

    name = "skills"

    # craft category -> skills implied by working in it
    SKILL_MAPPINGS: dict[str, list[str]] = {
        "pottery": ["ceramics", "clay work", "glazing", "kiln firing", "wheel throwing"],
        "woodworking": ["carpentry", "furniture making", "wood carving", "joinery", "finishing"],
        "jewelry": ["metalworking", "gem setting", "soldering", "polishing", "design"],
        "textiles": ["weaving", "embroidery", "dyeing", "pattern making", "fabric work"],
        "leather": ["tanning", "stitching", "tooling", "finishing", "pattern cutting"],
        "painting": ["color mixing", "brushwork", "composition", "canvas preparation", "varnishing"],
        "sculpture": ["modeling", "carving", "casting", "finishing", "armature building"],
    }

    MATERIAL_SKILLS: dict[str, list[str]] = {
        "clay": ["pottery", "ceramics", "glazing"],
        "wood": ["woodworking", "carving", "finishing"],
        "metal": ["metalworking", "forging", "soldering"],
        "fabric": ["sewing", "embroidery", "dyeing"],
        "leather": ["leather working", "tooling", "stitching"],
        "glass": ["glassblowing", "fusing", "cutting"],
        "stone": ["stone carving", "polishing", "setting"],
    }

    TECHNIQUE_SKILLS: dict[str, list[str]] = {
        "hand": ["handcrafting", "manual dexterity", "precision work"],
        "carving": ["tool handling", "detail work", "finishing"],
        "weaving": ["pattern making", "color coordination", "texture work"],
        "painting": ["color theory", "brushwork", "composition"],
        "molding": ["shaping", "form creation", "detail work"],
        "assembly": ["joining", "fitting", "construction"],
    }

    def __init__(self, max_skills: int = 8):
        self.max_skills = max_skills

    def analyze(self, profile: ArtisanProfile, texts: FacetTexts) -> list[str]:
        data = profile.matching_data
        existing = [s.strip().lower() for s in data.skills]
        profession = (profile.profession or "").lower()
        all_text = f"{profession} {texts.profile_text} {texts.skills_text}"

        inferred: list[str] = []

        def add(skill: str) -> None:
            if skill not in existing and skill not in inferred:
                inferred.append(skill)

        for category, skills in self.SKILL_MAPPINGS.items():
            if category not in all_text:
                continue
            for skill in skills:
                if skill in all_text or self._is_related(skill, existing):
                    add(skill)

        for material in data.materials:
            for skill in self._lookup(material, self.MATERIAL_SKILLS):
                add(skill)

        for technique in data.techniques:
            for skill in self._lookup(technique, self.TECHNIQUE_SKILLS):
                add(skill)

        return inferred[:self.max_skills]

    @staticmethod
    def _is_related(skill: str, existing: list[str]) -> bool:
        return any(word in known for known in existing for word in skill.split())

    @staticmethod
    def _lookup(value: str, table: dict[str, list[str]]) -> list[str]:
        lowered = value.lower()
        for key, skills in table.items():
            if key in lowered:
                return skills
        return []

    def default_output(self) -> list[str]:
        return []
