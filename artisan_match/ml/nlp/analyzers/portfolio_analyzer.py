"""
Portfolio style, colour palette, technique and material analysis.
"""

from dataclasses import dataclass, field

from artisan_match.data.models import ArtisanProfile
from artisan_match.ml.nlp.facets import FacetTexts

from .base import BaseAnalyzer


@dataclass
class PortfolioAnalysis:
    """Output of the portfolio analyzer."""

    dominant_styles: list[str] = field(default_factory=list)
    color_palettes: list[str] = field(default_factory=list)
    techniques: list[str] = field(default_factory=list)
    materials: list[str] = field(default_factory=list)


class PortfolioAnalyzer(BaseAnalyzer):
    """Infers styles and colour palettes from descriptive profile text."""

    name = "portfolio"

    STYLE_KEYWORDS: dict[str, list[str]] = {
        "traditional": ["traditional", "heritage", "classic", "authentic", "cultural"],
        "contemporary": ["modern", "contemporary", "current", "trendy", "stylish"],
        "rustic": ["rustic", "rural", "country", "natural", "earthy"],
        "minimalist": ["minimal", "simple", "clean", "elegant", "refined"],
        "ornate": ["ornate", "decorative", "elaborate", "detailed", "intricate"],
        "artistic": ["artistic", "creative", "expressive", "unique", "original"],
    }

    COLOR_KEYWORDS: dict[str, list[str]] = {
        "earth_tones": ["brown", "beige", "tan", "clay", "wood", "natural"],
        "vibrant": ["bright", "colorful", "vivid", "bold", "rainbow"],
        "monochrome": ["black", "white", "gray", "silver", "neutral"],
        "warm": ["red", "orange", "yellow", "gold", "warm"],
        "cool": ["blue", "green", "purple", "cool", "teal"],
        "metallic": ["gold", "silver", "copper", "bronze", "metallic"],
    }

    DEFAULT_STYLE = "traditional"
    DEFAULT_PALETTE = "earth_tones"

    def analyze(self, profile: ArtisanProfile, texts: FacetTexts) -> PortfolioAnalysis:
        data = profile.matching_data

        style_text = " ".join([
            profile.profession or "",
            profile.description or "",
            " ".join(profile.specializations),
        ]).lower()
        color_text = " ".join([profile.description or "", " ".join(data.materials)]).lower()

        return PortfolioAnalysis(
            dominant_styles=self._detect(style_text, self.STYLE_KEYWORDS) or [self.DEFAULT_STYLE],
            color_palettes=self._detect(color_text, self.COLOR_KEYWORDS) or [self.DEFAULT_PALETTE],
            techniques=[t.strip().lower() for t in data.techniques if t.strip()],
            materials=[m.strip().lower() for m in data.materials if m.strip()],
        )

    @staticmethod
    def _detect(text: str, table: dict[str, list[str]]) -> list[str]:
        return [label for label, keywords in table.items() if any(kw in text for kw in keywords)]

    def default_output(self) -> PortfolioAnalysis:
        return PortfolioAnalysis()
