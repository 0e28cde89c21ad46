"""
Pydantic schemas for site analysis, design concepts and visualizations
"""
from enum import Enum
from typing import List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, Field
from pydantic.alias_generators import to_camel


class DesignStyle(str, Enum):
    """Closed set of styles a concept can belong to"""

    MODERN = "Modern"
    RUSTIC = "Rustic"
    MINIMALIST = "Minimalist"
    INDUSTRIAL = "Industrial"
    BOHEMIAN = "Bohemian"


class SiteAnalysis(BaseModel):
    """Architectural assessment of the uploaded raw space"""

    dimensions: str
    lighting: str
    architectural_features: List[str]
    potential_challenges: List[str]
    vibe_recommendation: str

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True
        json_schema_extra = {
            "example": {
                "dimensions": "20ft x 30ft",
                "lighting": "Strong natural light from a south-facing storefront",
                "architecturalFeatures": ["Exposed brick wall", "Concrete floor"],
                "potentialChallenges": ["Low ceiling near the rear"],
                "vibeRecommendation": "Warm industrial with soft greenery",
            }
        }


class DesignConcept(BaseModel):
    """One generated cafe layout concept"""

    id: str = Field(min_length=1)
    title: str
    description: str
    style: DesignStyle
    # The generation schema names this field imagePrompt
    visualization_prompt: str = Field(
        validation_alias=AliasChoices("visualizationPrompt", "imagePrompt", "visualization_prompt"),
        serialization_alias="visualizationPrompt",
    )
    suggested_features: List[str]

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True


class VisualizationImage(BaseModel):
    """Rendered visualization plus where it came from"""

    data_url: str
    mime_type: str = "image/png"
    # Provenance is attached by the workflow; the generation client leaves it empty
    concept_id: Optional[str] = None
    refinements: Tuple[str, ...] = ()

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True

    @property
    def base64_data(self) -> str:
        return self.data_url.split(",", 1)[-1]
