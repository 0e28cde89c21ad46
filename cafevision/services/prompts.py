"""
Prompt templates and response schemas for the Gemini calls
"""
import json

from google.genai import types

from cafevision.schemas.design import DesignStyle, SiteAnalysis

SITE_ANALYSIS_PROMPT = (
    "Analyze this construction site image for a potential cafe. Estimate space dimensions, "
    "lighting conditions, architectural features, and potential design challenges. "
    "Return the data in valid JSON format."
)

VISUALIZE_PROMPT = "Transform this raw space into a cafe visualization. Instruction: {instruction}"

REFINE_PROMPT = (
    "Edit this cafe visualization according to the following instruction: {instruction}. "
    "Maintain the general structure and style but apply the requested changes accurately."
)

SITE_ANALYSIS_SCHEMA = types.Schema(
    type=types.Type.OBJECT,
    properties={
        "dimensions": types.Schema(type=types.Type.STRING),
        "lighting": types.Schema(type=types.Type.STRING),
        "architecturalFeatures": types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING)),
        "potentialChallenges": types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING)),
        "vibeRecommendation": types.Schema(type=types.Type.STRING),
    },
    required=["dimensions", "lighting", "architecturalFeatures", "potentialChallenges", "vibeRecommendation"],
)

CONCEPTS_SCHEMA = types.Schema(
    type=types.Type.ARRAY,
    items=types.Schema(
        type=types.Type.OBJECT,
        properties={
            "id": types.Schema(type=types.Type.STRING),
            "title": types.Schema(type=types.Type.STRING),
            "description": types.Schema(type=types.Type.STRING),
            "style": types.Schema(type=types.Type.STRING, enum=[style.value for style in DesignStyle]),
            "imagePrompt": types.Schema(type=types.Type.STRING),
            "suggestedFeatures": types.Schema(type=types.Type.ARRAY, items=types.Schema(type=types.Type.STRING)),
        },
        required=["id", "title", "description", "style", "imagePrompt", "suggestedFeatures"],
    ),
)


def build_concepts_prompt(analysis: SiteAnalysis, concept_count: int) -> str:
    """Prompt asking for `concept_count` layout concepts grounded in the site analysis."""
    styles = ", ".join(style.value for style in DesignStyle)
    analysis_json = json.dumps(analysis.model_dump(by_alias=True))
    return (
        f"Based on this site analysis: {analysis_json}, generate {concept_count} diverse cafe layout concepts.\n"
        f"Include various styles like {styles}.\n"
        "For each layout, provide a unique id, a title, detailed description, the style category, "
        "a list of suggested features, and a specific visualization prompt for an AI image editor."
    )
