"""
Shared pytest fixtures and configuration for all tests
"""
import base64
import io
from unittest.mock import AsyncMock, MagicMock

import pytest
from PIL import Image

from cafevision.schemas.design import DesignConcept, SiteAnalysis, VisualizationImage


def _encoded_image(fmt: str, color: str, size=(100, 100)) -> bytes:
    img = Image.new("RGB", size, color=color)
    buffer = io.BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def sample_jpeg_bytes():
    """Raw JPEG bytes for file-upload endpoints"""
    return _encoded_image("JPEG", "beige")


@pytest.fixture
def sample_base64_image(sample_jpeg_bytes):
    """Site photo as a JPEG data URL"""
    return f"data:image/jpeg;base64,{base64.b64encode(sample_jpeg_bytes).decode()}"


@pytest.fixture
def sample_png_bytes():
    """Raw PNG bytes, the format Gemini returns for rendered images"""
    return _encoded_image("PNG", "sienna", size=(64, 48))


@pytest.fixture
def sample_analysis_payload():
    """Site analysis as the backend returns it"""
    return {
        "dimensions": "20ft x 30ft",
        "lighting": "Bright natural light from a full-height front window",
        "architecturalFeatures": ["Exposed brick east wall", "Polished concrete floor", "Steel I-beam ceiling"],
        "potentialChallenges": ["Single drain point near the rear", "No existing HVAC ducting"],
        "vibeRecommendation": "Warm industrial with plenty of greenery",
    }


@pytest.fixture
def sample_analysis(sample_analysis_payload):
    return SiteAnalysis.model_validate(sample_analysis_payload)


@pytest.fixture
def sample_concepts_payload():
    """Two concepts as the backend returns them (note imagePrompt)"""
    return [
        {
            "id": "a",
            "title": "Glass & Steel Espresso Bar",
            "description": "Long marble counter along the brick wall with bar seating facing the street.",
            "style": "Modern",
            "imagePrompt": "Add a long white marble espresso bar with black steel stools along the brick wall",
            "suggestedFeatures": ["Marble counter", "Pendant lighting", "Bar stools"],
        },
        {
            "id": "b",
            "title": "Farmhouse Bakery Corner",
            "description": "Reclaimed wood tables, open bread shelving and warm Edison bulbs.",
            "style": "Rustic",
            "imagePrompt": "Furnish the space with reclaimed wood tables, open bread shelves and Edison bulbs",
            "suggestedFeatures": ["Reclaimed wood", "Open shelving", "Edison bulbs"],
        },
    ]


@pytest.fixture
def sample_concepts(sample_concepts_payload):
    return [DesignConcept.model_validate(item) for item in sample_concepts_payload]


@pytest.fixture
def make_visualization():
    """Factory for rendered images the mocked backend hands back"""

    def _make(tag: str, mime_type: str = "image/png") -> VisualizationImage:
        payload = base64.b64encode(_encoded_image("PNG", "white", size=(8, 8)) + tag.encode()).decode()
        return VisualizationImage(data_url=f"data:{mime_type};base64,{payload}", mime_type=mime_type)

    return _make


@pytest.fixture
def mock_generation_client(sample_analysis, sample_concepts, make_visualization):
    """Generation client double with happy-path defaults"""
    mock = MagicMock()
    mock.analyze = AsyncMock(return_value=sample_analysis)
    mock.generate_concepts = AsyncMock(return_value=sample_concepts)
    mock.visualize = AsyncMock(return_value=make_visualization("visualized"))
    mock.refine = AsyncMock(side_effect=lambda image, instruction: make_visualization(f"refined:{instruction}"))
    return mock


@pytest.fixture
def mock_genai_client():
    """Mock google.genai.Client for testing without API calls"""
    mock = MagicMock()
    mock.models = MagicMock()
    mock.models.generate_content = MagicMock()
    return mock

