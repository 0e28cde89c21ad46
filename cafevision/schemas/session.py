"""
Pydantic schemas for workflow sessions
"""
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from cafevision.schemas.design import DesignConcept, SiteAnalysis, VisualizationImage


class Stage(str, Enum):
    """Workflow stages, in the order a session normally moves through them"""

    UPLOAD = "upload"
    ANALYZED = "analyzed"  # Shown while concepts are generated for a fresh analysis
    CONCEPTS_READY = "concepts_ready"
    VISUALIZING = "visualizing"


class SessionState(BaseModel):
    """Immutable snapshot of one session, handed to the presentation layer"""

    session_id: str
    stage: Stage = Stage.UPLOAD
    original_image: Optional[str] = None
    analysis: Optional[SiteAnalysis] = None
    concepts: List[DesignConcept] = Field(default_factory=list)
    selected_concept: Optional[DesignConcept] = None
    current_visualization: Optional[VisualizationImage] = None
    busy: bool = False
    last_error: Optional[str] = None

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        frozen = True


class RefinementRequest(BaseModel):
    """Free-text refinement instruction"""

    instruction: str = Field(default="", max_length=2000)


class ExportedImage(BaseModel):
    """Downloadable copy of the current visualization"""

    filename: str
    mime_type: str
    content: bytes
