"""
Design workflow state machine.

One DesignWorkflow per user session. It owns the session data, runs the
generation calls for each user action, and is the only thing that mutates the
data. Actions are serialized by the busy flag; a reset bumps the session
generation so results of calls started before it are dropped on arrival.
"""
import uuid
from dataclasses import dataclass, field
from typing import Any, List, Optional, Tuple

from cafevision.core.config import settings
from cafevision.core.exceptions import (
    ConceptNotFoundError,
    GenerationError,
    InvalidImageError,
    InvalidTransitionError,
    ValidationError,
    WorkflowBusyError,
)
from cafevision.engines.workflow.results import Failure, StepResult, Success, attempt
from cafevision.middleware.logging_middleware import get_logger
from cafevision.schemas.design import DesignConcept, SiteAnalysis, VisualizationImage
from cafevision.schemas.session import ExportedImage, SessionState, Stage
from cafevision.services.generation_client import generation_client
from cafevision.utils.images import MIME_EXTENSIONS, decode_base64, inspect_image, split_data_url, to_data_url

logger = get_logger(__name__)

ANALYSIS_FAILED = "Failed to analyze the image. Please try again."
VISUALIZATION_FAILED = "Failed to generate visualization."
REFINEMENT_FAILED = "Refinement failed. Try a different prompt."


@dataclass
class _SessionData:
    stage: Stage = Stage.UPLOAD
    original_image: Optional[str] = None
    analysis: Optional[SiteAnalysis] = None
    concepts: List[DesignConcept] = field(default_factory=list)
    selected_concept: Optional[DesignConcept] = None
    current_visualization: Optional[VisualizationImage] = None
    busy: bool = False
    last_error: Optional[str] = None


class DesignWorkflow:
    """Guided upload -> analysis -> concepts -> visualization -> refinement flow"""

    def __init__(self, session_id: Optional[str] = None, client: Optional[Any] = None):
        self.session_id = session_id or uuid.uuid4().hex
        self._client = client if client is not None else generation_client
        self._generation = 0
        self._data = _SessionData()

    @property
    def generation(self) -> int:
        return self._generation

    def snapshot(self) -> SessionState:
        data = self._data
        return SessionState(
            session_id=self.session_id,
            stage=data.stage,
            original_image=data.original_image,
            analysis=data.analysis,
            concepts=list(data.concepts),
            selected_concept=data.selected_concept,
            current_visualization=data.current_visualization,
            busy=data.busy,
            last_error=data.last_error,
        )

    # ==================== Local actions ====================

    def upload_image(self, image_data: str) -> SessionState:
        """Set the raw site photo. Accepts a data URL or bare base64."""
        self._require_idle("upload_image")
        self._require_stage("upload_image", Stage.UPLOAD)

        declared_mime, base64_data = split_data_url(image_data)
        try:
            image_bytes = decode_base64(base64_data)
            mime_type, (width, height) = inspect_image(image_bytes)
        except ValueError as e:
            raise InvalidImageError(str(e)) from e

        if mime_type not in settings.allowed_image_types:
            raise InvalidImageError(f"Unsupported image type: {mime_type}")
        if len(image_bytes) > settings.max_file_size:
            raise InvalidImageError(f"Image is {len(image_bytes)} bytes, limit is {settings.max_file_size}")
        if declared_mime and declared_mime != mime_type:
            logger.warning(f"Declared image type {declared_mime} does not match content ({mime_type})")

        self._data.original_image = to_data_url(base64_data, mime_type)
        self._data.last_error = None
        logger.info(f"Image uploaded: {mime_type} {width}x{height} ({len(image_bytes)} bytes)")
        return self.snapshot()

    def clear_image(self) -> SessionState:
        self._require_idle("clear_image")
        self._require_stage("clear_image", Stage.UPLOAD)
        self._data.original_image = None
        return self.snapshot()

    def back_to_concepts(self) -> SessionState:
        """Return to the concept list, keeping the current visualization."""
        self._require_idle("back_to_concepts")
        self._require_stage("back_to_concepts", Stage.VISUALIZING)
        self._data.stage = Stage.CONCEPTS_READY
        return self.snapshot()

    def dismiss_error(self) -> SessionState:
        self._data.last_error = None
        return self.snapshot()

    def reset(self) -> SessionState:
        """
        Discard everything and return to the initial state.

        Allowed at any time, including while a call is in flight: that call's
        result will no longer match the session generation and is dropped.
        """
        was_busy = self._data.busy
        self._generation += 1
        self._data = _SessionData()
        logger.info(f"Session reset (generation {self._generation}, in-flight call abandoned={was_busy})")
        return self.snapshot()

    def export_visualization(self) -> ExportedImage:
        """Downloadable copy of the current visualization. Pure read."""
        visualization = self._data.current_visualization
        if visualization is None:
            raise InvalidTransitionError("There is no visualization to export")

        extension = MIME_EXTENSIONS.get(visualization.mime_type, "png")
        name = f"cafe-design-{visualization.concept_id}" if visualization.concept_id else "cafe-design"
        return ExportedImage(
            filename=f"{name}.{extension}",
            mime_type=visualization.mime_type,
            content=decode_base64(visualization.base64_data),
        )

    # ==================== Remote actions ====================

    async def start_analysis(self) -> SessionState:
        """
        Analyze the uploaded photo and generate concepts from the analysis.

        Both calls form one stage: the analysis is only committed together with
        the concepts, so a concept failure leaves the session at upload with
        neither recorded. Without an image this is a no-op.
        """
        self._require_idle("start_analysis")
        self._require_stage("start_analysis", Stage.UPLOAD)

        image = self._data.original_image
        if not image:
            logger.info("start_analysis ignored: no image uploaded")
            return self.snapshot()

        token = self._begin("start_analysis")
        try:
            result = await self._analyze_and_generate(token, image)
        except BaseException:
            if self._is_current(token):
                self._data.stage = Stage.UPLOAD
            self._release(token)
            raise

        if not self._is_current(token):
            self._discard("start_analysis", token)
            return self.snapshot()

        if isinstance(result, Failure):
            self._data.stage = Stage.UPLOAD
            self._fail(result, ANALYSIS_FAILED)
            return self.snapshot()

        analysis, concepts = result.value
        self._data.analysis = analysis
        self._data.concepts = concepts
        self._data.selected_concept = None
        self._data.current_visualization = None
        self._data.stage = Stage.CONCEPTS_READY
        self._data.busy = False
        logger.info(f"Analysis stage complete with {len(concepts)} concepts")
        return self.snapshot()

    async def select_concept(self, concept_id: str) -> SessionState:
        """
        Pick a concept and render it on the original photo.

        The selection is recorded before the call goes out and is kept even if
        rendering fails.
        """
        self._require_idle("select_concept")
        self._require_stage("select_concept", Stage.CONCEPTS_READY)

        concept = next((c for c in self._data.concepts if c.id == concept_id), None)
        if concept is None:
            raise ConceptNotFoundError(f"No concept with id {concept_id!r} in this session")

        token = self._begin("select_concept")
        self._data.selected_concept = concept
        try:
            result = await attempt("visualize", self._client.visualize, self._data.original_image, concept.visualization_prompt)
        except BaseException:
            self._release(token)
            raise

        if not self._is_current(token):
            self._discard("select_concept", token)
            return self.snapshot()

        if isinstance(result, Failure):
            self._fail(result, VISUALIZATION_FAILED)
            return self.snapshot()

        self._data.current_visualization = result.value.model_copy(
            update={"concept_id": concept.id, "refinements": ()}
        )
        self._data.stage = Stage.VISUALIZING
        self._data.busy = False
        logger.info(f"Visualized concept {concept.id} ({concept.style.value})")
        return self.snapshot()

    async def refine(self, instruction: str) -> SessionState:
        """
        Edit the current visualization with a free-text instruction.

        Each refinement works on the latest image, not the original photo. A
        blank instruction is a no-op.
        """
        self._require_idle("refine")
        self._require_stage("refine", Stage.VISUALIZING)

        instruction = (instruction or "").strip()
        if not instruction:
            logger.info("refine ignored: empty instruction")
            return self.snapshot()

        current = self._data.current_visualization
        token = self._begin("refine")
        try:
            result = await attempt("refine", self._client.refine, current.data_url, instruction)
        except BaseException:
            self._release(token)
            raise

        if not self._is_current(token):
            self._discard("refine", token)
            return self.snapshot()

        if isinstance(result, Failure):
            self._fail(result, REFINEMENT_FAILED)
            return self.snapshot()

        self._data.current_visualization = result.value.model_copy(
            update={"concept_id": current.concept_id, "refinements": current.refinements + (instruction,)}
        )
        self._data.busy = False
        logger.info(f"Refinement {len(current.refinements) + 1} applied: {instruction[:80]!r}")
        return self.snapshot()

    async def _analyze_and_generate(
        self, token: int, image: str
    ) -> "StepResult[Tuple[SiteAnalysis, List[DesignConcept]]]":
        analyzed = await attempt("analyze", self._client.analyze, image)
        if isinstance(analyzed, Failure) or not self._is_current(token):
            return analyzed

        # Visible progress label only; nothing is committed until concepts arrive
        self._data.stage = Stage.ANALYZED
        generated = await attempt("generate_concepts", self._client.generate_concepts, analyzed.value, image)
        if isinstance(generated, Failure):
            return generated
        return Success((analyzed.value, generated.value))

    # ==================== Guards & bookkeeping ====================

    def _require_idle(self, action: str) -> None:
        if self._data.busy:
            logger.warning(f"{action} rejected: another operation is in progress")
            raise WorkflowBusyError(f"Cannot {action} while another operation is in progress")

    def _require_stage(self, action: str, *stages: Stage) -> None:
        if self._data.stage not in stages:
            allowed = ", ".join(s.value for s in stages)
            raise InvalidTransitionError(f"Cannot {action} in stage {self._data.stage.value} (allowed: {allowed})")

    def _begin(self, action: str) -> int:
        self._data.busy = True
        self._data.last_error = None
        logger.info(f"{action} started (generation {self._generation})")
        return self._generation

    def _is_current(self, token: int) -> bool:
        return token == self._generation

    def _release(self, token: int) -> None:
        if self._is_current(token):
            self._data.busy = False

    def _discard(self, action: str, token: int) -> None:
        logger.info(f"Discarding stale {action} result from generation {token} (now {self._generation})")

    def _fail(self, failure: Failure, message: str) -> None:
        error: GenerationError = failure.error
        detail = f" [{error.kind}]" if isinstance(error, ValidationError) else ""
        logger.error(f"{failure.step} failed with {type(error).__name__}{detail}: {error}")
        self._data.busy = False
        self._data.last_error = message
