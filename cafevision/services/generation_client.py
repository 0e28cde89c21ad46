"""
Google AI Studio client for site analysis, concept generation and visualization.

Every call is stateless: the workflow passes the image it wants worked on each
time, so the client holds nothing but the SDK client and usage counters.
"""
import asyncio
import logging
import time
from datetime import datetime
from typing import Any, List, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from cafevision.core.config import settings
from cafevision.core.exceptions import GenerationError, TransportError, ValidationError
from cafevision.schemas.design import DesignConcept, SiteAnalysis, VisualizationImage
from cafevision.services import prompts
from cafevision.services.response_validator import (
    extract_image,
    parse_json_payload,
    validate_concepts,
    validate_site_analysis,
)
from cafevision.utils.images import decode_base64, preprocess_for_analysis, sniff_mime, split_data_url, to_data_url

logger = logging.getLogger(__name__)


class GeminiGenerationClient:
    """Typed adapter over the four Gemini calls the design workflow needs"""

    def __init__(self, api_key: Optional[str] = None, genai_client: Optional[Any] = None):
        self.api_key = settings.google_ai_api_key if api_key is None else api_key
        self.usage_stats = {
            "total_requests": 0,
            "successful_requests": 0,
            "failed_requests": 0,
            "validation_failures": 0,
            "total_processing_time": 0.0,
            "last_reset": datetime.now(),
        }

        if genai_client is not None:
            self.genai_client = genai_client
        elif self.api_key:
            self.genai_client = genai.Client(api_key=self.api_key)
            if len(self.api_key) > 12:
                masked_key = f"{self.api_key[:8]}...{self.api_key[-4:]}"
                logger.info(f"Google AI API Key loaded: {masked_key}")
        else:
            self.genai_client = None
            logger.warning("Google AI API key not configured - generation calls will fail")

    @property
    def configured(self) -> bool:
        return self.genai_client is not None

    # ==================== Operations ====================

    async def analyze(self, image: str) -> SiteAnalysis:
        """Produce a structured architectural assessment of a raw site photo."""
        parts = [self._analysis_image_part(image), types.Part.from_text(text=prompts.SITE_ANALYSIS_PROMPT)]
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=prompts.SITE_ANALYSIS_SCHEMA,
            temperature=settings.google_ai_temperature,
        )

        response = await self._generate("analyze", settings.analysis_model, parts, config)
        analysis = self._validated("analyze", lambda: validate_site_analysis(parse_json_payload(_text_of(response))))
        logger.info(f"Site analysis complete: dimensions={analysis.dimensions!r}")
        return analysis

    async def generate_concepts(self, analysis: SiteAnalysis, image: str) -> List[DesignConcept]:
        """Generate diverse layout concepts for the analysed site. An empty list is a valid result."""
        prompt = prompts.build_concepts_prompt(analysis, settings.concept_count)
        parts = [self._analysis_image_part(image), types.Part.from_text(text=prompt)]
        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=prompts.CONCEPTS_SCHEMA,
            temperature=settings.google_ai_temperature,
        )

        response = await self._generate("generate_concepts", settings.analysis_model, parts, config)
        concepts = self._validated("generate_concepts", lambda: validate_concepts(parse_json_payload(_text_of(response))))
        if not concepts:
            logger.warning("Concept generation returned an empty list")
        logger.info(f"Generated {len(concepts)} concepts: {[c.style.value for c in concepts]}")
        return concepts

    async def visualize(self, image: str, instruction: str) -> VisualizationImage:
        """Render the original site photo transformed according to `instruction`."""
        prompt = prompts.VISUALIZE_PROMPT.format(instruction=instruction)
        return await self._edit_image("visualize", image, prompt)

    async def refine(self, current_image: str, instruction: str) -> VisualizationImage:
        """Apply a refinement instruction to the most recent visualization."""
        prompt = prompts.REFINE_PROMPT.format(instruction=instruction)
        return await self._edit_image("refine", current_image, prompt)

    # ==================== Internals ====================

    async def _edit_image(self, operation: str, image: str, prompt: str) -> VisualizationImage:
        mime_type, base64_data = split_data_url(image)
        parts = [
            types.Part(inline_data=types.Blob(mime_type=mime_type or "image/jpeg", data=self._decode(base64_data))),
            types.Part.from_text(text=prompt),
        ]
        config = types.GenerateContentConfig(response_modalities=["IMAGE", "TEXT"])

        response = await self._generate(operation, settings.image_model, parts, config)
        result_mime, result_data = extract_image(response)
        logger.info(f"{operation} produced {result_mime} image ({len(result_data)} base64 chars)")
        return VisualizationImage(data_url=to_data_url(result_data, result_mime), mime_type=result_mime)

    def _analysis_image_part(self, image: str) -> types.Part:
        declared_mime, base64_data = split_data_url(image)
        image_bytes = self._decode(base64_data)
        try:
            processed = preprocess_for_analysis(image_bytes, settings.max_image_dimension)
        except Exception as e:
            # The backend may still understand formats Pillow cannot open
            mime_type = sniff_mime(image_bytes) or declared_mime or "image/jpeg"
            logger.error(f"Error preprocessing image, sending original {mime_type} bytes: {e}")
            return types.Part(inline_data=types.Blob(mime_type=mime_type, data=image_bytes))
        return types.Part(inline_data=types.Blob(mime_type="image/jpeg", data=processed))

    @staticmethod
    def _decode(base64_data: str) -> bytes:
        try:
            return decode_base64(base64_data)
        except ValueError as e:
            raise GenerationError(str(e)) from e

    def _validated(self, operation: str, build):
        try:
            return build()
        except ValidationError as e:
            self.usage_stats["validation_failures"] += 1
            logger.error(f"{operation} response failed validation ({e.kind}): {e}")
            raise

    async def _generate(
        self, operation: str, model: str, parts: List[types.Part], config: types.GenerateContentConfig
    ) -> Any:
        """Run one blocking SDK call in the executor, bounded by the configured timeout."""
        if self.genai_client is None:
            raise TransportError("Google AI API key not configured")

        contents = [types.Content(role="user", parts=parts)]
        timeout_seconds = settings.request_timeout_seconds
        start_time = time.time()
        self.usage_stats["total_requests"] += 1

        def _run_generate():
            return self.genai_client.models.generate_content(model=model, contents=contents, config=config)

        try:
            loop = asyncio.get_running_loop()
            response = await asyncio.wait_for(loop.run_in_executor(None, _run_generate), timeout=timeout_seconds)
        except asyncio.TimeoutError as e:
            self.usage_stats["failed_requests"] += 1
            logger.error(f"{operation} timed out after {timeout_seconds} seconds")
            raise TransportError(f"{operation} timed out after {timeout_seconds} seconds") from e
        except genai_errors.APIError as e:
            self.usage_stats["failed_requests"] += 1
            logger.error(f"Google AI API error {e.code} during {operation}: {e.message}")
            raise TransportError(f"{operation} failed with status {e.code}: {e.message}") from e
        except Exception as e:
            self.usage_stats["failed_requests"] += 1
            logger.error(f"Google AI request failed during {operation}: {e}")
            raise TransportError(f"{operation} request failed: {e}") from e

        processing_time = time.time() - start_time
        self.usage_stats["successful_requests"] += 1
        self.usage_stats["total_processing_time"] += processing_time
        logger.info(f"Google AI {operation} request successful ({model}) - Time: {processing_time:.2f}s")
        return response


def _text_of(response: Any) -> Optional[str]:
    text = getattr(response, "text", None)
    return text if isinstance(text, str) else None


# Global client instance
generation_client = GeminiGenerationClient()
