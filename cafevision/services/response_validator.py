"""
Validation of Gemini responses before they enter a session.

Structured calls must parse and match the declared schema exactly; required
fields are never defaulted. Image calls must carry at least one inline image part.
"""
import base64
import binascii
import json
import logging
import re
from typing import Any, List, Optional, Tuple

from pydantic import ValidationError as PydanticValidationError

from cafevision.core.exceptions import ValidationError, VisualizationError
from cafevision.schemas.design import DesignConcept, SiteAnalysis

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_MIME = "image/png"

# Raw PNG / JPEG magic numbers, as hex
_RAW_IMAGE_PREFIXES = ("89504e47", "ffd8ff")


def parse_json_payload(text: Optional[str]) -> Any:
    """Decode a JSON response body, tolerating code fences and trailing commas."""
    if not text or not text.strip():
        raise ValidationError("Empty response body", kind=ValidationError.UNPARSEABLE, raw=text)

    cleaned = text.strip()
    cleaned = re.sub(r"^```(?:json)?\s*", "", cleaned)
    cleaned = re.sub(r"\s*```$", "", cleaned)
    cleaned = re.sub(r",(\s*[}\]])", r"\1", cleaned)

    try:
        return json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse JSON response: {e}")
        logger.debug(f"Raw response text (first 500 chars): {text[:500]}")
        raise ValidationError(f"Response is not valid JSON: {e}", kind=ValidationError.UNPARSEABLE, raw=text) from e


def _describe(error: PydanticValidationError) -> str:
    issues = []
    for err in error.errors():
        location = ".".join(str(part) for part in err["loc"]) or "<root>"
        issues.append(f"{location}: {err['msg']}")
    return "; ".join(issues)


def validate_site_analysis(payload: Any) -> SiteAnalysis:
    """Check a decoded analysis payload and build a SiteAnalysis from it."""
    if not isinstance(payload, dict):
        raise ValidationError(f"Site analysis must be a JSON object, got {type(payload).__name__}")
    try:
        return SiteAnalysis.model_validate(payload)
    except PydanticValidationError as e:
        raise ValidationError(f"Site analysis failed validation: {_describe(e)}") from e


def validate_concepts(payload: Any) -> List[DesignConcept]:
    """
    Check a decoded concepts payload.

    The payload must be a JSON array. An empty array is valid. Concept ids must
    be unique because the session selects concepts by id.
    """
    if not isinstance(payload, list):
        raise ValidationError(f"Concepts must be a JSON array, got {type(payload).__name__}")

    concepts = []
    for index, item in enumerate(payload):
        if not isinstance(item, dict):
            raise ValidationError(f"Concept {index} must be a JSON object, got {type(item).__name__}")
        try:
            concepts.append(DesignConcept.model_validate(item))
        except PydanticValidationError as e:
            raise ValidationError(f"Concept {index} failed validation: {_describe(e)}") from e

    seen = set()
    for concept in concepts:
        if concept.id in seen:
            raise ValidationError(f"Duplicate concept id: {concept.id}")
        seen.add(concept.id)

    return concepts


def _response_parts(response: Any) -> List[Any]:
    # The SDK may expose parts directly on the response or nested in candidates
    parts = getattr(response, "parts", None)
    if parts:
        return list(parts)
    candidates = getattr(response, "candidates", None)
    if candidates:
        content = getattr(candidates[0], "content", None)
        if content is not None and getattr(content, "parts", None):
            return list(content.parts)
    return []


def _to_base64(image_data: Any) -> Optional[str]:
    if isinstance(image_data, str):
        return image_data or None
    if isinstance(image_data, (bytes, bytearray)):
        if not image_data:
            return None
        raw = bytes(image_data)
        if raw[:4].hex().startswith(_RAW_IMAGE_PREFIXES):
            return base64.b64encode(raw).decode("ascii")
        # Bytes already holding base64 text; anything else is raw image data
        try:
            base64.b64decode(raw, validate=True)
        except (binascii.Error, ValueError):
            return base64.b64encode(raw).decode("ascii")
        return raw.decode("ascii")
    logger.error(f"Unexpected image data type: {type(image_data)}")
    return None


def extract_image(response: Any) -> Tuple[str, str]:
    """
    Return (mime_type, base64_data) for the first inline image in a response.

    Raises VisualizationError when the response carries no image part, which is
    how the backend declines an instruction.
    """
    for part in _response_parts(response):
        text = getattr(part, "text", None)
        if text:
            logger.info(f"Gemini text response: {text[:200]}")
            continue

        inline_data = getattr(part, "inline_data", None)
        if inline_data is None:
            continue

        encoded = _to_base64(getattr(inline_data, "data", None))
        if encoded:
            mime_type = getattr(inline_data, "mime_type", None) or DEFAULT_IMAGE_MIME
            return mime_type, encoded

    raise VisualizationError("Response contained no image part")
