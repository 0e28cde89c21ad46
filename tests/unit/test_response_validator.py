"""
Unit tests for the response validator
Tests JSON cleanup, schema checks and image part extraction
"""
import base64
import io
import json

import pytest
from google.genai import types
from PIL import Image

from cafevision.core.exceptions import GenerationError, ValidationError, VisualizationError
from cafevision.schemas.design import DesignStyle
from cafevision.services.response_validator import (
    extract_image,
    parse_json_payload,
    validate_concepts,
    validate_site_analysis,
)


def _image_response(*parts):
    return types.GenerateContentResponse(
        candidates=[types.Candidate(content=types.Content(role="model", parts=list(parts)))]
    )


class TestParseJsonPayload:
    """Tests for decoding structured response bodies"""

    @pytest.mark.unit
    def test_plain_json(self, sample_analysis_payload):
        assert parse_json_payload(json.dumps(sample_analysis_payload)) == sample_analysis_payload

    @pytest.mark.unit
    def test_strips_code_fences_and_trailing_commas(self):
        text = '```json\n{"dimensions": "10ft x 12ft", "features": ["a", "b",],}\n```'
        assert parse_json_payload(text) == {"dimensions": "10ft x 12ft", "features": ["a", "b"]}

    @pytest.mark.unit
    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty_body_is_unparseable(self, text):
        with pytest.raises(ValidationError) as exc_info:
            parse_json_payload(text)
        assert exc_info.value.kind == ValidationError.UNPARSEABLE

    @pytest.mark.unit
    def test_garbage_is_unparseable(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_json_payload("Sorry, I can't help with that.")
        assert exc_info.value.kind == ValidationError.UNPARSEABLE
        assert exc_info.value.raw == "Sorry, I can't help with that."

    @pytest.mark.unit
    def test_validation_error_is_a_generation_error(self):
        """Callers handle validation failures through the same taxonomy as transport failures"""
        with pytest.raises(GenerationError):
            parse_json_payload("{")


class TestValidateSiteAnalysis:
    """Tests for site analysis schema checks"""

    @pytest.mark.unit
    def test_valid_payload(self, sample_analysis_payload):
        analysis = validate_site_analysis(sample_analysis_payload)

        assert analysis.dimensions == "20ft x 30ft"
        assert analysis.architectural_features[0] == "Exposed brick east wall"
        assert analysis.potential_challenges == sample_analysis_payload["potentialChallenges"]

    @pytest.mark.unit
    @pytest.mark.parametrize(
        "missing", ["dimensions", "lighting", "architecturalFeatures", "potentialChallenges", "vibeRecommendation"]
    )
    def test_missing_required_field(self, sample_analysis_payload, missing):
        del sample_analysis_payload[missing]

        with pytest.raises(ValidationError) as exc_info:
            validate_site_analysis(sample_analysis_payload)
        assert exc_info.value.kind == ValidationError.SCHEMA
        assert missing in str(exc_info.value)

    @pytest.mark.unit
    def test_wrong_shape(self, sample_analysis_payload):
        sample_analysis_payload["architecturalFeatures"] = "Exposed brick"

        with pytest.raises(ValidationError):
            validate_site_analysis(sample_analysis_payload)

    @pytest.mark.unit
    def test_array_instead_of_object(self, sample_analysis_payload):
        with pytest.raises(ValidationError):
            validate_site_analysis([sample_analysis_payload])

    @pytest.mark.unit
    def test_analysis_is_immutable(self, sample_analysis_payload):
        analysis = validate_site_analysis(sample_analysis_payload)
        with pytest.raises(Exception):
            analysis.dimensions = "1ft x 1ft"


class TestValidateConcepts:
    """Tests for concept list schema checks"""

    @pytest.mark.unit
    def test_valid_concepts_keep_order(self, sample_concepts_payload):
        concepts = validate_concepts(sample_concepts_payload)

        assert [c.id for c in concepts] == ["a", "b"]
        assert concepts[0].style is DesignStyle.MODERN
        assert concepts[1].style is DesignStyle.RUSTIC
        assert concepts[0].visualization_prompt == sample_concepts_payload[0]["imagePrompt"]

    @pytest.mark.unit
    def test_empty_list_is_valid(self):
        assert validate_concepts([]) == []

    @pytest.mark.unit
    def test_unknown_style_rejected(self, sample_concepts_payload):
        sample_concepts_payload[1]["style"] = "Baroque"

        with pytest.raises(ValidationError) as exc_info:
            validate_concepts(sample_concepts_payload)
        assert "Concept 1" in str(exc_info.value)

    @pytest.mark.unit
    def test_missing_prompt_rejected(self, sample_concepts_payload):
        del sample_concepts_payload[0]["imagePrompt"]

        with pytest.raises(ValidationError):
            validate_concepts(sample_concepts_payload)

    @pytest.mark.unit
    def test_duplicate_ids_rejected(self, sample_concepts_payload):
        sample_concepts_payload[1]["id"] = "a"

        with pytest.raises(ValidationError, match="Duplicate concept id"):
            validate_concepts(sample_concepts_payload)

    @pytest.mark.unit
    def test_wrapped_object_rejected(self, sample_concepts_payload):
        with pytest.raises(ValidationError):
            validate_concepts({"concepts": sample_concepts_payload})

    @pytest.mark.unit
    def test_serializes_visualization_prompt_name(self, sample_concepts_payload):
        concept = validate_concepts(sample_concepts_payload)[0]
        dumped = concept.model_dump(by_alias=True)

        assert dumped["visualizationPrompt"] == sample_concepts_payload[0]["imagePrompt"]
        assert dumped["suggestedFeatures"] == sample_concepts_payload[0]["suggestedFeatures"]


class TestExtractImage:
    """Tests for pulling the rendered image out of a response"""

    @pytest.mark.unit
    def test_raw_png_bytes_are_encoded(self, sample_png_bytes):
        response = _image_response(
            types.Part(text="Here is your cafe."),
            types.Part(inline_data=types.Blob(mime_type="image/png", data=sample_png_bytes)),
        )

        mime_type, data = extract_image(response)

        assert mime_type == "image/png"
        assert base64.b64decode(data) == sample_png_bytes

    @pytest.mark.unit
    def test_base64_text_bytes_used_directly(self, sample_png_bytes):
        encoded = base64.b64encode(sample_png_bytes)
        response = _image_response(types.Part(inline_data=types.Blob(mime_type="image/jpeg", data=encoded)))

        mime_type, data = extract_image(response)

        assert mime_type == "image/jpeg"
        assert data == encoded.decode()

    @pytest.mark.unit
    def test_text_only_response_fails(self):
        response = _image_response(types.Part(text="I can't render that request."))

        with pytest.raises(VisualizationError):
            extract_image(response)

    @pytest.mark.unit
    def test_no_candidates_fails(self):
        with pytest.raises(VisualizationError):
            extract_image(types.GenerateContentResponse(candidates=[]))

    @pytest.mark.unit
    def test_raw_webp_bytes_are_encoded(self):
        webp_bytes = b"RIFF\x24\x00\x00\x00WEBPVP8 \x18\x00\x00\x00\xd0\x01\x00\x9d\x01\x2a\x01\x00\x01\x00\x02\x00\x34\x25\xa4\x00\x03\x70\x00\xfe\xfb\x94\x00\x00"
        response = _image_response(types.Part(inline_data=types.Blob(mime_type="image/webp", data=webp_bytes)))

        mime_type, data = extract_image(response)

        assert mime_type == "image/webp"
        assert base64.b64decode(data, validate=True) == webp_bytes

    @pytest.mark.unit
    def test_raw_gif_bytes_are_encoded(self):
        buffer = io.BytesIO()
        Image.new("RGB", (4, 4), color="olive").save(buffer, format="GIF")
        response = _image_response(types.Part(inline_data=types.Blob(mime_type="image/gif", data=buffer.getvalue())))

        mime_type, data = extract_image(response)

        assert mime_type == "image/gif"
        assert base64.b64decode(data, validate=True) == buffer.getvalue()

    @pytest.mark.unit
    def test_non_base64_text_bytes_are_encoded(self):
        """ASCII bytes that are not valid base64 are image data, not base64 text"""
        payload = b"GIF89a not really base64!"
        response = _image_response(types.Part(inline_data=types.Blob(mime_type="image/gif", data=payload)))

        _, data = extract_image(response)

        assert base64.b64decode(data, validate=True) == payload
