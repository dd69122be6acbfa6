"""Tests for response_service.py and the summary helpers."""
import pytest
from unittest.mock import MagicMock, AsyncMock

from listing_capture.models.record import (
    CaptureRecord,
    ExtractedFields,
    ListingCopy,
    PublicationOutcome,
    PublicationResult,
)
from listing_capture.services.response_service import ResponseService, TemplateKey, fallback_text
from listing_capture.utils.messages import MSG
from listing_capture.utils.summary import basic_title, build_summary, field_labels


@pytest.fixture
def record():
    rec = CaptureRecord.create("569")
    rec.extracted_fields = ExtractedFields.model_validate({
        "property_type": "departamento",
        "operation": "venta",
        "price": {"amount": 150000000, "currency": "CLP"},
        "area": {"total": 80},
        "bathrooms": 2,
    })
    rec.missing_required_fields = {"address"}
    return rec


class TestFallbacks:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("key, expected", [
        (TemplateKey.WELCOME, MSG.WELCOME),
        (TemplateKey.CAPTURE_COMPLETE, MSG.FALLBACK_CAPTURE_COMPLETE),
        (TemplateKey.PUBLISH_CONFIRMATION, MSG.FALLBACK_PUBLISH_CONFIRMATION),
    ])
    async def test_fixed_fallback_on_generation_failure(self, key, expected, record, failing_generator):
        assert await ResponseService(generator=failing_generator).render(key, record) == expected

    @pytest.mark.asyncio
    async def test_request_missing_names_fields(self, record, failing_generator):
        reply = await ResponseService(generator=failing_generator).render(TemplateKey.REQUEST_MISSING, record)
        assert reply == "📝 Me falta: dirección. ¿Me ayudas con eso?"

    @pytest.mark.asyncio
    async def test_explicit_missing_overrides_record(self, record, failing_generator):
        reply = await ResponseService(generator=failing_generator).render(
            TemplateKey.REQUEST_MISSING, record, {"price", "address"}
        )
        assert reply == "📝 Me falta: precio, dirección. ¿Me ayudas con eso?"

    def test_fallback_deterministic(self):
        assert fallback_text(TemplateKey.REQUEST_MISSING, ["bathrooms", "area"]) == \
            fallback_text(TemplateKey.REQUEST_MISSING, ["area", "bathrooms"])


class TestGeneratedReplies:

    @pytest.mark.asyncio
    async def test_generated_text_used(self, record):
        generator = MagicMock()
        generator.generate_text = AsyncMock(return_value="¡Genial! Solo me falta la dirección 📍")

        reply = await ResponseService(generator=generator).render(TemplateKey.REQUEST_MISSING, record)

        assert reply == "¡Genial! Solo me falta la dirección 📍"
        prompt = generator.generate_text.call_args[0][0]
        assert "dirección" in prompt
        assert "150.000.000 CLP" in prompt

    def test_confirmation_prompt_lists_successful_destinations(self, record):
        record.publication = PublicationOutcome(
            listing=ListingCopy(title="t", description="d"),
            results=[
                PublicationResult(destination="prop360", success=True, url="https://prop360.cl/p/1"),
                PublicationResult(destination="portal", success=False, error="timeout"),
            ],
        )

        prompt = ResponseService().build_prompt(TemplateKey.PUBLISH_CONFIRMATION, record, [])

        assert "prop360: https://prop360.cl/p/1" in prompt
        assert "portal" not in prompt

    def test_empty_record_prompt(self):
        prompt = ResponseService().build_prompt(TemplateKey.CAPTURE_COMPLETE, CaptureRecord.create("569"), [])
        assert "(sin datos aún)" in prompt


class TestSummary:

    def test_field_labels_canonical_order(self):
        assert field_labels({"address", "price", "bedrooms"}) == "precio, dirección, dormitorios"

    def test_build_summary_lines(self, record):
        lines = build_summary(record.extracted_fields)
        assert lines[0] == "departamento en venta"
        assert "💰 150.000.000 CLP" in lines
        assert "📐 80 m²" in lines
        assert "🛁 2 baños" in lines

    def test_summary_coordinates_only(self):
        fields = ExtractedFields.model_validate({"address": {"coordinates": {"lat": -33.4, "lng": -70.6}}})
        assert build_summary(fields) == ["📍 -33.40000, -70.60000"]

    def test_basic_title_defaults(self):
        assert basic_title(ExtractedFields()) == "Propiedad"
