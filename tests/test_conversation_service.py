"""Tests for conversation_service.py - store, orchestrator and reply glue."""
import asyncio

import pytest
from unittest.mock import patch, MagicMock, AsyncMock

from listing_capture.models.record import (
    CaptureState,
    ExtractedFields,
    InboundMessage,
    ListingCopy,
    MessageKind,
    PublicationOutcome,
    PublicationResult,
    TextPayload,
)
from listing_capture.services.conversation_service import approve_capture, process_inbound, send_reply
from listing_capture.services.orchestrator import CaptureOrchestrator
from listing_capture.services.response_service import ResponseService
from listing_capture.services.store import InMemoryCaptureStore
from listing_capture.utils.errors import PublicationFailure
from listing_capture.utils.messages import MSG

ADDRESS = "56911111111"


def text(body, channel="whatsapp", sender=ADDRESS):
    return InboundMessage(id="m", sender=sender, channel=channel, kind=MessageKind.TEXT, payload=TextPayload(body=body))


@pytest.fixture
def store():
    return InMemoryCaptureStore()


@pytest.fixture
def extractor():
    ext = MagicMock()
    ext.extract_listing = AsyncMock(return_value=ExtractedFields.model_validate({"bathrooms": 1}))
    return ext


@pytest.fixture
def publisher():
    pub = MagicMock()
    pub.publish = AsyncMock(return_value=PublicationOutcome(
        listing=ListingCopy(title="t", description="d"),
        results=[PublicationResult(destination="prop360", success=True, url="https://prop360.cl/p/1")],
    ))
    return pub


@pytest.fixture
def orchestrator(extractor, publisher, failing_generator):
    return CaptureOrchestrator(
        extractor=extractor,
        photo_processor=MagicMock(),
        responder=ResponseService(generator=failing_generator),
        publisher=publisher,
    )


@pytest.fixture
def sent():
    with patch("listing_capture.services.conversation_service.send_reply", new_callable=AsyncMock) as mock_send:
        yield mock_send


class TestProcessInbound:

    @pytest.mark.asyncio
    async def test_first_message_gets_welcome(self, store, orchestrator, extractor, sent):
        reply = await process_inbound(text("hola"), store=store, orchestrator=orchestrator)

        assert reply == MSG.WELCOME
        extractor.extract_listing.assert_not_called()
        sent.assert_awaited_once_with("whatsapp", ADDRESS, MSG.WELCOME)
        assert store.get(ADDRESS).state == CaptureState.RECEIVING

    @pytest.mark.asyncio
    async def test_second_message_is_processed(self, store, orchestrator, extractor, sent):
        await process_inbound(text("hola"), store=store, orchestrator=orchestrator)

        reply = await process_inbound(text("1 baño"), store=store, orchestrator=orchestrator)

        extractor.extract_listing.assert_awaited_once_with("1 baño")
        assert reply.startswith("📝")
        assert store.get(ADDRESS).extracted_fields.bathrooms == 1
        assert store.get(ADDRESS).missing_required_fields == {"price", "area", "address"}

    @pytest.mark.asyncio
    async def test_new_broker_listing_text_asks_for_address(self, store, orchestrator, extractor, sent):
        extractor.extract_listing.return_value = ExtractedFields.model_validate({
            "property_type": "departamento",
            "price": {"amount": 3500, "currency": "UF"},
            "area": {"total": 60},
            "bedrooms": 2,
            "bathrooms": 1,
        })
        await process_inbound(text("hola"), store=store, orchestrator=orchestrator)

        reply = await process_inbound(text("depa 2 dormitorios, 3500 UF, 60m2, 1 baño"), store=store, orchestrator=orchestrator)

        record = store.get(ADDRESS)
        assert record.missing_required_fields == {"address"}
        assert record.state == CaptureState.VALIDATING
        assert reply == "📝 Me falta: dirección. ¿Me ayudas con eso?"
        sent.assert_awaited_with("whatsapp", ADDRESS, reply)

    @pytest.mark.asyncio
    async def test_reply_uses_record_channel(self, store, orchestrator, sent):
        await process_inbound(text("hola", channel="callbell"), store=store, orchestrator=orchestrator)

        sent.assert_awaited_once_with("callbell", ADDRESS, MSG.WELCOME)

    @pytest.mark.asyncio
    async def test_messages_for_one_address_run_in_order(self, store, orchestrator, extractor, sent):
        await process_inbound(text("hola"), store=store, orchestrator=orchestrator)
        seen = []

        async def slow_extract(body):
            seen.append(f"start {body}")
            await asyncio.sleep(0.01)
            seen.append(f"end {body}")
            return ExtractedFields()

        extractor.extract_listing.side_effect = slow_extract

        await asyncio.gather(
            process_inbound(text("a"), store=store, orchestrator=orchestrator),
            process_inbound(text("b"), store=store, orchestrator=orchestrator),
        )

        assert seen == ["start a", "end a", "start b", "end b"]


class TestApproveCapture:

    @pytest.mark.asyncio
    async def test_unknown_address(self, store, orchestrator, sent):
        with pytest.raises(KeyError):
            await approve_capture("56900000000", store=store, orchestrator=orchestrator)

        assert "56900000000" not in store._locks
        sent.assert_not_called()

    @pytest.mark.asyncio
    async def test_publishes_and_confirms(self, store, orchestrator, sent):
        await process_inbound(text("hola"), store=store, orchestrator=orchestrator)
        sent.reset_mock()

        record, outcome = await approve_capture(ADDRESS, store=store, orchestrator=orchestrator)

        assert record.state == CaptureState.COMPLETED
        assert outcome.results[0].destination == "prop360"
        sent.assert_awaited_once_with("whatsapp", ADDRESS, MSG.FALLBACK_PUBLISH_CONFIRMATION)

    @pytest.mark.asyncio
    async def test_failure_keeps_record_in_store(self, store, orchestrator, publisher, sent):
        await process_inbound(text("hola"), store=store, orchestrator=orchestrator)
        sent.reset_mock()
        publisher.publish.side_effect = PublicationFailure("All destinations failed")

        with pytest.raises(PublicationFailure):
            await approve_capture(ADDRESS, store=store, orchestrator=orchestrator)

        assert store.get(ADDRESS).state == CaptureState.PUBLISHING
        sent.assert_awaited_once_with("whatsapp", ADDRESS, MSG.PUBLISH_FAILED)

    @pytest.mark.asyncio
    async def test_completed_capture_restarts_on_next_message(self, store, orchestrator, sent):
        await process_inbound(text("hola"), store=store, orchestrator=orchestrator)
        first, _ = await approve_capture(ADDRESS, store=store, orchestrator=orchestrator)

        reply = await process_inbound(text("otra propiedad"), store=store, orchestrator=orchestrator)

        assert reply == MSG.WELCOME
        assert store.get(ADDRESS).id != first.id


class TestSendReply:

    @pytest.mark.asyncio
    async def test_unknown_channel(self):
        assert await send_reply("telegram", ADDRESS, "hola") is False

    @pytest.mark.asyncio
    async def test_dispatches_by_channel(self):
        mock_sender = AsyncMock(return_value=True)
        with patch.dict("listing_capture.services.conversation_service.SENDERS", {"callbell": mock_sender}):
            assert await send_reply("callbell", ADDRESS, "hola") is True

        mock_sender.assert_awaited_once_with(ADDRESS, "hola")
