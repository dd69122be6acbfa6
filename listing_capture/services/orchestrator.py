"""
Capture orchestrator: the conversation state machine.

handle_message takes one normalized inbound message and the current record,
dispatches on the message kind, folds the extracted data into the record and
picks the reply. Collaborator failures never escape: the record moves to
ERROR and the user gets an apology, then simply resends.

handle_approval publishes a finished capture. Its failures do escape, since
approval is an explicit operator action expecting a definite outcome.
"""
import logging

from listing_capture.models.record import (
    Address,
    CaptureRecord,
    CaptureState,
    Coordinates,
    ExtractedFields,
    InboundMessage,
    MessageKind,
    PublicationOutcome,
)
from listing_capture.services.ai_service import ai_service
from listing_capture.services.merge_service import merge_fields, select_photos
from listing_capture.services.photo_service import photo_service
from listing_capture.services.publication_service import publication_service
from listing_capture.services.response_service import TemplateKey, response_service
from listing_capture.services.validation_service import compute_missing, validate
from listing_capture.utils.errors import PublicationFailure, UnrecognizedInput
from listing_capture.utils.messages import MSG

logger = logging.getLogger(__name__)


class CaptureOrchestrator:
    def __init__(self, extractor=None, photo_processor=None, responder=None, publisher=None):
        self.extractor = extractor or ai_service
        self.photo_processor = photo_processor or photo_service
        self.responder = responder or response_service
        self.publisher = publisher or publication_service

    async def start(self, record: CaptureRecord) -> str:
        """First contact: the opening message is not data, just greet."""
        record.transition(CaptureState.RECEIVING)
        return await self.responder.render(TemplateKey.WELCOME, record)

    async def handle_message(self, message: InboundMessage, record: CaptureRecord) -> tuple[CaptureRecord, str]:
        """Process one inbound message. Returns the updated record and the reply text."""
        logger.info(f"Message {message.id} ({message.kind.value}) for capture {record.id} in state {record.state.value}")

        try:
            if message.kind == MessageKind.TEXT:
                await self._handle_text(message, record)
            elif message.kind == MessageKind.AUDIO:
                await self._handle_audio(message, record)
            elif message.kind == MessageKind.IMAGE:
                await self._handle_image(message, record)
            elif message.kind == MessageKind.LOCATION:
                self._handle_location(message, record)
            else:
                raise UnrecognizedInput(message.kind.value)
        except UnrecognizedInput:
            return record, MSG.CLARIFICATION
        except Exception as e:
            logger.error(f"Error processing message {message.id} for capture {record.id}: {e}", exc_info=True)
            record.transition(CaptureState.ERROR)
            return record, MSG.APOLOGY

        report = validate(record.extracted_fields)
        for warning in report.warnings:
            logger.info(f"Capture {record.id}: {warning}")
        if report.failure:
            logger.warning(f"Capture {record.id} has implausible values: {report.failure}")

        if not record.missing_required_fields and report.ok:
            record.transition(CaptureState.READY_TO_PUBLISH)
            reply = await self.responder.render(TemplateKey.CAPTURE_COMPLETE, record)
        else:
            # Implausible values block completeness too, so ask for them again
            to_request = record.missing_required_fields | report.invalid_fields
            reply = await self.responder.render(TemplateKey.REQUEST_MISSING, record, to_request)

        return record, reply

    async def _handle_text(self, message: InboundMessage, record: CaptureRecord):
        extracted = await self.extractor.extract_listing(message.payload.body)
        self._apply(record, extracted)
        record.transition(CaptureState.VALIDATING)

    async def _handle_audio(self, message: InboundMessage, record: CaptureRecord):
        record.received_audio_refs.append(message.payload.media_ref)
        record.transition(CaptureState.PROCESSING_AUDIO)

        extracted = await self.extractor.extract_listing_from_audio(message.payload.media_ref)
        self._apply(record, extracted)
        record.transition(CaptureState.VALIDATING)

    async def _handle_image(self, message: InboundMessage, record: CaptureRecord):
        ref = message.payload.media_ref
        if any(p.reference == ref for p in record.processed_photos):
            # Webhook redelivery of a photo we already scored
            logger.info(f"Photo {ref} already processed for capture {record.id}")
            record.transition(CaptureState.RECEIVING)
            return

        if ref not in record.received_photo_refs:
            record.received_photo_refs.append(ref)
        record.transition(CaptureState.PROCESSING_PHOTOS)

        photo = await self.photo_processor.process_photo(ref)
        if photo.accepted:
            record.processed_photos = select_photos(record.processed_photos + [photo])
        else:
            logger.info(f"Photo {photo.reference} not accepted for capture {record.id}")
        record.transition(CaptureState.RECEIVING)

    def _handle_location(self, message: InboundMessage, record: CaptureRecord):
        coordinates = Coordinates(lat=message.payload.lat, lng=message.payload.lng)
        self._apply(record, ExtractedFields(address=Address(coordinates=coordinates)))
        record.transition(CaptureState.RECEIVING)

    def _apply(self, record: CaptureRecord, incoming: ExtractedFields):
        record.extracted_fields = merge_fields(record.extracted_fields, incoming)
        record.missing_required_fields = compute_missing(record.extracted_fields)

    async def handle_approval(self, record: CaptureRecord) -> tuple[CaptureRecord, PublicationOutcome]:
        """Publish a capture on operator approval. Raises PublicationFailure; the record then stays PUBLISHING."""
        logger.info(f"Approval for capture {record.id} in state {record.state.value}")

        record.transition(CaptureState.AWAITING_APPROVAL)
        record.transition(CaptureState.PUBLISHING)

        try:
            outcome = await self.publisher.publish(record)
        except PublicationFailure:
            raise
        except Exception as e:
            raise PublicationFailure(str(e)) from e

        record.publication = outcome
        record.transition(CaptureState.COMPLETED)
        return record, outcome


orchestrator = CaptureOrchestrator()
