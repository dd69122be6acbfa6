"""
Glue between channel webhooks, the capture store and the orchestrator.

Everything done for one address happens under that address's lock, so
messages from one broker are processed strictly in arrival order while
different brokers proceed in parallel.
"""
import logging

from listing_capture.models.record import CaptureRecord, InboundMessage, PublicationOutcome
from listing_capture.services.callbell_service import send_callbell_text
from listing_capture.services.orchestrator import CaptureOrchestrator, orchestrator as default_orchestrator
from listing_capture.services.response_service import TemplateKey
from listing_capture.services.store import CaptureStore, capture_store
from listing_capture.services.whatsapp_service import send_whatsapp_text
from listing_capture.utils.errors import PublicationFailure
from listing_capture.utils.messages import MSG

logger = logging.getLogger(__name__)

SENDERS = {
    "whatsapp": send_whatsapp_text,
    "callbell": send_callbell_text,
}


async def send_reply(channel: str, to: str, text_content: str) -> bool:
    sender = SENDERS.get(channel)
    if sender is None:
        logger.error(f"No sender for channel {channel}")
        return False
    return await sender(to, text_content)


async def process_inbound(
    message: InboundMessage,
    store: CaptureStore = None,
    orchestrator: CaptureOrchestrator = None,
) -> str:
    """Run one inbound message through the capture flow and send the reply."""
    store = store or capture_store
    orchestrator = orchestrator or default_orchestrator

    async with store.lock_for(message.sender):
        record, created = store.get_or_create(message.sender, message.owner_id, message.channel)

        if created:
            reply = await orchestrator.start(record)
        else:
            record, reply = await orchestrator.handle_message(message, record)
        store.put(record)

        await send_reply(record.channel, record.channel_address, reply)

    return reply


async def approve_capture(
    address: str,
    store: CaptureStore = None,
    orchestrator: CaptureOrchestrator = None,
) -> tuple[CaptureRecord, PublicationOutcome]:
    """Operator approval: publish the capture for an address.

    Raises KeyError for an unknown address and PublicationFailure when
    publishing fails; the broker is told about the failure either way.
    """
    store = store or capture_store
    orchestrator = orchestrator or default_orchestrator

    # No lock is created for addresses that never wrote to us
    if store.get(address) is None:
        raise KeyError(address)

    async with store.lock_for(address):
        record = store.get(address)
        if record is None:
            raise KeyError(address)

        try:
            record, outcome = await orchestrator.handle_approval(record)
        except PublicationFailure:
            await send_reply(record.channel, record.channel_address, MSG.PUBLISH_FAILED)
            raise
        finally:
            store.put(record)

        confirmation = await orchestrator.responder.render(TemplateKey.PUBLISH_CONFIRMATION, record)
        await send_reply(record.channel, record.channel_address, confirmation)

    return record, outcome
