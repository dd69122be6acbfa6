"""Callbell webhook: inbound WhatsApp messages relayed by the aggregator."""
from fastapi import APIRouter, Request
from datetime import datetime, timezone
import logging

from listing_capture.models.record import (
    InboundMessage,
    LocationPayload,
    MediaPayload,
    MessageKind,
    TextPayload,
)
from listing_capture.services.auth_service import is_authorized
from listing_capture.services.conversation_service import process_inbound

router = APIRouter()
logger = logging.getLogger(__name__)


def normalize_callbell_message(message: dict, contact: dict) -> InboundMessage:
    """Convert a Callbell message payload to an InboundMessage."""
    msg_type = message.get("type")

    kind = MessageKind.UNKNOWN
    payload = None
    if msg_type == "text":
        kind, payload = MessageKind.TEXT, TextPayload(body=message.get("text") or "")
    elif msg_type in ("audio", "voice") and message.get("mediaUrl"):
        kind, payload = MessageKind.AUDIO, MediaPayload(media_ref=message["mediaUrl"])
    elif msg_type == "image" and message.get("mediaUrl"):
        kind, payload = MessageKind.IMAGE, MediaPayload(media_ref=message["mediaUrl"])
    elif msg_type == "location":
        kind, payload = MessageKind.LOCATION, LocationPayload(lat=message["latitude"], lng=message["longitude"])

    return InboundMessage(
        id=message.get("uuid", ""),
        timestamp=message.get("createdAt") or datetime.now(timezone.utc),
        sender=contact["phone"],
        owner_id=contact.get("name") or contact["phone"],
        channel="callbell",
        kind=kind,
        payload=payload,
    )


@router.post("/webhook")
async def callbell_webhook(request: Request):
    event = await request.json()
    event_type = event.get("type")

    if event_type == "message_status_updated":
        logger.debug(f"Message status updated: {event.get('payload')}")
        return {"status": "ok"}

    if event_type != "message_created":
        logger.debug(f"Unhandled Callbell event: {event_type}")
        return {"status": "ok"}

    payload = event.get("payload", {})
    message = payload.get("message", {})
    contact = payload.get("contact", {})

    # Only inbound messages, not the ones we sent
    if message.get("direction") != "in" or not contact.get("phone"):
        return {"status": "ok"}

    if not is_authorized(contact["phone"]):
        logger.info(f"Unauthorized access attempt from {contact['phone']}")
        return {"status": "ok"}

    inbound = normalize_callbell_message(message, contact)
    logger.info(f"Received {inbound.kind.value} message from {inbound.sender} via Callbell")
    await process_inbound(inbound)

    return {"status": "ok"}
