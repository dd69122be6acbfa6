"""WhatsApp Cloud API webhook: verification and inbound messages."""
from fastapi import APIRouter, Request, Query, HTTPException
from fastapi.responses import PlainTextResponse
from datetime import datetime, timezone
import os
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
from listing_capture.services.whatsapp_service import get_media_url

router = APIRouter()
logger = logging.getLogger(__name__)


def normalize_whatsapp_message(message: dict, contacts: list) -> InboundMessage:
    """Convert one Cloud API message object to an InboundMessage."""
    sender = message["from"]
    contact = next((c for c in contacts if c.get("wa_id") == sender), {})
    msg_type = message.get("type")

    timestamp = datetime.now(timezone.utc)
    if message.get("timestamp"):
        timestamp = datetime.fromtimestamp(int(message["timestamp"]), tz=timezone.utc)

    kind = MessageKind.UNKNOWN
    payload = None
    if msg_type == "text":
        kind, payload = MessageKind.TEXT, TextPayload(body=message["text"]["body"])
    elif msg_type in ("audio", "voice"):
        kind, payload = MessageKind.AUDIO, MediaPayload(media_ref=message[msg_type]["id"])
    elif msg_type == "image":
        kind, payload = MessageKind.IMAGE, MediaPayload(media_ref=message["image"]["id"])
    elif msg_type == "location":
        loc = message["location"]
        kind, payload = MessageKind.LOCATION, LocationPayload(lat=loc["latitude"], lng=loc["longitude"])

    return InboundMessage(
        id=message.get("id", ""),
        timestamp=timestamp,
        sender=sender,
        owner_id=contact.get("profile", {}).get("name") or sender,
        channel="whatsapp",
        kind=kind,
        payload=payload,
    )


@router.get("/webhook")
async def verify_webhook(
    mode: str = Query(None, alias="hub.mode"),
    token: str = Query(None, alias="hub.verify_token"),
    challenge: str = Query(None, alias="hub.challenge"),
):
    """Subscription handshake required by Meta."""
    expected = os.getenv("WHATSAPP_VERIFY_TOKEN")
    if mode == "subscribe" and expected and token == expected:
        logger.info("WhatsApp webhook verified")
        return PlainTextResponse(challenge or "")

    logger.warning("WhatsApp webhook verification failed")
    raise HTTPException(status_code=403, detail="Forbidden")


@router.post("/webhook")
async def whatsapp_webhook(request: Request):
    body = await request.json()

    if body.get("object") != "whatsapp_business_account":
        raise HTTPException(status_code=404, detail="Not a WhatsApp event")

    for entry in body.get("entry", []):
        for change in entry.get("changes", []):
            if change.get("field") != "messages":
                continue
            value = change.get("value", {})
            contacts = value.get("contacts", [])

            for raw in value.get("messages", []):
                if not is_authorized(raw.get("from", "")):
                    logger.info(f"Unauthorized access attempt from {raw.get('from')}")
                    continue

                message = normalize_whatsapp_message(raw, contacts)
                logger.info(f"Received {message.kind.value} message from {message.sender}")

                if message.kind in (MessageKind.AUDIO, MessageKind.IMAGE):
                    url = await get_media_url(message.payload.media_ref)
                    if url:
                        message.payload = MediaPayload(media_ref=url)

                await process_inbound(message)

    return {"ok": True}
