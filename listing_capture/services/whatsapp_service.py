"""WhatsApp Cloud API client: outbound text and media URL lookup."""
import os
import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

WHATSAPP_TOKEN = os.getenv("WHATSAPP_TOKEN")
WHATSAPP_PHONE_NUMBER_ID = os.getenv("WHATSAPP_PHONE_NUMBER_ID")
GRAPH_API_URL = "https://graph.facebook.com/v18.0"

# WhatsApp rejects text bodies longer than this
MAX_TEXT_LENGTH = 4096


def _headers() -> dict:
    return {"Authorization": f"Bearer {WHATSAPP_TOKEN}"}


async def send_whatsapp_text(to: str, text_content: str) -> bool:
    """Send a text message. Logs and returns False on failure."""
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                f"{GRAPH_API_URL}/{WHATSAPP_PHONE_NUMBER_ID}/messages",
                headers=_headers(),
                json={
                    "messaging_product": "whatsapp",
                    "recipient_type": "individual",
                    "to": to,
                    "type": "text",
                    "text": {"body": text_content[:MAX_TEXT_LENGTH]}
                },
                timeout=15.0
            )
            if resp.status_code != 200:
                logger.warning(f"WhatsApp send failed: {resp.status_code} {resp.text}")
                return False
            return True
    except Exception as e:
        logger.error(f"Failed to send WhatsApp message: {e}")
        return False


async def get_media_url(media_id: str) -> Optional[str]:
    """Resolve a media id from a webhook to its temporary download URL. Logs and returns None on failure."""
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.get(f"{GRAPH_API_URL}/{media_id}", headers=_headers(), timeout=15.0)
            if resp.status_code != 200:
                logger.warning(f"WhatsApp media lookup failed for {media_id}: {resp.status_code}")
                return None
            return resp.json().get("url")
    except Exception as e:
        logger.error(f"Failed to resolve WhatsApp media {media_id}: {e}")
        return None
