"""Callbell API client for sending WhatsApp messages through the aggregator."""
import os
import logging

import httpx

logger = logging.getLogger(__name__)

CALLBELL_API_KEY = os.getenv("CALLBELL_API_KEY")
CALLBELL_API_URL = "https://api.callbell.eu/v1"


async def send_callbell_text(to: str, text_content: str) -> bool:
    """Send a text message via Callbell. Logs and returns False on failure."""
    try:
        async with httpx.AsyncClient() as client:
            resp = await client.post(
                f"{CALLBELL_API_URL}/messages/send",
                headers={"Authorization": f"Bearer {CALLBELL_API_KEY}"},
                json={
                    "to": to,
                    "from": "whatsapp",
                    "type": "text",
                    "content": {"text": text_content}
                },
                timeout=15.0
            )
            if resp.status_code not in (200, 201):
                logger.warning(f"Callbell send failed: {resp.status_code} {resp.text}")
                return False
            return True
    except Exception as e:
        logger.error(f"Failed to send Callbell message: {e}")
        return False
