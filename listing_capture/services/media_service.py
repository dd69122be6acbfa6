"""Download inbound media (voice notes, photos) referenced by channel adapters."""
import os
import logging
from urllib.parse import urlparse

import httpx

logger = logging.getLogger(__name__)

WHATSAPP_TOKEN = os.getenv("WHATSAPP_TOKEN")

# Meta serves media only with the business token attached
_META_HOSTS = ("facebook.com", "fbsbx.com", "whatsapp.net")


def auth_headers_for(url: str) -> dict:
    host = urlparse(url).hostname or ""
    if WHATSAPP_TOKEN and any(host == h or host.endswith("." + h) for h in _META_HOSTS):
        return {"Authorization": f"Bearer {WHATSAPP_TOKEN}"}
    return {}


async def download_media(media_ref: str) -> bytes:
    """Fetch the bytes behind a media URL. Raises on HTTP errors."""
    logger.debug(f"Downloading media {media_ref}")
    async with httpx.AsyncClient(follow_redirects=True) as client:
        resp = await client.get(media_ref, headers=auth_headers_for(media_ref), timeout=30.0)
        resp.raise_for_status()
        return resp.content
