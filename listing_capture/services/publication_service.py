"""
Publication of finished captures to external catalogs.

Each destination is a CatalogAdapter registered by name. Publishing walks
the configured destinations in order and collects one result per
destination; a failing destination does not stop the others.
"""
import os
import logging
from typing import Optional

import httpx

from listing_capture.models.record import (
    CaptureRecord,
    ExtractedFields,
    ListingCopy,
    PublicationOutcome,
    PublicationResult,
)
from listing_capture.services.ai_service import ai_service
from listing_capture.services.maps_service import nearby_selling_points
from listing_capture.utils.errors import PublicationFailure
from listing_capture.utils.messages import MSG
from listing_capture.utils.summary import basic_description, basic_title

logger = logging.getLogger(__name__)

# Example: PUBLICATION_DESTINATIONS=prop360=https://api.prop360.cl/listings,portal=https://...
PUBLICATION_DESTINATIONS = os.getenv("PUBLICATION_DESTINATIONS", "")

COPY_PROMPT = """Eres un experto copywriter inmobiliario en Chile.
Genera una publicación profesional y atractiva para esta propiedad.

Datos de la propiedad:
{fields}

Puntos destacados del barrio:
{selling_points}

Responde SOLO con JSON:
{{
  "title": "Título atractivo de máximo 80 caracteres",
  "description": "Descripción de 3-4 párrafos, profesional pero cálida.",
  "hashtags": ["5 hashtags relevantes"]
}}

Español chileno profesional. No inventes datos que no estén en la información entregada."""


class CatalogAdapter:
    """Base adapter. Subclasses push a listing to one catalog."""

    name = "base"

    async def publish(self, listing: dict) -> dict:
        """Publish and return at least {"id": ..., "url": ...}."""
        raise NotImplementedError


class WebhookCatalogAdapter(CatalogAdapter):
    """Posts the listing as JSON to a catalog's ingestion endpoint."""

    def __init__(self, name: str, url: str, api_key: Optional[str] = None):
        self.name = name
        self.url = url
        self.api_key = api_key

    async def publish(self, listing: dict) -> dict:
        headers = {"Authorization": f"Bearer {self.api_key}"} if self.api_key else {}
        async with httpx.AsyncClient() as client:
            resp = await client.post(self.url, json=listing, headers=headers, timeout=30.0)
            resp.raise_for_status()
            data = resp.json()
        return {"id": data.get("id"), "url": data.get("url")}


# ==================== REGISTRY ====================

adapters: dict[str, CatalogAdapter] = {}


def register_adapter(adapter: CatalogAdapter):
    adapters[adapter.name] = adapter
    logger.info(f"Catalog adapter {adapter.name} registered")


def get_adapter(name: str) -> Optional[CatalogAdapter]:
    return adapters.get(name)


def parse_destinations(raw: str) -> list[tuple[str, str]]:
    destinations = []
    for item in raw.split(","):
        if "=" not in item:
            continue
        name, url = item.split("=", 1)
        destinations.append((name.strip(), url.strip()))
    return destinations


def register_configured_adapters():
    for name, url in parse_destinations(PUBLICATION_DESTINATIONS):
        api_key = os.getenv(f"{name.upper()}_API_KEY")
        register_adapter(WebhookCatalogAdapter(name, url, api_key))


async def publish_to_many(listing: dict, destinations: list[str]) -> list[PublicationResult]:
    """Publish to each destination in order, one result per destination."""
    results = []
    for name in destinations:
        adapter = get_adapter(name)
        if adapter is None:
            results.append(PublicationResult(destination=name, success=False, error=f"Adapter {name} not found"))
            continue

        try:
            data = await adapter.publish(listing)
            results.append(PublicationResult(destination=name, success=True, id=data.get("id"), url=data.get("url")))
        except Exception as e:
            logger.error(f"Publishing to {name} failed: {e}")
            results.append(PublicationResult(destination=name, success=False, error=str(e)))
    return results


# ==================== LISTING ====================

def build_listing(record: CaptureRecord, copy: ListingCopy, selling_points: list[str]) -> dict:
    fields = record.extracted_fields
    return {
        "id": record.id,
        "property_type": fields.property_type or "departamento",
        "operation": fields.operation or "venta",
        "price": fields.price.model_dump() if fields.price else None,
        "area": {**(fields.area.model_dump() if fields.area else {}), "unit": "m2"},
        "bedrooms": fields.bedrooms,
        "bathrooms": fields.bathrooms,
        "parking": fields.parking,
        "storage": fields.storage,
        "address": fields.address.model_dump() if fields.address else {},
        "title": copy.title,
        "description": copy.description,
        "hashtags": copy.hashtags,
        "photos": [p.enhanced_reference or p.reference for p in record.processed_photos],
        "selling_points": fields.selling_points + selling_points,
        "status": "draft",
    }


class PublicationService:
    def __init__(self, generator=None, destinations: Optional[list[str]] = None):
        self.generator = generator or ai_service
        self._destinations = destinations

    @property
    def destinations(self) -> list[str]:
        if self._destinations is not None:
            return self._destinations
        return list(adapters)

    async def generate_copy(self, fields: ExtractedFields, selling_points: list[str]) -> ListingCopy:
        """Listing title and description. Falls back to a plain template when generation fails."""
        prompt = COPY_PROMPT.format(
            fields=fields.model_dump_json(indent=2, exclude_none=True),
            selling_points="\n".join(fields.selling_points + selling_points) or "-",
        )
        try:
            return ListingCopy.model_validate(await self.generator.generate_json(prompt))
        except Exception as e:
            logger.warning(f"Listing copy generation failed, using basic copy: {e}")
            return ListingCopy(
                title=basic_title(fields),
                description=basic_description(fields),
                hashtags=list(MSG.DEFAULT_HASHTAGS),
            )

    async def publish(self, record: CaptureRecord) -> PublicationOutcome:
        """Publish a finished capture. Raises PublicationFailure when nothing got published."""
        logger.info(f"Publishing capture {record.id}")

        destinations = self.destinations
        if not destinations:
            raise PublicationFailure("No publication destinations configured")

        coordinates = record.extracted_fields.address.coordinates if record.extracted_fields.address else None
        selling_points = await nearby_selling_points(coordinates)
        copy = await self.generate_copy(record.extracted_fields, selling_points)

        listing = build_listing(record, copy, selling_points)
        results = await publish_to_many(listing, destinations)

        logger.info(f"Publication of {record.id}: {[(r.destination, r.success) for r in results]}")

        if not any(r.success for r in results):
            errors = "; ".join(f"{r.destination}: {r.error}" for r in results)
            raise PublicationFailure(f"All destinations failed: {errors}")

        return PublicationOutcome(listing=copy, results=results)


register_configured_adapters()
publication_service = PublicationService()
