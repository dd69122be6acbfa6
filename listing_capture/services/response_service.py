"""
Chat replies for the capture conversation.

Two stages: the caller picks a template key, which fixes a deterministic
fallback text; then the AI service may enrich it. Any failure in the
second stage returns the fallback, so it never affects control flow.
"""
import logging
from enum import Enum
from typing import Iterable, Optional

from listing_capture.models.record import CaptureRecord
from listing_capture.services.ai_service import ai_service
from listing_capture.utils.messages import MSG
from listing_capture.utils.summary import build_summary, field_labels

logger = logging.getLogger(__name__)


class TemplateKey(str, Enum):
    WELCOME = "welcome"
    REQUEST_MISSING = "request_missing"
    CAPTURE_COMPLETE = "capture_complete"
    PUBLISH_CONFIRMATION = "publish_confirmation"


PROMPTS = {
    TemplateKey.WELCOME: """Eres un asistente de captación inmobiliaria amigable y eficiente.
El corredor acaba de iniciar una nueva captación.
Dale la bienvenida y explica brevemente que puede enviar audio, fotos, ubicación o escribir los datos.
Sé breve, usa emojis y español chileno informal pero profesional.""",

    TemplateKey.REQUEST_MISSING: """Eres un asistente de captación inmobiliaria.
Datos que ya tenemos:
{fields}

Campos que aún faltan o hay que confirmar: {missing}

Genera un mensaje breve pidiendo esa información de forma amigable.
Da tips si aplica (ej: "puedes enviar un audio describiendo el depa").
Español chileno informal pero profesional, con emojis.""",

    TemplateKey.CAPTURE_COMPLETE: """Eres un asistente de captación inmobiliaria.
El corredor completó la captación con estos datos:
{fields}

Genera un resumen claro y ordenado de la propiedad y pregunta si quiere publicar.
Español chileno informal pero profesional.""",

    TemplateKey.PUBLISH_CONFIRMATION: """Eres un asistente de captación inmobiliaria.
La propiedad fue publicada en:
{destinations}

Genera un mensaje de confirmación breve y celebratorio. Incluye los links si están disponibles.""",
}


FALLBACKS = {
    TemplateKey.WELCOME: MSG.WELCOME,
    TemplateKey.REQUEST_MISSING: MSG.FALLBACK_REQUEST_MISSING,
    TemplateKey.CAPTURE_COMPLETE: MSG.FALLBACK_CAPTURE_COMPLETE,
    TemplateKey.PUBLISH_CONFIRMATION: MSG.FALLBACK_PUBLISH_CONFIRMATION,
}


def fallback_text(key: TemplateKey, missing: Iterable[str] = ()) -> str:
    """Deterministic text for a template key."""
    return FALLBACKS[key].format(fields=field_labels(missing))


class ResponseService:
    def __init__(self, generator=None):
        self.generator = generator or ai_service

    def build_prompt(self, key: TemplateKey, record: CaptureRecord, missing: Iterable[str]) -> str:
        fields = "\n".join(build_summary(record.extracted_fields)) or "(sin datos aún)"
        destinations = ""
        if record.publication:
            destinations = "\n".join(
                MSG.PUBLISHED_LINE.format(destination=r.destination, url=r.url or "")
                for r in record.publication.results if r.success
            )
        return PROMPTS[key].format(fields=fields, missing=field_labels(missing), destinations=destinations)

    async def render(self, key: TemplateKey, record: CaptureRecord, missing: Optional[Iterable[str]] = None) -> str:
        missing = list(record.missing_required_fields if missing is None else missing)
        fallback = fallback_text(key, missing)

        try:
            return await self.generator.generate_text(self.build_prompt(key, record, missing))
        except Exception as e:
            logger.warning(f"Response generation failed for {key.value}, using fallback: {e}")
            return fallback


response_service = ResponseService()
