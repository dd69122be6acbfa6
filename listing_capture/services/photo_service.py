"""
Photo processing: classify a property photo, score it, and screen it.

The vision model answers with a category, its confidence and a quality
breakdown; the score combines both and favours photos that show a
recognizable room.
"""
import base64
import json
import logging

from listing_capture.models.record import ProcessedPhoto
from listing_capture.services.ai_service import ai_service, OPENAI_MODEL
from listing_capture.services.media_service import download_media
from listing_capture.utils.errors import ExtractionFailure

logger = logging.getLogger(__name__)

CATEGORIES = (
    "fachada",
    "living",
    "cocina",
    "dormitorio",
    "bano",
    "terraza",
    "vista",
    "plano",
    "otro",
)

PHOTO_PROMPT = f"""
Eres un fotógrafo inmobiliario. Evalúa la foto y responde SOLO con JSON:
{{
  "category": uno de {list(CATEGORIES)},
  "confidence": número entre 0 y 1,
  "brightness": 0-100,
  "sharpness": 0-100,
  "composition": 0-100,
  "inappropriate": true | false,
  "sensitive_data": true | false
}}
"sensitive_data" es true si se ven patentes de autos, documentos o RUT legibles.
"""


def quality_score(brightness: float, sharpness: float, composition: float) -> float:
    return brightness * 0.3 + sharpness * 0.4 + composition * 0.3


def photo_score(category: str, confidence: float, quality: float) -> float:
    weight = 1.2 if category != "otro" else 1.0
    return min(100.0, (confidence * 40 + quality * 60 / 100) * weight)


class PhotoService:
    async def process_photo(self, media_ref: str) -> ProcessedPhoto:
        """Classify and score one photo. Raises ExtractionFailure if the model is unavailable."""
        if not ai_service.client:
            raise ExtractionFailure("OpenAI client not initialized")

        content = await download_media(media_ref)
        data_url = "data:image/jpeg;base64," + base64.b64encode(content).decode()

        response = await ai_service.client.chat.completions.create(
            model=OPENAI_MODEL,
            messages=[{
                "role": "user",
                "content": [
                    {"type": "text", "text": PHOTO_PROMPT},
                    {"type": "image_url", "image_url": {"url": data_url}}
                ]
            }],
            response_format={"type": "json_object"}
        )

        try:
            analysis = json.loads(response.choices[0].message.content)
        except (TypeError, json.JSONDecodeError) as e:
            raise ExtractionFailure(f"Unparsable photo analysis: {e}") from e

        return build_processed_photo(media_ref, analysis)


def build_processed_photo(media_ref: str, analysis: dict) -> ProcessedPhoto:
    category = analysis.get("category")
    if category not in CATEGORIES:
        category = "otro"

    quality = quality_score(
        float(analysis.get("brightness") or 0),
        float(analysis.get("sharpness") or 0),
        float(analysis.get("composition") or 0),
    )
    score = photo_score(category, float(analysis.get("confidence") or 0), quality)

    accepted = not analysis.get("inappropriate") and not analysis.get("sensitive_data")
    if not accepted:
        logger.warning(f"Photo {media_ref} rejected: {analysis}")

    return ProcessedPhoto(
        reference=media_ref,
        # No enhancement step yet; the received photo is published as is
        enhanced_reference=media_ref,
        category=category,
        score=round(score, 1),
        accepted=accepted,
    )


photo_service = PhotoService()
