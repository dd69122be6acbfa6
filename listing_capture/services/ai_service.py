from openai import AsyncOpenAI
import os
import json
import logging
import tempfile

from pydantic import ValidationError

from listing_capture.models.record import ExtractedFields
from listing_capture.services.media_service import download_media
from listing_capture.utils.errors import ExtractionFailure

logger = logging.getLogger(__name__)

OPENAI_MODEL = os.getenv("OPENAI_MODEL", "gpt-4o-mini")
OPENAI_TRANSCRIBE_MODEL = os.getenv("OPENAI_TRANSCRIBE_MODEL", "gpt-4o-mini-transcribe")

EXTRACTION_PROMPT = """
Eres un experto en extracción de datos inmobiliarios de Chile.
Analiza el texto (transcripción de audio o mensaje directo) y extrae la información de la propiedad.

REGLAS CRÍTICAS:
1. NO inventes datos. Si algo no se menciona, déjalo null.
2. Precio, m² y baños son SAGRADOS: solo extráelos si se mencionan explícitamente.
3. Interpreta jerga chilena: "depa" = departamento, "estaciona" = estacionamiento, etc.
4. Para precios: "150 palos" = 150000000 CLP, "2.500 UF" = 2500 UF.

Responde SOLO con un JSON válido con esta estructura (todas las claves presentes):
{
  "property_type": "departamento" | "casa" | "oficina" | "terreno" | "local" | "bodega" | "estacionamiento" | null,
  "operation": "venta" | "arriendo" | null,
  "price": {"amount": number | null, "currency": "CLP" | "UF" | "USD" | null},
  "area": {"total": number | null, "usable": number | null},
  "bedrooms": number | null,
  "bathrooms": number | null,
  "parking": number | null,
  "storage": boolean | null,
  "address": {"street": string | null, "number": string | null, "district": string | null},
  "summary": "resumen breve de lo mencionado" | null,
  "selling_points": ["puntos destacados mencionados"]
}
"""


class AIService:
    def __init__(self):
        self.api_key = os.getenv("OPENAI_API_KEY")
        self.client = None
        if self.api_key:
            self.client = AsyncOpenAI(api_key=self.api_key)

    async def transcribe_voice(self, file_path: str) -> str:
        """Transcribes an audio file using OpenAI transcription."""
        if not self.client:
            raise ExtractionFailure("OpenAI client not initialized")

        with open(file_path, "rb") as audio_file:
            transcript = await self.client.audio.transcriptions.create(
                model=OPENAI_TRANSCRIBE_MODEL,
                file=audio_file
            )
            return transcript.text

    async def extract_listing(self, text: str) -> ExtractedFields:
        """Extract listing fields from free text. Fields not mentioned come back as None."""
        if not self.client:
            raise ExtractionFailure("OpenAI client not initialized")

        response = await self.client.chat.completions.create(
            model=OPENAI_MODEL,
            messages=[
                {"role": "system", "content": EXTRACTION_PROMPT},
                {"role": "user", "content": text}
            ],
            response_format={"type": "json_object"},
            temperature=0
        )

        return parse_extraction(response.choices[0].message.content)

    async def extract_listing_from_audio(self, media_ref: str) -> ExtractedFields:
        """Download a voice note, transcribe it and extract listing fields."""
        content = await download_media(media_ref)

        with tempfile.NamedTemporaryFile(delete=False, suffix=".ogg") as tmp:
            tmp.write(content)
            tmp_name = tmp.name

        try:
            transcription = await self.transcribe_voice(tmp_name)
            logger.info(f"Transcription: {transcription}")
            return await self.extract_listing(transcription)
        finally:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)

    async def generate_text(self, prompt: str, temperature: float = 0.7) -> str:
        """Free-form generation used for chat replies and listing copy."""
        if not self.client:
            raise RuntimeError("OpenAI client not initialized")

        response = await self.client.chat.completions.create(
            model=OPENAI_MODEL,
            messages=[{"role": "user", "content": prompt}],
            temperature=temperature
        )

        text = response.choices[0].message.content
        if not text:
            raise RuntimeError("Empty completion")
        return text.strip()

    async def generate_json(self, prompt: str, temperature: float = 0.7) -> dict:
        if not self.client:
            raise RuntimeError("OpenAI client not initialized")

        response = await self.client.chat.completions.create(
            model=OPENAI_MODEL,
            messages=[{"role": "user", "content": prompt}],
            response_format={"type": "json_object"},
            temperature=temperature
        )

        return json.loads(response.choices[0].message.content)


def parse_extraction(raw: str) -> ExtractedFields:
    """Parse the model's JSON answer into ExtractedFields."""
    try:
        data = json.loads(raw)
    except (TypeError, json.JSONDecodeError) as e:
        raise ExtractionFailure(f"Unparsable extraction output: {e}") from e

    if not isinstance(data, dict):
        raise ExtractionFailure("Extraction output is not a JSON object")

    if data.get("selling_points") is None:
        data["selling_points"] = []

    try:
        return ExtractedFields.model_validate(data)
    except ValidationError as e:
        raise ExtractionFailure(f"Extraction output does not match field shape: {e}") from e


ai_service = AIService()
