"""
Centralized Spanish (Chile) message strings for the capture assistant.

Usage:
    from listing_capture.utils.messages import MSG

    response = MSG.FALLBACK_REQUEST_MISSING.format(fields="precio, dirección")
"""


class Messages:
    """All user-facing messages."""

    # ==================== CONVERSATION START ====================
    WELCOME = (
        "¡Hola! 👋 Soy tu asistente de captación.\n\n"
        "📸 Mándame fotos de la propiedad\n"
        "🎙️ Graba un audio describiendo el depa\n"
        "📍 Comparte la ubicación\n"
        "✍️ O escríbeme los datos directamente\n\n"
        "¡Empecemos! ¿Qué propiedad vamos a captar?"
    )

    # ==================== FIXED RESPONSES ====================
    CLARIFICATION = "🤔 No entendí ese tipo de mensaje. Puedes enviarme texto, audio, fotos o ubicación."
    APOLOGY = "😅 Hubo un problema procesando tu mensaje. ¿Puedes intentar de nuevo?"

    # ==================== TEMPLATE FALLBACKS ====================
    FALLBACK_REQUEST_MISSING = "📝 Me falta: {fields}. ¿Me ayudas con eso?"
    FALLBACK_CAPTURE_COMPLETE = "✅ ¡Tengo todos los datos! ¿Publicamos la propiedad?"
    FALLBACK_PUBLISH_CONFIRMATION = "🎉 ¡Publicado con éxito!"

    # ==================== PUBLICATION ====================
    PUBLISH_FAILED = "❌ No pude publicar la propiedad. Inténtalo de nuevo más tarde."
    PUBLISHED_LINE = "• {destination}: {url}"

    # ==================== LISTING COPY ====================
    DEFAULT_PROPERTY_TYPE = "Propiedad"
    DEFAULT_HASHTAGS = ["#propiedades", "#inmobiliaria", "#chile"]
    DESCRIPTION_INTRO = "Excelente propiedad con {parts}."
    NEARBY = "A {distance}m de {name}"


# Singleton instance for easy import
MSG = Messages()
