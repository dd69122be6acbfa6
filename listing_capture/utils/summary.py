"""Shared text builders for chat prompts, fallbacks and listing copy."""
from listing_capture.models.record import ExtractedFields
from listing_capture.services.validation_service import FIELD_LABELS, REQUIRED_FIELDS
from listing_capture.utils.messages import MSG


def field_labels(names) -> str:
    """Human labels for field names, required fields first in canonical order."""
    names = set(names)
    ordered = [n for n in REQUIRED_FIELDS if n in names] + sorted(names - set(REQUIRED_FIELDS))
    return ", ".join(FIELD_LABELS.get(n, n) for n in ordered)


def build_summary(fields: ExtractedFields) -> list[str]:
    """One line per known attribute, in the order a broker would read them."""
    lines = []

    if fields.property_type or fields.operation:
        lines.append(" ".join(filter(None, [fields.property_type, fields.operation and f"en {fields.operation}"])))
    if fields.price and fields.price.amount is not None:
        lines.append(f"💰 {fields.price.amount:,.0f} {fields.price.currency or 'CLP'}".replace(",", "."))
    if fields.area and fields.area.total is not None:
        usable = f" ({fields.area.usable:g} útiles)" if fields.area.usable is not None else ""
        lines.append(f"📐 {fields.area.total:g} m²{usable}")
    if fields.bedrooms is not None:
        lines.append(f"🛏️ {fields.bedrooms} dormitorios")
    if fields.bathrooms is not None:
        lines.append(f"🛁 {fields.bathrooms} baños")
    if fields.parking:
        lines.append(f"🚗 {fields.parking} estacionamientos")
    if fields.storage:
        lines.append("📦 Bodega")
    if fields.address:
        street = " ".join(filter(None, [fields.address.street, fields.address.number]))
        place = ", ".join(filter(None, [street, fields.address.district]))
        if place:
            lines.append(f"📍 {place}")
        elif fields.address.coordinates:
            lines.append(f"📍 {fields.address.coordinates.lat:.5f}, {fields.address.coordinates.lng:.5f}")

    return lines


def basic_title(fields: ExtractedFields) -> str:
    title = (fields.property_type or MSG.DEFAULT_PROPERTY_TYPE).capitalize()
    if fields.address and fields.address.district:
        title += f" en {fields.address.district}"
    if fields.area and fields.area.total:
        title += f" | {fields.area.total:g}m²"
    return title


def basic_description(fields: ExtractedFields) -> str:
    parts = []
    if fields.bedrooms:
        parts.append(f"{fields.bedrooms} dormitorios")
    if fields.bathrooms:
        parts.append(f"{fields.bathrooms} baños")
    if fields.area and fields.area.total:
        parts.append(f"{fields.area.total:g}m² totales")
    if fields.parking:
        parts.append(f"{fields.parking} estacionamientos")
    return MSG.DESCRIPTION_INTRO.format(parts=", ".join(parts))
