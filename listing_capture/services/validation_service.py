"""
Completeness and plausibility checks for extracted listing data.

Price, area, bathrooms and address are sacred: they are required to publish
and a value outside its plausible range does not count as having one.
Missing nice-to-have fields only produce warnings.
"""
import re
from dataclasses import dataclass, field
from typing import Optional

from listing_capture.models.record import ExtractedFields
from listing_capture.utils.errors import ValidationFailure

REQUIRED_FIELDS = ("price", "area", "bathrooms", "address")

# Plausible price ranges for the Chilean market
PRICE_RANGES = {
    "CLP": (10_000_000, 50_000_000_000),
    "UF": (500, 100_000),
    "USD": (10_000, 50_000_000),
}
AREA_RANGE = (10, 10_000)  # m2
MAX_ROOM_COUNT = 20

FIELD_LABELS = {
    "price": "precio",
    "area": "superficie",
    "bathrooms": "baños",
    "address": "dirección",
    "bedrooms": "dormitorios",
    "parking": "estacionamientos",
}


@dataclass
class CheckResult:
    valid: bool
    value: Optional[float] = None
    error: Optional[str] = None


@dataclass
class ValidationReport:
    ok: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    invalid_fields: set[str] = field(default_factory=set)

    @property
    def failure(self) -> Optional[ValidationFailure]:
        return ValidationFailure(self.errors) if self.errors else None


def is_present(fields: ExtractedFields, name: str) -> bool:
    """Whether a required field carries a concrete value."""
    if name == "price":
        return fields.price is not None and fields.price.amount is not None
    if name == "area":
        return fields.area is not None and fields.area.total is not None
    if name == "bathrooms":
        return fields.bathrooms is not None
    if name == "address":
        address = fields.address
        return address is not None and (bool(address.street) or address.coordinates is not None)
    raise KeyError(name)


def compute_missing(fields: ExtractedFields) -> set[str]:
    return {name for name in REQUIRED_FIELDS if not is_present(fields, name)}


def _to_number(value, pattern: str) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        cleaned = re.sub(pattern, "", value)
        try:
            return float(cleaned)
        except ValueError:
            return None
    return None


def validate_price(amount, currency: Optional[str] = "CLP") -> CheckResult:
    """Check a price against the plausible range for its currency (CLP if unknown)."""
    # "3.500 UF" style thousands separators: dots are dropped
    value = _to_number(amount, r"[^0-9-]")
    if value is None or value <= 0:
        return CheckResult(False, error="Precio inválido o no detectado")

    currency = (currency or "CLP").upper()
    low, high = PRICE_RANGES.get(currency, PRICE_RANGES["CLP"])
    if value < low or value > high:
        return CheckResult(False, value, f"Precio fuera de rango esperado para {currency}: {value:g}")

    return CheckResult(True, value)


def validate_area(area) -> CheckResult:
    value = _to_number(area, r"[^0-9.]")
    if value is None or value <= 0:
        return CheckResult(False, error="Superficie inválida o no detectada")

    low, high = AREA_RANGE
    if value < low or value > high:
        return CheckResult(False, value, f"Superficie fuera de rango: {value:g}m²")

    return CheckResult(True, value)


def validate_count(count, label: str = "habitaciones") -> CheckResult:
    value = _to_number(count, r"[^0-9-]")
    if value is None or value < 0:
        return CheckResult(False, error=f"Cantidad de {label} inválida")

    if value > MAX_ROOM_COUNT:
        return CheckResult(False, value, f"Cantidad de {label} parece incorrecta: {value:g}")

    return CheckResult(True, value)


def validate(fields: ExtractedFields) -> ValidationReport:
    """Range-check the values that are present. Absent required fields are not errors here."""
    errors = []
    warnings = []
    invalid = set()

    def record(name: str, result: CheckResult):
        if not result.valid:
            errors.append(result.error)
            invalid.add(name)

    if fields.price is not None and fields.price.amount is not None:
        record("price", validate_price(fields.price.amount, fields.price.currency))

    if fields.area is not None:
        if fields.area.total is not None:
            record("area", validate_area(fields.area.total))
        if fields.area.usable is not None:
            record("area", validate_area(fields.area.usable))

    for name in ("bathrooms", "bedrooms", "parking"):
        value = getattr(fields, name)
        if value is not None:
            record(name, validate_count(value, FIELD_LABELS[name]))

    if fields.address is None or not fields.address.district:
        warnings.append("No se detectó la comuna")
    if fields.bedrooms is None:
        warnings.append("No se detectó cantidad de dormitorios")

    return ValidationReport(ok=not errors, errors=errors, warnings=warnings, invalid_fields=invalid)
