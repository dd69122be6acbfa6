"""
Pydantic models for an in-flight capture.

The extracted fields are a tree of groups where every leaf is optional:
None means "not mentioned yet", never a guessed default.
"""
import math
import os
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

CAPTURE_TTL_HOURS = int(os.getenv("CAPTURE_TTL_HOURS", "24"))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CaptureState(str, Enum):
    INITIAL = "initial"
    RECEIVING = "receiving"
    PROCESSING_AUDIO = "processing_audio"
    PROCESSING_PHOTOS = "processing_photos"
    VALIDATING = "validating"
    READY_TO_PUBLISH = "ready_to_publish"
    AWAITING_APPROVAL = "awaiting_approval"
    PUBLISHING = "publishing"
    COMPLETED = "completed"
    ERROR = "error"


# ==================== EXTRACTED FIELDS ====================

class Price(BaseModel):
    amount: Optional[float] = None
    currency: Optional[str] = None  # CLP, UF, USD

    @model_validator(mode="before")
    @classmethod
    def drop_orphan_currency(cls, data):
        # Extractors echo a default currency even when no price was said,
        # so a currency correction only sticks when the amount is restated
        if isinstance(data, dict) and data.get("amount") is None:
            return {**data, "currency": None}
        return data


class Area(BaseModel):
    total: Optional[float] = None
    usable: Optional[float] = None


class Coordinates(BaseModel):
    lat: float
    lng: float


class Address(BaseModel):
    # Extractors answer "number": 1234 as often as "1234"
    model_config = ConfigDict(coerce_numbers_to_str=True)

    street: Optional[str] = None
    number: Optional[str] = None
    district: Optional[str] = None
    coordinates: Optional[Coordinates] = None


class ExtractedFields(BaseModel):
    """Everything known about the property so far."""

    property_type: Optional[str] = None
    operation: Optional[str] = None
    price: Optional[Price] = None
    area: Optional[Area] = None
    bedrooms: Optional[int] = None
    bathrooms: Optional[int] = None
    parking: Optional[int] = None
    storage: Optional[bool] = None
    address: Optional[Address] = None
    summary: Optional[str] = None
    selling_points: list[str] = Field(default_factory=list)

    @field_validator("bedrooms", "bathrooms", "parking", mode="before")
    @classmethod
    def whole_room_count(cls, value):
        # "1.5 baños" is a full bath plus a half bath; count it as two rooms
        if isinstance(value, float):
            return math.ceil(value)
        return value


# ==================== PHOTOS ====================

class ProcessedPhoto(BaseModel):
    reference: str
    enhanced_reference: str
    category: str = "otro"
    score: float = 0.0
    accepted: bool = True


# ==================== INBOUND MESSAGES ====================

class MessageKind(str, Enum):
    TEXT = "text"
    AUDIO = "audio"
    IMAGE = "image"
    LOCATION = "location"
    UNKNOWN = "unknown"


class TextPayload(BaseModel):
    body: str


class MediaPayload(BaseModel):
    media_ref: str


class LocationPayload(BaseModel):
    lat: float
    lng: float


_PAYLOAD_TYPES = {
    MessageKind.TEXT: TextPayload,
    MessageKind.AUDIO: MediaPayload,
    MessageKind.IMAGE: MediaPayload,
    MessageKind.LOCATION: LocationPayload,
    MessageKind.UNKNOWN: type(None),
}


class InboundMessage(BaseModel):
    """Channel-independent inbound message. Adapters build this from their wire format."""

    id: str
    timestamp: datetime = Field(default_factory=utcnow)
    sender: str
    owner_id: Optional[str] = None
    channel: str = "whatsapp"
    kind: MessageKind
    payload: Union[TextPayload, MediaPayload, LocationPayload, None] = None

    @model_validator(mode="after")
    def payload_matches_kind(self):
        expected = _PAYLOAD_TYPES[self.kind]
        if not isinstance(self.payload, expected):
            raise ValueError(f"{self.kind.value} message requires {expected.__name__} payload")
        return self


# ==================== PUBLICATION ====================

class ListingCopy(BaseModel):
    title: str
    description: str
    hashtags: list[str] = Field(default_factory=list)


class PublicationResult(BaseModel):
    destination: str
    success: bool
    id: Optional[str] = None
    url: Optional[str] = None
    error: Optional[str] = None


class PublicationOutcome(BaseModel):
    listing: ListingCopy
    results: list[PublicationResult] = Field(default_factory=list)


# ==================== CAPTURE RECORD ====================

class StateChange(BaseModel):
    state: CaptureState
    at: datetime


class CaptureRecord(BaseModel):
    """One prospective listing being built up over a conversation."""

    id: str = Field(default_factory=lambda: uuid.uuid4().hex)
    owner_id: str
    channel_address: str
    channel: str = "whatsapp"
    state: CaptureState = CaptureState.INITIAL
    state_history: list[StateChange] = Field(default_factory=list)
    extracted_fields: ExtractedFields = Field(default_factory=ExtractedFields)
    received_audio_refs: list[str] = Field(default_factory=list)
    received_photo_refs: list[str] = Field(default_factory=list)
    processed_photos: list[ProcessedPhoto] = Field(default_factory=list)
    missing_required_fields: set[str] = Field(default_factory=set)
    publication: Optional[PublicationOutcome] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
    expires_at: Optional[datetime] = None

    @model_validator(mode="after")
    def init_expiry(self):
        if self.expires_at is None:
            self.expires_at = self.updated_at + timedelta(hours=CAPTURE_TTL_HOURS)
        return self

    def touch(self, now: Optional[datetime] = None):
        """Mark activity: refresh updated_at and push expiry forward."""
        self.updated_at = now or utcnow()
        self.expires_at = self.updated_at + timedelta(hours=CAPTURE_TTL_HOURS)

    def transition(self, state: CaptureState):
        self.state = state
        self.touch()
        self.state_history.append(StateChange(state=state, at=self.updated_at))

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        return self.expires_at < (now or utcnow())

    @classmethod
    def create(cls, channel_address: str, owner_id: Optional[str] = None, channel: str = "whatsapp"):
        from listing_capture.services.validation_service import REQUIRED_FIELDS

        return cls(
            owner_id=owner_id or channel_address,
            channel_address=channel_address,
            channel=channel,
            missing_required_fields=set(REQUIRED_FIELDS),
        )
