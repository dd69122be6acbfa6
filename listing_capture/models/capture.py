from sqlalchemy import Column, String, DateTime, JSON
from sqlalchemy.ext.declarative import declarative_base
from datetime import datetime

Base = declarative_base()

class Capture(Base):
    """A completed capture, kept after the in-memory record expires."""
    __tablename__ = "captures"

    id = Column(String, primary_key=True, index=True) # CaptureRecord.id
    owner_id = Column(String, index=True)
    channel = Column(String) # 'whatsapp' or 'callbell'
    channel_address = Column(String, index=True)
    state = Column(String) # COMPLETED, or PUBLISHING if publication failed
    extracted_fields = Column(JSON, nullable=True)
    photos = Column(JSON, nullable=True) # Curated ProcessedPhoto list
    publication = Column(JSON, nullable=True) # Listing copy + per-destination results
    created_at = Column(DateTime)
    completed_at = Column(DateTime, default=datetime.utcnow)
