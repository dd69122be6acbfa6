from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
import os
import logging
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")

if DATABASE_URL:
    engine = create_engine(DATABASE_URL)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
else:
    engine = None
    SessionLocal = None


def init_db():
    """Create the captures table if a database is configured."""
    from listing_capture.models.capture import Base

    if engine is None:
        logger.info("DATABASE_URL not configured, completed captures will not be persisted")
        return False
    Base.metadata.create_all(bind=engine)
    return True
