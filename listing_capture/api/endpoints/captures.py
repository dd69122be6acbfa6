"""
Operator endpoints: read the in-flight captures and approve one for publication.
"""
from fastapi import APIRouter, HTTPException
import logging

from listing_capture.db.session import SessionLocal
from listing_capture.models.capture import Capture
from listing_capture.models.record import CaptureRecord
from listing_capture.services.conversation_service import approve_capture
from listing_capture.services.store import capture_store
from listing_capture.utils.errors import PublicationFailure

router = APIRouter()
logger = logging.getLogger(__name__)


def save_capture(record: CaptureRecord):
    """Persist a finished capture with proper session management."""
    if SessionLocal is None:
        logger.info(f"No database configured, capture {record.id} not persisted")
        return

    db = SessionLocal()
    try:
        db.merge(Capture(
            id=record.id,
            owner_id=record.owner_id,
            channel=record.channel,
            channel_address=record.channel_address,
            state=record.state.value,
            extracted_fields=record.extracted_fields.model_dump(mode="json"),
            photos=[p.model_dump(mode="json") for p in record.processed_photos],
            publication=record.publication.model_dump(mode="json") if record.publication else None,
            created_at=record.created_at,
        ))
        db.commit()
    except Exception as e:
        db.rollback()
        logger.error(f"Failed to save capture {record.id}: {e}")
    finally:
        db.close()


@router.get("")
async def list_captures():
    captures = capture_store.all()
    return {
        "success": True,
        "data": [c.model_dump(mode="json") for c in captures],
        "total": len(captures)
    }


@router.get("/stats")
async def capture_stats():
    captures = capture_store.all()
    by_state = {}
    last_activity = None

    for c in captures:
        by_state[c.state.value] = by_state.get(c.state.value, 0) + 1
        if last_activity is None or c.updated_at > last_activity:
            last_activity = c.updated_at

    return {
        "success": True,
        "data": {
            "total": len(captures),
            "by_state": by_state,
            "last_activity": last_activity.isoformat() if last_activity else None
        }
    }


@router.post("/{address}/approve")
async def approve(address: str):
    """Publish the capture for a broker address."""
    try:
        record, outcome = await approve_capture(address)
    except KeyError:
        raise HTTPException(status_code=404, detail=f"No capture for {address}")
    except PublicationFailure as e:
        logger.error(f"Publication failed for {address}: {e}")
        raise HTTPException(status_code=502, detail=str(e))

    save_capture(record)

    return {
        "success": True,
        "capture_id": record.id,
        "state": record.state.value,
        "results": [r.model_dump() for r in outcome.results]
    }
