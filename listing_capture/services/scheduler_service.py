"""
Scheduler for background maintenance.

Features:
- Expiry sweep of idle captures (hourly by default)
"""
import os
import logging
from datetime import datetime
from apscheduler.schedulers.asyncio import AsyncIOScheduler

logger = logging.getLogger(__name__)

# Configuration
SWEEP_INTERVAL_MINUTES = int(os.getenv("SWEEP_INTERVAL_MINUTES", "60"))

# Global scheduler instance
scheduler = AsyncIOScheduler(timezone="UTC")


async def sweep_expired_captures():
    """Drop captures that have been idle past their expiry."""
    from listing_capture.services.store import capture_store

    logger.info(f"[Scheduler] Running expiry sweep at {datetime.now()}")

    try:
        return capture_store.sweep()
    except Exception as e:
        logger.error(f"[Scheduler] Expiry sweep error: {e}", exc_info=True)
        return []


def start_scheduler():
    """Initialize and start the scheduler."""
    scheduler.add_job(
        sweep_expired_captures,
        "interval",
        minutes=SWEEP_INTERVAL_MINUTES,
        id="capture_expiry_sweep",
        replace_existing=True
    )

    scheduler.start()
    logger.info(f"[Scheduler] Started with expiry sweep every {SWEEP_INTERVAL_MINUTES} min")


def stop_scheduler():
    """Gracefully stop the scheduler."""
    if scheduler.running:
        scheduler.shutdown()
        logger.info("[Scheduler] Stopped")
