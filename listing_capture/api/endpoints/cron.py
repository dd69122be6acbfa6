"""
Cron trigger endpoints for manual testing and external schedulers.
"""
from fastapi import APIRouter
from listing_capture.services.scheduler_service import sweep_expired_captures

router = APIRouter()


@router.post("/sweep")
async def trigger_sweep():
    """Manually run the expiry sweep."""
    evicted = await sweep_expired_captures()
    return {"status": "ok", "type": "expiry_sweep", "evicted": evicted}


@router.get("/status")
async def scheduler_status():
    """Get scheduler status and next run times."""
    from listing_capture.services.scheduler_service import scheduler

    jobs = []
    for job in scheduler.get_jobs():
        jobs.append({
            "id": job.id,
            "next_run": str(job.next_run_time) if getattr(job, "next_run_time", None) else None
        })

    return {
        "running": scheduler.running,
        "jobs": jobs
    }
