from fastapi import FastAPI
from contextlib import asynccontextmanager
from listing_capture.api.endpoints import whatsapp, callbell, captures, cron
from listing_capture.db.session import init_db
from listing_capture.services.scheduler_service import start_scheduler, stop_scheduler


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle - database tables and expiry sweep."""
    init_db()
    start_scheduler()
    yield
    stop_scheduler()


app = FastAPI(title="Listing Capture API", version="0.1.0", lifespan=lifespan)

@app.get("/")
async def root():
    return {"message": "Listing Capture API is online 🏠"}

@app.get("/health")
async def health():
    return {"status": "healthy"}

# Include routers
app.include_router(whatsapp.router, prefix="/api/v1/whatsapp", tags=["whatsapp"])
app.include_router(callbell.router, prefix="/api/v1/callbell", tags=["callbell"])
app.include_router(captures.router, prefix="/api/v1/captures", tags=["captures"])
app.include_router(cron.router, prefix="/api/v1/cron", tags=["cron"])
