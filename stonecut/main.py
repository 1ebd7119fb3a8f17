from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .config import settings
from .database import engine, Base
from .routers import catalog, stair_sessions

logger = logging.getLogger("stonecut")

# Create tables (handles new tables but won't add columns to existing ones)
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title="Stonecut",
    description=f"Stone cutting and stair layer pricing for {settings.COMPANY_NAME}",
    version="1.0.0"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# API routes
app.include_router(catalog.router, prefix="/api")
app.include_router(stair_sessions.router, prefix="/api")


@app.get("/health")
def health():
    return {"status": "ok", "app": "stonecut", "currency": settings.CURRENCY}


@app.on_event("startup")
def auto_seed():
    """Seed the default catalog on first run."""
    if not settings.SEED_CATALOG_ON_STARTUP:
        logger.info("Catalog seeding disabled")
        return
    from .database import SessionLocal
    from .catalog import seed_catalog
    db = SessionLocal()
    try:
        seed_catalog(db)
    finally:
        db.close()
