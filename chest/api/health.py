"""Health check router -- ingestion counters, stored events, config summary."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter
from sqlalchemy.exc import SQLAlchemyError

from chest import __version__
from chest.api.dependencies import DB, AppSettings, Coordinator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/")
async def root():
    return {"service": "chest relay ingester", "version": __version__}


@router.get("/health")
async def health(db: DB, coordinator: Coordinator):
    try:
        stored = db.count_events()
        database = "ok"
    except SQLAlchemyError as e:
        logger.warning(f"Health check could not count events: {e}")
        stored = None
        database = "error"

    return {
        "status": "healthy" if database == "ok" else "degraded",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "database": database,
        "stored_events": stored,
        "ingestion": coordinator.snapshot() if coordinator is not None else None,
    }


@router.get("/config")
async def config(settings: AppSettings):
    return settings.public_view()
