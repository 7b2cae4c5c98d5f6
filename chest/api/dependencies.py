"""FastAPI dependency injection -- Depends() patterns using app.state from lifespan."""

from typing import Annotated, Optional

from fastapi import Depends, Request

from chest.config import Settings
from chest.database import Database
from chest.ingest import IngestionCoordinator


def get_db(request: Request) -> Database:
    return request.app.state.db


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_coordinator(request: Request) -> Optional[IngestionCoordinator]:
    return getattr(request.app.state, "coordinator", None)


# Type aliases for cleaner route signatures
DB = Annotated[Database, Depends(get_db)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Coordinator = Annotated[Optional[IngestionCoordinator], Depends(get_coordinator)]
