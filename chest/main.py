"""
chest - Main Entry Point.
FastAPI read API, background relay ingestion and CLI interface.
"""

import argparse
import asyncio
import logging
import sys
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from pydantic import ValidationError

from chest import __version__
from chest.api import events, health
from chest.config import Settings, get_settings
from chest.database import Database
from chest.ingest import IngestionCoordinator

logger = logging.getLogger(__name__)


def configure_logging(level: str = "INFO"):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Suppress noisy loggers
    logging.getLogger("aiohttp.access").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)


def create_app(
    settings: Optional[Settings] = None,
    db: Optional[Database] = None,
    start_ingestion: bool = True,
) -> FastAPI:
    """Build the API. With start_ingestion the coordinator runs for the app's lifetime."""
    settings = settings or get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        database = db or Database(settings.database_url)
        database.create_tables()
        app.state.db = database
        app.state.settings = settings
        app.state.coordinator = None

        task = None
        if start_ingestion:
            coordinator = IngestionCoordinator(database, settings=settings)
            app.state.coordinator = coordinator
            task = asyncio.create_task(coordinator.run(), name="chest-ingestion")
            logger.info(f"Ingestion started on {len(settings.relay_urls)} relays")
        try:
            yield
        finally:
            if task is not None:
                app.state.coordinator.stop()
                task.cancel()
                await asyncio.gather(task, return_exceptions=True)
            if db is None:
                database.dispose()

    app = FastAPI(
        title="chest",
        description="Relay event ingester with a category-partitioned read API",
        version=__version__,
        lifespan=lifespan,
    )
    app.include_router(health.router)
    app.include_router(events.router)
    return app


# CLI Runner
async def run_ingestion(settings: Settings):
    database = Database(settings.database_url)
    database.create_tables()
    coordinator = IngestionCoordinator(database, settings=settings)
    try:
        await coordinator.run()
    finally:
        database.dispose()


def main(argv=None):
    """Entry point for CLI."""
    parser = argparse.ArgumentParser(description="chest relay event ingester")
    sub = parser.add_subparsers(dest="command")

    serve = sub.add_parser("serve", help="Ingest from relays and serve the read API (default)")
    serve.add_argument("--host", default=None, help="Bind host (default: BIND_HOST)")
    serve.add_argument("--port", type=int, default=None, help="Bind port (default: BIND_PORT)")
    serve.add_argument("--no-ingest", action="store_true", help="Serve stored events only")

    sub.add_parser("ingest", help="Ingest from relays without the HTTP API")
    sub.add_parser("init-db", help="Create the events table and exit")

    args = parser.parse_args(argv)
    command = args.command or "serve"

    try:
        settings = get_settings()
    except ValidationError as e:
        configure_logging()
        logger.error(f"Failed to read configuration: {e}")
        sys.exit(1)

    configure_logging(settings.log_level)
    logger.info(f"Loaded configuration: {settings.public_view()}")

    if command == "init-db":
        database = Database(settings.database_url)
        database.create_tables()
        database.dispose()
        logger.info(f"Events table ready at {settings.database_url}")
        return

    if command == "ingest":
        try:
            asyncio.run(run_ingestion(settings))
        except KeyboardInterrupt:
            logger.info("Interrupted, shutting down")
        return

    import uvicorn
    host = getattr(args, "host", None) or settings.bind_host
    port = getattr(args, "port", None) or settings.bind_port
    app = create_app(settings, start_ingestion=not getattr(args, "no_ingest", False))
    logger.info(f"Starting server on {host}:{port}...")
    uvicorn.run(app, host=host, port=port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
