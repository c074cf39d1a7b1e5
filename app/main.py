"""Main application entry point."""

import logging
from contextlib import asynccontextmanager
from pathlib import Path

from app.config import get_settings

# Configure logging FIRST, before any other imports
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(levelname)s - %(message)s",
)

# Reduce noise from third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("asyncio").setLevel(logging.WARNING)

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from fastapi.staticfiles import StaticFiles

from app.api import router, websocket_endpoint
from app.clients import create_market_data_source
from app.services import Publisher, RefreshPipeline, SnapshotStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(f"Starting technical snapshot service for {settings.display_symbol}...")

    pipeline = RefreshPipeline(
        source=create_market_data_source(settings),
        publisher=app.state.publisher,
        settings=settings,
    )
    app.state.pipeline = pipeline
    await pipeline.start()

    yield

    # Shutdown
    logger.info("Shutting down...")
    await pipeline.stop()
    app.state.pipeline = None
    logger.info("Shutdown complete")


def create_app() -> FastAPI:
    """Build the FastAPI app with REST routes, WebSocket and optional static files."""
    settings = get_settings()

    app = FastAPI(
        title="Technical Snapshot Service",
        description="Live technical-analysis snapshots for one instrument",
        version="0.1.0",
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
    )
    app.state.publisher = Publisher(
        SnapshotStore(),
        symbol=settings.display_symbol,
        send_timeout=settings.send_timeout,
    )
    app.state.pipeline = None

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    # Include REST routes
    app.include_router(router, prefix="/api")

    # WebSocket endpoint
    app.websocket("/ws")(websocket_endpoint)

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy"}

    if settings.static_dir and Path(settings.static_dir).is_dir():
        app.mount("/", StaticFiles(directory=settings.static_dir, html=True), name="static")
    else:

        @app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "name": "Technical Snapshot Service",
                "version": "0.1.0",
                "symbol": settings.display_symbol,
                "docs": "/docs",
            }

    return app


app = create_app()


def main():
    """Run the application."""
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug,
    )


if __name__ == "__main__":
    main()
