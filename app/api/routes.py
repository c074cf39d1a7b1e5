"""REST API routes (pull surface)."""

import logging

from fastapi import APIRouter, Request
from pydantic import BaseModel

from app.config import get_settings
from core.models.converters import snapshot_to_wire

logger = logging.getLogger(__name__)

router = APIRouter()


class SystemStatus(BaseModel):
    """System status response."""

    status: str
    version: str
    symbol: str
    interval: str
    refresh_interval: float
    snapshot_available: bool
    pipeline: dict | None = None


@router.get("/technical-data")
async def get_technical_data(request: Request):
    """Latest snapshot in wire format.

    Before the first refresh cycle completes this returns the neutral
    all-zero snapshot rather than an error.
    """
    publisher = request.app.state.publisher
    return snapshot_to_wire(publisher.latest_or_empty())


@router.get("/status", response_model=SystemStatus)
async def get_status(request: Request):
    """Get system status."""
    settings = get_settings()
    publisher = request.app.state.publisher
    pipeline = getattr(request.app.state, "pipeline", None)

    return SystemStatus(
        status="running" if pipeline is not None and pipeline.is_running else "idle",
        version="0.1.0",
        symbol=settings.display_symbol,
        interval=settings.interval,
        refresh_interval=settings.refresh_interval,
        snapshot_available=publisher.has_snapshot,
        pipeline=pipeline.get_stats() if pipeline is not None else None,
    )
