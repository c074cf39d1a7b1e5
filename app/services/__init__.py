"""Business services."""

from app.services.publisher import Publisher, SnapshotStore, snapshot_json
from app.services.refresh_pipeline import PipelineState, RefreshPipeline

__all__ = [
    "Publisher",
    "SnapshotStore",
    "snapshot_json",
    "PipelineState",
    "RefreshPipeline",
]
