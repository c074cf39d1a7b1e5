"""Error taxonomy for the snapshot service.

None of these are fatal to the process: the refresh pipeline recovers from
each one locally and still publishes a well-formed (possibly stale) snapshot.
Too-short history is not an exception at all; every indicator returns its
documented degraded value instead.
"""


class SnapshotServiceError(Exception):
    """Base exception for snapshot service errors."""


class MarketDataError(SnapshotServiceError):
    """Upstream market data source failed, timed out or returned garbage."""


class DataIntegrityError(SnapshotServiceError):
    """Out-of-order or malformed candle rejected at ingestion."""


class PublishError(SnapshotServiceError):
    """A subscriber could not be delivered a snapshot."""
