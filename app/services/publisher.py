"""Snapshot store and subscriber fan-out.

The store is a single slot: publishing overwrites it, nothing is queued or
replayed. Subscribers are anything with ``async send_text(str)`` (a FastAPI
WebSocket in production, a fake in tests).
"""

import asyncio
import logging
from typing import Any, Protocol

import orjson

from core.exceptions import PublishError
from core.models.converters import snapshot_to_wire
from core.models.snapshot import Snapshot

logger = logging.getLogger(__name__)


def _orjson_dumps(obj: Any) -> str:
    """Serialize object to JSON string using orjson."""
    return orjson.dumps(obj, default=str).decode("utf-8")


def snapshot_json(snapshot: Snapshot) -> str:
    """Serialize a snapshot to its wire JSON text."""
    return _orjson_dumps(snapshot_to_wire(snapshot))


class Subscriber(Protocol):
    async def send_text(self, data: str) -> None: ...


class SnapshotStore:
    """Single-slot holder of the latest snapshot.

    Replacement is a single reference assignment, so readers always see
    either the previous or the new snapshot, never a mix.
    """

    def __init__(self):
        self._latest: Snapshot | None = None
        self._version = 0

    def replace(self, snapshot: Snapshot) -> int:
        """Swap in a new snapshot; returns the new version number."""
        self._latest = snapshot
        self._version += 1
        return self._version

    def latest(self) -> Snapshot | None:
        """Latest snapshot, or None before the first publish."""
        return self._latest

    @property
    def version(self) -> int:
        return self._version


class Publisher:
    """Publishes snapshots to the store and to all connected subscribers.

    Connect, publish and disconnect are serialised by one lock, so a new
    subscriber's initial snapshot can never arrive after a newer broadcast.
    Every send is bounded by ``send_timeout``; a slow or broken subscriber
    is dropped without delaying the others.
    """

    def __init__(self, store: SnapshotStore, symbol: str, send_timeout: float = 5.0):
        self.store = store
        self.symbol = symbol
        self.send_timeout = send_timeout
        self._subscribers: list[Subscriber] = []
        self._lock = asyncio.Lock()

    async def _send(self, subscriber: Subscriber, text: str) -> None:
        try:
            await asyncio.wait_for(subscriber.send_text(text), timeout=self.send_timeout)
        except asyncio.TimeoutError as e:
            raise PublishError(f"send timed out after {self.send_timeout}s") from e
        except Exception as e:
            raise PublishError(str(e)) from e

    async def _deliver(self, subscriber: Subscriber, text: str) -> bool:
        """Send to one subscriber; False if it failed or timed out."""
        try:
            await self._send(subscriber, text)
            return True
        except PublishError as e:
            logger.warning(f"Failed to send snapshot: {e}")
            return False

    async def connect(self, subscriber: Subscriber) -> None:
        """Register a subscriber and send it the latest snapshot, if any."""
        async with self._lock:
            self._subscribers.append(subscriber)
            latest = self.store.latest()
            if latest is not None and not await self._deliver(subscriber, snapshot_json(latest)):
                self._subscribers.remove(subscriber)
            count = len(self._subscribers)
        logger.info(f"Subscriber connected. Total subscribers: {count}")

    async def disconnect(self, subscriber: Subscriber) -> None:
        """Remove a subscriber."""
        async with self._lock:
            if subscriber in self._subscribers:
                self._subscribers.remove(subscriber)
            count = len(self._subscribers)
        logger.info(f"Subscriber disconnected. Total subscribers: {count}")

    async def publish(self, snapshot: Snapshot) -> int:
        """
        Store a snapshot and broadcast it to all subscribers concurrently.

        A subscriber that fails or times out is dropped; delivery to the
        others continues.

        Returns:
            Number of subscribers the snapshot was delivered to
        """
        async with self._lock:
            self.store.replace(snapshot)
            subscribers = list(self._subscribers)
            if not subscribers:
                return 0

            message_text = snapshot_json(snapshot)
            results = await asyncio.gather(
                *(self._deliver(subscriber, message_text) for subscriber in subscribers)
            )

            for subscriber, delivered in zip(subscribers, results):
                if not delivered and subscriber in self._subscribers:
                    self._subscribers.remove(subscriber)

        return sum(results)

    def latest_or_empty(self) -> Snapshot:
        """Pull interface: latest snapshot, or the neutral one before the first cycle."""
        return self.store.latest() or Snapshot.empty(self.symbol)

    @property
    def has_snapshot(self) -> bool:
        return self.store.latest() is not None

    @property
    def subscriber_count(self) -> int:
        """Get number of connected subscribers."""
        return len(self._subscribers)
