"""WebSocket endpoint for real-time snapshots (push surface)."""

import logging
from datetime import datetime, timezone

import orjson
from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


def _orjson_dumps(obj) -> str:
    """Serialize object to JSON string using orjson."""
    return orjson.dumps(obj, default=str).decode("utf-8")


async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint for real-time snapshots.

    On connect the client immediately receives the latest snapshot (if one
    has been built), then one snapshot message per refresh cycle. Snapshot
    messages use the same schema as GET /api/technical-data.

    Clients may send {"type": "ping"} and get {"type": "pong", ...} back.
    """
    publisher = websocket.app.state.publisher

    await websocket.accept()
    await publisher.connect(websocket)

    try:
        while True:
            data = await websocket.receive_text()
            try:
                message = orjson.loads(data)
            except orjson.JSONDecodeError:
                await websocket.send_text(_orjson_dumps({
                    "type": "error",
                    "data": {"message": "Invalid JSON"},
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                }))
                continue
            await handle_client_message(websocket, message)

    except WebSocketDisconnect:
        pass
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
    finally:
        await publisher.disconnect(websocket)


async def handle_client_message(websocket: WebSocket, message: dict) -> None:
    """Handle incoming message from client."""
    msg_type = message.get("type", "") if isinstance(message, dict) else ""

    if msg_type == "ping":
        await websocket.send_text(_orjson_dumps({
            "type": "pong",
            "data": {},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }))
    else:
        await websocket.send_text(_orjson_dumps({
            "type": "error",
            "data": {"message": f"Unknown message type: {msg_type}"},
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }))
