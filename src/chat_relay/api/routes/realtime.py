"""
WebSocket endpoint for the fan-out topics.

Clients send '{"type": "subscribe", "topic": ...}' or
'{"type": "unsubscribe", "topic": ...}' frames and receive every payload
published on their topics as '{"topic": ..., "payload": ...}'.
"""

from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from loguru import logger

router = APIRouter()


@router.websocket("/ws")
async def ws_endpoint(websocket: WebSocket) -> None:
    broadcaster = websocket.app.state.backend.broadcaster
    await websocket.accept()

    async def deliver(topic: str, payload: Any) -> None:
        await websocket.send_json({"topic": topic, "payload": payload})

    try:
        while True:
            frame = await websocket.receive_json()
            kind = frame.get("type") if isinstance(frame, dict) else None
            topic = frame.get("topic") if isinstance(frame, dict) else None
            if kind not in ("subscribe", "unsubscribe"):
                await websocket.send_json({"type": "error", "error": f"unknown frame type {kind!r}"})
                continue
            if not topic:
                await websocket.send_json({"type": "error", "error": "topic is required"})
                continue

            if kind == "subscribe":
                broadcaster.subscribe(topic, deliver)
                await websocket.send_json({"type": "subscribed", "topic": topic})
            else:
                broadcaster.unsubscribe(topic, deliver)
                await websocket.send_json({"type": "unsubscribed", "topic": topic})
    except WebSocketDisconnect:
        logger.debug("WebSocket client disconnected")
    finally:
        broadcaster.unsubscribe_all(deliver)
