from __future__ import annotations

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from testharness.services.bridge import TESTS_CHANNEL

router = APIRouter(tags=["websocket"])


async def _stream_channel(websocket: WebSocket, channel: str) -> None:
    event_bus = websocket.app.state.event_bus
    queue = await event_bus.get_queue(channel)
    await websocket.accept()
    try:
        while True:
            event = await queue.get()
            await websocket.send_json(event)
    except WebSocketDisconnect:
        pass
    finally:
        await event_bus.unsubscribe(channel, queue)


@router.websocket("/ws/tests")
async def tests_ws(websocket: WebSocket) -> None:
    await _stream_channel(websocket, TESTS_CHANNEL)
