import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from ..engine.gateway import LiveClassGateway
from ..engine.ws import ClientConnection

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


async def _pump(websocket: WebSocket, connection: ClientConnection) -> None:
    while True:
        event = await connection.queue.get()
        await websocket.send_json(event)


@router.websocket("/ws/live-classes")
async def live_class_stream(websocket: WebSocket):
    gateway: LiveClassGateway = websocket.app.state.live_class_gateway
    broadcaster = gateway.broadcaster

    await websocket.accept()
    connection = broadcaster.register()
    sender = asyncio.create_task(_pump(websocket, connection))
    try:
        while True:
            frame = await websocket.receive()
            if frame["type"] == "websocket.disconnect":
                break
            # binary and undecodable frames are answered with an error event
            message = None
            raw = frame.get("text")
            if raw is not None:
                try:
                    message = json.loads(raw)
                except json.JSONDecodeError:
                    pass
            await gateway.handle(connection, message)
            if sender.done():
                break
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.unregister(connection)
        sender.cancel()
        try:
            await sender
        except asyncio.CancelledError:
            pass
        except Exception as exc:
            logger.info("Sender for client %s stopped: %s", connection.id, exc)
