import asyncio
import json
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from app.services.events import TOPICS
from app.services.notifications import ConnectionRegistry

router = APIRouter(tags=["websocket"])
logger = logging.getLogger(__name__)


async def _hold_connection(websocket: WebSocket, registry: ConnectionRegistry):
    await websocket.accept()
    connection_id = registry.register(websocket)
    try:
        # Broadcast-only channel: incoming frames are read and ignored
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.info(f"[{registry.name}] client {connection_id} disconnected")
    finally:
        registry.unregister(connection_id)


@router.websocket("/ws/funkos")
async def funkos_updates(websocket: WebSocket):
    await _hold_connection(websocket, websocket.app.state.container.funko_notifier)


@router.websocket("/ws/categorias")
async def categorias_updates(websocket: WebSocket):
    await _hold_connection(websocket, websocket.app.state.container.categoria_notifier)


async def _forward_events(websocket: WebSocket, queue: asyncio.Queue, topic: str):
    while True:
        payload = await queue.get()
        try:
            await websocket.send_text(json.dumps({"topic": topic, "data": payload}, default=str))
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.info(f"Subscriber to {topic} gone: {str(e)}")
            return


@router.websocket("/ws/subscriptions/{topic}")
async def topic_subscription(websocket: WebSocket, topic: str):
    """Stream every event published on a subscription topic"""
    if topic not in TOPICS:
        await websocket.close(code=1008, reason=f"Unknown topic {topic}")
        return

    await websocket.accept()
    events = websocket.app.state.container.events
    async with events.subscribe(topic) as queue:
        sender = asyncio.create_task(_forward_events(websocket, queue, topic))
        try:
            # reading detects the disconnect even when no event is published
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.info(f"Subscriber to {topic} disconnected")
        finally:
            sender.cancel()
            await asyncio.gather(sender, return_exceptions=True)
