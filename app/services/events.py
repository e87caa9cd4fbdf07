import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from threading import Lock
from typing import Dict, Set

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)

ON_FUNKO_CREADO = "onFunkoCreado"
ON_FUNKO_ACTUALIZADO = "onFunkoActualizado"
ON_FUNKO_ELIMINADO = "onFunkoEliminado"

TOPICS = (ON_FUNKO_CREADO, ON_FUNKO_ACTUALIZADO, ON_FUNKO_ELIMINADO)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FunkoCreadoEvent(BaseModel):
    funko_id: int
    name: str
    price: float
    created_at: datetime = Field(default_factory=_utcnow)


class FunkoActualizadoEvent(BaseModel):
    funko_id: int
    name: str
    price: float
    updated_at: datetime = Field(default_factory=_utcnow)


class FunkoEliminadoEvent(BaseModel):
    funko_id: int
    deleted_at: datetime = Field(default_factory=_utcnow)


class EventPublisher:
    """In-process topic publisher feeding subscription listeners."""

    def __init__(self, max_queue_size: int = 100):
        self.max_queue_size = max_queue_size
        self._subscribers: Dict[str, Set[asyncio.Queue]] = {}
        self._lock = Lock()

    async def publish(self, topic: str, payload) -> int:
        if isinstance(payload, BaseModel):
            payload = payload.model_dump(mode="json")
        with self._lock:
            queues = list(self._subscribers.get(topic, ()))

        delivered = 0
        for queue in queues:
            try:
                queue.put_nowait(payload)
                delivered += 1
            except asyncio.QueueFull:
                logger.warning(f"Subscriber queue full on topic {topic}, event dropped")
        logger.debug(f"Published {topic} to {delivered} subscriber(s)")
        return delivered

    @asynccontextmanager
    async def subscribe(self, topic: str):
        queue = asyncio.Queue(maxsize=self.max_queue_size)
        with self._lock:
            self._subscribers.setdefault(topic, set()).add(queue)
        try:
            yield queue
        finally:
            with self._lock:
                subscribers = self._subscribers.get(topic)
                if subscribers is not None:
                    subscribers.discard(queue)
                    if not subscribers:
                        del self._subscribers[topic]

    def subscriber_count(self, topic: str) -> int:
        with self._lock:
            return len(self._subscribers.get(topic, ()))
