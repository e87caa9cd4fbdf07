import asyncio
import logging
from typing import Awaitable, Callable, List, Optional, Set

logger = logging.getLogger(__name__)

Listener = Callable[[bool], Awaitable]


class ConnectivityMonitor:
    """
    Tracks whether the backend is reachable.

    Raw online/offline signals are debounced: only the last signal of a
    burst is applied, and listeners hear about real state changes only.
    """

    def __init__(
        self,
        probe: Optional[Callable[[], Awaitable[bool]]] = None,
        debounce_seconds: float = 0.5,
        poll_interval: float = 5.0,
        initially_online: bool = True,
    ):
        self.probe = probe
        self.debounce_seconds = debounce_seconds
        self.poll_interval = poll_interval
        self.is_online = initially_online
        self._listeners: List[Listener] = []
        self._pending: Optional[asyncio.TimerHandle] = None
        self._poller: Optional[asyncio.Task] = None
        self._tasks: Set[asyncio.Task] = set()

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def report(self, online: bool) -> None:
        """Record a raw connectivity signal; applied after the debounce window."""
        if self._pending is not None:
            self._pending.cancel()
        loop = asyncio.get_running_loop()
        self._pending = loop.call_later(self.debounce_seconds, self._settle, online)

    async def check(self) -> bool:
        online = bool(await self.probe()) if self.probe else self.is_online
        self.report(online)
        return online

    async def start(self) -> None:
        if self.probe is not None and self._poller is None:
            self._poller = asyncio.create_task(self._poll(), name="connectivity-poller")

    async def stop(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None
        if self._poller is not None:
            self._poller.cancel()
            await asyncio.gather(self._poller, return_exceptions=True)
            self._poller = None
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _poll(self) -> None:
        while True:
            await self.check()
            await asyncio.sleep(self.poll_interval)

    def _settle(self, online: bool) -> None:
        self._pending = None
        if online == self.is_online:
            return
        self.is_online = online
        logger.info(f"Connectivity changed: {'ONLINE' if online else 'OFFLINE'}")
        for listener in self._listeners:
            task = asyncio.ensure_future(listener(online))
            self._tasks.add(task)
            task.add_done_callback(self._listener_done)

    def _listener_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Connectivity listener failed: {task.exception()}")
