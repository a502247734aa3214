"""
Stats Monitor
=============

Keeps the service-side aggregate stats fresh: fetched on start, every
``refresh_seconds`` thereafter, and once more ``settlement_delay``
seconds after every settlement (giving the service time to persist it).

``stop()`` cancels the periodic loop and every pending delayed refresh.
"""

import asyncio
from typing import Callable, Optional, Set

from ..connectors.signal_service import SignalServiceClient, SignalServiceError
from ..connectors.stream_client import StreamClient
from ..core.events import MessageType, StreamMessage
from ..core.logger import get_logger
from ..core.models import ServiceStats

logger = get_logger('live.stats')


class StatsMonitor:

    def __init__(
        self,
        service: SignalServiceClient,
        stream: StreamClient,
        refresh_seconds: float = 60.0,
        settlement_delay: float = 0.5,
    ):
        self.service = service
        self.stream = stream
        self.refresh_seconds = refresh_seconds
        self.settlement_delay = settlement_delay
        self.stats: Optional[ServiceStats] = None
        self.last_error: Optional[str] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._loop_task: Optional[asyncio.Task] = None
        self._delayed: Set[asyncio.TimerHandle] = set()
        self._inflight: Set[asyncio.Task] = set()
        self._running = False

    async def start(self) -> None:
        self._running = True
        if self._unsubscribe is None:
            self._unsubscribe = self.stream.subscribe(self.handle_message)
        self.stream.connect()
        await self.refresh()
        if self._loop_task is None:
            self._loop_task = asyncio.create_task(self._refresh_loop(), name="stats-refresh")

    async def stop(self) -> None:
        self._running = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        for handle in self._delayed:
            handle.cancel()
        self._delayed.clear()
        tasks = [t for t in (self._loop_task, *self._inflight) if t is not None]
        self._loop_task = None
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._inflight.clear()

    async def refresh(self) -> None:
        """Fetch stats; on failure keep the previous figures."""
        try:
            self.stats = await self.service.get_stats()
            self.last_error = None
        except SignalServiceError as e:
            self.last_error = str(e)
            logger.error("Failed to fetch stats: %s", e)

    async def _refresh_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.refresh_seconds)
            if not self._running:
                break
            await self.refresh()

    def handle_message(self, message: StreamMessage) -> None:
        if message.type is MessageType.SETTLEMENT and self._running:
            self.schedule_refresh(self.settlement_delay)

    def schedule_refresh(self, delay: float) -> None:
        loop = asyncio.get_running_loop()
        handle: Optional[asyncio.TimerHandle] = None

        def fire() -> None:
            self._delayed.discard(handle)
            if not self._running:
                return
            task = loop.create_task(self.refresh())
            self._inflight.add(task)
            task.add_done_callback(self._inflight.discard)

        handle = loop.call_later(delay, fire)
        self._delayed.add(handle)

    @property
    def pending_refreshes(self) -> int:
        return len(self._delayed)
