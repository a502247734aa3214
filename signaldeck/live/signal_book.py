"""
Live Signal Book
================

Owns the bounded, newest-first list of live signals.

The list is only ever mutated by :meth:`LiveSignalBook.handle_message`
(called by the signal stream) and :meth:`LiveSignalBook.refresh`.  Every
mutation builds a new list and swaps it in, so readers never observe a
half-applied update.
"""

from typing import Callable, List, Optional

from ..connectors.signal_service import SignalServiceClient, SignalServiceError
from ..connectors.stream_client import StreamClient
from ..core.events import MessageType, StreamMessage
from ..core.logger import get_logger
from ..core.models import Settlement, Signal

logger = get_logger('live.signals')


class LiveSignalBook:
    """Newest-first live signals, kept in sync with the signal feed."""

    def __init__(self, service: SignalServiceClient, stream: StreamClient, limit: int = 20):
        if limit < 1:
            raise ValueError("limit must be >= 1")
        self.service = service
        self.stream = stream
        self.limit = limit
        self._signals: List[Signal] = []
        self._unsubscribe: Optional[Callable[[], None]] = None
        self.last_error: Optional[str] = None
        self.loaded = False

    @property
    def signals(self) -> List[Signal]:
        return self._signals

    def get(self, signal_id: int) -> Optional[Signal]:
        for s in self._signals:
            if s.id == signal_id:
                return s
        return None

    async def start(self) -> None:
        """Subscribe to the signal feed and load the latest signals."""
        if self._unsubscribe is None:
            self._unsubscribe = self.stream.subscribe(self.handle_message)
        self.stream.connect()
        await self.refresh()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def refresh(self) -> None:
        """Replace the book with the service's latest signals.

        Failures are recorded in ``last_error`` and the current book kept.
        """
        try:
            page = await self.service.get_latest_signals(self.limit)
        except SignalServiceError as e:
            self.last_error = str(e)
            logger.warning("Failed to fetch signals: %s", e)
            return
        self._signals = list(page.signals[:self.limit])
        self.last_error = None
        self.loaded = True

    def handle_message(self, message: StreamMessage) -> None:
        if message.type is MessageType.SIGNAL:
            self.add_signal(message.data)
        elif message.type is MessageType.SETTLEMENT:
            self.apply_settlement(message.data)

    def add_signal(self, signal: Signal) -> bool:
        """Prepend a new signal unless its id is already in the book."""
        if any(s.id == signal.id for s in self._signals):
            logger.debug("Duplicate signal %s ignored", signal.id)
            return False
        self._signals = [signal, *self._signals[:self.limit - 1]]
        logger.info(
            "New signal #%s %s %s level=%s conf=%.2f",
            signal.id, signal.symbol, signal.direction.value,
            signal.level.value, signal.confidence,
        )
        return True

    def apply_settlement(self, settlement: Settlement) -> bool:
        """Settle the matching pending signal.  Returns False when nothing changed."""
        target = self.get(settlement.id)
        if target is None:
            logger.debug("Settlement for unknown signal %s ignored", settlement.id)
            return False
        if target.is_settled:
            logger.debug("Signal %s already settled; settlement ignored", settlement.id)
            return False
        settled = target.settle(settlement)
        self._signals = [settled if s.id == settled.id else s for s in self._signals]
        logger.info(
            "Signal #%s settled %s pnl=%+.2f",
            settled.id, "WIN" if settled.is_win else "LOSS", settled.pnl,
        )
        return True
