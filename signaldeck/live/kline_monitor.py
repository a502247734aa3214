"""
Kline Monitor
=============

Bulk-loads the newest kline window for one symbol and keeps its
continuity report current from the signal feed's ``kline`` channel.
"""

from typing import Callable, Optional

from ..connectors.signal_service import SignalServiceClient, SignalServiceError
from ..connectors.stream_client import StreamClient
from ..core.events import MessageType, StreamMessage
from ..core.kline_continuity import KlineContinuityChecker, KlineReport
from ..core.logger import get_logger

logger = get_logger('live.klines')


class KlineMonitor:

    def __init__(
        self,
        service: SignalServiceClient,
        stream: StreamClient,
        symbol: str,
        limit: int = 100,
    ):
        self.service = service
        self.stream = stream
        self.symbol = symbol
        self.limit = limit
        self.checker = KlineContinuityChecker(symbol, limit=limit)
        self.last_error: Optional[str] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

    async def start(self) -> None:
        if self._unsubscribe is None:
            self._unsubscribe = self.stream.subscribe(self.handle_message)
        self.stream.connect()
        await self.refresh()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    async def refresh(self) -> None:
        """Reload the window from the service."""
        try:
            window = await self.service.get_klines(self.symbol, self.limit)
        except SignalServiceError as e:
            self.last_error = str(e)
            logger.error("Failed to fetch %s klines: %s", self.symbol, e)
            return
        self.checker.initialize(window.klines, total_klines=window.total_klines)
        self.last_error = None
        report = self.checker.report()
        logger.info(
            "%s klines loaded: %d/%d, continuous=%s",
            self.symbol, report.returned, report.total_klines, report.is_continuous,
        )

    def handle_message(self, message: StreamMessage) -> None:
        if message.type is MessageType.KLINE:
            self.checker.apply_live_bar(message.data)

    def report(self) -> KlineReport:
        return self.checker.report()
