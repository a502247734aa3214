"""
SignalDeck Orchestrator
=======================

Builds the two stream clients, the REST client and the live monitors
from configuration, runs them until shutdown, and tears everything down
in reverse order.

The stream clients are created here and injected into every consumer;
nothing in the package holds a process-wide connection.
"""

import asyncio
import signal
from typing import Any, Dict, Optional

from .connectors.binance_ws import create_price_stream
from .connectors.signal_service import SignalServiceClient
from .connectors.signal_ws import create_signal_stream
from .core.config import load_config
from .core.logger import get_logger, setup_logger, uptime_seconds
from .live.kline_monitor import KlineMonitor
from .live.signal_book import LiveSignalBook
from .live.stats_monitor import StatsMonitor
from .live.ticker_board import TickerBoard


class SignalDeck:
    """
    Main orchestrator.

    Coordinates:
    - Signal service websocket (signals, settlements, indicators, klines)
    - Price feed websocket
    - Signal service REST client
    - Live signal / stats / kline / ticker state
    """

    def __init__(self, config: Optional[Dict[str, Any]] = None, config_path: str = "config/config.yaml"):
        self.config = config if config is not None else load_config(config_path)

        log_level = self.config.get('system', {}).get('log_level', 'INFO')
        setup_logger('signaldeck', level=log_level)
        self.logger = get_logger('orchestrator')

        live_cfg = self.config.get('live') or {}
        self.status_interval = float(live_cfg.get('status_interval', 30))

        self.service = SignalServiceClient.from_config(self.config)
        self.signal_ws = create_signal_stream(self.config)
        self.price_ws = create_price_stream(self.config)

        self.signal_book = LiveSignalBook(
            self.service, self.signal_ws, limit=int(live_cfg.get('signal_limit', 20))
        )
        self.stats_monitor = StatsMonitor(
            self.service,
            self.signal_ws,
            refresh_seconds=float(live_cfg.get('stats_refresh_seconds', 60)),
            settlement_delay=float(live_cfg.get('settlement_refresh_delay', 0.5)),
        )
        self.kline_monitor = KlineMonitor(
            self.service,
            self.signal_ws,
            symbol=str(live_cfg.get('kline_symbol', 'BTCUSDT')),
            limit=int(live_cfg.get('kline_limit', 100)),
        )
        self.ticker_board = TickerBoard(self.price_ws, self.signal_ws)

        self._running = False
        self._stop_event = asyncio.Event()
        self._status_task: Optional[asyncio.Task] = None

    async def start(self) -> None:
        """Subscribe every consumer, open both streams and run initial fetches."""
        self.logger.info("Starting SignalDeck...")
        self._running = True

        self.ticker_board.start()
        # Initial fetches are independent; one failing does not block the others
        await asyncio.gather(
            self.signal_book.start(),
            self.stats_monitor.start(),
            self.kline_monitor.start(),
        )
        self._status_task = asyncio.create_task(self._status_loop(), name="status-log")
        self.logger.info("SignalDeck started")

    async def run(self) -> None:
        await self.start()
        await self._stop_event.wait()

    def request_stop(self) -> None:
        self._stop_event.set()

    async def stop(self) -> None:
        """Stop all components gracefully."""
        if not self._running:
            return
        self.logger.info("Stopping SignalDeck...")
        self._running = False

        if self._status_task:
            self._status_task.cancel()
            await asyncio.gather(self._status_task, return_exceptions=True)
            self._status_task = None

        self.ticker_board.stop()
        self.kline_monitor.stop()
        self.signal_book.stop()
        await self.stats_monitor.stop()

        await self.signal_ws.disconnect()
        await self.price_ws.disconnect()
        await self.service.close()
        self.logger.info("SignalDeck stopped (uptime %.0fs)", uptime_seconds())

    async def _status_loop(self) -> None:
        while self._running:
            await asyncio.sleep(self.status_interval)
            self.log_status()

    def get_status(self) -> Dict[str, Any]:
        kline = self.kline_monitor.report()
        stats = self.stats_monitor.stats
        return {
            "connections": {
                health.name: health.to_dict()
                for health in (
                    self.signal_ws.get_health_status(),
                    self.price_ws.get_health_status(),
                    self.service.get_health_status(),
                )
            },
            "signals": len(self.signal_book.signals),
            "pending": sum(1 for s in self.signal_book.signals if not s.is_settled),
            "klines": {
                "symbol": kline.symbol,
                "returned": kline.returned,
                "total": kline.total_klines,
                "continuous": kline.is_continuous,
                "gaps": len(kline.gaps),
            },
            "win_rate": stats.win_rate if stats else None,
            "total_pnl": stats.total_pnl if stats else None,
        }

    def log_status(self) -> None:
        status = self.get_status()
        streams = (self.signal_ws.get_health_status(), self.price_ws.get_health_status())
        rest = self.service.get_health_status()
        self.logger.info(
            "status: %s rest=%s signals=%d pending=%d klines=%d/%d continuous=%s",
            " ".join(f"{h.name}={h.state.value}" for h in streams), rest.state.value,
            status["signals"], status["pending"],
            status["klines"]["returned"], status["klines"]["total"],
            status["klines"]["continuous"],
        )
        for health in streams:
            if health.exhausted:
                self.logger.error(
                    "%s gave up reconnecting after %d attempts; restart or reconnect manually",
                    health.name, health.attempts,
                )


async def main() -> None:
    """Entry point for SignalDeck."""
    deck = SignalDeck()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, deck.request_stop)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    try:
        await deck.run()
    finally:
        await deck.stop()


if __name__ == "__main__":
    asyncio.run(main())
