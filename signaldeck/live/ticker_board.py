"""
Ticker Board
============

Per-symbol view merging two independent feeds:

* the price feed (``price``, ``change_24h``, ``change_percent_24h``)
* the signal feed's ``ticker`` indicators (RSI, Bollinger %B, model
  probabilities)

The two feeds are not ordered relative to each other; each update only
touches the fields its feed owns.
"""

import dataclasses
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from ..connectors.stream_client import StreamClient
from ..core.events import MessageType, StreamMessage
from ..core.models import PriceTick, TickerIndicators

DEFAULT_BOARD_SYMBOLS = ('BTCUSDT', 'ETHUSDT')


@dataclass(frozen=True)
class TickerInfo:
    symbol: str
    price: float = 0.0
    change_24h: float = 0.0
    change_percent_24h: float = 0.0
    rsi6: Optional[float] = None
    rsi14: Optional[float] = None
    bb_pct: Optional[float] = None
    prob_up: Optional[float] = None
    prob_down: Optional[float] = None
    last_update: Optional[str] = None


class TickerBoard:

    def __init__(
        self,
        price_stream: StreamClient,
        signal_stream: StreamClient,
        symbols: Iterable[str] = DEFAULT_BOARD_SYMBOLS,
    ):
        self.price_stream = price_stream
        self.signal_stream = signal_stream
        self._tickers: Dict[str, TickerInfo] = {s: TickerInfo(symbol=s) for s in symbols}
        self._unsubscribers: List[Callable[[], None]] = []

    @property
    def tickers(self) -> Dict[str, TickerInfo]:
        return self._tickers

    def start(self) -> None:
        if not self._unsubscribers:
            self._unsubscribers = [
                self.price_stream.subscribe(self.handle_price_message),
                self.signal_stream.subscribe(self.handle_signal_message),
            ]
        self.price_stream.connect()
        self.signal_stream.connect()

    def stop(self) -> None:
        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers = []

    def _current(self, symbol: str) -> TickerInfo:
        return self._tickers.get(symbol) or TickerInfo(symbol=symbol)

    def handle_price_message(self, message: StreamMessage) -> None:
        if message.type is not MessageType.TICKER or not isinstance(message.data, PriceTick):
            return
        tick = message.data
        updated = dataclasses.replace(
            self._current(tick.symbol),
            price=tick.price,
            change_24h=tick.change_24h,
            change_percent_24h=tick.change_percent_24h,
        )
        self._tickers = {**self._tickers, tick.symbol: updated}

    def handle_signal_message(self, message: StreamMessage) -> None:
        if message.type is not MessageType.TICKER or not isinstance(message.data, TickerIndicators):
            return
        ind = message.data
        updated = dataclasses.replace(
            self._current(ind.symbol),
            rsi6=ind.rsi6,
            rsi14=ind.rsi14,
            bb_pct=ind.bb_pct,
            prob_up=ind.prob_up,
            prob_down=ind.prob_down,
            last_update=ind.timestamp,
        )
        self._tickers = {**self._tickers, ind.symbol: updated}
