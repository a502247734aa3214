"""
Shared test fixtures: signal/kline builders and an in-memory websocket.
"""

import asyncio
import json
from typing import Any, Dict, List, Optional

import pytest
from websockets.protocol import State

from signaldeck.core.models import KlineBar, Signal

_CLOSE = object()


class FakeConnection:
    """In-memory stand-in for a websockets client connection.

    ``feed()`` queues an inbound frame, ``drop()`` simulates the server
    going away, ``fail()`` breaks the reader, ``sent`` collects outbound
    frames.
    """

    def __init__(self):
        self.state = State.OPEN
        self.sent: List[str] = []
        self.close_calls = 0
        self._inbox: asyncio.Queue = asyncio.Queue()

    def feed(self, frame: Any) -> None:
        if not isinstance(frame, (str, bytes)):
            frame = json.dumps(frame)
        self._inbox.put_nowait(frame)

    def drop(self) -> None:
        self._inbox.put_nowait(_CLOSE)

    def fail(self, exc: BaseException) -> None:
        """Make the reader raise *exc* without closing the transport."""
        self._inbox.put_nowait(exc)

    async def send(self, data: str) -> None:
        self.sent.append(data)

    async def close(self) -> None:
        self.close_calls += 1
        self.state = State.CLOSED
        self._inbox.put_nowait(_CLOSE)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._inbox.get()
        if item is _CLOSE:
            self.state = State.CLOSED
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


async def settle(rounds: int = 20) -> None:
    """Let pending callbacks and tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def signal_payload(signal_id: int = 1, **overrides) -> Dict[str, Any]:
    payload = {
        "id": signal_id,
        "symbol": "BTCUSDT",
        "direction": "UP",
        "level": "A",
        "confidence": 0.72,
        "entry_price": 97000.5,
        "bet_amount": 20.0,
        "created_at": "2026-01-08 11:41",
        "status": "pending",
    }
    payload.update(overrides)
    return payload


def settlement_payload(signal_id: int = 1, is_win: bool = True, pnl: float = 16.0) -> Dict[str, Any]:
    return {
        "id": signal_id,
        "symbol": "BTCUSDT",
        "direction": "UP",
        "level": "A",
        "entry_price": 97000.5,
        "settle_price": 97100.0,
        "settle_at": "2026-01-08 11:51",
        "is_win": is_win,
        "pnl": pnl,
    }


def make_signal(
    signal_id: int = 1,
    created_at: str = "2026-01-08 11:41",
    settle_at: Optional[str] = "2026-01-08 11:51",
    level: str = "A",
    symbol: str = "BTCUSDT",
    direction: str = "UP",
    is_win: bool = True,
    pnl: float = 16.0,
) -> Signal:
    """Settled signal unless ``settle_at`` is None."""
    data = signal_payload(
        signal_id, created_at=created_at, level=level, symbol=symbol, direction=direction
    )
    if settle_at is not None:
        data.update(
            status="settled", settle_at=settle_at, settle_price=97100.0, is_win=is_win, pnl=pnl
        )
    return Signal.from_dict(data)


def make_bar(ts: int, close: float = 100.0) -> KlineBar:
    return KlineBar(timestamp=ts, open=close, high=close + 1, low=close - 1, close=close, volume=1.0)


@pytest.fixture
def fake_connection():
    return FakeConnection()
