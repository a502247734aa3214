"""
Binance Price Feed
==================

Decoder and factory for the Binance combined 24h-ticker stream used for
live prices.  Public endpoint, no auth.

Combined-stream frames wrap each event::

    {"stream": "btcusdt@ticker", "data": {"e": "24hrTicker", "s": "BTCUSDT",
                                          "c": "97000.1", "p": "-120.5", "P": "-0.12", ...}}
"""

from typing import Any, Dict, Iterable, Optional

from ..core.config import DEFAULT_PRICE_FEED_URL, PRICE_FEED_POLICY, ReconnectPolicy
from ..core.events import MessageType, StreamMessage
from ..core.models import PriceTick
from .stream_client import StreamClient

DEFAULT_SYMBOLS = ('btcusdt', 'ethusdt')


def _normalize_symbol(symbol: str) -> str:
    """Convert unified symbol to Binance stream format."""
    # 'BTC/USDT:USDT' -> 'btcusdt'
    if ':' in symbol:
        symbol = symbol.split(':')[0]
    return symbol.replace('/', '').lower()


def build_stream_url(base_url: str, symbols: Iterable[str]) -> str:
    """Build the combined stream URL for all symbols."""
    streams = '/'.join(f"{_normalize_symbol(s)}@ticker" for s in symbols)
    return f"{base_url.rstrip('/')}?streams={streams}"


def decode_price_message(data: Any) -> Optional[StreamMessage]:
    """Decode one combined-stream frame into a ``ticker`` PriceTick.

    Frames without a ``data`` object (subscription acks etc.) are ignored.
    """
    if not isinstance(data, dict) or not isinstance(data.get('data'), dict):
        return None
    d = data['data']
    tick = PriceTick(
        symbol=str(d['s']).upper(),
        price=float(d['c']),
        change_24h=float(d['p']),
        change_percent_24h=float(d['P']),
    )
    return StreamMessage(type=MessageType.TICKER, data=tick)


def create_price_stream(config: Dict[str, Any]) -> StreamClient:
    """Build the price-feed client from the loaded configuration."""
    feed = config.get('price_feed') or {}
    policy = ReconnectPolicy.from_config(
        (config.get('streams') or {}).get('price'), PRICE_FEED_POLICY
    )
    url = build_stream_url(
        feed.get('url', DEFAULT_PRICE_FEED_URL),
        feed.get('symbols') or DEFAULT_SYMBOLS,
    )
    return StreamClient(
        name='binance_ws',
        url=url,
        decoder=decode_price_message,
        policy=policy,
        ping_type=None,
        ping_interval=30,
    )
