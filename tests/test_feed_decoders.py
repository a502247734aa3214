"""
Tests for the signal-feed and price-feed frame decoders and factories.

Run with:  python -m pytest tests/test_feed_decoders.py -v
"""

import pytest

from conftest import settlement_payload, signal_payload
from signaldeck.connectors.binance_ws import (
    build_stream_url,
    create_price_stream,
    decode_price_message,
)
from signaldeck.connectors.signal_ws import create_signal_stream, decode_signal_message
from signaldeck.core.config import PRICE_FEED_POLICY, SIGNAL_FEED_POLICY, ReconnectPolicy
from signaldeck.core.events import MessageType
from signaldeck.core.models import KlineUpdate, PriceTick, Settlement, Signal, TickerIndicators


class TestSignalFeedDecoder:

    @pytest.mark.parametrize("tag,data,payload_type", [
        ("signal", signal_payload(1), Signal),
        ("settlement", settlement_payload(1), Settlement),
        ("ticker", {
            "symbol": "BTCUSDT", "price": 97000.0, "rsi6": 55.0, "rsi14": 52.1,
            "bb_pct": 0.61, "prob_up": 0.58, "prob_down": 0.42,
            "timestamp": "2026-01-08 11:41:05",
        }, TickerIndicators),
        ("kline", {
            "symbol": "BTCUSDT", "timestamp": 1736336460000, "open": 1, "high": 1,
            "low": 1, "close": 1, "volume": 0, "total_klines": 10,
        }, KlineUpdate),
    ])
    def test_known_tags(self, tag, data, payload_type):
        message = decode_signal_message({"type": tag, "data": data})
        assert message.type is MessageType(tag)
        assert isinstance(message.data, payload_type)

    def test_unknown_tag_returns_none(self):
        assert decode_signal_message({"type": "news", "data": {}}) is None
        assert decode_signal_message({}) is None

    @pytest.mark.parametrize("frame", [
        [1, 2, 3],
        "signal",
        {"type": "signal"},
        {"type": "signal", "data": "oops"},
        {"type": "settlement", "data": {"id": 1}},
    ])
    def test_malformed_frames_raise(self, frame):
        with pytest.raises(ValueError):
            decode_signal_message(frame)

    def test_factory_reads_config(self):
        stream = create_signal_stream({
            "signal_service": {"ws_url": "ws://example:9000/ws"},
            "streams": {"signal": {"base_delay": 2, "max_delay": 20, "max_attempts": 4}},
        })
        assert stream.name == "signal_ws"
        assert stream.url == "ws://example:9000/ws"
        assert stream.policy == ReconnectPolicy(2.0, 20.0, 4)

    def test_factory_defaults(self):
        assert create_signal_stream({}).policy == SIGNAL_FEED_POLICY


class TestPriceFeedDecoder:

    def test_ticker_frame(self):
        message = decode_price_message({
            "stream": "btcusdt@ticker",
            "data": {"e": "24hrTicker", "s": "BTCUSDT", "c": "97000.10", "p": "-120.50", "P": "-0.124"},
        })
        assert message.type is MessageType.TICKER
        assert message.data == PriceTick("BTCUSDT", 97000.10, -120.50, -0.124)

    def test_frame_without_data_is_ignored(self):
        assert decode_price_message({"result": None, "id": 1}) is None
        assert decode_price_message("hello") is None

    def test_missing_ticker_field_raises(self):
        with pytest.raises(KeyError):
            decode_price_message({"data": {"s": "BTCUSDT", "c": "1"}})

    def test_stream_url(self):
        url = build_stream_url("wss://stream.binance.com:9443/stream/", ["BTC/USDT:USDT", "ethusdt"])
        assert url == "wss://stream.binance.com:9443/stream?streams=btcusdt@ticker/ethusdt@ticker"

    def test_factory_uses_price_policy(self):
        stream = create_price_stream({"price_feed": {"symbols": ["solusdt"]}})
        assert stream.name == "binance_ws"
        assert stream.url.endswith("?streams=solusdt@ticker")
        assert stream.policy == PRICE_FEED_POLICY
