"""Connectors module - stream and REST clients."""
from .binance_ws import create_price_stream
from .signal_service import SignalServiceClient, SignalServiceError
from .signal_ws import create_signal_stream
from .stream_client import StreamClient

__all__ = [
    'StreamClient', 'create_signal_stream', 'create_price_stream',
    'SignalServiceClient', 'SignalServiceError',
]
