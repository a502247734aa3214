"""
Signal Service Feed
===================

Decoder and factory for the signal service's own websocket channel.

Frames look like ``{"type": "<tag>", "data": {...}}`` where the tag is one
of ``signal``, ``settlement``, ``ticker`` or ``kline``; ``{"type": "ping"}``
is the liveness ping handled by the stream client itself.
"""

from typing import Any, Callable, Dict, Optional

from ..core.config import DEFAULT_WS_URL, SIGNAL_FEED_POLICY, ReconnectPolicy
from ..core.events import MessageType, Payload, StreamMessage
from ..core.models import KlineUpdate, Settlement, Signal, TickerIndicators
from .stream_client import StreamClient

_PAYLOAD_DECODERS: Dict[MessageType, Callable[[Dict[str, Any]], Payload]] = {
    MessageType.SIGNAL: Signal.from_dict,
    MessageType.SETTLEMENT: Settlement.from_dict,
    MessageType.TICKER: TickerIndicators.from_dict,
    MessageType.KLINE: KlineUpdate.from_dict,
}


def decode_signal_message(data: Any) -> Optional[StreamMessage]:
    """Decode one signal-feed frame.

    Returns None for tags this client does not know (ignored, not an
    error).  Raises ValueError for frames that are not objects or whose
    payload does not decode.
    """
    if not isinstance(data, dict):
        raise ValueError(f"expected an object frame, got {type(data).__name__}")
    try:
        kind = MessageType(data.get('type'))
    except ValueError:
        return None
    payload = data.get('data')
    if not isinstance(payload, dict):
        raise ValueError(f"{kind.value} frame without a data object")
    return StreamMessage(type=kind, data=_PAYLOAD_DECODERS[kind](payload))


def create_signal_stream(config: Dict[str, Any]) -> StreamClient:
    """Build the signal-feed client from the loaded configuration."""
    service = config.get('signal_service') or {}
    policy = ReconnectPolicy.from_config(
        (config.get('streams') or {}).get('signal'), SIGNAL_FEED_POLICY
    )
    return StreamClient(
        name='signal_ws',
        url=service.get('ws_url', DEFAULT_WS_URL),
        decoder=decode_signal_message,
        policy=policy,
    )
