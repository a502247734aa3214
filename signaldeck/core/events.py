"""
SignalDeck Stream Messages
==========================

Tagged union delivered by :class:`~signaldeck.connectors.stream_client.StreamClient`
to its subscribers.  Every envelope carries a :class:`MessageType` tag and
the typed payload for that tag:

==============  =========================  ==============
tag             payload                    feed
==============  =========================  ==============
``signal``      :class:`Signal`            signal service
``settlement``  :class:`Settlement`        signal service
``ticker``      :class:`TickerIndicators`  signal service
``ticker``      :class:`PriceTick`         price feed
``kline``       :class:`KlineUpdate`       signal service
==============  =========================  ==============

Consumers dispatch on ``envelope.type``; each consumer filters for the
tags it cares about.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union

from .models import KlineUpdate, PriceTick, Settlement, Signal, TickerIndicators


class MessageType(str, Enum):
    SIGNAL = "signal"
    SETTLEMENT = "settlement"
    TICKER = "ticker"
    KLINE = "kline"


# Liveness ping from the signal service and the fixed acknowledgement
PING_TYPE = "ping"
PONG_PAYLOAD = {"type": "pong"}


Payload = Union[Signal, Settlement, TickerIndicators, PriceTick, KlineUpdate]


@dataclass(frozen=True, slots=True)
class StreamMessage:
    """One inbound message after decoding."""
    type: MessageType
    data: Payload
