"""
Connection Health
=================

Typed health snapshots for the two kinds of connection SignalDeck keeps:
the reconnecting websocket feeds and the one-shot REST client.

Each connector fills its snapshot from its own counters; the state is
classified here so every feed reports the same way:

==================  =====================================================
state               meaning
==================  =====================================================
``ok``              connected (stream) / last request succeeded (REST)
``degraded``        connected but silent for ``STALE_AFTER_SECONDS``,
                    or the last REST request failed
``reconnecting``    a connect attempt is in flight or scheduled
``down``            gave up reconnecting, or closed after an error
``unknown``         nothing attempted yet
==================  =====================================================
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional

STALE_AFTER_SECONDS = 120.0


class LinkState(str, Enum):
    UNKNOWN = "unknown"
    OK = "ok"
    DEGRADED = "degraded"
    RECONNECTING = "reconnecting"
    DOWN = "down"


def utc_iso(ts: Optional[float]) -> Optional[str]:
    if ts is None:
        return None
    return datetime.fromtimestamp(ts, tz=timezone.utc).isoformat()


def update_ema(prev: Optional[float], value: float, alpha: float = 0.2) -> float:
    if prev is None:
        return value
    return (value * alpha) + (prev * (1 - alpha))


def stream_state(
    *,
    connected: bool,
    exhausted: bool,
    reconnecting: bool,
    age_seconds: Optional[float],
    last_error: Optional[str],
) -> LinkState:
    if connected:
        if age_seconds is not None and age_seconds > STALE_AFTER_SECONDS:
            return LinkState.DEGRADED
        return LinkState.OK
    if exhausted:
        return LinkState.DOWN
    if reconnecting:
        return LinkState.RECONNECTING
    return LinkState.DOWN if last_error else LinkState.UNKNOWN


def rest_state(request_count: int, consecutive_failures: int) -> LinkState:
    if request_count == 0:
        return LinkState.UNKNOWN
    return LinkState.DEGRADED if consecutive_failures else LinkState.OK


@dataclass(frozen=True, slots=True)
class StreamHealth:
    """Point-in-time health of one :class:`StreamClient`."""
    name: str
    state: LinkState
    connected: bool
    exhausted: bool
    subscribers: int
    attempts: int                       # since the last successful open
    reconnects_total: int
    last_reconnect_delay: Optional[float] = None
    close_code: Optional[int] = None
    message_count: int = 0
    error_count: int = 0
    avg_dispatch_ms: Optional[float] = None
    last_message_ts: Optional[float] = None
    age_seconds: Optional[float] = None
    connected_since: Optional[float] = None
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": "ws",
            "state": self.state.value,
            "connected": self.connected,
            "exhausted": self.exhausted,
            "subscribers": self.subscribers,
            "reconnect": {
                "attempts": self.attempts,
                "total": self.reconnects_total,
                "last_delay": self.last_reconnect_delay,
                "close_code": self.close_code,
            },
            "counters": {
                "messages": self.message_count,
                "errors": self.error_count,
            },
            "avg_dispatch_ms": self.avg_dispatch_ms,
            "last_message_at": utc_iso(self.last_message_ts),
            "age_seconds": self.age_seconds,
            "connected_since": utc_iso(self.connected_since),
            "last_error": self.last_error,
        }


@dataclass(frozen=True, slots=True)
class RestHealth:
    """Point-in-time health of the signal service REST client."""
    name: str
    base_url: str
    state: LinkState
    request_count: int = 0
    error_count: int = 0
    consecutive_failures: int = 0
    last_http_status: Optional[int] = None
    avg_latency_ms: Optional[float] = None
    last_success_ts: Optional[float] = None
    last_error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": "rest",
            "state": self.state.value,
            "base_url": self.base_url,
            "counters": {
                "requests": self.request_count,
                "errors": self.error_count,
                "consecutive_failures": self.consecutive_failures,
            },
            "last_http_status": self.last_http_status,
            "avg_latency_ms": self.avg_latency_ms,
            "last_success_at": utc_iso(self.last_success_ts),
            "last_error": self.last_error,
        }
