"""
Reconnecting Stream Client
==========================

Generic publish/subscribe wrapper around one websocket message source.

* ``connect()`` is a no-op while a connection is open or opening.
* Every decoded message goes to every subscriber, in arrival order, one
  handler at a time on the reader task.  Subscribers filter by tag.
* A liveness ping (``{"type": "ping"}``) is answered with
  ``{"type": "pong"}`` on the same connection and never reaches
  subscribers.
* Undecodable payloads are logged and dropped.  A failing subscriber is
  logged and skipped; delivery to the others continues.

Reconnection
------------
After an unexpected close (or a failed open) one reconnect is scheduled
``min(base_delay * 2**attempts, max_delay)`` seconds out and ``attempts``
is incremented.  A successful open resets ``attempts`` to zero.  Once
``attempts`` reaches ``max_attempts`` the client gives up for good and
reports ``exhausted`` until ``connect()`` is called explicitly.  Only one
reconnect timer is ever pending; ``disconnect()`` cancels it.
"""

from __future__ import annotations

import asyncio
import inspect
import json
import time
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

import websockets
from websockets.exceptions import ConnectionClosed

from ..core.config import ReconnectPolicy
from ..core.events import PING_TYPE, PONG_PAYLOAD, StreamMessage
from ..core.logger import get_connector_logger
from ..core.status import StreamHealth, stream_state, update_ema

Handler = Callable[[StreamMessage], Union[None, Awaitable[None]]]
Decoder = Callable[[Any], Optional[StreamMessage]]


def _ws_is_open(ws) -> bool:
    """Check if a websocket connection is open across websockets versions."""
    if ws is None:
        return False
    if hasattr(ws, 'closed'):
        return not ws.closed
    if hasattr(ws, 'open'):
        return ws.open
    if hasattr(ws, 'state'):
        from websockets.protocol import State
        return ws.state == State.OPEN
    return False


class StreamClient:
    """Reconnecting websocket client fanning decoded messages out to subscribers.

    Instances are independent: each owns its own connection, subscriber
    set, attempt counter and reconnect timer.
    """

    def __init__(
        self,
        name: str,
        url: str,
        decoder: Decoder,
        policy: ReconnectPolicy,
        *,
        ping_type: Optional[str] = PING_TYPE,
        ping_interval: Optional[float] = 20,
        ping_timeout: Optional[float] = 10,
    ):
        """
        Args:
            name: Short name used in logs and health output
            url: Websocket URL
            decoder: Turns a parsed JSON value into a StreamMessage; returns
                None for messages subscribers should not see, raises on
                malformed payloads
            policy: Reconnect backoff policy
            ping_type: ``type`` value of the application-level liveness
                ping, or None when the source sends none
            ping_interval: websocket-level keepalive interval
            ping_timeout: websocket-level keepalive timeout
        """
        self.name = name
        self.url = url
        self.policy = policy
        self._decoder = decoder
        self._ping_type = ping_type
        self._ping_interval = ping_interval
        self._ping_timeout = ping_timeout
        self.logger = get_connector_logger(name)

        self._ws = None
        self._task: Optional[asyncio.Task] = None
        self._reconnect_handle: Optional[asyncio.TimerHandle] = None
        self._closing = False
        self._attempts = 0
        self._exhausted = False

        self._handlers: Dict[int, Handler] = {}
        self._next_token = 0

        # Health counters
        self._connected_since: Optional[float] = None
        self.last_message_ts: Optional[float] = None
        self.last_error: Optional[str] = None
        self.last_close_code: Optional[int] = None
        self.last_reconnect_delay: Optional[float] = None
        self.reconnect_attempts_total = 0
        self.message_count = 0
        self.error_count = 0
        self.avg_dispatch_ms: Optional[float] = None

    # ──── subscription ──────────────────────────────────────

    def subscribe(self, handler: Handler) -> Callable[[], None]:
        """Register *handler*; returns a callable that deregisters it.

        The returned callable is safe to call more than once.
        """
        token = self._next_token
        self._next_token += 1
        self._handlers[token] = handler

        def unsubscribe() -> None:
            self._handlers.pop(token, None)

        return unsubscribe

    @property
    def subscriber_count(self) -> int:
        return len(self._handlers)

    # ──── connection lifecycle ──────────────────────────────

    def connect(self) -> None:
        """Open the connection unless one is already open or being opened.

        Must be called from a running event loop.  After reconnect
        exhaustion this is the way to start over with a fresh attempt count.
        """
        if self.is_connected or self._opening:
            return
        self._cancel_reconnect()
        if self._exhausted:
            self.logger.info("%s: manual reconnect after exhaustion", self.name)
            self._attempts = 0
            self._exhausted = False
        self._closing = False
        self._start()

    async def disconnect(self) -> None:
        """Cancel any pending reconnect and close the active connection."""
        self._closing = True
        self._cancel_reconnect()
        self._attempts = 0
        self._exhausted = False

        ws, self._ws = self._ws, None
        task, self._task = self._task, None
        if ws is not None:
            await ws.close()
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            await asyncio.gather(task, return_exceptions=True)
        self.logger.info("%s disconnected", self.name)

    @property
    def is_connected(self) -> bool:
        """Advisory: True iff the transport reports an open connection right now."""
        return _ws_is_open(self._ws)

    @property
    def exhausted(self) -> bool:
        """True once automatic reconnection has given up."""
        return self._exhausted

    @property
    def reconnect_pending(self) -> bool:
        return self._reconnect_handle is not None

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def _opening(self) -> bool:
        return self._task is not None and not self._task.done()

    def _start(self) -> None:
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(), name=f"stream-{self.name}")

    def _cancel_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            self._reconnect_handle.cancel()
            self._reconnect_handle = None

    async def _run(self) -> None:
        """Open one connection and read it until it closes."""
        self.logger.info("Connecting %s to %s", self.name, self.url)
        try:
            ws = await websockets.connect(
                self.url,
                ping_interval=self._ping_interval,
                ping_timeout=self._ping_timeout,
            )
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self.last_error = str(e) or type(e).__name__
            self.error_count += 1
            self.logger.warning("%s connect failed: %s", self.name, self.last_error)
            self._handle_close()
            return

        if self._closing:
            await ws.close()
            return

        self._ws = ws
        self._attempts = 0
        self._connected_since = time.time()
        self.logger.info("%s connected", self.name)

        try:
            async for raw in ws:
                await self._dispatch(ws, raw)
        except ConnectionClosed as e:
            self.last_close_code = e.rcvd.code if e.rcvd is not None else None
            self.last_error = f"closed:{self.last_close_code}"
            self.error_count += 1
            self.logger.warning("%s closed: %s", self.name, self.last_close_code)
        except Exception as e:
            self.last_error = str(e) or type(e).__name__
            self.error_count += 1
            self.logger.error("%s read loop error: %s", self.name, self.last_error)
            # The transport may still be open; release it before reconnecting
            await ws.close()
        finally:
            if self._ws is ws:
                self._ws = None
            self._connected_since = None

        self._handle_close()

    def _handle_close(self) -> None:
        if self._closing:
            return
        self._schedule_reconnect()

    def _schedule_reconnect(self) -> None:
        if self._reconnect_handle is not None:
            return
        if self._attempts >= self.policy.max_attempts:
            self._exhausted = True
            self.logger.error(
                "%s: max reconnect attempts (%d) reached, giving up",
                self.name, self.policy.max_attempts,
            )
            return

        delay = self.policy.delay_for(self._attempts)
        self._attempts += 1
        self.reconnect_attempts_total += 1
        self.last_reconnect_delay = delay
        self.logger.info(
            "%s reconnecting in %.1fs (attempt %d/%d)",
            self.name, delay, self._attempts, self.policy.max_attempts,
        )
        loop = asyncio.get_running_loop()
        self._reconnect_handle = loop.call_later(delay, self._on_reconnect_timer)

    def _on_reconnect_timer(self) -> None:
        self._reconnect_handle = None
        if self._closing or self.is_connected or self._opening:
            return
        self._start()

    # ──── dispatch ──────────────────────────────────────────

    async def _dispatch(self, ws, raw: Union[str, bytes]) -> None:
        """Decode one raw frame and hand it to every subscriber."""
        self.last_message_ts = time.time()
        self.message_count += 1

        try:
            data = json.loads(raw)
        except (TypeError, ValueError, RecursionError):
            self.error_count += 1
            self.logger.warning("%s invalid JSON: %r", self.name, raw[:100])
            return

        if (
            self._ping_type is not None
            and isinstance(data, dict)
            and data.get('type') == self._ping_type
        ):
            await self._send_pong(ws)
            return

        try:
            message = self._decoder(data)
        except Exception as e:
            # Any decode failure drops this frame only
            self.error_count += 1
            self.logger.warning(
                "%s malformed message dropped: %s: %s", self.name, type(e).__name__, e
            )
            return

        if message is None:
            return

        start = time.perf_counter()
        # Snapshot: unsubscribing mid-pass does not affect this message
        handlers: List[Handler] = list(self._handlers.values())
        for handler in handlers:
            try:
                result = handler(message)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                self.logger.error(
                    "%s subscriber %s failed on %s message",
                    self.name, getattr(handler, '__qualname__', handler),
                    message.type.value, exc_info=True,
                )
        self.avg_dispatch_ms = update_ema(
            self.avg_dispatch_ms, (time.perf_counter() - start) * 1000
        )

    async def _send_pong(self, ws) -> None:
        try:
            await ws.send(json.dumps(PONG_PAYLOAD))
        except ConnectionClosed:
            self.logger.debug("%s closed before pong could be sent", self.name)

    # ──── health ────────────────────────────────────────────

    def get_health_status(self) -> StreamHealth:
        """Return a health snapshot for status logging."""
        connected = self.is_connected
        age = (time.time() - self.last_message_ts) if self.last_message_ts else None
        return StreamHealth(
            name=self.name,
            state=stream_state(
                connected=connected,
                exhausted=self._exhausted,
                reconnecting=self.reconnect_pending or self._opening,
                age_seconds=age,
                last_error=self.last_error,
            ),
            connected=connected,
            exhausted=self._exhausted,
            subscribers=len(self._handlers),
            attempts=self._attempts,
            reconnects_total=self.reconnect_attempts_total,
            last_reconnect_delay=self.last_reconnect_delay,
            close_code=self.last_close_code,
            message_count=self.message_count,
            error_count=self.error_count,
            avg_dispatch_ms=self.avg_dispatch_ms,
            last_message_ts=self.last_message_ts,
            age_seconds=round(age, 1) if age is not None else None,
            connected_since=self._connected_since,
            last_error=self.last_error,
        )
