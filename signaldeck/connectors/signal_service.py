"""
Signal Service REST Client
==========================

One-shot request/response calls against the signal service.

Any failure (transport error, timeout, non-2xx status, undecodable body)
is raised as :class:`SignalServiceError`.  Nothing is retried here; the
caller decides what to surface.
"""

import asyncio
import time
from datetime import date
from typing import Any, Dict, Optional

import aiohttp

from ..core.config import DEFAULT_API_URL
from ..core.logger import get_connector_logger
from ..core.models import (
    BacktestComparison,
    Health,
    KlineWindow,
    ServiceStats,
    SignalPage,
)
from ..core.status import RestHealth, rest_state, update_ema

logger = get_connector_logger('signal_service')

TODAY_FETCH_LIMIT = 200


class SignalServiceError(Exception):
    """A request to the signal service failed."""

    def __init__(self, message: str, status: Optional[int] = None, url: Optional[str] = None):
        super().__init__(message)
        self.status = status
        self.url = url


class SignalServiceClient:
    """Async REST client for the signal service API."""

    def __init__(self, base_url: str = DEFAULT_API_URL, timeout: float = 10.0):
        """
        Args:
            base_url: Service root, e.g. ``http://localhost:8000``
            timeout: Total per-request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self._timeout = aiohttp.ClientTimeout(total=timeout)
        self._session: Optional[aiohttp.ClientSession] = None
        self.last_success_ts: Optional[float] = None
        self.last_error: Optional[str] = None
        self.last_http_status: Optional[int] = None
        self.consecutive_failures = 0
        self.request_count = 0
        self.error_count = 0
        self.avg_latency_ms: Optional[float] = None

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "SignalServiceClient":
        service = config.get('signal_service') or {}
        return cls(
            base_url=service.get('api_url', DEFAULT_API_URL),
            timeout=float(service.get('timeout_seconds', 10)),
        )

    async def _get_session(self) -> aiohttp.ClientSession:
        """Get or create HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=self._timeout)
        return self._session

    async def close(self) -> None:
        """Close HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        session = await self._get_session()
        url = f"{self.base_url}{path}"
        start = time.perf_counter()
        self.request_count += 1

        try:
            async with session.get(url, params=params) as resp:
                self.last_http_status = resp.status
                if resp.status < 200 or resp.status >= 300:
                    raise SignalServiceError(
                        f"GET {path} failed: HTTP {resp.status}", status=resp.status, url=url
                    )
                try:
                    data = await resp.json()
                except (aiohttp.ContentTypeError, ValueError) as e:
                    raise SignalServiceError(
                        f"GET {path} returned an undecodable body: {e}",
                        status=resp.status, url=url,
                    ) from e
        except SignalServiceError as e:
            self._record_failure(str(e))
            raise
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            message = f"GET {path} failed: {e or type(e).__name__}"
            self._record_failure(message)
            raise SignalServiceError(message, url=url) from e

        self.avg_latency_ms = update_ema(self.avg_latency_ms, (time.perf_counter() - start) * 1000)
        self.last_success_ts = time.time()
        self.consecutive_failures = 0
        self.last_error = None
        return data

    def _record_failure(self, message: str) -> None:
        self.last_error = message
        self.error_count += 1
        self.consecutive_failures += 1
        logger.warning(message)

    def _decode(self, path: str, decoder, data: Any):
        url = f"{self.base_url}{path}"
        if not isinstance(data, dict):
            message = f"GET {path} returned {type(data).__name__}, expected object"
            self._record_failure(message)
            raise SignalServiceError(message, status=self.last_http_status, url=url)
        try:
            return decoder(data)
        except (KeyError, TypeError, ValueError, OverflowError) as e:
            message = f"GET {path} returned an invalid payload: {e}"
            self._record_failure(message)
            raise SignalServiceError(message, status=self.last_http_status, url=url) from e

    # ──── endpoints ─────────────────────────────────────────

    async def get_health(self) -> Health:
        path = "/api/health"
        return self._decode(path, Health.from_dict, await self._get(path))

    async def get_signals(
        self,
        symbol: Optional[str] = None,
        status: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> SignalPage:
        """List signals, optionally filtered by symbol and status."""
        params: Dict[str, Any] = {}
        if symbol:
            params['symbol'] = symbol
        if status:
            params['status'] = status
        if limit:
            params['limit'] = str(limit)
        path = "/api/signals"
        return self._decode(path, SignalPage.from_dict, await self._get(path, params))

    async def get_latest_signals(self, limit: int = 10) -> SignalPage:
        """Newest signals first."""
        path = "/api/signals/latest"
        data = await self._get(path, {'limit': str(limit)})
        return self._decode(path, SignalPage.from_dict, data)

    async def get_today_signals(self, today: Optional[date] = None) -> SignalPage:
        """Signals created on or after local midnight of *today*.

        The service has no day filter; the newest ``TODAY_FETCH_LIMIT``
        signals are fetched and filtered on the ``created_at`` prefix.
        """
        day = (today or date.today()).isoformat()
        page = await self.get_signals(limit=TODAY_FETCH_LIMIT)
        signals = [s for s in page.signals if s.created_at[:10] >= day]
        return SignalPage(signals=signals, total=len(signals))

    async def get_stats(self, days: Optional[int] = None) -> ServiceStats:
        """Aggregate stats, optionally restricted to the last *days* days."""
        path = "/api/stats"
        params = {'days': str(days)} if days else None
        return self._decode(path, ServiceStats.from_dict, await self._get(path, params))

    async def get_today_stats(self) -> ServiceStats:
        path = "/api/stats/today"
        return self._decode(path, ServiceStats.from_dict, await self._get(path))

    async def get_klines(self, symbol: str, limit: int = 100) -> KlineWindow:
        """Newest *limit* 1-minute bars for *symbol*, oldest first."""
        path = f"/api/klines/{symbol}"
        data = await self._get(path, {'limit': str(limit)})
        return self._decode(path, KlineWindow.from_dict, data)

    async def get_backtest_comparison(self, day: str) -> BacktestComparison:
        """Independent backtest vs live signals for one ``YYYY-MM-DD`` day."""
        path = "/api/backtest/today"
        data = await self._get(path, {'date': day})
        return self._decode(path, BacktestComparison.from_dict, data)

    def get_health_status(self) -> RestHealth:
        return RestHealth(
            name="signal_service",
            base_url=self.base_url,
            state=rest_state(self.request_count, self.consecutive_failures),
            request_count=self.request_count,
            error_count=self.error_count,
            consecutive_failures=self.consecutive_failures,
            last_http_status=self.last_http_status,
            avg_latency_ms=self.avg_latency_ms,
            last_success_ts=self.last_success_ts,
            last_error=self.last_error,
        )
