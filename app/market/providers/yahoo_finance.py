import asyncio
import math
from datetime import date, timedelta

import pandas as pd
import structlog
import yfinance as yf

from app.config import settings
from app.exceptions import NotFoundError, QuoteFetchError
from app.market.providers.base import QuoteProvider
from app.market.schemas import PriceSeries, TimeSeriesPoint

logger = structlog.get_logger()

# Calendar days fetched before a requested date; covers the volume window.
LOOKBACK_DAYS = 31


def _fetch_history(
    symbol: str, period: str, interval: str, target_date: date | None, timeout: float
) -> pd.DataFrame:
    """Fetch daily history synchronously (to be run in a thread)."""
    t = yf.Ticker(symbol)
    if target_date is None:
        hist = t.history(period=period, interval=interval, auto_adjust=False, timeout=timeout)
    else:
        hist = t.history(
            start=(target_date - timedelta(days=LOOKBACK_DAYS)).isoformat(),
            end=(target_date + timedelta(days=1)).isoformat(),
            interval=interval,
            auto_adjust=False,
            timeout=timeout,
        )
    if hist is None or hist.empty:
        raise NotFoundError("Ticker", symbol)
    return hist


def _to_int_or_none(value) -> int | None:
    if value is None:
        return None
    try:
        num = float(value)
    except (TypeError, ValueError):
        return None
    if math.isnan(num):
        return None
    return int(num)


def frame_to_series(symbol: str, hist: pd.DataFrame, fallback_tz: str) -> PriceSeries:
    """Convert a yfinance history frame into an ascending PriceSeries.

    A missing close or volume is kept as ``None``.
    """
    if "Close" not in hist.columns:
        raise QuoteFetchError(symbol, "history frame has no Close column")

    index = pd.DatetimeIndex(hist.index)
    tz_name = str(index.tz) if index.tz is not None else fallback_tz
    if index.tz is None:
        index = index.tz_localize(tz_name)

    closes = pd.to_numeric(hist["Close"], errors="coerce")
    volumes = hist["Volume"] if "Volume" in hist.columns else pd.Series(index=hist.index, dtype=float)

    points: list[TimeSeriesPoint] = []
    for ts, close, volume in zip(index, closes.tolist(), volumes.tolist(), strict=True):
        points.append(
            TimeSeriesPoint(
                timestamp=int(ts.timestamp()),
                close=None if close is None or math.isnan(close) else float(close),
                volume=_to_int_or_none(volume),
            )
        )

    points.sort(key=lambda p: p.timestamp)
    return PriceSeries(symbol=symbol, timezone=tz_name, points=points)


class YahooFinanceProvider(QuoteProvider):
    def __init__(
        self,
        period: str | None = None,
        interval: str | None = None,
        fallback_tz: str | None = None,
        timeout: float | None = None,
    ) -> None:
        self._period = period or settings.history_range
        self._interval = interval or settings.history_interval
        self._fallback_tz = fallback_tz or settings.market_timezone
        self._timeout = timeout or settings.fetch_timeout_seconds

    async def get_series(self, symbol: str, target_date: date | None = None) -> PriceSeries:
        try:
            hist = await asyncio.to_thread(
                _fetch_history, symbol, self._period, self._interval, target_date, self._timeout
            )
        except NotFoundError:
            raise
        except Exception as exc:
            logger.error("yfinance_history_error", symbol=symbol, error=str(exc))
            raise QuoteFetchError(symbol, str(exc)) from exc

        series = frame_to_series(symbol, hist, self._fallback_tz)
        logger.debug("yfinance_history_fetched", symbol=symbol, points=len(series.points))
        return series
