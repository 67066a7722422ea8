import asyncio
import calendar
from datetime import date, timedelta

import requests
import structlog

from app.config import settings
from app.exceptions import NotFoundError, QuoteFetchError
from app.market.providers.base import QuoteProvider
from app.market.schemas import PriceSeries, TimeSeriesPoint

logger = structlog.get_logger()

CHART_URL = "https://query1.finance.yahoo.com/v8/finance/chart/{symbol}"
HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/124.0 Safari/537.36"
    )
}

# Calendar days fetched before a requested date; covers the volume window.
LOOKBACK_DAYS = 31


def _fetch_chart(symbol: str, params: dict, timeout: float) -> dict:
    """GET the chart payload synchronously (to be run in a thread)."""
    response = requests.get(
        CHART_URL.format(symbol=symbol), params=params, headers=HEADERS, timeout=timeout
    )
    if response.status_code == 404:
        raise NotFoundError("Ticker", symbol)
    response.raise_for_status()
    return response.json()


def _epoch(day: date) -> int:
    return calendar.timegm(day.timetuple())


def build_params(
    range_: str, interval: str, target_date: date | None = None
) -> dict[str, str | int]:
    """Query parameters for the trailing range, or a window ending on ``target_date``."""
    if target_date is None:
        return {"range": range_, "interval": interval}
    return {
        "period1": _epoch(target_date - timedelta(days=LOOKBACK_DAYS)),
        "period2": _epoch(target_date + timedelta(days=1)),
        "interval": interval,
    }


def parse_chart_payload(symbol: str, payload: dict, fallback_tz: str) -> PriceSeries:
    """Turn a chart API response into a PriceSeries.

    Raises NotFoundError when the API reports an error for the symbol and
    QuoteFetchError when the payload does not have the expected shape.
    """
    chart = payload.get("chart") if isinstance(payload, dict) else None
    if not chart:
        raise QuoteFetchError(symbol, "missing 'chart' object")
    if chart.get("error"):
        raise NotFoundError("Ticker", symbol)

    try:
        result = chart["result"][0]
        meta = result.get("meta") or {}
        timestamps = result.get("timestamp") or []
        quote = result["indicators"]["quote"][0]
    except (KeyError, IndexError, TypeError) as exc:
        raise QuoteFetchError(symbol, f"malformed payload: {exc}") from exc

    closes = quote.get("close") or []
    volumes = quote.get("volume") or []
    if len(closes) != len(timestamps):
        raise QuoteFetchError(symbol, "close and timestamp arrays differ in length")

    points: list[TimeSeriesPoint] = []
    for i, ts in enumerate(timestamps):
        close = closes[i]
        volume = volumes[i] if i < len(volumes) else None
        points.append(
            TimeSeriesPoint(
                timestamp=int(ts),
                close=float(close) if close is not None else None,
                volume=int(volume) if volume is not None else None,
            )
        )

    points.sort(key=lambda p: p.timestamp)
    tz_name = meta.get("exchangeTimezoneName") or fallback_tz
    return PriceSeries(symbol=symbol, timezone=tz_name, points=points)


class YahooChartProvider(QuoteProvider):
    def __init__(
        self,
        range_: str | None = None,
        interval: str | None = None,
        timeout: float | None = None,
        fallback_tz: str | None = None,
    ) -> None:
        self._range = range_ or settings.history_range
        self._interval = interval or settings.history_interval
        self._timeout = timeout or settings.fetch_timeout_seconds
        self._fallback_tz = fallback_tz or settings.market_timezone

    async def get_series(self, symbol: str, target_date: date | None = None) -> PriceSeries:
        params = build_params(self._range, self._interval, target_date)
        try:
            payload = await asyncio.to_thread(_fetch_chart, symbol, params, self._timeout)
        except NotFoundError:
            raise
        except (requests.RequestException, ValueError) as exc:
            logger.error("chart_api_error", symbol=symbol, error=str(exc))
            raise QuoteFetchError(symbol, str(exc)) from exc

        series = parse_chart_payload(symbol, payload, self._fallback_tz)
        logger.debug("chart_api_fetched", symbol=symbol, points=len(series.points))
        return series
