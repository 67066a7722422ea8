"""Shared fixtures: synthetic price series and an in-memory quote provider."""

from collections.abc import Callable, Sequence
from datetime import date, datetime, timedelta
from zoneinfo import ZoneInfo

import pytest

from app.exceptions import QuoteFetchError
from app.market.providers.base import QuoteProvider
from app.market.schemas import PriceSeries, TimeSeriesPoint

EXCHANGE_TZ = "America/New_York"
START_DAY = date(2024, 3, 1)


def session_timestamp(day: date, hour: int = 16, tz: str = EXCHANGE_TZ) -> int:
    """Epoch seconds for ``hour`` o'clock on ``day`` in the exchange timezone."""
    return int(datetime(day.year, day.month, day.day, hour, tzinfo=ZoneInfo(tz)).timestamp())


def build_series(
    symbol: str,
    closes: Sequence[float | None],
    volumes: Sequence[int | None] | None = None,
    start: date = START_DAY,
    tz: str = EXCHANGE_TZ,
) -> PriceSeries:
    """One point per calendar day starting at ``start``."""
    volumes = list(volumes) if volumes is not None else [1000] * len(closes)
    points = [
        TimeSeriesPoint(
            timestamp=session_timestamp(start + timedelta(days=i), tz=tz),
            close=close,
            volume=volume,
        )
        for i, (close, volume) in enumerate(zip(closes, volumes, strict=True))
    ]
    return PriceSeries(symbol=symbol, timezone=tz, points=points)


class FakeQuoteProvider(QuoteProvider):
    """Serves canned series; symbols mapped to an exception raise it."""

    def __init__(self, series: dict[str, PriceSeries | Exception]) -> None:
        self._series = series
        self.calls: list[tuple[str, date | None]] = []

    async def get_series(self, symbol: str, target_date: date | None = None) -> PriceSeries:
        self.calls.append((symbol, target_date))
        value = self._series.get(symbol)
        if value is None:
            raise QuoteFetchError(symbol, "no canned data")
        if isinstance(value, Exception):
            raise value
        return value


@pytest.fixture
def make_series() -> Callable[..., PriceSeries]:
    return build_series


@pytest.fixture
def benchmarks() -> list[str]:
    return ["QQQ", "SPY", "IWM"]


@pytest.fixture
def market_series() -> dict[str, PriceSeries]:
    """Benchmarks plus two stocks, all with two sessions.

    Price changes on the second session: QQQ +2%, SPY +1%, IWM -1%,
    AAPL +4%, MSFT +0.5%.
    """
    return {
        "QQQ": build_series("QQQ", [100.0, 102.0], [1000, 1000]),
        "SPY": build_series("SPY", [200.0, 202.0], [2000, 2000]),
        "IWM": build_series("IWM", [100.0, 99.0], [500, 1500]),
        "AAPL": build_series("AAPL", [50.0, 52.0], [1000, 3000]),
        "MSFT": build_series("MSFT", [400.0, 402.0], [100, 100]),
    }


@pytest.fixture
def fake_provider(market_series: dict[str, PriceSeries]) -> FakeQuoteProvider:
    return FakeQuoteProvider(dict(market_series))
