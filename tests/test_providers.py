"""Tests for the Yahoo quote providers and the provider factory."""

from datetime import date

import pandas as pd
import pytest
import requests

from app.analysis.engine import compute_symbol_metrics
from app.exceptions import AppError, NotFoundError, QuoteFetchError
from app.market.providers import yahoo_chart, yahoo_finance
from app.market.providers.factory import QuoteProviderFactory
from app.market.providers.yahoo_chart import (
    YahooChartProvider,
    build_params,
    parse_chart_payload,
)
from app.market.providers.yahoo_finance import YahooFinanceProvider, frame_to_series


def _chart_payload(
    timestamps: list[int],
    closes: list[float | None],
    volumes: list[int | None],
    tz: str | None = "America/New_York",
) -> dict:
    meta = {"symbol": "AAPL"}
    if tz:
        meta["exchangeTimezoneName"] = tz
    return {
        "chart": {
            "result": [
                {
                    "meta": meta,
                    "timestamp": timestamps,
                    "indicators": {"quote": [{"close": closes, "volume": volumes}]},
                }
            ],
            "error": None,
        }
    }


class TestParseChartPayload:
    def test_points_and_timezone(self) -> None:
        payload = _chart_payload([1709316000, 1709575200], [180.5, 182.0], [1000, None])
        series = parse_chart_payload("AAPL", payload, "UTC")

        assert series.symbol == "AAPL"
        assert series.timezone == "America/New_York"
        assert [p.close for p in series.points] == [180.5, 182.0]
        assert [p.volume for p in series.points] == [1000, None]

    def test_points_without_close_kept(self) -> None:
        payload = _chart_payload([1, 2, 3], [10.0, None, 12.0], [5, 6, 7])
        series = parse_chart_payload("AAPL", payload, "UTC")
        assert [p.close for p in series.points] == [10.0, None, 12.0]
        assert [p.volume for p in series.points] == [5, 6, 7]

    def test_fallback_timezone(self) -> None:
        payload = _chart_payload([1], [10.0], [5], tz=None)
        assert parse_chart_payload("AAPL", payload, "America/Chicago").timezone == "America/Chicago"

    def test_gap_in_closes_through_engine(self) -> None:
        day = 86400
        payload = _chart_payload(
            [1709316000, 1709316000 + day, 1709316000 + 2 * day], [100.0, None, 110.0], [1000, 5000, 3000]
        )
        m = compute_symbol_metrics(parse_chart_payload("AAPL", payload, "UTC"))

        assert m is not None
        assert m.price_change_pct == 0.0
        assert m.avg_volume == 3000.0

    def test_points_sorted_ascending(self) -> None:
        payload = _chart_payload([3, 1, 2], [3.0, 1.0, 2.0], [1, 1, 1])
        series = parse_chart_payload("AAPL", payload, "UTC")
        assert [p.timestamp for p in series.points] == [1, 2, 3]

    def test_api_error_is_not_found(self) -> None:
        payload = {"chart": {"result": None, "error": {"code": "Not Found"}}}
        with pytest.raises(NotFoundError):
            parse_chart_payload("ZZZZ", payload, "UTC")

    @pytest.mark.parametrize(
        "payload",
        [
            {},
            {"chart": {"result": [], "error": None}},
            {"chart": {"result": [{"timestamp": [1]}], "error": None}},
            _chart_payload([1, 2], [10.0], [5, 6]),
        ],
    )
    def test_malformed_payload(self, payload: dict) -> None:
        with pytest.raises(QuoteFetchError):
            parse_chart_payload("AAPL", payload, "UTC")


class TestBuildParams:
    def test_trailing_range(self) -> None:
        assert build_params("1mo", "1d") == {"range": "1mo", "interval": "1d"}

    def test_window_ending_on_date(self) -> None:
        params = build_params("1mo", "1d", date(2024, 3, 1))
        assert params["interval"] == "1d"
        assert params["period2"] == 1709337600  # 2024-03-02T00:00:00Z
        assert params["period2"] - params["period1"] == 32 * 86400
        assert "range" not in params


class TestYahooChartProvider:
    @pytest.mark.asyncio
    async def test_get_series(self, monkeypatch: pytest.MonkeyPatch) -> None:
        seen: dict = {}

        def fake_fetch(symbol: str, params: dict, timeout: float) -> dict:
            seen.update(symbol=symbol, params=params, timeout=timeout)
            return _chart_payload([1709316000], [100.0], [10])

        monkeypatch.setattr(yahoo_chart, "_fetch_chart", fake_fetch)
        provider = YahooChartProvider(range_="1mo", interval="1d", timeout=3.0)

        series = await provider.get_series("AAPL")

        assert seen == {"symbol": "AAPL", "params": {"range": "1mo", "interval": "1d"}, "timeout": 3.0}
        assert len(series.points) == 1

    @pytest.mark.asyncio
    async def test_transport_error_wrapped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_fetch(symbol: str, params: dict, timeout: float) -> dict:
            raise requests.ConnectionError("connection refused")

        monkeypatch.setattr(yahoo_chart, "_fetch_chart", fake_fetch)

        with pytest.raises(QuoteFetchError):
            await YahooChartProvider().get_series("AAPL")

    @pytest.mark.asyncio
    async def test_not_found_propagates(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def fake_fetch(symbol: str, params: dict, timeout: float) -> dict:
            raise NotFoundError("Ticker", symbol)

        monkeypatch.setattr(yahoo_chart, "_fetch_chart", fake_fetch)

        with pytest.raises(NotFoundError):
            await YahooChartProvider().get_series("ZZZZ")


def _history_frame(tz: str | None = "America/New_York") -> pd.DataFrame:
    index = pd.DatetimeIndex(["2024-03-01", "2024-03-04", "2024-03-05"])
    if tz:
        index = index.tz_localize(tz)
    return pd.DataFrame(
        {
            "Open": [1.0, 1.0, 1.0],
            "Close": [180.0, float("nan"), 182.5],
            "Volume": [1000.0, 2000.0, float("nan")],
        },
        index=index,
    )


class TestFrameToSeries:
    def test_converts_rows(self) -> None:
        series = frame_to_series("AAPL", _history_frame(), "UTC")

        assert series.timezone == "America/New_York"
        assert [p.close for p in series.points] == [180.0, None, 182.5]
        assert [p.volume for p in series.points] == [1000, 2000, None]
        assert series.points[0].timestamp == 1709269200  # 2024-03-01 00:00 New York

    def test_naive_index_uses_fallback_timezone(self) -> None:
        series = frame_to_series("AAPL", _history_frame(tz=None), "America/New_York")
        assert series.timezone == "America/New_York"
        assert series.points[0].timestamp == 1709269200

    def test_missing_close_column(self) -> None:
        with pytest.raises(QuoteFetchError):
            frame_to_series("AAPL", pd.DataFrame({"Volume": [1]}), "UTC")


class TestYahooFinanceProvider:
    @pytest.mark.asyncio
    async def test_get_series(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setattr(yahoo_finance, "_fetch_history", lambda *args: _history_frame())
        series = await YahooFinanceProvider().get_series("AAPL", date(2024, 3, 5))
        assert len(series.points) == 3

    @pytest.mark.asyncio
    async def test_library_error_wrapped(self, monkeypatch: pytest.MonkeyPatch) -> None:
        def boom(*args):
            raise RuntimeError("rate limited")

        monkeypatch.setattr(yahoo_finance, "_fetch_history", boom)

        with pytest.raises(QuoteFetchError):
            await YahooFinanceProvider().get_series("AAPL")

    @pytest.mark.asyncio
    async def test_empty_history_is_not_found(self, monkeypatch: pytest.MonkeyPatch) -> None:
        class _EmptyTicker:
            def __init__(self, symbol: str) -> None:
                self.symbol = symbol

            def history(self, **kwargs) -> pd.DataFrame:
                return pd.DataFrame()

        monkeypatch.setattr(yahoo_finance.yf, "Ticker", _EmptyTicker)

        with pytest.raises(NotFoundError):
            await YahooFinanceProvider().get_series("ZZZZ")

    @pytest.mark.asyncio
    async def test_timeout_passed_to_history(self, monkeypatch: pytest.MonkeyPatch) -> None:
        seen: list[dict] = []

        class _RecordingTicker:
            def __init__(self, symbol: str) -> None:
                self.symbol = symbol

            def history(self, **kwargs) -> pd.DataFrame:
                seen.append(kwargs)
                return _history_frame()

        monkeypatch.setattr(yahoo_finance.yf, "Ticker", _RecordingTicker)
        provider = YahooFinanceProvider(timeout=3.0)

        await provider.get_series("AAPL")
        await provider.get_series("AAPL", date(2024, 3, 5))

        assert [call["timeout"] for call in seen] == [3.0, 3.0]


class TestQuoteProviderFactory:
    def test_yfinance(self) -> None:
        assert isinstance(QuoteProviderFactory.create("yfinance"), YahooFinanceProvider)

    def test_chart(self) -> None:
        assert isinstance(QuoteProviderFactory.create("chart"), YahooChartProvider)

    def test_unknown(self) -> None:
        with pytest.raises(AppError):
            QuoteProviderFactory.create("bloomberg")
