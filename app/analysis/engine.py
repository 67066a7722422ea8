"""Volume and price analytics over daily price series.

Everything here is a pure function of its arguments: the benchmark list is
passed in explicitly and nothing touches the network or module state.
"""

from collections.abc import Mapping, Sequence
from datetime import date, datetime
from zoneinfo import ZoneInfo

from app.analysis.schemas import (
    ComparisonResult,
    ComparisonStatus,
    SymbolAnalysis,
    SymbolMetrics,
)
from app.market.schemas import PriceSeries, TimeSeriesPoint

DEFAULT_VOLUME_WINDOW = 10


def session_date(timestamp: int, tz_name: str) -> date:
    """Calendar day of ``timestamp`` in the exchange timezone."""
    return datetime.fromtimestamp(timestamp, tz=ZoneInfo(tz_name)).date()


def _last_priced_index(points: Sequence[TimeSeriesPoint], index: int) -> int | None:
    for i in range(index, -1, -1):
        if points[i].close is not None:
            return i
    return None


def resolve_target_index(series: PriceSeries, target_date: date | None = None) -> int | None:
    """Index of the session on ``target_date``, else the last session.

    A session without a close steps back to the nearest earlier one that has
    a close. Returns None when no such session exists.
    """
    points = series.points
    if not points:
        return None
    if target_date is not None:
        for i, point in enumerate(points):
            if session_date(point.timestamp, series.timezone) == target_date:
                return _last_priced_index(points, i)
    return _last_priced_index(points, len(points) - 1)


def compute_volume_metrics(
    points: Sequence[TimeSeriesPoint], index: int, window: int = DEFAULT_VOLUME_WINDOW
) -> tuple[int, float, float]:
    """Return ``(current_volume, avg_volume, volume_ratio)`` at ``index``.

    The average covers up to ``window`` sessions ending at ``index`` and skips
    missing volumes.
    """
    start = max(0, index - (window - 1))
    volumes = [p.volume for p in points[start : index + 1] if p.volume is not None]
    avg_volume = sum(volumes) / len(volumes) if volumes else 0.0

    current_volume = points[index].volume or 0
    volume_ratio = current_volume / avg_volume if avg_volume > 0 else 0.0
    return current_volume, float(avg_volume), float(volume_ratio)


def compute_price_change(points: Sequence[TimeSeriesPoint], index: int) -> float:
    """Percent change of the close at ``index`` versus the prior session, 2dp.

    A prior session without a close counts as unchanged.
    """
    current_close = points[index].close
    previous_close = points[index - 1].close if index > 0 else None
    if previous_close is None:
        previous_close = current_close
    if current_close is None or previous_close <= 0:
        return 0.0
    return round((current_close - previous_close) / previous_close * 100, 2)


def compute_symbol_metrics(
    series: PriceSeries,
    target_date: date | None = None,
    window: int = DEFAULT_VOLUME_WINDOW,
) -> SymbolMetrics | None:
    index = resolve_target_index(series, target_date)
    if index is None:
        return None

    points = series.points
    current_volume, avg_volume, volume_ratio = compute_volume_metrics(points, index, window)
    target = points[index]

    return SymbolMetrics(
        symbol=series.symbol.upper(),
        current_volume=current_volume,
        avg_volume=avg_volume,
        volume_ratio=round(volume_ratio, 3),
        price=target.close,
        price_change_pct=compute_price_change(points, index),
        target_date=session_date(target.timestamp, series.timezone).isoformat(),
        timestamp=target.timestamp,
    )


def classify(ratio: float) -> ComparisonStatus:
    if ratio > 1:
        return ComparisonStatus.STRONGER
    if ratio == 1:
        return ComparisonStatus.NEUTRAL
    return ComparisonStatus.WEAKER


def compare_to_benchmark(symbol_pct: float, benchmark_pct: float) -> ComparisonResult:
    """Relative price-change strength; a flat benchmark yields a neutral 1."""
    ratio = symbol_pct / benchmark_pct if benchmark_pct != 0 else 1.0
    ratio = round(ratio, 3)
    return ComparisonResult(ratio=ratio, status=classify(ratio))


def build_analysis(
    series_by_symbol: Mapping[str, PriceSeries],
    benchmarks: Sequence[str],
    target_date: date | None = None,
    window: int = DEFAULT_VOLUME_WINDOW,
) -> list[SymbolAnalysis]:
    """Metrics for every resolvable symbol, each compared against the benchmarks.

    Input order is preserved. Symbols with empty series are left out, and a
    benchmark that is not in the resolved set is left out of every
    ``comparisons`` mapping.
    """
    metrics: list[SymbolMetrics] = []
    for series in series_by_symbol.values():
        m = compute_symbol_metrics(series, target_date, window)
        if m is not None:
            metrics.append(m)

    by_symbol = {m.symbol: m for m in metrics}
    resolved_benchmarks = [b for b in benchmarks if b in by_symbol]

    results: list[SymbolAnalysis] = []
    for m in metrics:
        comparisons = {
            b: compare_to_benchmark(m.price_change_pct, by_symbol[b].price_change_pct)
            for b in resolved_benchmarks
        }
        results.append(SymbolAnalysis(**m.model_dump(), comparisons=comparisons))
    return results
