"""Row ordering for the results table.

Benchmark rows are pinned to the top in their configured order; only the
remaining rows follow the user-selected column and direction.
"""

import locale
from collections.abc import Callable, Sequence
from enum import StrEnum

import structlog

from app.analysis.schemas import SymbolAnalysis
from app.exceptions import ValidationError

logger = structlog.get_logger()


class SortDirection(StrEnum):
    ASC = "asc"
    DESC = "desc"


COMPARISON_PREFIX = "vs_"

_FIXED_COLUMNS: dict[str, Callable[[SymbolAnalysis], str | float | None]] = {
    "symbol": lambda row: row.symbol,
    "priceChange": lambda row: row.price_change_pct,
    "vlRatio": lambda row: row.volume_ratio,
    "price": lambda row: row.price,
    "volume": lambda row: row.current_volume,
}


def sortable_columns(benchmarks: Sequence[str]) -> list[str]:
    """Column keys in display order."""
    return [
        "symbol",
        "priceChange",
        "vlRatio",
        *(f"{COMPARISON_PREFIX}{b}" for b in benchmarks),
        "price",
        "volume",
    ]


def column_value(row: SymbolAnalysis, column: str) -> str | float | None:
    if column in _FIXED_COLUMNS:
        return _FIXED_COLUMNS[column](row)
    if column.startswith(COMPARISON_PREFIX):
        comparison = row.comparisons.get(column.removeprefix(COMPARISON_PREFIX))
        return comparison.ratio if comparison is not None else None
    raise ValidationError(f"Unknown sort column: '{column}'")


def configure_collation() -> None:
    """Use the environment's locale for string collation in sorted tables."""
    try:
        locale.setlocale(locale.LC_COLLATE, "")
    except locale.Error as exc:
        logger.warning("collation_locale_unavailable", error=str(exc))


def _sort_key(value: str | float) -> str | float:
    if isinstance(value, str):
        return locale.strxfrm(value)
    return value


def sort_rows(
    rows: Sequence[SymbolAnalysis],
    column: str,
    direction: SortDirection | str,
    benchmarks: Sequence[str],
) -> list[SymbolAnalysis]:
    """Benchmarks in configured order, then the other rows sorted by ``column``.

    The sort is stable, so rows with equal keys keep their input order in
    either direction. Rows with no value for the column (a comparison against
    a benchmark that failed to load) are placed last.
    """
    if column not in sortable_columns(benchmarks):
        raise ValidationError(f"Unknown sort column: '{column}'")
    try:
        direction = SortDirection(direction)
    except ValueError:
        raise ValidationError(f"Unknown sort direction: '{direction}'") from None

    order = {symbol: i for i, symbol in enumerate(benchmarks)}
    pinned = sorted((r for r in rows if r.symbol in order), key=lambda r: order[r.symbol])
    others = [r for r in rows if r.symbol not in order]

    keyed = [r for r in others if column_value(r, column) is not None]
    unkeyed = [r for r in others if column_value(r, column) is None]

    ordered = sorted(
        keyed,
        key=lambda r: _sort_key(column_value(r, column)),
        reverse=direction == SortDirection.DESC,
    )
    return [*pinned, *ordered, *unkeyed]


def default_order(rows: Sequence[SymbolAnalysis], benchmarks: Sequence[str]) -> list[SymbolAnalysis]:
    """Initial table order: benchmarks pinned, other symbols alphabetical."""
    return sort_rows(rows, "symbol", SortDirection.ASC, benchmarks)


def next_direction(active_column: str | None, active_direction: str, clicked: str) -> SortDirection:
    """Direction a header click should request: toggles on the active column."""
    if clicked == active_column and active_direction == SortDirection.ASC:
        return SortDirection.DESC
    return SortDirection.ASC
