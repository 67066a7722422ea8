import csv
import io
from collections.abc import Sequence
from datetime import UTC, datetime

import structlog

from app.analysis.schemas import AnalysisResponse, SymbolAnalysis
from app.presentation.table import default_order

logger = structlog.get_logger()

REPORT_TITLE = "Stock Volume Analysis Report"
NOT_AVAILABLE = "N/A"


def column_letter(index: int) -> str:
    """Spreadsheet column letter for a zero-based column index (0 -> A, 26 -> AA)."""
    letters = ""
    index += 1
    while index:
        index, remainder = divmod(index - 1, 26)
        letters = chr(ord("A") + remainder) + letters
    return letters


def build_headers(benchmarks: Sequence[str], window: int = 10) -> list[str]:
    headers = [
        "Symbol",
        "VL Ratio",
        "Current Volume",
        f"Average Volume ({window} days)",
        "Price Change (%)",
    ]
    for b in benchmarks:
        headers += [f"vs {b} Ratio", f"vs {b} Status"]
    headers += ["Price ($)", "Date", "Analysis Timestamp"]
    return headers


def build_row(row: SymbolAnalysis, benchmarks: Sequence[str], analysis_timestamp: str) -> list:
    cells: list = [
        row.symbol,
        row.volume_ratio,
        row.current_volume,
        round(row.avg_volume),
        row.price_change_pct,
    ]
    for b in benchmarks:
        comparison = row.comparisons.get(b)
        if comparison is None:
            cells += [NOT_AVAILABLE, NOT_AVAILABLE]
        else:
            cells += [comparison.ratio, comparison.status.value]
    cells += [row.price or NOT_AVAILABLE, row.target_date or "Latest", analysis_timestamp]
    return cells


def export_csv(
    response: AnalysisResponse,
    benchmarks: Sequence[str],
    window: int = 10,
    generated_at: datetime | None = None,
) -> str:
    """Render an analysis as spreadsheet-friendly CSV.

    Layout: a metadata block, the header row, one row per symbol (benchmarks
    first) and a summary block of AVERAGE/COUNTIF formulas. Formula ranges
    are derived from where the data rows actually land.
    """
    generated_at = generated_at or datetime.now(UTC)
    rows = default_order(response.data, benchmarks)
    headers = build_headers(benchmarks, window)

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_NONNUMERIC, lineterminator="\n")

    metadata = [
        [REPORT_TITLE],
        [f"Generated: {generated_at.isoformat(timespec='seconds')}"],
        [f"Request Date: {response.request_date}"],
        [],
    ]
    writer.writerows(metadata)
    writer.writerow(headers)
    for row in rows:
        writer.writerow(build_row(row, benchmarks, response.timestamp))

    if rows:
        # 1-based spreadsheet rows: metadata, then header, then data
        first = len(metadata) + 2
        last = first + len(rows) - 1

        def cell_range(header: str) -> str:
            col = column_letter(headers.index(header))
            return f"{col}{first}:{col}{last}"

        writer.writerow([])
        writer.writerow(["Analysis Summary:"])
        writer.writerow(["Average VL Ratio:", f"=AVERAGE({cell_range('VL Ratio')})"])
        writer.writerow(["Average Price Change (%):", f"=AVERAGE({cell_range('Price Change (%)')})"])
        for b in benchmarks:
            writer.writerow(
                [f"Stocks Outperforming {b}:", f'=COUNTIF({cell_range(f"vs {b} Status")},"stronger")']
            )

    logger.info("csv_export_built", rows=len(rows), request_date=response.request_date)
    return buffer.getvalue()


def export_filename(generated_at: datetime | None = None) -> str:
    generated_at = generated_at or datetime.now(UTC)
    return f"stock_analysis_{generated_at.date().isoformat()}.csv"
