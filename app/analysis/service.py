import asyncio
from collections.abc import Sequence
from datetime import UTC, date, datetime
from zoneinfo import ZoneInfo

import structlog

from app.analysis.engine import build_analysis
from app.analysis.schemas import AnalysisResponse, AnalyzeRequest
from app.config import settings
from app.exceptions import AnalysisFailedError, ValidationError
from app.market.providers.base import QuoteProvider
from app.market.schemas import PriceSeries

logger = structlog.get_logger()


def normalize_symbols(symbols: Sequence[str], benchmarks: Sequence[str]) -> list[str]:
    """Benchmarks first, then requested symbols; uppercased and de-duplicated."""
    cleaned = [s.strip().upper() for s in symbols if s and s.strip()]
    return list(dict.fromkeys([*(b.upper() for b in benchmarks), *cleaned]))


class AnalysisService:
    def __init__(
        self,
        provider: QuoteProvider,
        benchmarks: Sequence[str] | None = None,
        timeout: float | None = None,
        volume_window: int | None = None,
        max_symbols: int | None = None,
        max_concurrency: int | None = None,
    ) -> None:
        self._provider = provider
        self._benchmarks = [b.upper() for b in (benchmarks or settings.benchmarks)]
        self._timeout = timeout or settings.fetch_timeout_seconds
        self._window = volume_window or settings.volume_window
        self._max_symbols = max_symbols or settings.max_symbols
        self._max_concurrency = max_concurrency or settings.fetch_concurrency

    @property
    def benchmarks(self) -> list[str]:
        return list(self._benchmarks)

    async def analyze(self, request: AnalyzeRequest) -> AnalysisResponse:
        if not any(s and s.strip() for s in request.symbols):
            raise ValidationError("Symbols array is required")
        self._validate_date(request.date)

        symbols = normalize_symbols(request.symbols, self._benchmarks)
        if len(symbols) > self._max_symbols + len(self._benchmarks):
            raise ValidationError(f"Maximum {self._max_symbols} symbols allowed per request")

        request_date = request.date.isoformat() if request.date else "latest"
        logger.info("analysis_started", symbols=symbols, date=request_date)

        series_by_symbol = await self._fetch_all(symbols, request.date)
        if not series_by_symbol:
            logger.error("analysis_no_data", symbols=symbols)
            raise AnalysisFailedError()

        data = build_analysis(series_by_symbol, self._benchmarks, request.date, self._window)
        if not data:
            logger.error("analysis_no_data", symbols=symbols)
            raise AnalysisFailedError()

        logger.info("analysis_completed", requested=len(symbols), resolved=len(data))
        return AnalysisResponse(
            success=True,
            data=data,
            timestamp=datetime.now(UTC).isoformat(),
            request_date=request_date,
        )

    def _validate_date(self, requested: date | None) -> None:
        if requested is None:
            return
        today = datetime.now(ZoneInfo(settings.calendar_timezone)).date()
        if requested > today:
            raise ValidationError("Cannot analyze future dates")

    async def _fetch_all(self, symbols: list[str], target_date: date | None) -> dict[str, PriceSeries]:
        semaphore = asyncio.Semaphore(self._max_concurrency)
        tasks = [self._fetch_one(semaphore, symbol, target_date) for symbol in symbols]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        series_by_symbol: dict[str, PriceSeries] = {}
        for symbol, result in zip(symbols, results, strict=True):
            if isinstance(result, BaseException):
                logger.warning("symbol_fetch_failed", symbol=symbol, error=str(result) or repr(result))
                continue
            if not result.points:
                logger.warning("symbol_series_empty", symbol=symbol)
                continue
            series_by_symbol[symbol] = result
        return series_by_symbol

    async def _fetch_one(
        self, semaphore: asyncio.Semaphore, symbol: str, target_date: date | None
    ) -> PriceSeries:
        # timeout covers the fetch only, not the wait for a slot
        async with semaphore:
            return await asyncio.wait_for(
                self._provider.get_series(symbol, target_date), timeout=self._timeout
            )
