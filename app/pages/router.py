"""Server-rendered results page."""

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from app.analysis.schemas import AnalyzeRequest
from app.config import settings
from app.dependencies import AnalysisServiceDep
from app.exceptions import AppError
from app.presentation.table import (
    SortDirection,
    default_order,
    next_direction,
    sort_rows,
    sortable_columns,
)

logger = structlog.get_logger()

router = APIRouter()


def parse_symbols(raw: str | None) -> list[str]:
    if raw is None:
        return list(settings.default_symbols)
    return [s.strip().upper() for s in raw.split(",") if s.strip()]


@router.get("/", response_class=HTMLResponse)
async def index(
    request: Request,
    service: AnalysisServiceDep,
    symbols: str | None = None,
    date: str | None = None,
    sort: str | None = None,
    direction: SortDirection = SortDirection.ASC,
) -> HTMLResponse:
    templates: Jinja2Templates = request.app.state.templates
    benchmarks = service.benchmarks
    symbol_list = parse_symbols(symbols)

    context = {
        "request": request,
        "symbols_input": ", ".join(symbol_list),
        "date_input": (date or "").strip(),
        "benchmarks": benchmarks,
        "columns": sortable_columns(benchmarks),
        "sort": sort,
        "direction": direction,
        "result": None,
        "rows": [],
        "error": None,
    }

    # Only run the analysis once the form has been submitted.
    if symbols is not None and symbol_list:
        try:
            request_data = AnalyzeRequest.from_query(",".join(symbol_list), date)
            result = await service.analyze(request_data)
            rows = (
                sort_rows(result.data, sort, direction, benchmarks)
                if sort
                else default_order(result.data, benchmarks)
            )
            context.update(result=result, rows=rows)
        except AppError as exc:
            logger.warning("page_analysis_failed", error=exc.message, code=exc.code)
            context["error"] = exc.message

    context["next_direction"] = {
        column: next_direction(sort, direction, column) for column in context["columns"]
    }
    return templates.TemplateResponse(request, "index.html", context)
