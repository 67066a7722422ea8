import datetime

from fastapi import APIRouter
from fastapi.responses import Response

from app.analysis.schemas import AnalysisResponse, AnalyzeRequest
from app.analysis.service import AnalysisService
from app.config import settings
from app.dependencies import AnalysisServiceDep
from app.presentation.csv_export import export_csv, export_filename

router = APIRouter()


async def _csv_response(data: AnalyzeRequest, service: AnalysisService) -> Response:
    result = await service.analyze(data)
    generated_at = datetime.datetime.now(datetime.UTC)
    content = export_csv(result, service.benchmarks, settings.volume_window, generated_at)
    return Response(
        content=content,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename(generated_at)}"'},
    )


@router.post("", response_model=AnalysisResponse)
async def analyze(data: AnalyzeRequest, service: AnalysisServiceDep) -> AnalysisResponse:
    return await service.analyze(data)


@router.post("/export", response_class=Response)
async def export(data: AnalyzeRequest, service: AnalysisServiceDep) -> Response:
    return await _csv_response(data, service)


@router.get("/export", response_class=Response)
async def export_query(
    symbols: str,
    service: AnalysisServiceDep,
    date: str | None = None,
) -> Response:
    return await _csv_response(AnalyzeRequest.from_query(symbols, date), service)
