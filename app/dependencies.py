from typing import Annotated

from fastapi import Depends

from app.analysis.service import AnalysisService
from app.market.providers.base import QuoteProvider
from app.market.providers.factory import QuoteProviderFactory


def get_quote_provider() -> QuoteProvider:
    return QuoteProviderFactory.create()


QuoteProviderDep = Annotated[QuoteProvider, Depends(get_quote_provider)]


def get_analysis_service(provider: QuoteProviderDep) -> AnalysisService:
    return AnalysisService(provider)


AnalysisServiceDep = Annotated[AnalysisService, Depends(get_analysis_service)]
