from enum import StrEnum

from app.config import settings
from app.exceptions import AppError
from app.market.providers.base import QuoteProvider
from app.market.providers.yahoo_chart import YahooChartProvider
from app.market.providers.yahoo_finance import YahooFinanceProvider


class QuoteProviderName(StrEnum):
    YFINANCE = "yfinance"
    CHART = "chart"


class QuoteProviderFactory:
    @staticmethod
    def create(provider: str | None = None) -> QuoteProvider:
        provider = provider or settings.quote_provider

        match provider:
            case QuoteProviderName.YFINANCE:
                return YahooFinanceProvider()

            case QuoteProviderName.CHART:
                return YahooChartProvider()

            case _:
                raise AppError(f"Unknown quote provider: '{provider}'", code="PROVIDER_CONFIG_ERROR")
