from abc import ABC, abstractmethod
from datetime import date

from app.market.schemas import PriceSeries


class QuoteProvider(ABC):
    @abstractmethod
    async def get_series(self, symbol: str, target_date: date | None = None) -> PriceSeries:
        """Return daily bars covering ``target_date`` (or the latest sessions)."""
        ...
