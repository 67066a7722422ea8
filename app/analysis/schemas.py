import datetime
from enum import StrEnum

import pydantic
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from app.exceptions import ValidationError


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class ComparisonStatus(StrEnum):
    STRONGER = "stronger"
    WEAKER = "weaker"
    NEUTRAL = "neutral"


class ComparisonResult(CamelModel):
    ratio: float
    status: ComparisonStatus


class SymbolMetrics(CamelModel):
    symbol: str
    current_volume: int
    avg_volume: float
    volume_ratio: float
    price: float
    price_change_pct: float
    target_date: str  # ISO calendar date in the exchange timezone
    timestamp: int


class SymbolAnalysis(SymbolMetrics):
    comparisons: dict[str, ComparisonResult] = Field(default_factory=dict)


class AnalyzeRequest(CamelModel):
    symbols: list[str]
    date: datetime.date | None = None

    @field_validator("date", mode="before")
    @classmethod
    def blank_date_is_latest(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def from_query(cls, symbols: str, date: str | None = None) -> "AnalyzeRequest":
        """Build a request from comma-separated query-string values."""
        try:
            return cls(symbols=symbols.split(","), date=date)
        except pydantic.ValidationError as exc:
            raise ValidationError(f"Invalid date: '{date}'") from exc


class AnalysisResponse(CamelModel):
    success: bool = True
    data: list[SymbolAnalysis]
    timestamp: str
    request_date: str  # ISO date, or "latest"
