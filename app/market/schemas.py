from pydantic import BaseModel, ConfigDict, Field


class TimeSeriesPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    timestamp: int  # epoch seconds
    close: float | None = None
    volume: int | None = None


class PriceSeries(BaseModel):
    model_config = ConfigDict(frozen=True)

    symbol: str
    timezone: str  # IANA name of the exchange timezone
    points: list[TimeSeriesPoint] = Field(default_factory=list)
