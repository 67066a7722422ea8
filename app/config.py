from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "VLR_", "env_file": ".env", "env_file_encoding": "utf-8"}

    benchmarks: list[str] = Field(default_factory=lambda: ["QQQ", "SPY", "IWM"], min_length=1)
    default_symbols: list[str] = Field(
        default_factory=lambda: [
            "VSAT", "UUUU", "UPST", "TEM", "ROG", "PKE",
            "OSS", "ONTO", "MP", "LUMN", "LITE", "LEU", "GLW",
            "CRDO", "COHR", "CLS", "BE", "AVAV",
        ]
    )
    quote_provider: str = Field(default="yfinance", pattern=r"^(yfinance|chart)$")
    history_range: str = Field(default="1mo")
    history_interval: str = Field(default="1d")
    volume_window: int = Field(default=10, ge=1)
    fetch_timeout_seconds: float = Field(default=15.0, gt=0)
    fetch_concurrency: int = Field(default=4, ge=1)
    market_timezone: str = Field(default="America/New_York")
    calendar_timezone: str = Field(default="Asia/Hong_Kong")
    max_symbols: int = Field(default=100, ge=1)
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console", pattern=r"^(console|json)$")
    cors_origins: str = Field(default="http://localhost:3000")


settings = Settings()
