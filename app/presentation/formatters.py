from urllib.parse import quote

TRADINGVIEW_URL = "https://www.tradingview.com/chart/?symbol={symbol}"
EXCHANGE_PREFIXES = {"SPY": "NYSEARCA", "IWM": "NYSEARCA"}
DEFAULT_EXCHANGE = "NASDAQ"


def format_volume(value: float | None) -> str:
    """Compact volume: 1.5K, 2.3M, 1.1B."""
    if value is None:
        return "N/A"
    for threshold, suffix in ((1e9, "B"), (1e6, "M"), (1e3, "K")):
        if value >= threshold:
            return f"{value / threshold:.1f}{suffix}"
    return f"{value:g}"


def format_pct(value: float | None) -> str:
    if value is None:
        return "N/A"
    return f"{value:.2f}%"


def format_price(value: float | None) -> str:
    if not value:
        return "N/A"
    return f"${value:.2f}"


def change_class(value: float | None) -> str:
    if not value:
        return "neutral"
    return "positive" if value > 0 else "negative"


def tradingview_url(symbol: str) -> str:
    exchange = EXCHANGE_PREFIXES.get(symbol, DEFAULT_EXCHANGE)
    return TRADINGVIEW_URL.format(symbol=quote(f"{exchange}:{symbol}", safe=""))
