from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.templating import Jinja2Templates

from app.analysis.router import router as analysis_router
from app.config import settings
from app.exception_handlers import register_exception_handlers
from app.logging_config import setup_logging
from app.pages.router import router as pages_router
from app.presentation.formatters import (
    change_class,
    format_pct,
    format_price,
    format_volume,
    tradingview_url,
)
from app.presentation.table import configure_collation

TEMPLATES_DIR = Path(__file__).parent / "templates"


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    configure_collation()
    yield


def create_templates() -> Jinja2Templates:
    templates = Jinja2Templates(directory=str(TEMPLATES_DIR))
    templates.env.filters["volume"] = format_volume
    templates.env.filters["pct"] = format_pct
    templates.env.filters["price"] = format_price
    templates.env.filters["change_class"] = change_class
    templates.env.filters["tradingview_url"] = tradingview_url
    return templates


app = FastAPI(
    title="Volume Ratio Analyzer",
    description="Volume ratio and benchmark-relative performance for stock tickers",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.cors_origins.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)

app.state.templates = create_templates()

app.include_router(analysis_router, prefix="/api/analyze", tags=["analysis"])
app.include_router(pages_router, tags=["pages"])


@app.get("/api/health")
async def health():
    return {"status": "OK", "message": "Stock Analysis API is running"}
