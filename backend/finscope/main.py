"""
FinScope — FastAPI Application Entry Point

Personal-finance research API. Market data, economic indicators, news,
company filings, mock banking, stock analysis and financial planning are
mounted here.
"""

from __future__ import annotations

import errno
import socket
from contextlib import asynccontextmanager

import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from finscope import __version__
from finscope.config import Settings, get_settings
from finscope.error_handlers import register_error_handlers
from finscope.logging import setup_logging
from finscope.middleware.envelope import ResponseEnvelopeMiddleware
from finscope.middleware.request_logger import RequestLoggerMiddleware
from finscope.routes import health_router
from finscope.routes_analysis import analysis_router
from finscope.routes_economic import economic_router
from finscope.routes_filings import filings_router
from finscope.routes_market import market_router
from finscope.routes_news import news_router
from finscope.routes_planning import planning_router
from finscope.routes_plaid import plaid_router
from finscope.services import get_services
from finscope.tasks.scheduler import RefreshScheduler

log = structlog.get_logger("finscope.startup")


def _validate_config(settings: Settings) -> None:
    """Warn on missing upstream API keys at startup."""
    checks = {
        "alpha_vantage_api_key": "Alpha Vantage (falls back to the 'demo' key; quotes, series and news limited)",
        "fred_api_key": "FRED (economic indicators served from demo series)",
        "news_api_key": "News API (news uses Alpha Vantage and FMP only)",
        "hugging_face_api_key": "Hugging Face (FinBERT disabled; keyword sentiment used)",
    }
    for attr, description in checks.items():
        if not getattr(settings, attr, ""):
            log.warning("config.missing_key", key=attr, impact=description)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle hooks."""
    settings = get_settings()
    setup_logging(settings.log_level)
    log.info(
        "startup",
        env=settings.node_env,
        mock_mode=settings.mock_mode,
        scheduler=settings.scheduler_enabled,
    )

    # ── Config validation ──
    _validate_config(settings)

    # ── Refresh scheduler ──
    scheduler = None
    if settings.scheduler_enabled:
        scheduler = RefreshScheduler(get_services(), timezone=settings.scheduler_timezone)
        scheduler.start()
    app.state.scheduler = scheduler

    yield

    # ── Shutdown ──
    if scheduler is not None:
        await scheduler.stop()
    log.info("shutdown")


def create_app() -> FastAPI:
    """Application factory."""
    settings = get_settings()

    app = FastAPI(
        title="FinScope",
        description="""# FinScope API

Personal-finance research aggregator.

## Features
- **Market Data**: global and Indian quotes, series, indicators, search
- **Economic Indicators**: FRED series, regional summaries, forex
- **News**: provider news with sentiment, RSS feeds
- **Company Filings**: SEC EDGAR filings and XBRL facts
- **Banking**: mock account aggregation and spending insights
- **Stock Analysis**: multi-factor buy/hold/sell synthesis
- **Financial Planning**: allocation, retirement, goals, what-if scenarios

Responses use the envelope `{success, data, error, timestamp}`. Payloads
produced from synthetic data are tagged `source="Demo"`.
""",
        version=__version__,
        debug=settings.is_development,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "Health", "description": "Service health and readiness checks"},
            {"name": "Market Data", "description": "Quotes, series, indicators and symbol search"},
            {"name": "Economic Indicators", "description": "FRED series, regional summaries and forex"},
            {"name": "News", "description": "Financial news, feeds and sentiment"},
            {"name": "Company Filings", "description": "SEC EDGAR filings and XBRL facts"},
            {"name": "Banking", "description": "Mock account aggregation"},
            {"name": "Stock Analysis", "description": "Multi-factor stock analysis"},
            {"name": "Financial Planning", "description": "Plans, goal tracking and scenarios"},
        ],
    )

    # ── Global Error Handlers ──
    register_error_handlers(app)

    # ── CORS (configurable from settings) ──
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origin_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "Cache-Control", "Pragma"],
    )

    # ── Custom Middleware ──
    app.add_middleware(ResponseEnvelopeMiddleware)
    app.add_middleware(RequestLoggerMiddleware)

    # ── Routes (unversioned) ──
    app.include_router(health_router, tags=["Health"])

    # ── Routes (API) ──
    API = "/api"
    app.include_router(market_router, prefix=f"{API}/market-data", tags=["Market Data"])
    app.include_router(economic_router, prefix=f"{API}/economic-indicators", tags=["Economic Indicators"])
    app.include_router(news_router, prefix=f"{API}/news", tags=["News"])
    app.include_router(filings_router, prefix=f"{API}/company-filings", tags=["Company Filings"])
    app.include_router(plaid_router, prefix=f"{API}/plaid", tags=["Banking"])
    app.include_router(analysis_router, prefix=f"{API}/stock-analysis", tags=["Stock Analysis"])
    app.include_router(planning_router, prefix=f"{API}/financial-planning", tags=["Financial Planning"])

    return app


app = create_app()


# ──────────────────────────────────────────────
# Runner
# ──────────────────────────────────────────────


def _port_free(host: str, port: int) -> bool:
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        try:
            sock.bind((host, port))
        except OSError as exc:
            if exc.errno == errno.EADDRINUSE:
                return False
            raise
    return True


def pick_port(settings: Settings, host: str = "0.0.0.0") -> int:
    """First free port among ``PORT`` and the fallback list."""
    for port in settings.candidate_ports():
        if _port_free(host, port):
            return port
        log.warning("server.port_in_use", port=port)
    raise RuntimeError(f"No free port among {settings.candidate_ports()}")


def run() -> None:
    """Console entry point: ``finscope``."""
    settings = get_settings()
    setup_logging(settings.log_level)
    host = "0.0.0.0"
    port = pick_port(settings, host)
    log.info("server.starting", host=host, port=port, env=settings.node_env)
    uvicorn.run("finscope.main:app", host=host, port=port, log_config=None)


if __name__ == "__main__":
    run()
