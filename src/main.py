"""FastAPI application entry point.

Run with: uvicorn src.main:app --reload --port 8000
"""

# ruff: noqa: E402  -- uvloop.install() must run before other imports

import uvloop

uvloop.install()

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from config.settings import Settings
from config.settings import settings as default_settings
from src.pm_amm.api.router import router as amm_router
from src.pm_amm.application.service import AmmService
from src.pm_amm.infrastructure.memory_store import InMemoryPoolStore
from src.pm_common.enums import ErrorKind
from src.pm_common.errors import AppError
from src.pm_common.response import error_response
from src.pm_gateway.middleware.request_log import RequestLogMiddleware
from src.pm_session.api.router import router as session_router
from src.pm_session.application.service import SessionService
from src.pm_settlement.api.router import router as settlement_router
from src.pm_settlement.application.service import SettlementService

logger = logging.getLogger(__name__)

API_VERSION = "0.1.0"


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the app with its own store and services on app.state."""
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.APP_NAME, version=API_VERSION, debug=settings.DEBUG)

    amm_service = AmmService(InMemoryPoolStore(), settings)
    settlement_service = SettlementService(amm_service, settings)
    session_service = SessionService(amm_service, settings)
    settlement_service.add_resolution_listener(session_service.resolve_market_bets)

    app.state.settings = settings
    app.state.amm_service = amm_service
    app.state.settlement_service = settlement_service
    app.state.session_service = session_service

    app.add_middleware(RequestLogMiddleware)

    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
        if exc.kind is ErrorKind.INTEGRITY_VIOLATION:
            logger.critical(
                "Integrity violation on %s %s: %s",
                request.method, request.url.path, exc.message,
            )
        resp = error_response(
            exc.code, exc.message, getattr(request.state, "request_id", None)
        )
        return JSONResponse(status_code=exc.http_status, content=resp.model_dump())

    app.include_router(amm_router, prefix="/api/v1")
    app.include_router(settlement_router, prefix="/api/v1")
    app.include_router(session_router, prefix="/api/v1")

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "version": API_VERSION}

    return app


app = create_app()
