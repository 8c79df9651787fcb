from __future__ import annotations

import logging
import sys
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from tai_ledger.core.config import Settings, get_settings
from tai_ledger.core.errors import (
    ConcurrentUpdate,
    DuplicateIdentity,
    Forbidden,
    LedgerError,
    NotFound,
    Unauthorized,
)
from tai_ledger.routers.accounts import router as accounts_router
from tai_ledger.routers.admin import router as admin_router
from tai_ledger.routers.history import router as history_router
from tai_ledger.routers.mining import router as mining_router
from tai_ledger.routers.wallet import router as wallet_router
from tai_ledger.service import LedgerService, build_service

log = logging.getLogger("tai_ledger")

# most specific first; anything else is a plain 400
_STATUS_BY_ERROR: list[tuple[type[LedgerError], int]] = [
    (Unauthorized, 401),
    (Forbidden, 403),
    (NotFound, 404),
    (DuplicateIdentity, 409),
    (ConcurrentUpdate, 409),
]


def status_for(err: LedgerError) -> int:
    for cls, code in _STATUS_BY_ERROR:
        if isinstance(err, cls):
            return code
    return 400


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, (level or "INFO").upper(), logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def create_app(service: LedgerService | None = None, settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(title=settings.APP_NAME, version="0.1.0")
    app.state.ledger = service or build_service(settings)

    @app.exception_handler(LedgerError)
    async def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
        code = status_for(exc)
        log.warning("%s %s rejected: %s (%s)", request.method, request.url.path, exc.message, exc.kind)
        return JSONResponse(status_code=code, content=exc.to_dict())

    @app.exception_handler(Exception)
    async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
        log.exception("%s %s failed", request.method, request.url.path)
        return JSONResponse(status_code=500, content={"message": "Internal error", "kind": "internal"})

    app.include_router(accounts_router)
    app.include_router(wallet_router)
    app.include_router(mining_router)
    app.include_router(history_router)
    app.include_router(admin_router)

    @app.get("/health")
    def health() -> dict[str, Any]:
        # Must never touch storage. Only return cheap info.
        return {"ok": True, "app": settings.APP_NAME, "env": settings.APP_ENV}

    return app


app = create_app()
