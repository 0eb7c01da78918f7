"""FastAPI application factory for archgov."""

from __future__ import annotations

import logging
import os
from pathlib import Path

from fastapi import APIRouter, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from archgov import __version__, event_log
from archgov.defaults import DEFAULT_DB_PATH
from archgov.errors import (
    CycleError,
    GovernanceError,
    InvalidStateError,
    NotFoundError,
    StorageError,
    StorageTimeoutError,
    ValidationError,
)
from archgov.observability import add_observability_middleware, record_domain_error
from archgov.risk.config import RiskConfig
from archgov.service import GovernanceService

from archgov.api.routers import decisions, health, risk

log = logging.getLogger("archgov.api")

# most specific class first
_STATUS_BY_ERROR: list[tuple[type[GovernanceError], int]] = [
    (ValidationError, 400),
    (NotFoundError, 404),
    (InvalidStateError, 409),
    (CycleError, 409),
    (StorageTimeoutError, 504),
    (StorageError, 503),
]


def status_for(exc: GovernanceError) -> int:
    for cls, status in _STATUS_BY_ERROR:
        if isinstance(exc, cls):
            return status
    return 500


def create_app(
    db_path: str | Path = "",
    *,
    risk_config: RiskConfig | None = None,
) -> FastAPI:
    """Build and return a configured FastAPI application."""
    app = FastAPI(
        title="archgov",
        description="Decision record governance and component risk scoring",
        version=__version__,
    )

    resolved_db_path = str(db_path) if db_path else os.environ.get("ARCHGOV_DB_PATH", DEFAULT_DB_PATH)
    app.state.db_path = resolved_db_path

    # Initialise the store from runtime env (sqlite/postgres).
    store = event_log.init(
        db_path=resolved_db_path,
        backend=os.environ.get("ARCHGOV_DB_BACKEND"),
        dsn=os.environ.get("ARCHGOV_PG_DSN"),
    )
    app.state.service = GovernanceService(store, risk_config=risk_config)

    if os.environ.get("ARCHGOV_ACCESS_REQUIRED", "1") != "1":
        log.warning("ARCHGOV_ACCESS_REQUIRED=0: membership headers are NOT checked")

    # ---------------------------------------------------------------
    # Exception handlers: {"error": "..."} bodies
    # ---------------------------------------------------------------

    @app.exception_handler(GovernanceError)
    async def governance_exception_handler(request: Request, exc: GovernanceError):
        status = status_for(exc)
        record_domain_error(exc.code)
        if isinstance(exc, StorageError):
            log.error(
                "storage failure on %s %s: %s", request.method, request.url.path, exc,
                extra={"error_code": exc.code},
            )
        return JSONResponse(status_code=status, content=exc.to_dict())

    @app.exception_handler(HTTPException)
    async def http_exception_handler(request: Request, exc: HTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content={"error": exc.detail},
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        # Extract first meaningful error for concise message
        errors = exc.errors()
        if errors:
            first = errors[0]
            loc = ".".join(str(part) for part in first.get("loc", []))
            msg = first.get("msg", "Invalid input")
            detail = f"{loc}: {msg}" if loc else msg
        else:
            detail = "Invalid JSON body"
        return JSONResponse(
            status_code=400,
            content={"error": detail, "code": ValidationError.code},
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        log.exception("Unhandled exception on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=500,
            content={"error": str(exc)},
        )

    # ---------------------------------------------------------------
    # Middleware (order matters: last added = outermost)
    # ---------------------------------------------------------------

    add_observability_middleware(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------------------------------------------------------
    # Routers: mounted at /api (legacy) and /v1 (canonical)
    # ---------------------------------------------------------------

    api = APIRouter()
    api.include_router(decisions.router)
    api.include_router(risk.router)

    app.include_router(api, prefix="/api")
    app.include_router(api, prefix="/v1")

    # Health + metrics (no access check, no version prefix)
    app.include_router(health.router)

    return app
