"""Health check and metrics endpoints (no access check)."""

from __future__ import annotations

from fastapi import APIRouter, Response
from fastapi.responses import JSONResponse

from archgov import event_log
from archgov.errors import StorageError
from archgov.models import now_iso
from archgov.observability import generate_metrics

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return {"status": "ok", "timestamp": now_iso()}


@router.get("/health/ready")
def health_ready():
    """Readiness probe: verifies the store answers a query."""
    try:
        event_log.count()
        return {"status": "ok", "timestamp": now_iso()}
    except (StorageError, RuntimeError) as e:
        return JSONResponse(
            status_code=503,
            content={"status": "unavailable", "error": str(e), "timestamp": now_iso()},
        )


@router.get("/health/live")
def health_live():
    """Liveness probe: process is alive."""
    return {"status": "ok"}


@router.get("/metrics")
def metrics():
    """Prometheus-compatible metrics endpoint."""
    return Response(content=generate_metrics(), media_type="text/plain; charset=utf-8")
