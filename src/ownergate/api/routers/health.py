"""Health check and metrics endpoints (no auth required)."""

from __future__ import annotations

from fastapi import APIRouter, Response

from ownergate.models import now_iso
from ownergate.observability import generate_metrics

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    return {"status": "ok", "timestamp": now_iso()}


@router.get("/health/live")
def health_live():
    """Liveness probe."""
    return {"status": "ok"}


@router.get("/metrics")
def metrics():
    """Prometheus-compatible metrics endpoint."""
    return Response(content=generate_metrics(), media_type="text/plain; charset=utf-8")
