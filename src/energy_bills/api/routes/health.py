"""Service banner and health check endpoints."""
from __future__ import annotations
import time
from datetime import datetime, timezone
from fastapi import APIRouter, Request

router = APIRouter()


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/")
async def root(request: Request):
    return {
        "message": "Energy Bills API",
        "version": request.app.version,
        "timestamp": _now(),
    }


@router.get("/health")
async def health_check(request: Request):
    """Basic health check; ``uptime`` is in seconds since start-up."""
    started_at = getattr(request.app.state, "started_at", None)
    uptime = round(time.monotonic() - started_at, 3) if started_at is not None else 0.0
    return {"status": "ok", "uptime": uptime, "timestamp": _now()}
