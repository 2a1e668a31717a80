"""Service status endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Request
from sqlalchemy import text

from publora_engine.api.v1.dependencies import SessionDep
from publora_engine.core.settings import settings

router = APIRouter(tags=["system"])


@router.get("/health")
async def health_check(request: Request, db: SessionDep) -> dict[str, object]:
    """Report database reachability and whether the scheduler loop is running."""
    db.execute(text("SELECT 1"))
    worker = getattr(request.app.state, "scheduler", None)
    return {
        "status": "ok",
        "version": settings.app_version,
        "scheduler": bool(worker and worker.running),
    }
