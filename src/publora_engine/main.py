"""Main entry point for the Publora Engine application."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from publora_engine.api.v1 import (
    connections_router,
    linkedin_router,
    media_router,
    posts_router,
    system_router,
    workspace_router,
)
from publora_engine.core.errors import PubloraError
from publora_engine.core.settings import settings
from publora_engine.services.scheduler import SchedulerWorker

logging.basicConfig(
    level=settings.log_level.upper(),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Publora API",
    description="Schedule and publish posts across social platforms",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routers
app.include_router(posts_router, prefix="/api/v1")
app.include_router(connections_router, prefix="/api/v1")
app.include_router(media_router, prefix="/api/v1")
app.include_router(linkedin_router, prefix="/api/v1")
app.include_router(workspace_router, prefix="/api/v1")
app.include_router(system_router)


@app.exception_handler(PubloraError)
async def publora_error_handler(request: Request, exc: PubloraError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg', 'invalid request')}" if location else "invalid request"
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "ValidationError", "message": message},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": "InternalError", "message": "Internal server error"},
    )


@app.on_event("startup")
async def on_startup() -> None:
    if settings.scheduler_enabled:
        worker = SchedulerWorker()
        await worker.start()
        app.state.scheduler = worker
    else:
        app.state.scheduler = None


@app.on_event("shutdown")
async def on_shutdown() -> None:
    worker: SchedulerWorker | None = getattr(app.state, "scheduler", None)
    if worker:
        await worker.stop()


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
        "api": "/api/v1",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("publora_engine.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
