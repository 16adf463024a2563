"""
Script Conveyor Backend API
FastAPI application that turns news and social sources into reviewed
short-form video scripts.

This is the main entry point that wires together all routes and services.
"""

import asyncio
import os
import uuid
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import (
    API_TITLE,
    API_DESCRIPTION,
    API_VERSION,
    CORS_ORIGINS,
)
from .routes import conveyor_router, scripts_router
from .core import (
    setup_logging,
    get_logger,
    set_request_id,
    clear_context,
)
from .services.container import get_container

# Initialize logging
log_level = os.getenv("LOG_LEVEL", "INFO")
log_file = os.getenv("LOG_FILE")
use_json_logs = os.getenv("JSON_LOGS", "false").lower() == "true"
pipeline_log_file = os.getenv("PIPELINE_LOG_FILE", "logs/conveyor_pipeline.jsonl")

setup_logging(
    level=log_level,
    log_file=Path(log_file) if log_file else None,
    use_json=use_json_logs,
    pipeline_log_file=Path(pipeline_log_file) if pipeline_log_file else None
)

logger = get_logger(__name__, service="api")
logger.info("Starting Script Conveyor API", extra={
    "log_level": log_level,
    "json_logs": use_json_logs
})


async def _run_startup() -> None:
    """Build the services and start the scheduled runner."""
    container = get_container()
    app.state.runner_task = None
    if not container.runner.enabled:
        logger.info("Scheduled runner disabled")
        return
    try:
        app.state.runner_task = asyncio.create_task(container.runner.run_periodic())
        logger.info("Scheduled runner started", extra={"interval_minutes": container.runner.interval_minutes})
    except Exception as exc:
        logger.error("Failed to start scheduled runner", extra={"error": str(exc)}, exc_info=True)


async def _run_shutdown() -> None:
    """Stop background services gracefully."""
    runner_task = getattr(app.state, "runner_task", None)
    if runner_task:
        runner_task.cancel()
        try:
            await runner_task
        except asyncio.CancelledError:
            pass
    get_container().event_log.detach()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    await _run_startup()
    try:
        yield
    finally:
        await _run_shutdown()


# Create FastAPI app
app = FastAPI(
    title=API_TITLE,
    description=API_DESCRIPTION,
    version=API_VERSION,
    lifespan=lifespan,
)


@app.middleware("http")
async def add_request_correlation(request: Request, call_next):
    """Add a correlation ID to the logging context and the response."""
    request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
    set_request_id(request_id)
    path = request.url.path

    logger.info(f"{request.method} {path}", extra={
        "method": request.method,
        "path": path,
        "client": request.client.host if request.client else "unknown",
    })

    try:
        response = await call_next(request)
        response.headers["X-Request-ID"] = request_id

        logger.info(f"Response: {response.status_code}", extra={
            "status_code": response.status_code,
            "method": request.method,
            "path": path,
        })
        return response
    finally:
        clear_context()


# CORS middleware for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(conveyor_router)
app.include_router(scripts_router)


@app.get("/")
async def root():
    """Root endpoint - API info"""
    return {
        "message": "Script Conveyor API",
        "version": API_VERSION
    }


@app.get("/health")
async def health_check():
    """
    Health check endpoint for container orchestration.

    Returns 200 when the data directory is writable (the generation backend
    being unconfigured only degrades the service), 503 otherwise.
    """
    container = get_container()
    checks = {"status": "healthy", "checks": {}}

    data_dir = container.data_dir
    marker = data_dir / f".health-{uuid.uuid4().hex}"
    try:
        marker.write_text("ok", encoding="utf-8")
        marker.unlink()
        checks["checks"]["storage"] = {"status": "ok", "path": str(data_dir)}
    except OSError as e:
        checks["checks"]["storage"] = {"status": "error", "error": str(e)}
        checks["status"] = "unhealthy"

    if container.generation.is_configured:
        checks["checks"]["generation"] = {"status": "ok"}
    else:
        checks["checks"]["generation"] = {"status": "missing", "error": "GEMINI_API_KEY is not set"}
        if checks["status"] == "healthy":
            checks["status"] = "degraded"

    checks["checks"]["runner"] = {
        "enabled": container.runner.enabled,
        "interval_minutes": container.runner.interval_minutes,
    }

    status_code = 503 if checks["status"] == "unhealthy" else 200
    return JSONResponse(status_code=status_code, content=checks)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
