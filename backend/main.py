# backend/main.py
"""
Camera Vault automation control API.

Starting the app initializes the store and starts the scheduler; shutdown
stops it gracefully. Endpoints expose status and manual triggers.
"""

from fastapi import FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from typing import Optional
import datetime
import logging
import traceback

from config import get_settings
from errors import CameraVaultError, QuotaExhaustedError
from services.record_store import get_record_store
from services.backup import get_backup_manager
from services.discovery import get_discovery_engine
from services.image_acquirer import get_image_acquirer
from services.providers import get_available_providers, check_all_providers
from services.scheduler import get_scheduler
from services.run_logger import configure_logging

# Load settings
settings = get_settings()

configure_logging(settings.log_level)
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="Camera Vault Automation",
    version="0.1.0",
    description="Camera discovery, image acquisition and store backups for the Camera Vault",
)


@app.exception_handler(CameraVaultError)
async def camera_vault_exception_handler(request: Request, exc: CameraVaultError):
    """Domain errors carry their own recovery hints"""
    status_code = 429 if isinstance(exc, QuotaExhaustedError) else 500
    logger.warning(f"{type(exc).__name__} on {request.url.path}: {exc.message}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


# Global exception handler to ensure errors return proper JSON
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Catch all unhandled exceptions and return proper JSON response"""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "detail": str(exc),
            "type": type(exc).__name__,
            "traceback": traceback.format_exc() if settings.debug else None,
        },
    )


# ---- Startup / shutdown ----

@app.on_event("startup")
async def startup_event():
    """Application startup"""
    logger.info("=" * 60)
    logger.info("Camera Vault Automation Starting")
    logger.info("=" * 60)
    logger.info(f"Environment: {settings.app_env}")
    logger.info(f"Store: {settings.database_path}")
    logger.info(f"Daily limit: {settings.daily_limit}")
    logger.info(f"Providers: {', '.join(settings.provider_names)}")

    # Store and backup directory failures are fatal
    store = get_record_store()
    get_backup_manager().ensure_backups_dir()
    logger.info(f"Store ready: {store.count_all()} cameras")

    if settings.scheduler_autostart:
        get_scheduler().start()
    else:
        logger.info("Scheduler autostart disabled")

    logger.info("=" * 60)


@app.on_event("shutdown")
async def shutdown_event():
    """Application shutdown - stop the scheduler and let the current candidate finish"""
    logger.info("Camera Vault Automation Shutting Down")
    try:
        await get_scheduler().stop()
    except Exception as e:
        logger.error(f"Error during scheduler shutdown: {e}")
    get_record_store().close()
    logger.info("Shutdown complete")


# ---- Health check endpoint ----

@app.get("/health")
async def health_check():
    """Health check endpoint to verify the service is running"""
    return {
        "status": "ok",
        "version": app.version,
        "timestamp": datetime.datetime.utcnow().isoformat() + "Z",
    }


# ---- Automation endpoints ----

@app.get("/api/automation/status")
async def automation_status():
    """Scheduler, quota, engine and store counts"""
    status = get_scheduler().status()
    status["store"] = get_record_store().stats()
    return status


@app.post("/api/automation/run", status_code=202)
async def trigger_run():
    """
    Start a discovery pass in the background.

    Returns 409 if a pass is already running; overlapping passes are dropped,
    never queued.
    """
    if not get_scheduler().start_discovery_task():
        raise HTTPException(status_code=409, detail="Discovery already running")
    return {"accepted": True}


@app.post("/api/automation/backup")
async def trigger_backup():
    """Snapshot the store now and prune old snapshots"""
    scheduler = get_scheduler()
    path = await scheduler.trigger_backup()
    if path is None:
        raise HTTPException(
            status_code=500,
            detail=scheduler.state.last_backup_error or "Backup failed",
        )
    return {"snapshot": path.name, "path": str(path)}


@app.post("/api/automation/backfill")
async def trigger_backfill(limit: int = 50):
    """Retry real images for cameras still on placeholders"""
    if limit < 1 or limit > 500:
        raise HTTPException(status_code=400, detail="limit must be between 1 and 500")
    result = await get_discovery_engine().run_image_backfill(limit)
    if result.get("status") == "skipped":
        raise HTTPException(status_code=409, detail=result.get("reason"))
    return result


@app.get("/api/automation/runs")
async def list_runs(limit: Optional[int] = 20):
    """Most recent discovery passes, newest first"""
    limit = max(1, min(limit or 20, 200))
    runs = get_record_store().list_runs(limit)
    return {"runs": [run.to_dict() for run in runs], "count": len(runs)}


@app.get("/api/automation/providers")
async def list_providers():
    """Configured image sources and their health"""
    chain = get_image_acquirer().providers
    return {
        "providers": [info.to_dict() for info in get_available_providers(chain)],
        "health": await check_all_providers(chain),
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=settings.debug)
