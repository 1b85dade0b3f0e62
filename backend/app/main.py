"""
Drivebot Backend API
FastAPI application that runs chat commands against Google Drive.
"""

import logging
import os

from fastapi import FastAPI, HTTPException

from app.routers import chat
from app.services.command_router import summary_limits_from_env
from app.services.drive import DriveError, get_drive_store

# Configure logging to output to console
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Drivebot API",
    description="Manage Google Drive folders and files from chat messages",
    version="0.1.0",
)

# Include routers
app.include_router(chat.router, prefix="/api/chat", tags=["chat"])


@app.on_event("startup")
async def log_startup() -> None:
    """
    Log where the webhook listens and which chat provider is active.

    SUMMARY_BATCH_SIZE and SUMMARY_MAX_FILE_BYTES are validated here, so a bad
    value stops startup instead of failing a SUMMARY command later.

    The port shown is taken from the ``HOST_PORT`` environment variable so
    that Docker-mapped ports are reported correctly. Defaults to 8000.
    """
    batch_size, max_file_bytes = summary_limits_from_env()
    host_port = os.getenv("HOST_PORT", "8000")
    logger.info(
        "Drivebot API running at http://localhost:%s (webhook: /api/chat/inbound, provider: %s)",
        host_port,
        os.getenv("CHAT_PROVIDER", "telegram"),
    )
    logger.info(f"Summaries: {batch_size} documents per batch, max {max_file_bytes} bytes each")


@app.get("/")
async def root():
    return {"message": "Drivebot API", "version": "0.1.0"}


@app.get("/health")
async def health():
    return {"status": "ok"}


@app.get("/health/drive")
async def health_drive():
    """
    Test Google Drive access.

    Runs one name query against the configured root folder. Returns 503 if
    credentials are missing or Drive is unreachable.
    """
    try:
        store = get_drive_store()
    except ValueError as exc:
        raise HTTPException(
            status_code=503,
            detail=f"Drive client unavailable: {exc}",
        )

    try:
        store.find_by_name(store.root_folder_id, "drivebot-health-check")
        return {"status": "ok", "drive": "reachable", "root": store.root_folder_id}
    except DriveError as exc:
        logger.error(f"Drive health check failed: {exc}")
        raise HTTPException(
            status_code=503,
            detail=f"Drive check failed: {exc.message}",
        )
