"""
EquipTrack backend
Equipment inventory with rental, calibration and maintenance lifecycles
"""

import asyncio
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException

from .config import settings
from .routers import admin, notifications, requests
from .services.post_commit import post_commit_runner
from .utils.errors import DomainError, domain_error_handler, error_handler
from .workers.reminder_sweeper import start_reminder_sweeper

# Configure logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start the reminder sweeper; on shutdown stop it and flush post-commit work"""
    sweeper_task = None
    if settings.reminder_sweep_enabled:
        sweeper_task = await start_reminder_sweeper()

    try:
        yield
    finally:
        if sweeper_task:
            sweeper_task.cancel()
            try:
                await sweeper_task
            except asyncio.CancelledError:
                pass
        logger.info(f"Draining {post_commit_runner.pending} post-commit task(s)")
        await post_commit_runner.drain()


app = FastAPI(
    title="EquipTrack",
    description="""
    ## EquipTrack Backend API

    Inventory of physical instruments and the requests that occupy them.

    ### Key Features:
    - **Request lifecycle**: rentals, calibrations and maintenance jobs share one
      PENDING / APPROVED / COMPLETED state machine
    - **Audit trail**: status logs, activity logs and item history for every change
    - **Reminders**: due-date reminders surfaced as in-app notifications
    """,
    version="1.0.0",
    lifespan=lifespan,
    tags_metadata=[
        {"name": "rentals", "description": "Item rentals"},
        {"name": "calibrations", "description": "Calibration jobs and certificates"},
        {"name": "maintenance", "description": "Maintenance jobs and reports"},
        {"name": "notifications", "description": "In-app notifications"},
        {"name": "reminders", "description": "Reminder acknowledgement and sweep"},
        {"name": "admin", "description": "Activity logs, item history, inventory checks"},
        {"name": "Health", "description": "Health checks"},
    ],
)

app.add_exception_handler(HTTPException, error_handler)
app.add_exception_handler(DomainError, domain_error_handler)

app.include_router(requests.rentals_router)
app.include_router(requests.calibrations_router)
app.include_router(requests.maintenance_router)
app.include_router(notifications.router)
app.include_router(notifications.reminders_router)
app.include_router(notifications.cron_router)
app.include_router(admin.router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint"""
    return {
        "status": "ok",
        "service": "equiptrack",
        "reminder_sweep_enabled": settings.reminder_sweep_enabled,
        "pending_post_commit_tasks": post_commit_runner.pending,
    }
