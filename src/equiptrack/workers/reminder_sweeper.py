"""
Background worker that periodically materializes due reminders.
"""

import asyncio
import logging
from typing import Optional

from ..config import settings
from ..services.notification_service import NotificationService, notification_service

logger = logging.getLogger(__name__)


class ReminderSweeper:
    """
    Runs the reminder sweep at a fixed interval until cancelled.

    Errors are logged and the loop waits before retrying; a failing sweep
    never stops the worker.
    """

    def __init__(
        self,
        service: Optional[NotificationService] = None,
        interval_seconds: Optional[int] = None,
        error_backoff_seconds: int = 60,
        enabled: Optional[bool] = None,
    ):
        self.service = service or notification_service
        self.interval_seconds = interval_seconds if interval_seconds is not None else settings.reminder_sweep_interval_seconds
        self.error_backoff_seconds = error_backoff_seconds
        self.enabled = settings.reminder_sweep_enabled if enabled is None else enabled

        logger.info(
            f"Reminder sweeper initialized: "
            f"enabled={self.enabled}, "
            f"interval={self.interval_seconds}s"
        )

    async def run(self):
        """Main sweep loop."""
        if not self.enabled:
            logger.info("Reminder sweeper disabled via configuration")
            return

        logger.info("Reminder sweeper started")

        while True:
            try:
                await self.service.run_reminder_sweep()
                await asyncio.sleep(self.interval_seconds)

            except asyncio.CancelledError:
                logger.info("Reminder sweeper cancelled - shutting down")
                break

            except Exception as e:
                logger.error(f"Reminder sweeper error: {e}", exc_info=True)
                await asyncio.sleep(self.error_backoff_seconds)


# Singleton instance
reminder_sweeper = ReminderSweeper()


async def start_reminder_sweeper() -> asyncio.Task:
    """
    Start the sweeper as a background task.

    Called from the application lifespan; cancel the returned task to stop it.
    """
    task = asyncio.create_task(reminder_sweeper.run())
    logger.info("Reminder sweeper background task started")
    return task
