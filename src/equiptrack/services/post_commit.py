"""
Runner for side effects that follow a committed transaction.

A status change commits first; reminders, notifications and reminder
acknowledgements are then handed to this runner as tasks. A failing task
is retried while the store is unavailable and otherwise logged, never
propagated to the caller whose transaction already succeeded.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Set

from ..config import settings
from ..utils.errors import DependencyUnavailableError
from ..utils.resilience import retry_with_backoff

logger = logging.getLogger(__name__)


class PostCommitRunner:
    """Schedules fire-and-forget coroutines with their own error boundary."""

    def __init__(self, max_retries: int = None, base_delay: float = None):
        self.max_retries = max_retries if max_retries is not None else settings.post_commit_max_retries
        self.base_delay = base_delay if base_delay is not None else settings.post_commit_retry_base_delay
        self._tasks: Set[asyncio.Task] = set()

    @property
    def pending(self) -> int:
        return len(self._tasks)

    def submit(self, description: str, func: Callable[[], Awaitable]) -> asyncio.Task:
        """
        Run ``func`` in the background.

        ``func`` is a zero-argument callable returning a fresh coroutine so
        that it can be retried.
        """
        task = asyncio.create_task(self._run(description, func))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def _run(self, description: str, func: Callable[[], Awaitable]):
        try:
            result = await retry_with_backoff(
                func,
                max_retries=max(1, self.max_retries),
                base_delay=self.base_delay,
                retry_on=(DependencyUnavailableError,),
            )
            logger.debug(f"Post-commit task done: {description}")
            return result
        except asyncio.CancelledError:
            logger.warning(f"Post-commit task cancelled: {description}")
            raise
        except Exception as e:
            logger.error(f"Post-commit task failed: {description}: {e}", exc_info=True)
            return None

    async def drain(self):
        """Wait for every submitted task, including ones spawned meanwhile."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)


post_commit_runner = PostCommitRunner()
