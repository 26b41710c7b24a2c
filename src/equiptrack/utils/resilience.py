from typing import Callable, Any, Tuple, Type
import asyncio


# Exponential backoff retry
async def retry_with_backoff(
    func: Callable,
    max_retries: int = 5,
    base_delay: float = 1.0,
    max_delay: float = 300.0,
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
) -> Any:
    for attempt in range(max_retries):
        try:
            return await func()
        except retry_on:
            if attempt == max_retries - 1:
                raise

            delay = min(base_delay * (2 ** attempt), max_delay)
            await asyncio.sleep(delay)
