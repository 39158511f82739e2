import asyncio
import logging
from typing import Awaitable, Callable, Tuple, Type, TypeVar, Generic

logger = logging.getLogger(__name__)

T = TypeVar('T')

class RetryPolicy(Generic[T]):
    def __init__(self, max_retries: int = 3, delay: float = 1.0, backoff_factor: float = 2.0,
                 retry_on: Tuple[Type[BaseException], ...] = (Exception,), initial_delay: bool = False):
        self.max_retries = max_retries
        self.delay = delay
        self.backoff_factor = backoff_factor
        # retry_on 에 없는 예외는 즉시 전파
        self.retry_on = retry_on
        # True면 첫 시도 전에도 delay 만큼 대기 (폴링용)
        self.initial_delay = initial_delay

    async def execute_with_retry(self, func: Callable[..., Awaitable[T]], *args, **kwargs) -> T:
        current_delay = self.delay
        if self.initial_delay:
            await asyncio.sleep(current_delay)
        for attempt in range(self.max_retries + 1):
            try:
                return await func(*args, **kwargs)
            except self.retry_on as e:
                if attempt >= self.max_retries:
                    raise
                logger.debug("Attempt %d/%d failed: %s", attempt + 1, self.max_retries + 1, e)
                await asyncio.sleep(current_delay)
                current_delay *= self.backoff_factor
