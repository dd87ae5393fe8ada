"""Bundler that accumulates items and hands them to a handler in batches"""
import asyncio
import time
from collections import deque
from typing import Any, Awaitable, Callable, Deque, List, Optional

from .logging_config import get_logger

logger = get_logger(__name__)


class Bundler:
    """Buffers items and flushes them from a background task.

    A flush happens once ``count_threshold`` items are pending or the oldest
    pending item has waited ``delay_threshold`` seconds. Failed batches are
    reported to ``on_error`` and never re-queued.
    """

    def __init__(self,
                 handler: Callable[[List[Any]], Awaitable[None]],
                 on_error: Callable[[Exception], None],
                 count_threshold: int = 10,
                 delay_threshold: float = 1.0,
                 max_queue_size: int = 1000):
        self.handler = handler
        self.on_error = on_error
        self.count_threshold = count_threshold
        self.delay_threshold = delay_threshold
        self.max_queue_size = max_queue_size

        self._items: Deque[Any] = deque()
        self._oldest_item_time: Optional[float] = None
        self._flush_lock = asyncio.Lock()
        self._wakeup = asyncio.Event()
        self._shutdown = False
        self._task: Optional[asyncio.Task] = None

    async def start(self):
        """Start the background flush task"""
        if self._task is None:
            self._shutdown = False
            self._task = asyncio.create_task(self._flush_loop())
            logger.info("Bundler started",
                        count_threshold=self.count_threshold,
                        delay_threshold=self.delay_threshold)

    async def stop(self):
        """Stop the background task and flush whatever is pending"""
        self._shutdown = True
        self._wakeup.set()

        if self._task:
            await self._task
            self._task = None

        await self.flush()
        logger.info("Bundler stopped")

    def add(self, item: Any):
        """Queue one item, dropping the oldest ones when the buffer is full"""
        if len(self._items) >= self.max_queue_size:
            self._items.popleft()
            logger.warning("Bundler queue overflow, dropped oldest item",
                           queue_size=len(self._items),
                           max_queue_size=self.max_queue_size)

        if not self._items:
            self._oldest_item_time = time.monotonic()
        self._items.append(item)

        if len(self._items) >= self.count_threshold:
            self._wakeup.set()

    def pending(self) -> int:
        return len(self._items)

    async def flush(self):
        """Hand every pending item to the handler now"""
        while self._items:
            await self._flush_batch()

    async def _flush_loop(self):
        while not self._shutdown:
            try:
                await asyncio.wait_for(self._wakeup.wait(), timeout=self.delay_threshold)
            except asyncio.TimeoutError:
                pass
            self._wakeup.clear()

            if len(self._items) >= self.count_threshold or self._delay_elapsed():
                await self.flush()

    def _delay_elapsed(self) -> bool:
        if not self._items or self._oldest_item_time is None:
            return False
        return time.monotonic() - self._oldest_item_time >= self.delay_threshold

    async def _flush_batch(self):
        async with self._flush_lock:
            batch = []
            while self._items and len(batch) < self.count_threshold:
                batch.append(self._items.popleft())
            self._oldest_item_time = time.monotonic() if self._items else None

            if not batch:
                return

            try:
                start_time = time.monotonic()
                await self.handler(batch)
                logger.debug("Bundle flushed",
                             batch_size=len(batch),
                             flush_time_seconds=round(time.monotonic() - start_time, 3),
                             queue_remaining=len(self._items))
            except asyncio.CancelledError:
                raise
            except Exception as e:
                self.on_error(e)
