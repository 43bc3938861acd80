"""In-process dispatch queue for collection jobs.

Triggers (HTTP routes, the scheduler, boutique creation, backfill) enqueue
pydantic messages; a small pool of asyncio workers consumes them. Each
message is handled by exactly one worker.

Business Rules:
- One handler per message type, registered at startup
- A handler that raises is retried with exponential backoff
  (base * 2**attempt seconds) up to queue_max_retries times
- A message that exhausts its retries is kept in dead_letters and logged
- No locking: two messages for the same boutique may run concurrently

Called by: app/main.py (lifespan), scheduler.py, routers/boutiques.py,
           services/boutique_service.py, services/backfill_service.py
Depends on: config.py
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable

from .config import settings

log = logging.getLogger(__name__)

Handler = Callable[[object], Awaitable[None]]


@dataclass
class DeadLetter:
    message: object
    error: str
    attempts: int


class DispatchQueue:
    def __init__(
        self,
        workers: int | None = None,
        max_retries: int | None = None,
        retry_base_delay: float = 1.0,
    ):
        self.workers = workers or settings.queue_workers
        self.max_retries = settings.queue_max_retries if max_retries is None else max_retries
        self.retry_base_delay = retry_base_delay
        self.dead_letters: list[DeadLetter] = []
        self._handlers: dict[type, Handler] = {}
        self._queue: asyncio.Queue = asyncio.Queue()
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return bool(self._tasks)

    def register(self, message_type: type, handler: Handler) -> None:
        self._handlers[message_type] = handler

    def dispatch(self, message) -> None:
        """Enqueue a message. Raises LookupError when no handler is registered."""
        if type(message) not in self._handlers:
            raise LookupError(f"No handler registered for {type(message).__name__}")
        self._queue.put_nowait(message)
        log.debug(f"Dispatched {type(message).__name__}: {message}")

    def pending(self) -> int:
        return self._queue.qsize()

    async def start(self) -> None:
        if self.running:
            return
        # Rebind to the running loop, keeping anything enqueued before start
        old, self._queue = self._queue, asyncio.Queue()
        while not old.empty():
            self._queue.put_nowait(old.get_nowait())

        self._tasks = [
            asyncio.create_task(self._worker(i), name=f"dispatch-worker-{i}")
            for i in range(self.workers)
        ]
        log.info(f"Dispatch queue started ({self.workers} workers, {self.pending()} pending)")

    async def join(self) -> None:
        """Wait until every enqueued message has been handled or dead-lettered."""
        await self._queue.join()

    async def stop(self, drain: bool = False) -> None:
        if drain and self.running:
            await self.join()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        log.info("Dispatch queue stopped")

    async def _worker(self, index: int) -> None:
        while True:
            message = await self._queue.get()
            try:
                await self._handle(message)
            finally:
                self._queue.task_done()

    async def _handle(self, message) -> None:
        handler = self._handlers[type(message)]
        name = type(message).__name__

        for attempt in range(self.max_retries + 1):
            try:
                await handler(message)
                return
            except asyncio.CancelledError:
                raise
            except Exception as e:
                if attempt < self.max_retries:
                    delay = self.retry_base_delay * (2 ** attempt)
                    log.warning(
                        f"{name} failed (attempt {attempt + 1}/{self.max_retries + 1}), "
                        f"retry in {delay:.1f}s: {e}"
                    )
                    await asyncio.sleep(delay)
                    continue
                log.error(f"{name} dead-lettered after {attempt + 1} attempts: {e}")
                self.dead_letters.append(DeadLetter(message=message, error=str(e), attempts=attempt + 1))


queue = DispatchQueue()
