"""
In-Process Event Bus
====================

asyncio-based event delivery with at-least-once semantics: a handler that
raises is retried with exponential backoff until ``max_attempts`` is
reached, after which the event is logged and dropped.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Optional

from ticket_assistant.shared.infrastructure.logging import get_logger

logger = get_logger(__name__)

EventHandler = Callable[[Dict[str, Any]], Awaitable[None]]


class IEventPublisher(ABC):
    """Publishes events for asynchronous handling."""

    @abstractmethod
    async def publish(self, name: str, payload: Dict[str, Any]) -> None:
        """Enqueue an event."""


@dataclass
class Envelope:
    name: str
    payload: Dict[str, Any]
    attempt: int = 0


class InProcessEventBus(IEventPublisher):
    """
    Queue plus a pool of worker tasks.

    Events published before ``start()`` are buffered and processed once
    workers run.
    """

    def __init__(
        self,
        workers: int = 2,
        max_attempts: int = 3,
        retry_base_seconds: float = 1.0
    ):
        self._worker_count = workers
        self._max_attempts = max_attempts
        self._retry_base = retry_base_seconds
        self._handlers: Dict[str, List[EventHandler]] = {}
        self._queue: Optional[asyncio.Queue] = None
        self._workers: List[asyncio.Task] = []
        self._retry_tasks: set[asyncio.Task] = set()

    def subscribe(self, name: str, handler: EventHandler) -> None:
        self._handlers.setdefault(name, []).append(handler)

    def _get_queue(self) -> asyncio.Queue:
        if self._queue is None:
            self._queue = asyncio.Queue()
        return self._queue

    async def publish(self, name: str, payload: Dict[str, Any]) -> None:
        if name not in self._handlers:
            logger.warning("No handler subscribed for event", extra={"event": name})
        await self._get_queue().put(Envelope(name=name, payload=dict(payload)))

    async def start(self) -> None:
        if self._workers:
            logger.warning("Event bus already running")
            return
        queue = self._get_queue()
        self._workers = [
            asyncio.create_task(self._worker(queue), name=f"event-worker-{i}")
            for i in range(self._worker_count)
        ]
        logger.info("Event bus started", extra={"workers": self._worker_count})

    async def stop(self) -> None:
        for task in [*self._workers, *self._retry_tasks]:
            task.cancel()
        await asyncio.gather(*self._workers, *self._retry_tasks, return_exceptions=True)
        self._workers = []
        self._retry_tasks.clear()
        logger.info("Event bus stopped")

    async def drain(self) -> None:
        """Wait until every queued event, retries included, has been handled."""
        queue = self._get_queue()
        while True:
            await queue.join()
            if self._retry_tasks:
                await asyncio.gather(*list(self._retry_tasks), return_exceptions=True)
                continue
            if queue.empty():
                return

    @property
    def is_running(self) -> bool:
        return bool(self._workers)

    async def _worker(self, queue: asyncio.Queue) -> None:
        while True:
            envelope = await queue.get()
            try:
                await self._deliver(envelope)
            finally:
                queue.task_done()

    async def _deliver(self, envelope: Envelope) -> None:
        envelope.attempt += 1
        for handler in self._handlers.get(envelope.name, []):
            try:
                await handler(envelope.payload)
            except Exception as e:
                self._handle_failure(envelope, e)
                return

    def _handle_failure(self, envelope: Envelope, error: Exception) -> None:
        extra = {"event": envelope.name, "attempt": envelope.attempt, "error": str(error)}
        if envelope.attempt >= self._max_attempts:
            logger.error("Event handler failed, giving up", extra=extra)
            return

        delay = self._retry_base * (2 ** (envelope.attempt - 1))
        logger.warning("Event handler failed, retrying", extra={**extra, "delay_seconds": delay})
        task = asyncio.create_task(self._requeue_later(envelope, delay))
        self._retry_tasks.add(task)
        task.add_done_callback(self._retry_tasks.discard)

    async def _requeue_later(self, envelope: Envelope, delay: float) -> None:
        await asyncio.sleep(delay)
        await self._get_queue().put(envelope)
