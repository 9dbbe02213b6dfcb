"""In-process async event bus carrying relayed webhook events to their consumers."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Coroutine
from uuid import uuid4

from jirabridge.utils.logging import get_logger

log = get_logger(__name__)


# ---------------------------------------------------------------------------
# Event types
# ---------------------------------------------------------------------------

class EventType(str, Enum):
    WEBHOOK_RELAYED = "webhook.relayed"


@dataclass
class Event:
    type: EventType
    data: dict[str, Any] = field(default_factory=dict)
    id: str = field(default_factory=lambda: uuid4().hex[:12])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class WebhookRelayed(Event):
    type: EventType = field(default=EventType.WEBHOOK_RELAYED, init=False)
    # data keys: block_ids, kind, body


# ---------------------------------------------------------------------------
# Bus
# ---------------------------------------------------------------------------

Handler = Callable[[Event], Coroutine[Any, Any, None]]


@dataclass
class _Subscription:
    handler: Handler
    queue: asyncio.Queue[Event]
    task: asyncio.Task[None] | None = None


class EventBus:
    """Fan events out to per-handler bounded queues.

    Each handler gets its own queue and consumer task, so a slow consumer
    only delays itself. When a queue is full the event is dropped for that
    handler and a warning is logged.
    """

    def __init__(self, max_queue_size: int = 256) -> None:
        self._subscriptions: dict[EventType, list[_Subscription]] = {}
        self._max_queue_size = max_queue_size
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    def subscribe(self, event_type: EventType, handler: Handler) -> None:
        sub = _Subscription(handler, asyncio.Queue(maxsize=self._max_queue_size))
        self._subscriptions.setdefault(event_type, []).append(sub)
        if self._running:
            sub.task = self._spawn(event_type, sub)

    async def publish(self, event: Event) -> int:
        """Queue ``event`` for every subscriber; return how many accepted it."""
        accepted = 0
        for sub in self._subscriptions.get(event.type, []):
            try:
                sub.queue.put_nowait(event)
                accepted += 1
            except asyncio.QueueFull:
                log.warning(
                    "event_queue_full",
                    event_type=event.type.value,
                    handler=sub.handler.__qualname__,
                )
        return accepted

    async def start(self) -> None:
        self._running = True
        for event_type, subs in self._subscriptions.items():
            for sub in subs:
                if sub.task is None:
                    sub.task = self._spawn(event_type, sub)

    def _spawn(self, event_type: EventType, sub: _Subscription) -> asyncio.Task[None]:
        return asyncio.create_task(
            self._consume(sub, event_type.value),
            name=f"bus-{event_type.value}-{sub.handler.__qualname__}",
        )

    async def _consume(self, sub: _Subscription, event_type: str) -> None:
        while True:
            event = await sub.queue.get()
            try:
                await sub.handler(event)
            except Exception:
                log.exception("handler_error", event_type=event_type)
            finally:
                sub.queue.task_done()

    async def drain(self) -> None:
        """Wait until every queued event has been handled."""
        for subs in self._subscriptions.values():
            for sub in subs:
                await sub.queue.join()

    async def stop(self, drain: bool = True) -> None:
        if drain and self._running:
            await self.drain()
        self._running = False
        tasks = [
            sub.task
            for subs in self._subscriptions.values()
            for sub in subs
            if sub.task is not None
        ]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        for subs in self._subscriptions.values():
            for sub in subs:
                sub.task = None
