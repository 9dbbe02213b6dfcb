"""Fan-out of normalized webhook payloads to matching subscribers."""

from __future__ import annotations

from typing import Any, Iterable, Protocol

from jirabridge.core.bus import EventBus, WebhookRelayed
from jirabridge.utils.logging import get_logger
from jirabridge.webhooks.filters import matches
from jirabridge.webhooks.models import EventKind, Subscriber

log = get_logger(__name__)


class SubscriberRegistry(Protocol):
    async def list(self, kind: EventKind) -> list[Subscriber]: ...


class Relay(Protocol):
    async def send(
        self, block_ids: list[str], kind: EventKind, body: dict[str, Any]
    ) -> None: ...


class StaticSubscriberRegistry:
    """Registry over a fixed set of subscribers, usually built from settings."""

    def __init__(self, subscribers: Iterable[Subscriber] = ()) -> None:
        self._subscribers = list(subscribers)

    @classmethod
    def from_settings(cls, configs: Iterable[Any]) -> StaticSubscriberRegistry:
        return cls(
            Subscriber(id=c.id, kind=EventKind(c.event), config=dict(c.config))
            for c in configs
        )

    def register(self, subscriber: Subscriber) -> None:
        self._subscribers.append(subscriber)

    async def list(self, kind: EventKind) -> list[Subscriber]:
        return [s for s in self._subscribers if s.kind == kind]


class BusRelay:
    """Relay that publishes one WebhookRelayed event per dispatch."""

    def __init__(self, bus: EventBus) -> None:
        self._bus = bus

    async def send(
        self, block_ids: list[str], kind: EventKind, body: dict[str, Any]
    ) -> None:
        await self._bus.publish(
            WebhookRelayed(data={"block_ids": block_ids, "kind": kind.value, "body": body})
        )


class Dispatcher:
    def __init__(self, registry: SubscriberRegistry, relay: Relay) -> None:
        self._registry = registry
        self._relay = relay

    async def dispatch(self, kind: EventKind, payload: dict[str, Any]) -> list[str]:
        """Relay ``payload`` to the subscribers of ``kind`` whose filters match.

        Returns the ids the payload was sent to. No relay call is made when
        nothing matches.
        """
        subscribers = await self._registry.list(kind)
        block_ids = [s.id for s in subscribers if matches(payload, s.config)]

        log.info(
            "webhook_dispatch",
            kind=kind.value,
            candidates=len(subscribers),
            matched=len(block_ids),
        )

        if block_ids:
            await self._relay.send(block_ids, kind, payload)
        return block_ids
