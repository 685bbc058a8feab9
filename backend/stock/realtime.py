"""Realtime broadcast bridge.

Accepted mutations are published as change events on one stable channel.
Every connected session subscribes with its user id and only receives events
that some other user caused; the filter is a pure check on the payload.

get_bridge() / set_bridge() swap implementations the same way the API
dependencies do for tests.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import structlog

from core.config import settings

logger = structlog.get_logger(__name__)

CHANGE_EVENTS = ("INSERT", "UPDATE", "DELETE")

ACTION_LABELS = {
    "created": "Created",
    "updated": "Updated",
    "deleted": "Deleted",
}


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    event: str
    record: Optional[Dict[str, Any]] = None
    old_record: Optional[Dict[str, Any]] = None

    def __post_init__(self):
        if self.event not in CHANGE_EVENTS:
            raise ValueError(f"event must be one of {CHANGE_EVENTS}, got '{self.event}'.")

    @property
    def payload(self) -> Dict[str, Any]:
        return {
            "table": self.table,
            "event": self.event,
            "record": self.record,
            "old_record": self.old_record,
        }


def originating_user(event: ChangeEvent) -> Optional[str]:
    data = event.record or event.old_record or {}
    user_id = data.get("user_id")
    return str(user_id) if user_id is not None else None


def is_self_originated(event: ChangeEvent, current_user_id: Optional[str]) -> bool:
    if current_user_id is None:
        return False
    return originating_user(event) == str(current_user_id)


def notification_message(event: ChangeEvent) -> Optional[str]:
    """Toast text for another user's inventory activity, if any."""
    if event.table != "inventory_activity" or event.event != "INSERT" or not event.record:
        return None
    label = ACTION_LABELS.get(event.record.get("action"))
    if not label:
        return None
    return f"{label} : {event.record.get('item_name') or 'Unknown Item'}"


@dataclass(eq=False)
class Subscription:
    user_id: Optional[str]
    channel: str
    queue: asyncio.Queue = field(default_factory=asyncio.Queue)

    async def next_event(self, timeout: Optional[float] = None) -> ChangeEvent:
        if timeout is None:
            return await self.queue.get()
        return await asyncio.wait_for(self.queue.get(), timeout)

    def pending(self) -> List[ChangeEvent]:
        out = []
        while not self.queue.empty():
            out.append(self.queue.get_nowait())
        return out


class RealtimeBridge(ABC):
    @abstractmethod
    async def publish(self, event: ChangeEvent) -> int:
        """Deliver to every subscriber that did not cause the event. Returns the delivery count."""
        ...

    @abstractmethod
    def subscribe(self, user_id: Optional[str]) -> Subscription:
        ...

    @abstractmethod
    def unsubscribe(self, subscription: Subscription) -> None:
        ...


class InMemoryBroadcastBridge(RealtimeBridge):
    """Fan-out to in-process subscribers (websocket sessions, tests)."""

    def __init__(self, channel: Optional[str] = None):
        self.channel = channel or settings.realtime_channel
        self.subscriptions: List[Subscription] = []

    async def publish(self, event: ChangeEvent) -> int:
        delivered = 0
        for sub in list(self.subscriptions):
            if is_self_originated(event, sub.user_id):
                continue
            sub.queue.put_nowait(event)
            delivered += 1
        logger.debug("change_broadcast", channel=self.channel, table=event.table, change_event=event.event, delivered=delivered)
        return delivered

    def subscribe(self, user_id: Optional[str]) -> Subscription:
        sub = Subscription(user_id=str(user_id) if user_id is not None else None, channel=self.channel)
        self.subscriptions.append(sub)
        return sub

    def unsubscribe(self, subscription: Subscription) -> None:
        if subscription in self.subscriptions:
            self.subscriptions.remove(subscription)

    def reset(self):
        self.subscriptions.clear()


class RecordingBroadcastBridge(InMemoryBroadcastBridge):
    """Keeps every published event in memory for test assertions."""

    def __init__(self, channel: Optional[str] = None):
        super().__init__(channel)
        self.published: List[ChangeEvent] = []

    async def publish(self, event: ChangeEvent) -> int:
        self.published.append(event)
        return await super().publish(event)

    def reset(self):
        super().reset()
        self.published.clear()


_current_bridge: Optional[RealtimeBridge] = None


def get_bridge() -> RealtimeBridge:
    global _current_bridge
    if _current_bridge is None:
        _current_bridge = InMemoryBroadcastBridge()
    return _current_bridge


def set_bridge(bridge: RealtimeBridge) -> None:
    global _current_bridge
    _current_bridge = bridge


def reset_bridge() -> None:
    global _current_bridge
    _current_bridge = None
