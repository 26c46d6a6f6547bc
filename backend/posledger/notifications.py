# Overview: In-process publish/subscribe stream for real-time inventory observers.

"""
Domain event stream.

Events are advisory: they are published only after the database commit that
produced them, delivery is at-most-once, and a subscriber that raises is
logged and skipped. Nothing here can roll back a ledger change.

Event names:
- updateInventory: an inventory stock row changed (payload: stock dict)
- cancelOrder: a payment transaction was cancelled (payload: payment dict)
- cancelFinishedGoodTransactions: lines of a cancelled order (payload: list of line dicts)
- orderReturned: a payment transaction changed after a return (payload: payment dict)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Callable, Iterable

EVENT_UPDATE_INVENTORY = "updateInventory"
EVENT_CANCEL_ORDER = "cancelOrder"
EVENT_CANCEL_FINISHED_GOODS = "cancelFinishedGoodTransactions"
EVENT_ORDER_RETURNED = "orderReturned"

Subscriber = Callable[[str, Any], None]

logger = logging.getLogger(__name__)


class EventPublisher:
    def __init__(self) -> None:
        self._subscribers: dict[str, list[Subscriber]] = defaultdict(list)

    def subscribe(self, event: str, callback: Subscriber) -> None:
        """Register callback for an event name; "*" receives every event."""
        self._subscribers[event].append(callback)

    def unsubscribe(self, event: str, callback: Subscriber) -> None:
        callbacks = self._subscribers.get(event, [])
        if callback in callbacks:
            callbacks.remove(callback)

    def clear(self) -> None:
        self._subscribers.clear()

    def publish(self, event: str, payload: Any) -> None:
        for callback in list(self._subscribers.get(event, [])) + list(self._subscribers.get("*", [])):
            try:
                callback(event, payload)
            except Exception:
                logger.exception("Event subscriber failed for %s", event)

    def publish_all(self, events: Iterable[tuple[str, Any]]) -> None:
        for event, payload in events:
            self.publish(event, payload)
