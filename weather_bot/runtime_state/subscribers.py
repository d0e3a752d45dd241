# weather_bot/runtime_state/subscribers.py
# -*- coding: utf-8 -*-
"""
Weather Telemetry Bot — Subscriber registry
-------------------------------------------
Who gets notified, and who is waiting for which device reply.

- The subscriber set is persisted; its order carries no meaning.
- The two requester queues are FIFO and process-lifetime only: the first
  user who asked for the device list gets the first list reply that
  arrives on the bus, and so on.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger("weather_bot.runtime_state")

SubscriberId = int


class RequestQueue:
    """FIFO of requesters waiting for one kind of asynchronous reply."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._items: Deque[SubscriberId] = deque()

    def __len__(self) -> int:
        return len(self._items)

    def push(self, subscriber_id: SubscriberId) -> None:
        self._items.append(subscriber_id)

    def pop(self) -> Optional[SubscriberId]:
        """Oldest requester, or None when nobody is waiting."""
        if not self._items:
            return None
        return self._items.popleft()

    def pending(self) -> List[SubscriberId]:
        return list(self._items)


class SubscriberRegistry:
    """
    Notification recipients plus the list / info requester queues.

    Parameters
    ----------
    subscribers:
        Initial recipients, e.g. from the persisted state.
    """

    def __init__(self, subscribers: Optional[Iterable[SubscriberId]] = None) -> None:
        # dict keeps first-seen order for stable logs; semantics are a set
        self._subscribers: Dict[SubscriberId, None] = {}
        for subscriber_id in subscribers or ():
            self._subscribers.setdefault(subscriber_id, None)
        self.list_requests = RequestQueue("list")
        self.info_requests = RequestQueue("info")

    def __len__(self) -> int:
        return len(self._subscribers)

    # ------------------------------------------------------------------
    # Subscribers
    # ------------------------------------------------------------------

    def subscribe(self, subscriber_id: SubscriberId) -> bool:
        """Add a recipient. Returns True only if it was not already present."""
        if subscriber_id in self._subscribers:
            return False
        self._subscribers[subscriber_id] = None
        logger.info("[SubscriberRegistry] New subscriber %s", subscriber_id)
        return True

    def is_subscribed(self, subscriber_id: SubscriberId) -> bool:
        return subscriber_id in self._subscribers

    def broadcast_targets(self) -> Tuple[SubscriberId, ...]:
        return tuple(self._subscribers)

    # ------------------------------------------------------------------
    # Requester queues
    # ------------------------------------------------------------------

    def enqueue_list_request(self, subscriber_id: SubscriberId) -> None:
        self.list_requests.push(subscriber_id)

    def dequeue_list_request(self) -> Optional[SubscriberId]:
        return self.list_requests.pop()

    def enqueue_info_request(self, subscriber_id: SubscriberId) -> None:
        self.info_requests.push(subscriber_id)

    def dequeue_info_request(self) -> Optional[SubscriberId]:
        return self.info_requests.pop()

    @property
    def pending_list_requests(self) -> int:
        return len(self.list_requests)

    @property
    def pending_info_requests(self) -> int:
        return len(self.info_requests)
