import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Type

logger = logging.getLogger(__name__)


@dataclass
class InvitationResponded:
    """An invitation moved to confirmed or declined after a player's reply."""
    invitation: dict
    player: dict
    status: str


Subscriber = Callable[[object], Awaitable[None]]


class EventBus:
    """
    In-process publish/subscribe for side effects that follow a state change.

    Subscribers run in registration order. A failing subscriber is logged and the
    remaining ones still run; publish never raises.
    """

    def __init__(self):
        self._subscribers: Dict[Type, List[Subscriber]] = defaultdict(list)

    def subscribe(self, event_type: Type, handler: Subscriber):
        self._subscribers[event_type].append(handler)

    async def publish(self, event) -> int:
        """Returns how many subscribers completed without raising."""
        completed = 0
        for handler in self._subscribers.get(type(event), []):
            try:
                await handler(event)
                completed += 1
            except Exception:
                logger.exception("[Events] Subscriber %r failed for %s", handler, type(event).__name__)
        return completed
