import time
import logging
import threading
from enum import Enum
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List

logger = logging.getLogger(__name__)

class EventType(str, Enum):
    TRADE_EXECUTED = "TRADE_EXECUTED"   # payload: TradeRecord
    STATE_CHANGED = "STATE_CHANGED"     # payload: GridBotState snapshot

@dataclass(frozen=True)
class Event:
    type: EventType
    payload: Any
    timestamp: float = field(default_factory=time.time)

Handler = Callable[[Event], None]

class EventBus:
    """
    Synchronous publish/subscribe channel between the scheduler and whatever
    watches it (UI, alerting, tests). A failing handler is logged and does not
    stop delivery to the others.
    """

    def __init__(self):
        self._subscribers: Dict[EventType, List[Handler]] = {}
        self._lock = threading.Lock()

    def subscribe(self, event_type: EventType, handler: Handler) -> Callable[[], None]:
        """Returns a callable that removes this subscription."""
        with self._lock:
            self._subscribers.setdefault(event_type, []).append(handler)

        def unsubscribe():
            self.unsubscribe(event_type, handler)

        return unsubscribe

    def unsubscribe(self, event_type: EventType, handler: Handler):
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def subscriber_count(self, event_type: EventType) -> int:
        return len(self._subscribers.get(event_type, []))

    def publish(self, event: Event):
        with self._lock:
            handlers = list(self._subscribers.get(event.type, []))

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(f"Handler {getattr(handler, '__name__', handler)} failed on {event.type.value}: {e}", exc_info=True)
