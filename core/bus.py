"""
In-process Event Bus for the SecureFab Node control plane.

Carries the low-rate notifications around the pipeline: validation results,
step changes and advance requests, render updates, stage failures and
shutdown. Handlers run synchronously on the publisher's thread, so a
handler may itself publish (the validator's advance request leads to a
StepChanged on the same thread).

The bus also remembers the latest event of every type, which lets a
polling collaborator (e.g. a renderer running its own frame loop) read the
current RenderUpdate without subscribing.
"""
import threading
from collections import defaultdict
from typing import Callable, Any, Dict, List, Optional, Type, TypeVar

from utils.failures import FailureManager
from utils.logger import Logger

E = TypeVar("E")


def _handler_name(handler: Callable) -> str:
    return getattr(handler, '__qualname__', repr(handler))


class EventBus:
    """
    Publish/subscribe keyed by event class.

    Usage:
        bus = EventBus()
        bus.subscribe(ConfigurationValidated, on_validated)
        bus.publish(ConfigurationValidated(matched=True, ...))
        bus.last(RenderUpdate)
    """

    def __init__(self, failures: Optional[FailureManager] = None):
        """
        Args:
            failures: Optional FailureManager that records handler exceptions.
        """
        self._subscribers: Dict[Type, List[Callable]] = defaultdict(list)
        self._latest: Dict[Type, Any] = {}
        self._lock = threading.Lock()
        self.failures = failures
        self.logger = Logger("EventBus")

    def subscribe(self, event_type: Type[E], handler: Callable[[E], None]) -> None:
        """Register `handler` for every future event of exactly `event_type`."""
        with self._lock:
            self._subscribers[event_type].append(handler)
        self.logger.debug(f"Subscribed {_handler_name(handler)} to {event_type.__name__}")

    def unsubscribe(self, event_type: Type, handler: Callable[[Any], None]) -> None:
        with self._lock:
            handlers = self._subscribers.get(event_type, [])
            if handler in handlers:
                handlers.remove(handler)

    def publish(self, event: Any) -> int:
        """
        Deliver `event` to its subscribers.

        A handler that raises is logged (and recorded, when a FailureManager
        is attached) and does not stop delivery to the remaining handlers.

        Returns:
            Number of handlers that completed without raising.
        """
        event_type = type(event)
        with self._lock:
            self._latest[event_type] = event
            handlers = list(self._subscribers.get(event_type, []))

        if not handlers:
            self.logger.debug(f"No subscribers for {event_type.__name__}")
            return 0

        delivered = 0
        for handler in handlers:
            try:
                handler(event)
                delivered += 1
            except Exception as e:
                self.logger.error(
                    f"Error in handler {_handler_name(handler)} for {event_type.__name__}: {e}"
                )
                if self.failures is not None:
                    self.failures.record_failure(e)
        return delivered

    def last(self, event_type: Type[E]) -> Optional[E]:
        """Most recent event of this type, or None if none was published."""
        with self._lock:
            return self._latest.get(event_type)

    def clear(self) -> None:
        """Remove all subscriptions and remembered events."""
        with self._lock:
            self._subscribers.clear()
            self._latest.clear()

    def subscriber_count(self, event_type: Type) -> int:
        with self._lock:
            return len(self._subscribers.get(event_type, []))
