"""Event publisher - hands committed domain events to registered listeners."""
from datetime import datetime
import logging
from typing import Any, Callable, Dict, List, Protocol, Sequence

logger = logging.getLogger(__name__)


class Event(Protocol):
    """Protocol for event types."""

    def to_dict(self) -> Dict[str, Any]:
        ...


EventListener = Callable[[Event], None]


class EventPublisher:
    """
    Dispatches events to listeners registered on this publisher.

    Services publish only after their transaction commits. A failing
    listener is logged and does not affect the other listeners or the
    already-committed booking.
    """

    def __init__(self) -> None:
        self._listeners: List[EventListener] = []

    def register(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    def unregister(self, listener: EventListener) -> None:
        self._listeners = [existing for existing in self._listeners if existing is not listener]

    def listeners(self) -> Sequence[EventListener]:
        return tuple(self._listeners)

    def publish(self, event: Event) -> None:
        event_type = type(event).__name__
        payload = event.to_dict()
        for key, value in payload.items():
            if isinstance(value, datetime):
                payload[key] = value.isoformat()

        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception:
                logger.exception("Event listener error for %s: %s", event_type, listener)
        logger.info("appointment_event=%s payload=%s", event_type, payload)
