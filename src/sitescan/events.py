"""Push-channel event delivery.

Job state changes are announced to a room named after the job id. The queue
manager only depends on the EventSink interface; a web server would plug in a
socket or SSE backed sink, the CLI plugs in a callback.
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict

logger = logging.getLogger(__name__)

SCAN_PROGRESS = "scan:progress"
QUEUE_UPDATE = "queue:update"
SCAN_COMPLETE = "scan:complete"
SCAN_ERROR = "scan:error"


class EventSink(ABC):
    """Delivers one event to every subscriber of a room."""

    @abstractmethod
    def emit(self, room: str, event: str, payload: Dict[str, Any]) -> None:
        """Deliver ``event`` with ``payload`` to the subscribers of ``room``."""


class LoggingEventSink(EventSink):
    """Sink that only logs events. Used when nothing is subscribed."""

    def emit(self, room: str, event: str, payload: Dict[str, Any]) -> None:
        logger.debug(f"[{room}] {event}: {payload}")


class CallbackEventSink(EventSink):
    """Forwards events to a plain callable ``callback(room, event, payload)``.

    Delivery failures are logged and never reach the job that emitted the
    event.
    """

    def __init__(self, callback: Callable[[str, str, Dict[str, Any]], None]):
        self._callback = callback

    def emit(self, room: str, event: str, payload: Dict[str, Any]) -> None:
        try:
            self._callback(room, event, payload)
        except Exception as e:
            logger.error(f"[{room}] Failed to deliver event '{event}': {e}")
