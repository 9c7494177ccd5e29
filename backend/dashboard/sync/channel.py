"""
Client-side listener registry for change notifications.

Events arrive as the JSON frames the server broadcasts on /ws (or as the same
dicts from an in-process ConnectionManager listener) and are routed by their
"type" field.
"""
import inspect
import json
import logging
from typing import Any, Awaitable, Callable, Dict, List, Union

logger = logging.getLogger(__name__)

EventCallback = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class NotificationChannel:
    def __init__(self):
        self._listeners: Dict[str, List[EventCallback]] = {}

    def add_listener(self, event_type: str, callback: EventCallback) -> Callable[[], None]:
        """Register a callback for one event type. Returns a function that removes it."""
        self._listeners.setdefault(event_type, []).append(callback)
        return lambda: self.remove_listener(event_type, callback)

    def remove_listener(self, event_type: str, callback: EventCallback) -> None:
        callbacks = self._listeners.get(event_type)
        if not callbacks or callback not in callbacks:
            return
        callbacks.remove(callback)
        if not callbacks:
            del self._listeners[event_type]

    def listener_count(self, event_type: str) -> int:
        return len(self._listeners.get(event_type, []))

    async def publish(self, event: Union[str, bytes, Dict[str, Any]]) -> int:
        """Deliver one event to its listeners, in registration order. Returns how many ran."""
        if isinstance(event, (str, bytes)):
            try:
                event = json.loads(event)
            except ValueError:
                logger.warning("Dropping notification that is not valid JSON")
                return 0
        if not isinstance(event, dict) or not isinstance(event.get("type"), str):
            logger.warning("Dropping notification without a type")
            return 0

        delivered = 0
        for callback in list(self._listeners.get(event["type"], [])):
            try:
                result = callback(event)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(f"Listener for {event['type']} failed: {e}", exc_info=True)
        return delivered
