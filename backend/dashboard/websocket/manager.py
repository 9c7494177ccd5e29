"""
WebSocket connection manager for change notifications.
"""
import inspect
import logging
from typing import Any, Awaitable, Callable, Dict, List, Set, Union
from fastapi import WebSocket

logger = logging.getLogger(__name__)

LocalListener = Callable[[Dict[str, Any]], Union[None, Awaitable[None]]]


class ConnectionManager:
    """Manage WebSocket connections and in-process listeners."""

    def __init__(self):
        self.active_connections: Set[WebSocket] = set()
        # Project subscriptions: {project_id: {websocket1, websocket2, ...}}
        self.project_subscriptions: Dict[int, Set[WebSocket]] = {}
        self.local_listeners: List[LocalListener] = []

    async def connect(self, websocket: WebSocket):
        """Accept and register a WebSocket."""
        await websocket.accept()
        self.active_connections.add(websocket)
        logger.info("WebSocket connected", extra={"status": "connected"})

    def disconnect(self, websocket: WebSocket):
        """Forget a WebSocket and all of its project subscriptions."""
        self.active_connections.discard(websocket)
        for project_id in list(self.project_subscriptions.keys()):
            self.unsubscribe_from_project(project_id, websocket)
        logger.info("WebSocket disconnected", extra={"status": "disconnected"})

    async def send_personal_message(self, message: dict, websocket: WebSocket) -> bool:
        """Send to one socket; a failed send drops the connection."""
        try:
            await websocket.send_json(message)
            return True
        except Exception as e:
            logger.error(f"Error sending WebSocket message: {e}")
            self.disconnect(websocket)
            return False

    async def broadcast(self, message: dict):
        """Broadcast to every connected socket and every in-process listener."""
        for websocket in list(self.active_connections):
            await self.send_personal_message(message, websocket)
        await self._notify_local_listeners(message)

    async def notify_project_subscribers(self, project_id: int, message: dict):
        """Notify only the sockets subscribed to a project."""
        for websocket in list(self.project_subscriptions.get(project_id, set())):
            await self.send_personal_message(message, websocket)

    def subscribe_to_project(self, project_id: int, websocket: WebSocket):
        self.project_subscriptions.setdefault(project_id, set()).add(websocket)
        logger.info(f"WebSocket subscribed to project {project_id}", extra={"project_id": project_id})

    def unsubscribe_from_project(self, project_id: int, websocket: WebSocket):
        if project_id in self.project_subscriptions:
            self.project_subscriptions[project_id].discard(websocket)

            # Clean up if no more subscribers
            if not self.project_subscriptions[project_id]:
                del self.project_subscriptions[project_id]

    def add_local_listener(self, listener: LocalListener) -> Callable[[], None]:
        """Register an in-process consumer of every broadcast. Returns an unsubscribe function."""
        self.local_listeners.append(listener)

        def remove():
            if listener in self.local_listeners:
                self.local_listeners.remove(listener)

        return remove

    async def _notify_local_listeners(self, message: dict):
        for listener in list(self.local_listeners):
            try:
                result = listener(message)
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                logger.error(f"Local listener failed for {message.get('type')}: {e}")

    def get_connection_count(self) -> int:
        """Get total number of active connections."""
        return len(self.active_connections)


# Global connection manager instance
manager = ConnectionManager()
