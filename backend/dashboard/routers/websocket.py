"""
WebSocket router for change notifications.

Every connection receives every broadcast; payloads carry project_id so
clients filter locally. subscribe_project/unsubscribe_project additionally
register the socket for project-targeted notifications.
"""
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from dashboard.websocket.manager import manager
from dashboard.websocket.events import WebSocketEvent, EventType
import logging
import json

logger = logging.getLogger(__name__)

router = APIRouter(tags=["websocket"])


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await manager.connect(websocket)
    try:
        await manager.send_personal_message(
            WebSocketEvent.notification("Connected to real-time updates", level="success"),
            websocket,
        )

        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning("Invalid JSON received on WebSocket")
                continue
            if not isinstance(message, dict):
                continue

            message_type = message.get("type")
            project_id = message.get("project_id")

            if message_type == "subscribe_project" and isinstance(project_id, int):
                manager.subscribe_to_project(project_id, websocket)
                await manager.send_personal_message(
                    WebSocketEvent.notification(f"Subscribed to project {project_id}"),
                    websocket,
                )

            elif message_type == "unsubscribe_project" and isinstance(project_id, int):
                manager.unsubscribe_from_project(project_id, websocket)
                await manager.send_personal_message(
                    WebSocketEvent.notification(f"Unsubscribed from project {project_id}"),
                    websocket,
                )

            elif message_type == "ping":
                await manager.send_personal_message(
                    {"type": EventType.PONG.value, "timestamp": message.get("timestamp")},
                    websocket,
                )

    except WebSocketDisconnect:
        manager.disconnect(websocket)
    except Exception as e:
        logger.error(f"WebSocket error: {e}")
        manager.disconnect(websocket)


@router.get("/ws/stats")
async def get_websocket_stats():
    """WebSocket connection statistics."""
    return {
        "total_connections": manager.get_connection_count(),
        "project_subscriptions": len(manager.project_subscriptions),
    }
