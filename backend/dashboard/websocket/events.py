"""
WebSocket event types and builders.

Events only announce that a row changed; clients refetch. Every payload keeps
the row's project_id so consumers can filter by project.
"""
from enum import Enum
from typing import Dict, Any
import logging

from dashboard.utils.clock import utcnow

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    """WebSocket event types."""
    # Project events
    PROJECT_CREATED = "project_created"
    PROJECT_UPDATED = "project_updated"

    # Plan events
    FEATURE_CREATED = "feature_created"
    FEATURE_UPDATED = "feature_updated"
    MILESTONE_CREATED = "milestone_created"
    GOAL_CREATED = "goal_created"
    GOAL_UPDATED = "goal_updated"

    # Activity events
    MESSAGE_CREATED = "message_created"
    LOG_CREATED = "log_created"
    OUTPUT_CREATED = "output_created"
    OUTPUT_UPDATED = "output_updated"
    SALE_CREATED = "sale_created"
    TASK_CREATED = "task_created"
    TASK_UPDATED = "task_updated"

    # Connection events
    NOTIFICATION = "notification"
    PONG = "pong"


# Payload key carried by each row event, e.g. {"type": "log_created", "log": {...}}
EVENT_PAYLOAD_KEYS: Dict[EventType, str] = {
    EventType.PROJECT_CREATED: "project",
    EventType.PROJECT_UPDATED: "project",
    EventType.FEATURE_CREATED: "feature",
    EventType.FEATURE_UPDATED: "feature",
    EventType.MILESTONE_CREATED: "milestone",
    EventType.GOAL_CREATED: "goal",
    EventType.GOAL_UPDATED: "goal",
    EventType.MESSAGE_CREATED: "message",
    EventType.LOG_CREATED: "log",
    EventType.OUTPUT_CREATED: "output",
    EventType.OUTPUT_UPDATED: "output",
    EventType.SALE_CREATED: "sale",
    EventType.TASK_CREATED: "task",
    EventType.TASK_UPDATED: "task",
}


class WebSocketEvent:
    """WebSocket event builder."""

    @staticmethod
    def create_event(event_type: EventType, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Create a row-change event.

        Args:
            event_type: Type of event
            data: JSON-ready row payload

        Returns:
            Event dictionary
        """
        key = EVENT_PAYLOAD_KEYS.get(event_type, "data")
        return {
            "type": event_type.value,
            key: data,
            "timestamp": utcnow().isoformat(),
        }

    @staticmethod
    def project_created(project: Dict[str, Any]) -> Dict[str, Any]:
        return WebSocketEvent.create_event(EventType.PROJECT_CREATED, project)

    @staticmethod
    def message_created(message: Dict[str, Any]) -> Dict[str, Any]:
        return WebSocketEvent.create_event(EventType.MESSAGE_CREATED, message)

    @staticmethod
    def log_created(log: Dict[str, Any]) -> Dict[str, Any]:
        return WebSocketEvent.create_event(EventType.LOG_CREATED, log)

    @staticmethod
    def notification(message: str, level: str = "info") -> Dict[str, Any]:
        """Create notification event."""
        return {
            "type": EventType.NOTIFICATION.value,
            "data": {"message": message, "level": level},
            "timestamp": utcnow().isoformat(),
        }
