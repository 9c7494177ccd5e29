from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from dashboard.db import get_db
from dashboard.schemas import MessageCreate, MessageResponse, LogCreate, LogResponse
from dashboard.services import activity_service
from dashboard.websocket.events import WebSocketEvent
from dashboard.websocket.manager import manager

router = APIRouter(prefix="/api", tags=["messages"])


@router.post("/messages/create", response_model=MessageResponse, status_code=status.HTTP_201_CREATED)
async def create_message(data: MessageCreate, db: Session = Depends(get_db)):
    message = activity_service.create_message(db, data)
    payload = MessageResponse.model_validate(message).model_dump(mode="json")
    await manager.broadcast(WebSocketEvent.message_created(payload))
    return payload


@router.get("/projects/{project_id}/messages", response_model=List[MessageResponse])
def list_messages(project_id: int, db: Session = Depends(get_db)):
    """Conversation of a project, oldest first."""
    return activity_service.list_messages(db, project_id)


@router.post("/logs/create", response_model=LogResponse, status_code=status.HTTP_201_CREATED)
async def create_log(data: LogCreate, db: Session = Depends(get_db)):
    log = activity_service.create_log(db, data)
    payload = LogResponse.model_validate(log).model_dump(mode="json")
    await manager.broadcast(WebSocketEvent.log_created(payload))
    return payload


@router.get("/projects/{project_id}/logs", response_model=List[LogResponse])
def list_logs(project_id: int, db: Session = Depends(get_db)):
    """Execution logs of a project, newest first."""
    return activity_service.list_logs(db, project_id)
