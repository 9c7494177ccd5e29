from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from dashboard.db import get_db
from dashboard.schemas import TaskCreate, TaskResponse, TaskStatusUpdate
from dashboard.services import task_service
from dashboard.websocket.events import WebSocketEvent, EventType
from dashboard.websocket.manager import manager

router = APIRouter(prefix="/api", tags=["tasks"])


@router.post("/tasks/create", response_model=TaskResponse, status_code=status.HTTP_201_CREATED)
async def create_task(data: TaskCreate, db: Session = Depends(get_db)):
    task = task_service.create_task(db, data)
    payload = TaskResponse.model_validate(task).model_dump(mode="json")
    await manager.broadcast(WebSocketEvent.create_event(EventType.TASK_CREATED, payload))
    return payload


@router.get("/projects/{project_id}/tasks", response_model=List[TaskResponse])
def list_tasks(project_id: int, db: Session = Depends(get_db)):
    return task_service.list_tasks(db, project_id)


@router.put("/tasks/{task_id}/status", response_model=TaskResponse)
async def update_task_status(task_id: int, data: TaskStatusUpdate, db: Session = Depends(get_db)):
    """Move a task forward. Backward transitions are rejected with 422."""
    task = task_service.update_task_status(db, task_id, data.status)
    payload = TaskResponse.model_validate(task).model_dump(mode="json")
    await manager.broadcast(WebSocketEvent.create_event(EventType.TASK_UPDATED, payload))
    return payload
