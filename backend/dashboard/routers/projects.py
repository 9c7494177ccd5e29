from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List

from dashboard.db import get_db
from dashboard.schemas import ProjectCreate, ProjectResponse, ProjectDetailResponse
from dashboard.services import project_service
from dashboard.websocket.events import WebSocketEvent, EventType
from dashboard.websocket.manager import manager

router = APIRouter(prefix="/api/projects", tags=["projects"])


@router.post("/create", response_model=ProjectDetailResponse, status_code=status.HTTP_201_CREATED)
async def create_project(data: ProjectCreate, db: Session = Depends(get_db)):
    """Create a project, optionally with its feature → milestone → goal plan."""
    project = project_service.create_project(db, data)
    project = project_service.get_project_detail(db, project.id)
    payload = ProjectResponse.model_validate(project).model_dump(mode="json")
    await manager.broadcast(WebSocketEvent.project_created(payload))
    return project


@router.get("", response_model=List[ProjectResponse])
def list_projects(
    active_only: bool = Query(False, description="Only return active projects"),
    db: Session = Depends(get_db),
):
    """List projects, newest first."""
    return project_service.list_projects(db, active_only=active_only)


@router.get("/{project_id}", response_model=ProjectDetailResponse)
def get_project(project_id: int, db: Session = Depends(get_db)):
    return project_service.get_project_detail(db, project_id)


async def _set_active(db: Session, project_id: int, is_active: bool):
    project = project_service.set_project_active(db, project_id, is_active)
    payload = ProjectResponse.model_validate(project).model_dump(mode="json")
    await manager.broadcast(WebSocketEvent.create_event(EventType.PROJECT_UPDATED, payload))
    await manager.notify_project_subscribers(
        project_id,
        WebSocketEvent.notification(f"Project {project.name} {'resumed' if is_active else 'paused'}"),
    )
    return project


@router.put("/{project_id}/deactivate", response_model=ProjectResponse)
async def deactivate_project(project_id: int, db: Session = Depends(get_db)):
    return await _set_active(db, project_id, False)


@router.put("/{project_id}/activate", response_model=ProjectResponse)
async def activate_project(project_id: int, db: Session = Depends(get_db)):
    return await _set_active(db, project_id, True)
