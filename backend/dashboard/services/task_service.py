"""
Content-generation task queue. Tasks only move forward:
pending -> in_progress -> completed (pending -> completed is allowed for manual closes).
"""
import logging
from typing import List

from sqlalchemy.orm import Session

from dashboard.exceptions import BusinessLogicError, NotFoundError
from dashboard.models import Task, TaskStatus
from dashboard.schemas import TaskCreate
from dashboard.services.project_service import get_project_or_404

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    TaskStatus.PENDING: {TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED},
    TaskStatus.IN_PROGRESS: {TaskStatus.COMPLETED},
    TaskStatus.COMPLETED: set(),
}


def create_task(db: Session, data: TaskCreate) -> Task:
    get_project_or_404(db, data.project_id)
    task = Task(project_id=data.project_id, title=data.title, description=data.description)
    db.add(task)
    db.commit()
    db.refresh(task)
    logger.info(f"Task queued: {task.title}", extra={"project_id": task.project_id, "event": "task_created"})
    return task


def list_tasks(db: Session, project_id: int) -> List[Task]:
    get_project_or_404(db, project_id)
    return db.query(Task).filter(Task.project_id == project_id).order_by(Task.created_at, Task.id).all()


def update_task_status(db: Session, task_id: int, status: TaskStatus) -> Task:
    task = db.query(Task).filter(Task.id == task_id).first()
    if not task:
        raise NotFoundError("Task", task_id)
    if status == task.status:
        return task
    if status not in ALLOWED_TRANSITIONS[task.status]:
        raise BusinessLogicError(
            f"Cannot move task from {task.status.value} to {status.value}",
            details={"task_id": task_id, "from": task.status.value, "to": status.value},
        )
    task.status = status
    db.commit()
    db.refresh(task)
    return task
