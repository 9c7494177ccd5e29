from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from typing import List

from dashboard.db import get_db
from dashboard.schemas import (
    FeatureCreate,
    FeatureResponse,
    MilestoneCreate,
    MilestoneResponse,
    GoalCreate,
    GoalResponse,
)
from dashboard.services import project_service
from dashboard.websocket.events import WebSocketEvent, EventType
from dashboard.websocket.manager import manager

router = APIRouter(prefix="/api", tags=["plan"])


def _feature_payload(feature) -> dict:
    return FeatureResponse.model_validate(feature).model_dump(mode="json")


# ============= Features =============

@router.post("/features/create", response_model=FeatureResponse, status_code=status.HTTP_201_CREATED)
async def create_feature(data: FeatureCreate, db: Session = Depends(get_db)):
    feature = project_service.create_feature(db, data)
    await manager.broadcast(WebSocketEvent.create_event(EventType.FEATURE_CREATED, _feature_payload(feature)))
    return feature


@router.get("/projects/{project_id}/features", response_model=List[FeatureResponse])
def list_features(project_id: int, db: Session = Depends(get_db)):
    """Features of a project with their milestones and goals."""
    return project_service.list_features(db, project_id)


@router.put("/features/{feature_id}/complete", response_model=FeatureResponse)
async def complete_feature(feature_id: int, db: Session = Depends(get_db)):
    feature = project_service.complete_feature(db, feature_id)
    await manager.broadcast(WebSocketEvent.create_event(EventType.FEATURE_UPDATED, _feature_payload(feature)))
    return feature


# ============= Milestones =============

@router.post("/milestones/create", response_model=MilestoneResponse, status_code=status.HTTP_201_CREATED)
async def create_milestone(data: MilestoneCreate, db: Session = Depends(get_db)):
    milestone = project_service.create_milestone(db, data)
    payload = MilestoneResponse.model_validate(milestone).model_dump(mode="json")
    payload["project_id"] = milestone.feature.project_id
    await manager.broadcast(WebSocketEvent.create_event(EventType.MILESTONE_CREATED, payload))
    return milestone


@router.get("/features/{feature_id}/milestones", response_model=List[MilestoneResponse])
def list_milestones(feature_id: int, db: Session = Depends(get_db)):
    return project_service.list_milestones(db, feature_id)


# ============= Goals =============

async def _broadcast_goal(event_type: EventType, goal):
    payload = GoalResponse.model_validate(goal).model_dump(mode="json")
    payload["project_id"] = project_service.project_id_for_goal(goal)
    await manager.broadcast(WebSocketEvent.create_event(event_type, payload))


@router.post("/goals/create", response_model=GoalResponse, status_code=status.HTTP_201_CREATED)
async def create_goal(data: GoalCreate, db: Session = Depends(get_db)):
    goal = project_service.create_goal(db, data)
    await _broadcast_goal(EventType.GOAL_CREATED, goal)
    return goal


@router.get("/milestones/{milestone_id}/goals", response_model=List[GoalResponse])
def list_goals(milestone_id: int, db: Session = Depends(get_db)):
    return project_service.list_goals(db, milestone_id)


@router.put("/goals/{goal_id}/complete", response_model=GoalResponse)
async def complete_goal(goal_id: int, db: Session = Depends(get_db)):
    goal = project_service.complete_goal(db, goal_id)
    await _broadcast_goal(EventType.GOAL_UPDATED, goal)
    return goal
