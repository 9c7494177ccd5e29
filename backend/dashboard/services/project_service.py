from sqlalchemy.orm import Session, selectinload
from dashboard.exceptions import NotFoundError
from dashboard.models import Project, Feature, Milestone, Goal, User
from dashboard.schemas import (
    ProjectCreate,
    ProjectResponse,
    FeatureCreate,
    MilestoneCreate,
    GoalCreate,
)
from dashboard.services.cache_service import cache_service
from typing import Any, Dict, List
import logging

logger = logging.getLogger(__name__)


def get_project_or_404(db: Session, project_id: int) -> Project:
    project = db.query(Project).filter(Project.id == project_id).first()
    if not project:
        raise NotFoundError("Project", project_id)
    return project


def create_project(db: Session, data: ProjectCreate) -> Project:
    """Create a project and, when given, its feature → milestone → goal plan in one commit."""
    if data.user_id is not None and not db.query(User).filter(User.id == data.user_id).first():
        raise NotFoundError("User", data.user_id)

    project = Project(name=data.name, prompt=data.prompt, user_id=data.user_id)
    db.add(project)
    db.flush()

    for feature_plan in data.features:
        feature = Feature(
            project_id=project.id,
            title=feature_plan.title,
            description=feature_plan.description,
        )
        db.add(feature)
        db.flush()
        for milestone_plan in feature_plan.milestones:
            milestone = Milestone(
                feature_id=feature.id,
                title=milestone_plan.title,
                description=milestone_plan.description,
                due_date=milestone_plan.due_date,
            )
            db.add(milestone)
            db.flush()
            for goal_plan in milestone_plan.goals:
                db.add(Goal(
                    milestone_id=milestone.id,
                    title=goal_plan.title,
                    description=goal_plan.description,
                ))

    db.commit()
    db.refresh(project)
    cache_service.invalidate_project_lists()
    logger.info(
        f"Project created: {project.name}",
        extra={"project_id": project.id, "event": "project_created"},
    )
    return project


def list_projects(db: Session, active_only: bool = False) -> List[Dict[str, Any]]:
    def load():
        query = db.query(Project)
        if active_only:
            query = query.filter(Project.is_active.is_(True))
        projects = query.order_by(Project.created_at.desc(), Project.id.desc()).all()
        return [ProjectResponse.model_validate(p).model_dump(mode="json") for p in projects]

    return cache_service.get_projects(active_only, load)


def get_project_detail(db: Session, project_id: int) -> Project:
    project = (
        db.query(Project)
        .options(selectinload(Project.features).selectinload(Feature.milestones).selectinload(Milestone.goals))
        .filter(Project.id == project_id)
        .first()
    )
    if not project:
        raise NotFoundError("Project", project_id)
    return project


def set_project_active(db: Session, project_id: int, is_active: bool) -> Project:
    project = get_project_or_404(db, project_id)
    project.is_active = is_active
    db.commit()
    db.refresh(project)
    cache_service.invalidate_project_lists()
    return project


# ============= Features, milestones, goals =============

def create_feature(db: Session, data: FeatureCreate) -> Feature:
    get_project_or_404(db, data.project_id)
    feature = Feature(project_id=data.project_id, title=data.title, description=data.description)
    db.add(feature)
    db.commit()
    db.refresh(feature)
    return feature


def list_features(db: Session, project_id: int) -> List[Feature]:
    get_project_or_404(db, project_id)
    return (
        db.query(Feature)
        .options(selectinload(Feature.milestones).selectinload(Milestone.goals))
        .filter(Feature.project_id == project_id)
        .order_by(Feature.id)
        .all()
    )


def complete_feature(db: Session, feature_id: int) -> Feature:
    feature = db.query(Feature).filter(Feature.id == feature_id).first()
    if not feature:
        raise NotFoundError("Feature", feature_id)
    feature.completed = True
    db.commit()
    db.refresh(feature)
    return feature


def create_milestone(db: Session, data: MilestoneCreate) -> Milestone:
    if not db.query(Feature).filter(Feature.id == data.feature_id).first():
        raise NotFoundError("Feature", data.feature_id)
    milestone = Milestone(
        feature_id=data.feature_id,
        title=data.title,
        description=data.description,
        due_date=data.due_date,
    )
    db.add(milestone)
    db.commit()
    db.refresh(milestone)
    return milestone


def list_milestones(db: Session, feature_id: int) -> List[Milestone]:
    if not db.query(Feature).filter(Feature.id == feature_id).first():
        raise NotFoundError("Feature", feature_id)
    return db.query(Milestone).filter(Milestone.feature_id == feature_id).order_by(Milestone.id).all()


def create_goal(db: Session, data: GoalCreate) -> Goal:
    if not db.query(Milestone).filter(Milestone.id == data.milestone_id).first():
        raise NotFoundError("Milestone", data.milestone_id)
    goal = Goal(milestone_id=data.milestone_id, title=data.title, description=data.description)
    db.add(goal)
    db.commit()
    db.refresh(goal)
    return goal


def list_goals(db: Session, milestone_id: int) -> List[Goal]:
    if not db.query(Milestone).filter(Milestone.id == milestone_id).first():
        raise NotFoundError("Milestone", milestone_id)
    return db.query(Goal).filter(Goal.milestone_id == milestone_id).order_by(Goal.id).all()


def complete_goal(db: Session, goal_id: int) -> Goal:
    goal = db.query(Goal).filter(Goal.id == goal_id).first()
    if not goal:
        raise NotFoundError("Goal", goal_id)
    goal.completed = True
    db.commit()
    db.refresh(goal)
    return goal


def project_id_for_goal(goal: Goal) -> int:
    return goal.milestone.feature.project_id
