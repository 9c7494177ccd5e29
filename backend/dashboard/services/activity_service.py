"""
Messages, logs, outputs and sales: the append-mostly activity of a project.
"""
import logging
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from dashboard.exceptions import NotFoundError
from dashboard.models import Message, Log, Output, Sale
from dashboard.schemas import (
    MessageCreate,
    MessageResponse,
    LogCreate,
    LogResponse,
    OutputCreate,
    OutputResponse,
    SaleCreate,
    SaleResponse,
)
from dashboard.services.cache_service import cache_service
from dashboard.services.project_service import get_project_or_404
from dashboard.utils.clock import utcnow

logger = logging.getLogger(__name__)

MESSAGES = "messages"
LOGS = "logs"
OUTPUTS = "outputs"
SALES = "sales"


# ============= Messages =============

def create_message(db: Session, data: MessageCreate) -> Message:
    get_project_or_404(db, data.project_id)
    message = Message(
        project_id=data.project_id,
        content=data.content,
        sender=data.sender,
        meta=data.metadata.model_dump(mode="json") if data.metadata else None,
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    cache_service.invalidate_project_resource(data.project_id, MESSAGES)
    logger.info(
        "Message created",
        extra={"project_id": data.project_id, "message_id": message.id, "event": "message_created"},
    )
    return message


def list_messages(db: Session, project_id: int) -> List[Dict[str, Any]]:
    """Messages of a project, oldest first."""
    get_project_or_404(db, project_id)

    def load():
        rows = (
            db.query(Message)
            .filter(Message.project_id == project_id)
            .order_by(Message.timestamp.asc(), Message.id.asc())
            .all()
        )
        return [MessageResponse.model_validate(m).model_dump(mode="json") for m in rows]

    return cache_service.get_project_resource(project_id, MESSAGES, load)


# ============= Logs =============

def create_log(db: Session, data: LogCreate) -> Log:
    get_project_or_404(db, data.project_id)
    log = Log(project_id=data.project_id, type=data.type, title=data.title, details=data.details)
    db.add(log)
    db.commit()
    db.refresh(log)
    cache_service.invalidate_project_resource(data.project_id, LOGS)
    return log


def list_logs(db: Session, project_id: int) -> List[Dict[str, Any]]:
    """Logs of a project, newest first."""
    get_project_or_404(db, project_id)

    def load():
        rows = (
            db.query(Log)
            .filter(Log.project_id == project_id)
            .order_by(Log.timestamp.desc(), Log.id.desc())
            .all()
        )
        return [LogResponse.model_validate(log).model_dump(mode="json") for log in rows]

    return cache_service.get_project_resource(project_id, LOGS, load)


# ============= Outputs =============

def create_output(db: Session, data: OutputCreate) -> Output:
    get_project_or_404(db, data.project_id)
    output = Output(project_id=data.project_id, type=data.type, content=data.content)
    db.add(output)
    db.commit()
    db.refresh(output)
    cache_service.invalidate_project_resource(data.project_id, OUTPUTS)
    return output


def list_outputs(db: Session, project_id: int) -> List[Dict[str, Any]]:
    get_project_or_404(db, project_id)

    def load():
        rows = (
            db.query(Output)
            .filter(Output.project_id == project_id)
            .order_by(Output.created_at.desc(), Output.id.desc())
            .all()
        )
        return [OutputResponse.model_validate(o).model_dump(mode="json") for o in rows]

    return cache_service.get_project_resource(project_id, OUTPUTS, load)


def review_output(db: Session, output_id: int, approved: bool) -> Output:
    output = db.query(Output).filter(Output.id == output_id).first()
    if not output:
        raise NotFoundError("Output", output_id)
    output.approved = approved
    db.commit()
    db.refresh(output)
    cache_service.invalidate_project_resource(output.project_id, OUTPUTS)
    return output


# ============= Sales =============

def create_sale(db: Session, data: SaleCreate) -> Sale:
    get_project_or_404(db, data.project_id)
    sale = Sale(
        project_id=data.project_id,
        amount=data.amount,
        description=data.description,
        platform=data.platform,
    )
    db.add(sale)
    db.commit()
    db.refresh(sale)
    cache_service.invalidate_project_resource(data.project_id, SALES)
    return sale


def list_sales(db: Session, project_id: int) -> List[Dict[str, Any]]:
    get_project_or_404(db, project_id)

    def load():
        rows = (
            db.query(Sale)
            .filter(Sale.project_id == project_id)
            .order_by(Sale.timestamp.desc(), Sale.id.desc())
            .all()
        )
        return [SaleResponse.model_validate(s).model_dump(mode="json") for s in rows]

    return cache_service.get_project_resource(project_id, SALES, load)


# ============= Performance =============

def _day_bounds(day: date):
    start = datetime.combine(day, time.min)
    return start, start + timedelta(days=1)


def get_performance(db: Session, project_id: int, day: Optional[date] = None) -> Dict[str, int]:
    """Message count, output count and sales income of one (UTC) day, yesterday by default."""
    get_project_or_404(db, project_id)
    if day is None:
        day = utcnow().date() - timedelta(days=1)
    start, end = _day_bounds(day)

    messages = db.query(func.count(Message.id)).filter(
        Message.project_id == project_id,
        Message.timestamp >= start,
        Message.timestamp < end,
    ).scalar()
    content = db.query(func.count(Output.id)).filter(
        Output.project_id == project_id,
        Output.created_at >= start,
        Output.created_at < end,
    ).scalar()
    income = db.query(func.coalesce(func.sum(Sale.amount), 0)).filter(
        Sale.project_id == project_id,
        Sale.timestamp >= start,
        Sale.timestamp < end,
    ).scalar()

    return {"messages": messages or 0, "content": content or 0, "income": int(income or 0)}
