from datetime import date
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional

from dashboard.db import get_db
from dashboard.schemas import (
    OutputCreate,
    OutputResponse,
    SaleCreate,
    SaleResponse,
    PerformanceResponse,
)
from dashboard.services import activity_service
from dashboard.websocket.events import WebSocketEvent, EventType
from dashboard.websocket.manager import manager

router = APIRouter(prefix="/api", tags=["outputs"])


@router.post("/outputs/create", response_model=OutputResponse, status_code=status.HTTP_201_CREATED)
async def create_output(data: OutputCreate, db: Session = Depends(get_db)):
    output = activity_service.create_output(db, data)
    payload = OutputResponse.model_validate(output).model_dump(mode="json")
    await manager.broadcast(WebSocketEvent.create_event(EventType.OUTPUT_CREATED, payload))
    return payload


@router.get("/projects/{project_id}/outputs", response_model=List[OutputResponse])
def list_outputs(project_id: int, db: Session = Depends(get_db)):
    return activity_service.list_outputs(db, project_id)


async def _review(db: Session, output_id: int, approved: bool):
    output = activity_service.review_output(db, output_id, approved)
    payload = OutputResponse.model_validate(output).model_dump(mode="json")
    await manager.broadcast(WebSocketEvent.create_event(EventType.OUTPUT_UPDATED, payload))
    return payload


@router.put("/outputs/{output_id}/approve", response_model=OutputResponse)
async def approve_output(output_id: int, db: Session = Depends(get_db)):
    return await _review(db, output_id, True)


@router.put("/outputs/{output_id}/reject", response_model=OutputResponse)
async def reject_output(output_id: int, db: Session = Depends(get_db)):
    return await _review(db, output_id, False)


@router.post("/sales/create", response_model=SaleResponse, status_code=status.HTTP_201_CREATED)
async def create_sale(data: SaleCreate, db: Session = Depends(get_db)):
    sale = activity_service.create_sale(db, data)
    payload = SaleResponse.model_validate(sale).model_dump(mode="json")
    await manager.broadcast(WebSocketEvent.create_event(EventType.SALE_CREATED, payload))
    return payload


@router.get("/projects/{project_id}/sales", response_model=List[SaleResponse])
def list_sales(project_id: int, db: Session = Depends(get_db)):
    return activity_service.list_sales(db, project_id)


@router.get("/projects/{project_id}/performance", response_model=PerformanceResponse)
def get_performance(
    project_id: int,
    day: Optional[date] = Query(None, description="UTC day to report; defaults to yesterday"),
    db: Session = Depends(get_db),
):
    return activity_service.get_performance(db, project_id, day)
