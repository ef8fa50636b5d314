"""
Maintenance Plans API
"""
from fastapi import APIRouter, Query, Depends
from datetime import date
from sqlalchemy.orm import Session
from typing import List, Optional
from ...dependencies import get_db
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.services_maintenance import MaintenancePlanService
from ...application.dtos import PlanIn, PlanUpdate, PlanOut, PlanPageOut, PlanStatusIn
from ...domain.enums import MaintenanceType, PlanStatus
from ...domain.errors import FmsError
from ..http_errors import raise_http

router = APIRouter(prefix="/maintenance-plans", tags=["maintenance-plans"])

@router.get("", response_model=PlanPageOut)
def list_plans(
    search: Optional[str] = Query(None, description="Plan number or title"),
    equipment_id: Optional[int] = Query(None),
    request_id: Optional[int] = Query(None),
    status: Optional[PlanStatus] = Query(None),
    type: Optional[MaintenanceType] = Query(None),
    start_date: Optional[date] = Query(None, description="Planned start from"),
    end_date: Optional[date] = Query(None, description="Planned start until"),
    skip: int = Query(0, ge=0),
    take: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db)
):
    uow = UnitOfWork(db)
    try:
        page = MaintenancePlanService(uow).list(
            search=search, equipment_id=equipment_id, request_id=request_id, status=status,
            type=type, start_date=start_date, end_date=end_date, skip=skip, take=take,
        )
        return PlanPageOut(
            items=[PlanOut.model_validate(p) for p in page.items],
            total=page.total, page=page.page, page_size=page.page_size,
        )
    finally:
        uow.close()

@router.get("/upcoming", response_model=List[PlanOut])
def upcoming_plans(
    days: Optional[int] = Query(None, ge=0, description="Window in days (default from settings)"),
    db: Session = Depends(get_db)
):
    uow = UnitOfWork(db)
    try:
        return [PlanOut.model_validate(p) for p in MaintenancePlanService(uow).upcoming(days)]
    finally:
        uow.close()

@router.get("/{plan_id}", response_model=PlanOut)
def get_plan(plan_id: int, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        return PlanOut.model_validate(MaintenancePlanService(uow).get(plan_id))
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.post("", response_model=PlanOut)
def create_plan(payload: PlanIn, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        plan = MaintenancePlanService(uow).create(**payload.model_dump())
        return PlanOut.model_validate(plan)
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.put("/{plan_id}", response_model=PlanOut)
def update_plan(plan_id: int, payload: PlanUpdate, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        plan = MaintenancePlanService(uow).update(plan_id, **payload.model_dump(exclude_unset=True))
        return PlanOut.model_validate(plan)
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.delete("/{plan_id}")
def delete_plan(plan_id: int, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        MaintenancePlanService(uow).delete(plan_id)
        return {"deleted": True, "id": plan_id}
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.patch("/{plan_id}/status", response_model=PlanOut)
def change_plan_status(plan_id: int, payload: PlanStatusIn, db: Session = Depends(get_db)):
    """Moving to IN_PROGRESS or COMPLETED also updates the linked request."""
    uow = UnitOfWork(db)
    try:
        plan = MaintenancePlanService(uow).transition(plan_id, payload.status)
        return PlanOut.model_validate(plan)
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()
