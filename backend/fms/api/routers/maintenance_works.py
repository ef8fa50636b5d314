"""
Maintenance Works API
"""
from fastapi import APIRouter, Query, Depends
from sqlalchemy.orm import Session
from typing import Optional
from ...dependencies import get_db
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.services_maintenance import MaintenanceWorkService
from ...application.dtos import WorkIn, WorkOut, WorkPageOut, WorkCompleteIn, WorkReassignIn, WorkStatusIn
from ...domain.enums import WorkStatus
from ...domain.errors import FmsError
from ..http_errors import raise_http

router = APIRouter(prefix="/maintenance-works", tags=["maintenance-works"])

@router.get("", response_model=WorkPageOut)
def list_works(
    plan_id: Optional[int] = Query(None),
    assigned_to_id: Optional[int] = Query(None, description="Works of one technician"),
    status: Optional[WorkStatus] = Query(None),
    skip: int = Query(0, ge=0),
    take: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db)
):
    uow = UnitOfWork(db)
    try:
        page = MaintenanceWorkService(uow).list(
            plan_id=plan_id, assigned_to_id=assigned_to_id, status=status, skip=skip, take=take,
        )
        return WorkPageOut(
            items=[WorkOut.model_validate(w) for w in page.items],
            total=page.total, page=page.page, page_size=page.page_size,
        )
    finally:
        uow.close()

@router.get("/{work_id}", response_model=WorkOut)
def get_work(work_id: int, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        return WorkOut.model_validate(MaintenanceWorkService(uow).get(work_id))
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.post("", response_model=WorkOut)
def create_work(payload: WorkIn, db: Session = Depends(get_db)):
    """Creates an ASSIGNED work; the plan moves to IN_PROGRESS."""
    uow = UnitOfWork(db)
    try:
        work = MaintenanceWorkService(uow).create(**payload.model_dump())
        return WorkOut.model_validate(work)
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.patch("/{work_id}/start", response_model=WorkOut)
def start_work(work_id: int, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        return WorkOut.model_validate(MaintenanceWorkService(uow).start(work_id))
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.patch("/{work_id}/pause", response_model=WorkOut)
def pause_work(work_id: int, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        return WorkOut.model_validate(MaintenanceWorkService(uow).pause(work_id))
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.patch("/{work_id}/resume", response_model=WorkOut)
def resume_work(work_id: int, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        return WorkOut.model_validate(MaintenanceWorkService(uow).resume(work_id))
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.patch("/{work_id}/complete", response_model=WorkOut)
def complete_work(work_id: int, payload: WorkCompleteIn, db: Session = Depends(get_db)):
    """Completes the work; the plan (and its request) complete too when nothing else is open."""
    uow = UnitOfWork(db)
    try:
        work = MaintenanceWorkService(uow).complete(
            work_id,
            work_report=payload.work_report,
            actual_hours=payload.actual_hours,
            used_materials=[m.model_dump() for m in payload.used_materials],
        )
        return WorkOut.model_validate(work)
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.patch("/{work_id}/cancel", response_model=WorkOut)
def cancel_work(work_id: int, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        return WorkOut.model_validate(MaintenanceWorkService(uow).cancel(work_id))
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.patch("/{work_id}/reassign", response_model=WorkOut)
def reassign_work(work_id: int, payload: WorkReassignIn, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        return WorkOut.model_validate(MaintenanceWorkService(uow).reassign(work_id, payload.assigned_to_id))
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.patch("/{work_id}/status", response_model=WorkOut)
def change_work_status(work_id: int, payload: WorkStatusIn, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        return WorkOut.model_validate(MaintenanceWorkService(uow).transition(work_id, payload.status))
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()
