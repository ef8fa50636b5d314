"""
Maintenance Requests API
"""
from fastapi import APIRouter, Query, Depends
from datetime import datetime
from sqlalchemy.orm import Session
from typing import Optional
from ...dependencies import get_db
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.services_maintenance import MaintenanceRequestService
from ...application.dtos import RequestIn, RequestUpdate, RequestOut, RequestPageOut, RequestStatisticsOut, RequestStatusIn
from ...domain.enums import MaintenanceType, Priority, RequestStatus
from ...domain.errors import FmsError
from ..http_errors import raise_http

router = APIRouter(prefix="/maintenance-requests", tags=["maintenance-requests"])

@router.get("", response_model=RequestPageOut)
def list_requests(
    search: Optional[str] = Query(None, description="Request number or title"),
    equipment_id: Optional[int] = Query(None),
    status: Optional[RequestStatus] = Query(None),
    type: Optional[MaintenanceType] = Query(None),
    priority: Optional[Priority] = Query(None),
    requester_id: Optional[int] = Query(None),
    start_date: Optional[datetime] = Query(None, description="Requested from"),
    end_date: Optional[datetime] = Query(None, description="Requested until"),
    skip: int = Query(0, ge=0),
    take: Optional[int] = Query(None, ge=1),
    db: Session = Depends(get_db)
):
    uow = UnitOfWork(db)
    try:
        page = MaintenanceRequestService(uow).list(
            search=search, equipment_id=equipment_id, status=status, type=type,
            priority=priority, requester_id=requester_id,
            start_date=start_date, end_date=end_date, skip=skip, take=take,
        )
        return RequestPageOut(
            items=[RequestOut.model_validate(r) for r in page.items],
            total=page.total, page=page.page, page_size=page.page_size,
        )
    finally:
        uow.close()

@router.get("/statistics", response_model=RequestStatisticsOut)
def request_statistics(
    start_date: Optional[datetime] = Query(None),
    end_date: Optional[datetime] = Query(None),
    db: Session = Depends(get_db)
):
    uow = UnitOfWork(db)
    try:
        return RequestStatisticsOut(**MaintenanceRequestService(uow).statistics(start_date, end_date))
    finally:
        uow.close()

@router.get("/{request_id}", response_model=RequestOut)
def get_request(request_id: int, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        return RequestOut.model_validate(MaintenanceRequestService(uow).get(request_id))
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.post("", response_model=RequestOut)
def create_request(payload: RequestIn, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        request = MaintenanceRequestService(uow).create(**payload.model_dump())
        return RequestOut.model_validate(request)
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.put("/{request_id}", response_model=RequestOut)
def update_request(request_id: int, payload: RequestUpdate, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        request = MaintenanceRequestService(uow).update(request_id, **payload.model_dump(exclude_unset=True))
        return RequestOut.model_validate(request)
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.delete("/{request_id}")
def delete_request(request_id: int, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        MaintenanceRequestService(uow).delete(request_id)
        return {"deleted": True, "id": request_id}
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.patch("/{request_id}/status", response_model=RequestOut)
def change_request_status(request_id: int, payload: RequestStatusIn, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        request = MaintenanceRequestService(uow).transition(request_id, payload.status)
        return RequestOut.model_validate(request)
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()
