"""
Stock API
=========

Quantity on hand per material and warehouse, the four stock movements and
the transaction log.
"""
from fastapi import APIRouter, Query, Depends
from datetime import datetime
from sqlalchemy.orm import Session
from typing import List, Optional
from ...dependencies import get_db
from ...infrastructure.unit_of_work import UnitOfWork
from ...application.services_inventory import InventoryService
from ...application.services_movement_log import TransactionFilter
from ...application.dtos import (
    ReceiptIn, IssueIn, TransferIn, AdjustIn,
    StockOut, TransactionOut, TransactionPageOut, DiscrepancyOut,
)
from ...domain.enums import MovementType
from ...domain.errors import FmsError
from ..http_errors import raise_http
from ...domain.models_inventory import MaterialStock, MaterialTransaction

router = APIRouter(prefix="/stocks", tags=["stocks"])


def _stock_out(stock: MaterialStock) -> StockOut:
    return StockOut(
        id=stock.id,
        material_id=stock.material_id,
        warehouse_id=stock.warehouse_id,
        quantity=stock.quantity,
        updated_at=stock.updated_at,
        material_code=stock.material.code if stock.material else None,
        material_name=stock.material.name if stock.material else None,
        unit=stock.material.unit if stock.material else None,
        reorder_point=stock.material.reorder_point if stock.material else None,
        warehouse_code=stock.warehouse.code if stock.warehouse else None,
        warehouse_name=stock.warehouse.name if stock.warehouse else None,
    )


def _transaction_out(t: MaterialTransaction) -> TransactionOut:
    return TransactionOut(
        id=t.id,
        transaction_number=t.transaction_number,
        transaction_type=t.transaction_type,
        material_id=t.material_id,
        material_name=t.material.name if t.material else None,
        from_warehouse_id=t.from_warehouse_id,
        from_warehouse_name=t.from_warehouse.name if t.from_warehouse else None,
        to_warehouse_id=t.to_warehouse_id,
        to_warehouse_name=t.to_warehouse.name if t.to_warehouse else None,
        quantity=t.quantity,
        unit_price=t.unit_price,
        remarks=t.remarks,
        reference_type=t.reference_type,
        reference_id=t.reference_id,
        transaction_date=t.transaction_date,
    )


# ===== STOCK =====

@router.get("", response_model=List[StockOut])
def list_stocks(
    warehouse_id: Optional[int] = Query(None, description="Filter by warehouse"),
    material_id: Optional[int] = Query(None, description="Filter by material"),
    low_stock: bool = Query(False, description="Only materials at or below their reorder point"),
    db: Session = Depends(get_db)
):
    uow = UnitOfWork(db)
    try:
        stocks = InventoryService(uow).list_stocks(warehouse_id=warehouse_id, material_id=material_id, low_stock=low_stock)
        return [_stock_out(s) for s in stocks]
    finally:
        uow.close()

@router.get("/transactions", response_model=TransactionPageOut)
def list_transactions(
    material_id: Optional[int] = Query(None, description="Filter by material"),
    warehouse_id: Optional[int] = Query(None, description="Source or destination warehouse"),
    transaction_type: Optional[MovementType] = Query(None, description="RECEIPT, ISSUE, TRANSFER or ADJUSTMENT"),
    start_date: Optional[datetime] = Query(None, description="From (inclusive)"),
    end_date: Optional[datetime] = Query(None, description="To (inclusive)"),
    skip: int = Query(0, ge=0),
    take: Optional[int] = Query(None, ge=1, description="Page size"),
    db: Session = Depends(get_db)
):
    criteria = TransactionFilter(
        material_id=material_id,
        warehouse_id=warehouse_id,
        transaction_type=transaction_type,
        start_date=start_date,
        end_date=end_date,
        skip=skip,
        take=take,
    )
    uow = UnitOfWork(db)
    try:
        page = InventoryService(uow).list_transactions(criteria)
        return TransactionPageOut(
            items=[_transaction_out(t) for t in page.items],
            total=page.total,
            page=page.page,
            page_size=page.page_size,
        )
    finally:
        uow.close()

@router.get("/reconciliation", response_model=List[DiscrepancyOut])
def reconcile(
    material_id: Optional[int] = Query(None, description="Limit to one material"),
    db: Session = Depends(get_db)
):
    """Ledger rows whose quantity differs from the replay of their transactions (empty when consistent)."""
    uow = UnitOfWork(db)
    try:
        return [DiscrepancyOut(**d) for d in InventoryService(uow).reconcile(material_id)]
    finally:
        uow.close()

@router.get("/{material_id}/{warehouse_id}", response_model=StockOut)
def get_stock(material_id: int, warehouse_id: int, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        return _stock_out(InventoryService(uow).get_stock(material_id, warehouse_id))
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

# ===== MOVEMENTS =====

@router.post("/receipt", response_model=StockOut)
def receipt(payload: ReceiptIn, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        stock = InventoryService(uow).receipt(**payload.model_dump())
        return _stock_out(stock)
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.post("/issue", response_model=StockOut)
def issue(payload: IssueIn, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        stock = InventoryService(uow).issue(**payload.model_dump())
        return _stock_out(stock)
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.post("/transfer", response_model=StockOut)
def transfer(payload: TransferIn, db: Session = Depends(get_db)):
    """Returns the destination stock."""
    uow = UnitOfWork(db)
    try:
        stock = InventoryService(uow).transfer(**payload.model_dump())
        return _stock_out(stock)
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()

@router.post("/adjust", response_model=StockOut)
def adjust(payload: AdjustIn, db: Session = Depends(get_db)):
    uow = UnitOfWork(db)
    try:
        stock = InventoryService(uow).adjust(**payload.model_dump())
        return _stock_out(stock)
    except FmsError as e:
        raise_http(e)
    finally:
        uow.close()
