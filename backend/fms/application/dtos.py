from pydantic import BaseModel, ConfigDict, Field, constr
from typing import List, Optional, Dict
from datetime import date, datetime
from decimal import Decimal

from ..domain.enums import MovementType, MaintenanceType, Priority, RequestStatus, PlanStatus, WorkStatus

# ===== STOCK =====

class ReceiptIn(BaseModel):
    material_id: int
    warehouse_id: int
    quantity: Decimal = Field(..., description="Must be greater than 0")
    unit_price: Optional[Decimal] = None
    remarks: Optional[str] = None
    reference_type: Optional[str] = None  # e.g. PURCHASE_ORDER
    reference_id: Optional[str] = None

class IssueIn(BaseModel):
    material_id: int
    warehouse_id: int
    quantity: Decimal = Field(..., description="Must be greater than 0")
    remarks: Optional[str] = None
    reference_type: Optional[str] = None  # e.g. MAINTENANCE_WORK
    reference_id: Optional[str] = None

class TransferIn(BaseModel):
    material_id: int
    from_warehouse_id: int
    to_warehouse_id: int
    quantity: Decimal = Field(..., description="Must be greater than 0")
    remarks: Optional[str] = None

class AdjustIn(BaseModel):
    material_id: int
    warehouse_id: int
    new_quantity: Decimal = Field(..., description="Counted quantity, 0 or more")
    remarks: str = Field(..., description="Reason for the adjustment")

class StockOut(BaseModel):
    id: int
    material_id: int
    warehouse_id: int
    quantity: Decimal
    updated_at: Optional[datetime] = None
    material_code: Optional[str] = None
    material_name: Optional[str] = None
    unit: Optional[str] = None
    reorder_point: Optional[Decimal] = None
    warehouse_code: Optional[str] = None
    warehouse_name: Optional[str] = None

class TransactionOut(BaseModel):
    id: int
    transaction_number: str
    transaction_type: MovementType
    material_id: int
    material_name: Optional[str] = None
    from_warehouse_id: Optional[int] = None
    from_warehouse_name: Optional[str] = None
    to_warehouse_id: Optional[int] = None
    to_warehouse_name: Optional[str] = None
    quantity: Decimal
    unit_price: Optional[Decimal] = None
    remarks: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    transaction_date: datetime

class TransactionPageOut(BaseModel):
    items: List[TransactionOut]
    total: int
    page: int
    page_size: int

class DiscrepancyOut(BaseModel):
    material_id: int
    warehouse_id: int
    ledger: Decimal
    log: Decimal

# ===== MAINTENANCE REQUESTS =====

class RequestIn(BaseModel):
    equipment_id: int
    requester_id: int
    type: MaintenanceType
    priority: Priority = Priority.MEDIUM
    title: constr(strip_whitespace=True, min_length=1)
    description: Optional[str] = None
    desired_date: Optional[date] = None

class RequestUpdate(BaseModel):
    equipment_id: Optional[int] = None
    type: Optional[MaintenanceType] = None
    priority: Optional[Priority] = None
    title: Optional[str] = None
    description: Optional[str] = None
    desired_date: Optional[date] = None

class RequestOut(BaseModel):
    id: int
    request_number: str
    equipment_id: int
    requester_id: int
    type: MaintenanceType
    priority: Priority
    title: str
    description: Optional[str] = None
    desired_date: Optional[date] = None
    requested_date: datetime
    status: RequestStatus

    model_config = ConfigDict(from_attributes=True)

class RequestPageOut(BaseModel):
    items: List[RequestOut]
    total: int
    page: int
    page_size: int

class RequestStatisticsOut(BaseModel):
    total: int
    by_status: Dict[str, int]
    by_type: Dict[str, int]
    by_priority: Dict[str, int]

class RequestStatusIn(BaseModel):
    status: RequestStatus

# ===== MAINTENANCE PLANS =====

class PlanMaterialIn(BaseModel):
    material_id: int
    quantity: Decimal

class PlanMaterialOut(BaseModel):
    id: int
    material_id: int
    quantity: Decimal
    used_quantity: Optional[Decimal] = None

    model_config = ConfigDict(from_attributes=True)

class PlanIn(BaseModel):
    request_id: Optional[int] = None
    equipment_id: int
    type: MaintenanceType
    title: constr(strip_whitespace=True, min_length=1)
    description: Optional[str] = None
    planned_start_date: date
    planned_end_date: Optional[date] = None
    estimated_hours: Optional[Decimal] = None
    estimated_cost: Optional[Decimal] = None
    materials: List[PlanMaterialIn] = []

class PlanUpdate(BaseModel):
    equipment_id: Optional[int] = None
    type: Optional[MaintenanceType] = None
    title: Optional[str] = None
    description: Optional[str] = None
    planned_start_date: Optional[date] = None
    planned_end_date: Optional[date] = None
    estimated_hours: Optional[Decimal] = None
    estimated_cost: Optional[Decimal] = None
    materials: Optional[List[PlanMaterialIn]] = None  # replaces the list when given

class PlanOut(BaseModel):
    id: int
    plan_number: str
    request_id: Optional[int] = None
    equipment_id: int
    type: MaintenanceType
    title: str
    description: Optional[str] = None
    planned_start_date: date
    planned_end_date: Optional[date] = None
    estimated_hours: Optional[Decimal] = None
    estimated_cost: Optional[Decimal] = None
    status: PlanStatus
    materials: List[PlanMaterialOut] = []

    model_config = ConfigDict(from_attributes=True)

class PlanPageOut(BaseModel):
    items: List[PlanOut]
    total: int
    page: int
    page_size: int

class PlanStatusIn(BaseModel):
    status: PlanStatus

# ===== MAINTENANCE WORKS =====

class WorkIn(BaseModel):
    plan_id: int
    assigned_to_id: int
    description: Optional[str] = None

class UsedMaterialIn(BaseModel):
    material_id: int
    used_quantity: Decimal

class WorkCompleteIn(BaseModel):
    work_report: Optional[str] = None
    actual_hours: Optional[Decimal] = None
    used_materials: List[UsedMaterialIn] = []

class WorkReassignIn(BaseModel):
    assigned_to_id: int

class WorkStatusIn(BaseModel):
    status: WorkStatus

class WorkOut(BaseModel):
    id: int
    work_number: str
    plan_id: int
    assigned_to_id: int
    description: Optional[str] = None
    status: WorkStatus
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    actual_hours: Optional[Decimal] = None
    work_report: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)

class WorkPageOut(BaseModel):
    items: List[WorkOut]
    total: int
    page: int
    page_size: int
