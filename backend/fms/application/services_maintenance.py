"""
Maintenance Services
====================

Requests, plans and works: numbering, guarded edits, listing and status
changes. Every public method that writes runs inside one
UnitOfWork.atomic() block; cascades are applied by services_lifecycle
within that same block.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import Decimal, ROUND_HALF_UP
from typing import Callable, Dict, List, Optional

from sqlalchemy import select, func, or_
from sqlalchemy.orm import selectinload

from ..config import settings
from ..infrastructure.unit_of_work import UnitOfWork
from ..domain.enums import DocumentKind, MaintenanceType, Priority, RequestStatus, PlanStatus, WorkStatus
from ..domain.errors import NotFoundError, InvalidStateError, InvalidQuantityError, InvalidTransitionError
from ..domain.lifecycle import REQUEST_MACHINE, PLAN_MACHINE, WORK_MACHINE
from ..domain.models import Material
from ..domain.models_maintenance import MaintenanceRequest, MaintenancePlan, MaintenancePlanMaterial, MaintenanceWork
from .services_sequence import SequenceGenerator
from .services_lifecycle import set_request_status, set_plan_status, set_work_status

logger = logging.getLogger(__name__)

REQUEST_EDITABLE = ("equipment_id", "type", "priority", "title", "description", "desired_date")
REQUEST_DELETABLE = {RequestStatus.PENDING.value, RequestStatus.CANCELLED.value, RequestStatus.REJECTED.value}
PLAN_EDITABLE = (
    "equipment_id", "type", "title", "description", "planned_start_date",
    "planned_end_date", "estimated_hours", "estimated_cost",
)
PLAN_DELETABLE = {PlanStatus.DRAFT.value, PlanStatus.CANCELLED.value}
UPCOMING_STATUSES = (PlanStatus.DRAFT.value, PlanStatus.APPROVED.value)


@dataclass
class Page:
    items: list = field(default_factory=list)
    total: int = 0
    page: int = 1
    page_size: int = 0


def _paginate(uow: UnitOfWork, stmt, count_stmt, skip: int, take: Optional[int]) -> Page:
    take = max(1, min(take if take is not None else settings.default_page_size, settings.max_page_size))
    skip = max(0, skip or 0)
    total = uow.db.execute(count_stmt).scalar_one()
    items = uow.db.execute(stmt.offset(skip).limit(take)).scalars().all()
    return Page(items=list(items), total=total, page=skip // take + 1, page_size=take)


def _enum_value(enum_type, value):
    return enum_type(value).value if value is not None else None


class _BaseService:

    def __init__(self, uow: UnitOfWork, clock: Callable[[], datetime] = datetime.now):
        self.uow = uow
        self.clock = clock
        self.sequence = SequenceGenerator(uow.db)

    def _number(self, kind: DocumentKind) -> str:
        return self.sequence.next_for(kind, self.clock())


# ===== REQUESTS =====

class MaintenanceRequestService(_BaseService):

    def get(self, request_id: int) -> MaintenanceRequest:
        request = self.uow.requests.get(request_id)
        if not request:
            raise NotFoundError("MaintenanceRequest", request_id)
        return request

    def create(
        self,
        equipment_id: int,
        requester_id: int,
        type: MaintenanceType,
        title: str,
        priority: Priority = Priority.MEDIUM,
        description: Optional[str] = None,
        desired_date: Optional[date] = None,
    ) -> MaintenanceRequest:
        with self.uow.atomic():
            request = self.uow.requests.add(MaintenanceRequest(
                request_number=self._number(DocumentKind.REQUEST),
                equipment_id=equipment_id,
                requester_id=requester_id,
                type=MaintenanceType(type).value,
                priority=Priority(priority).value,
                title=title,
                description=description,
                desired_date=desired_date,
                requested_date=self.clock(),
                status=RequestStatus.PENDING.value,
            ))
        logger.info("Maintenance request %s created", request.request_number)
        return request

    def list(
        self,
        search: Optional[str] = None,
        equipment_id: Optional[int] = None,
        status: Optional[RequestStatus] = None,
        type: Optional[MaintenanceType] = None,
        priority: Optional[Priority] = None,
        requester_id: Optional[int] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        skip: int = 0,
        take: Optional[int] = None,
    ) -> Page:
        predicates = []
        if search:
            pattern = f"%{search}%"
            predicates.append(or_(
                MaintenanceRequest.request_number.ilike(pattern),
                MaintenanceRequest.title.ilike(pattern),
            ))
        if equipment_id is not None:
            predicates.append(MaintenanceRequest.equipment_id == equipment_id)
        if status is not None:
            predicates.append(MaintenanceRequest.status == _enum_value(RequestStatus, status))
        if type is not None:
            predicates.append(MaintenanceRequest.type == _enum_value(MaintenanceType, type))
        if priority is not None:
            predicates.append(MaintenanceRequest.priority == _enum_value(Priority, priority))
        if requester_id is not None:
            predicates.append(MaintenanceRequest.requester_id == requester_id)
        if start_date is not None:
            predicates.append(MaintenanceRequest.requested_date >= start_date)
        if end_date is not None:
            predicates.append(MaintenanceRequest.requested_date <= end_date)

        stmt = select(MaintenanceRequest).where(*predicates).order_by(MaintenanceRequest.requested_date.desc(), MaintenanceRequest.id.desc())
        count_stmt = select(func.count(MaintenanceRequest.id)).where(*predicates)
        return _paginate(self.uow, stmt, count_stmt, skip, take)

    def update(self, request_id: int, **changes) -> MaintenanceRequest:
        request = self.get(request_id)
        if REQUEST_MACHINE.is_terminal(request.status):
            raise InvalidStateError(f"Request {request.request_number} is {request.status} and cannot be modified")

        with self.uow.atomic():
            for name in REQUEST_EDITABLE:
                if changes.get(name) is None:
                    continue
                value = changes[name]
                if name == "type":
                    value = MaintenanceType(value).value
                elif name == "priority":
                    value = Priority(value).value
                setattr(request, name, value)
            self.uow.db.flush()
        return request

    def delete(self, request_id: int) -> None:
        request = self.get(request_id)
        if request.status not in REQUEST_DELETABLE:
            raise InvalidStateError(f"Request {request.request_number} is {request.status} and cannot be deleted")
        if self.uow.plans.by_request(request.id):
            raise InvalidStateError(f"Request {request.request_number} has plans and cannot be deleted")

        with self.uow.atomic():
            self.uow.requests.delete(request)
        logger.info("Maintenance request %s deleted", request.request_number)

    def transition(self, request_id: int, status: RequestStatus) -> MaintenanceRequest:
        with self.uow.atomic():
            request = self.uow.requests.get_for_update(request_id)
            if not request:
                raise NotFoundError("MaintenanceRequest", request_id)
            set_request_status(self.uow, request, status)
        return request

    def statistics(self, start_date: Optional[datetime] = None, end_date: Optional[datetime] = None) -> Dict:
        """Counts of requests: total, by status, by type and by priority."""
        predicates = []
        if start_date is not None:
            predicates.append(MaintenanceRequest.requested_date >= start_date)
        if end_date is not None:
            predicates.append(MaintenanceRequest.requested_date <= end_date)

        def grouped(column) -> Dict[str, int]:
            rows = self.uow.db.execute(
                select(column, func.count(MaintenanceRequest.id)).where(*predicates).group_by(column)
            ).all()
            return {key: count for key, count in rows}

        total = self.uow.db.execute(select(func.count(MaintenanceRequest.id)).where(*predicates)).scalar_one()
        return {
            "total": total,
            "by_status": grouped(MaintenanceRequest.status),
            "by_type": grouped(MaintenanceRequest.type),
            "by_priority": grouped(MaintenanceRequest.priority),
        }


# ===== PLANS =====

class MaintenancePlanService(_BaseService):

    def get(self, plan_id: int) -> MaintenancePlan:
        plan = self.uow.db.execute(
            select(MaintenancePlan)
            .where(MaintenancePlan.id == plan_id)
            .options(selectinload(MaintenancePlan.materials), selectinload(MaintenancePlan.works))
        ).scalar_one_or_none()
        if not plan:
            raise NotFoundError("MaintenancePlan", plan_id)
        return plan

    def _materials(self, materials: Optional[List[dict]]) -> List[MaintenancePlanMaterial]:
        rows = []
        for item in materials or []:
            material_id = item["material_id"]
            quantity = Decimal(str(item["quantity"]))
            if quantity <= 0:
                raise InvalidQuantityError(f"Planned quantity must be greater than 0: {quantity}")
            if not self.uow.db.get(Material, material_id):
                raise NotFoundError("Material", material_id)
            rows.append(MaintenancePlanMaterial(material_id=material_id, quantity=quantity))
        return rows

    def create(
        self,
        equipment_id: int,
        type: MaintenanceType,
        title: str,
        planned_start_date: date,
        request_id: Optional[int] = None,
        description: Optional[str] = None,
        planned_end_date: Optional[date] = None,
        estimated_hours=None,
        estimated_cost=None,
        materials: Optional[List[dict]] = None,
    ) -> MaintenancePlan:
        if request_id is not None and not self.uow.requests.get(request_id):
            raise NotFoundError("MaintenanceRequest", request_id)
        rows = self._materials(materials)

        with self.uow.atomic():
            plan = MaintenancePlan(
                plan_number=self._number(DocumentKind.PLAN),
                request_id=request_id,
                equipment_id=equipment_id,
                type=MaintenanceType(type).value,
                title=title,
                description=description,
                planned_start_date=planned_start_date,
                planned_end_date=planned_end_date,
                estimated_hours=estimated_hours,
                estimated_cost=estimated_cost,
                status=PlanStatus.DRAFT.value,
            )
            plan.materials = rows
            self.uow.plans.add(plan)
        logger.info("Maintenance plan %s created", plan.plan_number)
        return plan

    def list(
        self,
        search: Optional[str] = None,
        equipment_id: Optional[int] = None,
        request_id: Optional[int] = None,
        status: Optional[PlanStatus] = None,
        type: Optional[MaintenanceType] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        skip: int = 0,
        take: Optional[int] = None,
    ) -> Page:
        predicates = []
        if search:
            pattern = f"%{search}%"
            predicates.append(or_(
                MaintenancePlan.plan_number.ilike(pattern),
                MaintenancePlan.title.ilike(pattern),
            ))
        if equipment_id is not None:
            predicates.append(MaintenancePlan.equipment_id == equipment_id)
        if request_id is not None:
            predicates.append(MaintenancePlan.request_id == request_id)
        if status is not None:
            predicates.append(MaintenancePlan.status == _enum_value(PlanStatus, status))
        if type is not None:
            predicates.append(MaintenancePlan.type == _enum_value(MaintenanceType, type))
        if start_date is not None:
            predicates.append(MaintenancePlan.planned_start_date >= start_date)
        if end_date is not None:
            predicates.append(MaintenancePlan.planned_start_date <= end_date)

        stmt = (
            select(MaintenancePlan)
            .where(*predicates)
            .options(selectinload(MaintenancePlan.materials))
            .order_by(MaintenancePlan.planned_start_date.desc(), MaintenancePlan.id.desc())
        )
        count_stmt = select(func.count(MaintenancePlan.id)).where(*predicates)
        return _paginate(self.uow, stmt, count_stmt, skip, take)

    def update(self, plan_id: int, materials: Optional[List[dict]] = None, **changes) -> MaintenancePlan:
        plan = self.get(plan_id)
        if PLAN_MACHINE.is_terminal(plan.status):
            raise InvalidStateError(f"Plan {plan.plan_number} is {plan.status} and cannot be modified")
        rows = self._materials(materials) if materials is not None else None

        with self.uow.atomic():
            for name in PLAN_EDITABLE:
                if changes.get(name) is None:
                    continue
                value = changes[name]
                if name == "type":
                    value = MaintenanceType(value).value
                setattr(plan, name, value)
            if rows is not None:
                plan.materials = rows
            self.uow.db.flush()
        return plan

    def delete(self, plan_id: int) -> None:
        plan = self.get(plan_id)
        if plan.status not in PLAN_DELETABLE:
            raise InvalidStateError(f"Plan {plan.plan_number} is {plan.status} and cannot be deleted")
        if plan.works:
            raise InvalidStateError(f"Plan {plan.plan_number} has works and cannot be deleted")

        with self.uow.atomic():
            self.uow.plans.delete(plan)
        logger.info("Maintenance plan %s deleted", plan.plan_number)

    def transition(self, plan_id: int, status: PlanStatus) -> MaintenancePlan:
        with self.uow.atomic():
            plan = self.uow.plans.get_for_update(plan_id)
            if not plan:
                raise NotFoundError("MaintenancePlan", plan_id)
            set_plan_status(self.uow, plan, status)
        return plan

    def upcoming(self, days: Optional[int] = None) -> List[MaintenancePlan]:
        """Draft or approved plans starting between today and today + days."""
        days = settings.upcoming_plan_days if days is None else days
        today = self.clock().date()
        return list(self.uow.db.execute(
            select(MaintenancePlan)
            .where(
                MaintenancePlan.status.in_(UPCOMING_STATUSES),
                MaintenancePlan.planned_start_date >= today,
                MaintenancePlan.planned_start_date <= today + timedelta(days=days),
            )
            .options(selectinload(MaintenancePlan.materials))
            .order_by(MaintenancePlan.planned_start_date, MaintenancePlan.id)
        ).scalars().all())


# ===== WORKS =====

class MaintenanceWorkService(_BaseService):

    def get(self, work_id: int) -> MaintenanceWork:
        work = self.uow.works.get(work_id)
        if not work:
            raise NotFoundError("MaintenanceWork", work_id)
        return work

    def _locked(self, work_id: int) -> MaintenanceWork:
        work = self.uow.works.get_for_update(work_id)
        if not work:
            raise NotFoundError("MaintenanceWork", work_id)
        return work

    def create(self, plan_id: int, assigned_to_id: int, description: Optional[str] = None) -> MaintenanceWork:
        """New ASSIGNED work; the plan (and its request) move to IN_PROGRESS."""
        with self.uow.atomic():
            plan = self.uow.plans.get_for_update(plan_id)
            if not plan:
                raise NotFoundError("MaintenancePlan", plan_id)
            if PLAN_MACHINE.is_terminal(plan.status):
                raise InvalidTransitionError(PLAN_MACHINE.entity, plan.status, PlanStatus.IN_PROGRESS.value)

            work = self.uow.works.add(MaintenanceWork(
                work_number=self._number(DocumentKind.WORK),
                plan_id=plan.id,
                assigned_to_id=assigned_to_id,
                description=description,
                status=WorkStatus.ASSIGNED.value,
            ))
            set_plan_status(self.uow, plan, PlanStatus.IN_PROGRESS, force=True)
        logger.info("Maintenance work %s created for plan %s", work.work_number, plan.plan_number)
        return work

    def list(
        self,
        plan_id: Optional[int] = None,
        assigned_to_id: Optional[int] = None,
        status: Optional[WorkStatus] = None,
        skip: int = 0,
        take: Optional[int] = None,
    ) -> Page:
        predicates = []
        if plan_id is not None:
            predicates.append(MaintenanceWork.plan_id == plan_id)
        if assigned_to_id is not None:
            predicates.append(MaintenanceWork.assigned_to_id == assigned_to_id)
        if status is not None:
            predicates.append(MaintenanceWork.status == _enum_value(WorkStatus, status))

        stmt = select(MaintenanceWork).where(*predicates).order_by(MaintenanceWork.created_at.desc(), MaintenanceWork.id.desc())
        count_stmt = select(func.count(MaintenanceWork.id)).where(*predicates)
        return _paginate(self.uow, stmt, count_stmt, skip, take)

    def transition(self, work_id: int, status: WorkStatus) -> MaintenanceWork:
        """Generic status change; COMPLETED goes through complete() for its bookkeeping."""
        status = WORK_MACHINE.normalize(status)
        if status == WorkStatus.COMPLETED.value:
            return self.complete(work_id)

        with self.uow.atomic():
            work = self._locked(work_id)
            set_work_status(self.uow, work, status)
            if work.status == WorkStatus.IN_PROGRESS.value and work.started_at is None:
                work.started_at = self.clock()
        return work

    def start(self, work_id: int) -> MaintenanceWork:
        with self.uow.atomic():
            work = self._locked(work_id)
            if work.status != WorkStatus.ASSIGNED.value:
                raise InvalidTransitionError(WORK_MACHINE.entity, work.status, WorkStatus.IN_PROGRESS.value)
            set_work_status(self.uow, work, WorkStatus.IN_PROGRESS)
            work.started_at = self.clock()
        return work

    def pause(self, work_id: int) -> MaintenanceWork:
        with self.uow.atomic():
            work = self._locked(work_id)
            set_work_status(self.uow, work, WorkStatus.PAUSED)
        return work

    def resume(self, work_id: int) -> MaintenanceWork:
        with self.uow.atomic():
            work = self._locked(work_id)
            if work.status != WorkStatus.PAUSED.value:
                raise InvalidTransitionError(WORK_MACHINE.entity, work.status, WorkStatus.IN_PROGRESS.value)
            set_work_status(self.uow, work, WorkStatus.IN_PROGRESS)
        return work

    def complete(
        self,
        work_id: int,
        work_report: Optional[str] = None,
        actual_hours=None,
        used_materials: Optional[List[dict]] = None,
    ) -> MaintenanceWork:
        """
        Close the work.

        Args:
            work_report: Free-text report
            actual_hours: Hours spent; computed from started_at when omitted
            used_materials: [{material_id, used_quantity}] written to the plan materials

        The plan is completed in the same transaction when this was its last open work.
        """
        with self.uow.atomic():
            work = self._locked(work_id)
            now = self.clock()

            plan_materials = {}
            if used_materials:
                plan_materials = {
                    pm.material_id: pm
                    for pm in self.uow.db.execute(
                        select(MaintenancePlanMaterial).where(MaintenancePlanMaterial.plan_id == work.plan_id)
                    ).scalars()
                }
                for item in used_materials:
                    if item["material_id"] not in plan_materials:
                        raise NotFoundError("PlanMaterial", item["material_id"])
                    if Decimal(str(item["used_quantity"])) < 0:
                        raise InvalidQuantityError(f"Used quantity cannot be negative: {item['used_quantity']}")

            set_work_status(self.uow, work, WorkStatus.COMPLETED)
            work.completed_at = now
            if work_report is not None:
                work.work_report = work_report
            if actual_hours is not None:
                work.actual_hours = Decimal(str(actual_hours))
            elif work.started_at is not None:
                hours = Decimal(str((now - work.started_at).total_seconds() / 3600))
                work.actual_hours = hours.quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)

            for item in used_materials or []:
                plan_materials[item["material_id"]].used_quantity = Decimal(str(item["used_quantity"]))

        logger.info("Maintenance work %s completed", work.work_number)
        return work

    def cancel(self, work_id: int) -> MaintenanceWork:
        with self.uow.atomic():
            work = self._locked(work_id)
            set_work_status(self.uow, work, WorkStatus.CANCELLED)
        return work

    def reassign(self, work_id: int, assigned_to_id: int) -> MaintenanceWork:
        with self.uow.atomic():
            work = self._locked(work_id)
            if WORK_MACHINE.is_terminal(work.status):
                raise InvalidStateError(f"Work {work.work_number} is {work.status} and cannot be reassigned")
            work.assigned_to_id = assigned_to_id
        logger.info("Maintenance work %s reassigned to %s", work.work_number, assigned_to_id)
        return work
