"""
Status changes and cascades for Request -> Plan -> Work.

Each set_*_status function applies one change plus every cascade it
triggers, on the caller's session and inside the caller's atomic unit:

- Plan -> IN_PROGRESS   : linked Request forced to IN_PROGRESS
- Plan -> COMPLETED     : linked Request forced to COMPLETED when every other
                          Plan of that Request is COMPLETED or CANCELLED
- Work -> COMPLETED     : Plan forced to COMPLETED when no sibling Work is
                          outstanding (then the Plan cascade above applies)

A forced change skips the transition table, is a no-op when the entity is
already in the target status, and never moves an entity out of a terminal
status.
"""
import logging

from ..infrastructure.unit_of_work import UnitOfWork
from ..domain.enums import RequestStatus, PlanStatus, WorkStatus
from ..domain.lifecycle import (
    StatusMachine,
    REQUEST_MACHINE,
    PLAN_MACHINE,
    WORK_MACHINE,
    CLOSED_PLAN_STATUSES,
    CLOSED_WORK_STATUSES,
)
from ..domain.models_maintenance import MaintenanceRequest, MaintenancePlan, MaintenanceWork

logger = logging.getLogger(__name__)


def _apply(machine: StatusMachine, entity, number: str, target, force: bool) -> bool:
    """Set entity.status. Returns False when a forced change had nothing to do."""
    if not force:
        entity.status = machine.check(entity.status, target)
        logger.info("%s %s -> %s", machine.entity, number, entity.status)
        return True

    target = machine.normalize(target)
    if entity.status == target:
        return False
    if machine.is_terminal(entity.status):
        logger.info("%s %s stays %s (terminal), cascade to %s skipped", machine.entity, number, entity.status, target)
        return False
    logger.info("%s %s -> %s (cascade from %s)", machine.entity, number, target, entity.status)
    entity.status = target
    return True


def set_request_status(uow: UnitOfWork, request: MaintenanceRequest, target, force: bool = False) -> MaintenanceRequest:
    _apply(REQUEST_MACHINE, request, request.request_number, target, force)
    return request


def set_plan_status(uow: UnitOfWork, plan: MaintenancePlan, target, force: bool = False) -> MaintenancePlan:
    if not _apply(PLAN_MACHINE, plan, plan.plan_number, target, force):
        return plan

    if plan.request_id is None:
        return plan

    if plan.status == PlanStatus.IN_PROGRESS.value:
        request = uow.requests.get_for_update(plan.request_id)
        set_request_status(uow, request, RequestStatus.IN_PROGRESS, force=True)

    elif plan.status == PlanStatus.COMPLETED.value:
        request = uow.requests.get_for_update(plan.request_id)
        others = [p for p in uow.plans.by_request(plan.request_id) if p.id != plan.id]
        if all(p.status in CLOSED_PLAN_STATUSES for p in others):
            set_request_status(uow, request, RequestStatus.COMPLETED, force=True)
        else:
            logger.info("Request %s kept open: other plans still active", request.request_number)

    return plan


def set_work_status(uow: UnitOfWork, work: MaintenanceWork, target, force: bool = False) -> MaintenanceWork:
    if not _apply(WORK_MACHINE, work, work.work_number, target, force):
        return work

    if work.status == WorkStatus.COMPLETED.value:
        siblings = [w for w in uow.works.by_plan(work.plan_id) if w.id != work.id]
        if not any(w.status not in CLOSED_WORK_STATUSES for w in siblings):
            plan = uow.plans.get_for_update(work.plan_id)
            set_plan_status(uow, plan, PlanStatus.COMPLETED, force=True)

    return work
