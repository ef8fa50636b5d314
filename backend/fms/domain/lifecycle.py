"""
Maintenance status machines.

Request:  PENDING -> {APPROVED, REJECTED, CANCELLED}
          APPROVED -> {IN_PROGRESS, CANCELLED}
          IN_PROGRESS -> {COMPLETED, CANCELLED}
Plan:     DRAFT -> {APPROVED, CANCELLED}
          APPROVED -> {IN_PROGRESS, CANCELLED}
          IN_PROGRESS -> {COMPLETED, CANCELLED}
Work:     ASSIGNED -> {IN_PROGRESS, CANCELLED}
          IN_PROGRESS -> {PAUSED, COMPLETED, CANCELLED}
          PAUSED -> {IN_PROGRESS, CANCELLED}

Statuses without outgoing transitions are terminal. Cascades between the
three machines live in application/services_maintenance.py.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, FrozenSet, Type

from .enums import RequestStatus, PlanStatus, WorkStatus
from .errors import InvalidTransitionError


def _value(status) -> str:
    return status.value if isinstance(status, Enum) else str(status)


@dataclass(frozen=True)
class StatusMachine:
    entity: str
    status_type: Type[Enum]
    transitions: Dict[str, FrozenSet[str]]

    def allowed(self, current: str) -> FrozenSet[str]:
        return self.transitions.get(_value(current), frozenset())

    def can_transition(self, current: str, target: str) -> bool:
        return _value(target) in self.allowed(current)

    def is_terminal(self, status: str) -> bool:
        return not self.allowed(status)

    def check(self, current: str, target: str) -> str:
        """Return the normalized target status or raise InvalidTransitionError."""
        target = self.normalize(target)
        if not self.can_transition(current, target):
            raise InvalidTransitionError(self.entity, _value(current), target)
        return target

    def normalize(self, status) -> str:
        if isinstance(status, Enum):
            return status.value
        try:
            return self.status_type(status).value
        except ValueError:
            raise InvalidTransitionError(self.entity, "?", str(status))


def _table(mapping) -> Dict[str, FrozenSet[str]]:
    return {src.value: frozenset(dst.value for dst in targets) for src, targets in mapping.items()}


REQUEST_MACHINE = StatusMachine(
    entity="MaintenanceRequest",
    status_type=RequestStatus,
    transitions=_table({
        RequestStatus.PENDING: [RequestStatus.APPROVED, RequestStatus.REJECTED, RequestStatus.CANCELLED],
        RequestStatus.APPROVED: [RequestStatus.IN_PROGRESS, RequestStatus.CANCELLED],
        RequestStatus.IN_PROGRESS: [RequestStatus.COMPLETED, RequestStatus.CANCELLED],
        RequestStatus.COMPLETED: [],
        RequestStatus.CANCELLED: [],
        RequestStatus.REJECTED: [],
    }),
)

PLAN_MACHINE = StatusMachine(
    entity="MaintenancePlan",
    status_type=PlanStatus,
    transitions=_table({
        PlanStatus.DRAFT: [PlanStatus.APPROVED, PlanStatus.CANCELLED],
        PlanStatus.APPROVED: [PlanStatus.IN_PROGRESS, PlanStatus.CANCELLED],
        PlanStatus.IN_PROGRESS: [PlanStatus.COMPLETED, PlanStatus.CANCELLED],
        PlanStatus.COMPLETED: [],
        PlanStatus.CANCELLED: [],
    }),
)

WORK_MACHINE = StatusMachine(
    entity="MaintenanceWork",
    status_type=WorkStatus,
    transitions=_table({
        WorkStatus.ASSIGNED: [WorkStatus.IN_PROGRESS, WorkStatus.CANCELLED],
        WorkStatus.IN_PROGRESS: [WorkStatus.PAUSED, WorkStatus.COMPLETED, WorkStatus.CANCELLED],
        WorkStatus.PAUSED: [WorkStatus.IN_PROGRESS, WorkStatus.CANCELLED],
        WorkStatus.COMPLETED: [],
        WorkStatus.CANCELLED: [],
    }),
)

# Plans and works that no longer block their parent from completing
CLOSED_PLAN_STATUSES = frozenset({PlanStatus.COMPLETED.value, PlanStatus.CANCELLED.value})
CLOSED_WORK_STATUSES = frozenset({WorkStatus.COMPLETED.value, WorkStatus.CANCELLED.value})
