# backend/leasekeeper/domain/statuses.py
from __future__ import annotations

from enum import Enum
from typing import Any, Dict, FrozenSet, Mapping, Optional, Type, TypeVar

# -----------------------------------------------------------------------------
# Status vocabularies + transition tables
# -----------------------------------------------------------------------------
# Every status write in the lifecycle core goes through services/status_trackers,
# which validates (current -> requested) against one of the tables below.
#
# PERMISSIVE tables reproduce the historical behaviour (any known status may
# follow any other). STRICT tables list only the moves the workflows perform.
# settings.strict_status_transitions picks which set is live.
# -----------------------------------------------------------------------------


class PropertyStatus(str, Enum):
    OPEN = "open"
    RESERVED = "reserved"
    CLOSED = "closed"
    UNDER_MAINTENANCE = "under_maintenance"
    LEASED = "leased"
    SOLD = "sold"


class TenantStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    PENDING = "pending"


class LeaseStatus(str, Enum):
    ACTIVE = "active"
    EXPIRED = "expired"


class MaintenanceStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    IN_PROGRESS = "In Progress"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    INSPECTED = "Inspected"
    INCOMPLETE = "Incomplete"


class ApprovalStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class ClearanceStatus(str, Enum):
    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"


class InspectionStatus(str, Enum):
    PENDING = "Pending"
    SCHEDULED = "Scheduled"
    PASSED = "Passed"
    FAILED = "Failed"


E = TypeVar("E", bound=Enum)

TransitionTable = Mapping[Any, FrozenSet[Any]]


def _permissive(enum_cls: Type[E]) -> Dict[E, FrozenSet[E]]:
    members = frozenset(enum_cls)
    return {m: members for m in enum_cls}


P = PropertyStatus
T = TenantStatus
L = LeaseStatus

PERMISSIVE_TRANSITIONS: Dict[str, TransitionTable] = {
    "Property": _permissive(PropertyStatus),
    "Tenant": _permissive(TenantStatus),
    "Lease": _permissive(LeaseStatus),
}

STRICT_TRANSITIONS: Dict[str, TransitionTable] = {
    "Property": {
        # reserve (lease), maintenance override, manual close/sale
        P.OPEN: frozenset({P.RESERVED, P.UNDER_MAINTENANCE, P.CLOSED, P.SOLD}),
        # lease creation compensation and clearance approval both reopen
        P.RESERVED: frozenset({P.OPEN, P.LEASED, P.UNDER_MAINTENANCE, P.CLOSED, P.SOLD}),
        P.LEASED: frozenset({P.OPEN, P.UNDER_MAINTENANCE, P.CLOSED, P.SOLD}),
        P.CLOSED: frozenset({P.OPEN, P.UNDER_MAINTENANCE, P.SOLD}),
        # restore goes back to whatever was snapshotted
        P.UNDER_MAINTENANCE: frozenset({P.OPEN, P.RESERVED, P.LEASED, P.CLOSED, P.SOLD}),
        P.SOLD: frozenset({P.UNDER_MAINTENANCE}),
    },
    "Tenant": {
        T.PENDING: frozenset({T.ACTIVE, T.INACTIVE}),
        T.ACTIVE: frozenset({T.PENDING, T.INACTIVE}),
        T.INACTIVE: frozenset({T.ACTIVE, T.PENDING}),
    },
    "Lease": {
        L.ACTIVE: frozenset({L.EXPIRED}),
        L.EXPIRED: frozenset(),
    },
}


def transition_table(entity_type: str, *, strict: bool) -> TransitionTable:
    tables = STRICT_TRANSITIONS if strict else PERMISSIVE_TRANSITIONS
    try:
        return tables[entity_type]
    except KeyError:
        raise ValueError(f"no transition table for entity_type={entity_type!r}") from None


def is_allowed(table: TransitionTable, current: Optional[Enum], requested: Enum) -> bool:
    """
    Rewriting the same status is always allowed (idempotent writes such as the
    sweep re-marking an already inactive tenant). A row with no status yet may
    take any value.
    """
    if current is None or current == requested:
        return True
    return requested in table.get(current, frozenset())


def coerce(enum_cls: Type[E], value: Any, default: Optional[E] = None) -> Optional[E]:
    """Map a raw stored value onto enum_cls, falling back to default."""
    if isinstance(value, enum_cls):
        return value
    if value is None:
        return default
    try:
        return enum_cls(str(value).strip())
    except ValueError:
        return default
