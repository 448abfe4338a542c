# backend/leasekeeper/services/status_trackers.py
from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Optional, Type, TypeVar

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from ..config import settings
from ..db import committing
from ..domain.statuses import (
    LeaseStatus,
    PropertyStatus,
    TenantStatus,
    coerce,
    is_allowed,
    transition_table,
)
from ..errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from ..models import Lease, Property, StatusChange, Tenant

log = logging.getLogger(__name__)

M = TypeVar("M", Property, Tenant, Lease)

# -----------------------------------------------------------------------------
# Status trackers
# -----------------------------------------------------------------------------
# The only code that writes Property.status, Tenant.status and Lease.status.
#
# Each call is one committed single-row UPDATE plus a StatusChange journal row,
# or nothing at all when the row already holds the requested status.
# Passing expected=... makes the UPDATE a compare-and-set: it only matches while
# the stored status still equals expected, otherwise ConflictError.
# -----------------------------------------------------------------------------


def _set_status(
    db: Session,
    model: Type[M],
    enum_cls: Type[Enum],
    *,
    entity_id: int,
    status: Any,
    expected: Any = None,
    reason: Optional[str] = None,
    also: Optional[dict[str, Any]] = None,
) -> M:
    entity_type = model.__name__

    requested = coerce(enum_cls, status)
    if requested is None:
        raise ValidationError(f"unknown {entity_type} status {status!r}", entity_type=entity_type, entity_id=entity_id)

    guard = None
    if expected is not None:
        guard = coerce(enum_cls, expected)
        if guard is None:
            raise ValidationError(f"unknown {entity_type} status {expected!r}", entity_type=entity_type, entity_id=entity_id)

    row = db.scalar(select(model).where(model.id == entity_id).execution_options(populate_existing=True))
    if row is None:
        raise NotFoundError(f"{entity_type.lower()} not found", entity_type=entity_type, entity_id=entity_id)

    # under a guard the write can only land on `expected`, so validate from there
    current = guard if guard is not None else coerce(enum_cls, row.status)
    table = transition_table(entity_type, strict=settings.strict_status_transitions)
    if not is_allowed(table, current, requested):
        raise InvalidTransitionError(entity_type, entity_id, getattr(current, "value", str(current)), requested.value)

    # nothing to write: same status, no guard, no companion fields
    if guard is None and not also and current == requested:
        return row

    stmt = update(model).where(model.id == entity_id)
    if guard is not None:
        stmt = stmt.where(model.status == guard.value)
    stmt = stmt.values(status=requested.value, **(also or {}))

    previous = row.status
    with committing(db, f"set {entity_type} {entity_id} status"):
        matched = db.execute(stmt).rowcount
        if matched:
            db.add(
                StatusChange(
                    entity_type=entity_type,
                    entity_id=int(entity_id),
                    from_status=guard.value if guard is not None else previous,
                    to_status=requested.value,
                    reason=reason,
                )
            )

    if not matched:
        if guard is not None:
            raise ConflictError(
                f"{entity_type} {entity_id} is no longer {guard.value!r}",
                entity_type=entity_type,
                entity_id=entity_id,
            )
        raise NotFoundError(f"{entity_type.lower()} not found", entity_type=entity_type, entity_id=entity_id)

    db.refresh(row)
    log.info(
        "%s status %s -> %s",
        entity_type,
        previous,
        requested.value,
        extra={f"{entity_type.lower()}_id": int(entity_id), "step": reason},
    )
    return row


def set_property_status(
    db: Session,
    property_id: int,
    status: PropertyStatus | str,
    *,
    expected: PropertyStatus | str | None = None,
    reason: Optional[str] = None,
) -> Property:
    return _set_status(db, Property, PropertyStatus, entity_id=property_id, status=status, expected=expected, reason=reason)


def set_tenant_status(
    db: Session,
    tenant_id: int,
    status: TenantStatus | str,
    *,
    expected: TenantStatus | str | None = None,
    reason: Optional[str] = None,
    also: Optional[dict[str, Any]] = None,
) -> Tenant:
    return _set_status(db, Tenant, TenantStatus, entity_id=tenant_id, status=status, expected=expected, reason=reason, also=also)


def set_lease_status(
    db: Session,
    lease_id: int,
    status: LeaseStatus | str,
    *,
    expected: LeaseStatus | str | None = None,
    reason: Optional[str] = None,
) -> Lease:
    return _set_status(db, Lease, LeaseStatus, entity_id=lease_id, status=status, expected=expected, reason=reason)
