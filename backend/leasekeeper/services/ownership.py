# backend/leasekeeper/services/ownership.py
from __future__ import annotations

from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..errors import NotFoundError, ValidationError
from ..models import Clearance, Lease, MaintenanceRequest, Property, Tenant


def as_id(value: Any, field: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be an integer id, got {value!r}") from None


def must_get_property(db: Session, *, property_id: int) -> Property:
    row = db.scalar(select(Property).where(Property.id == property_id))
    if not row:
        raise NotFoundError("property not found", entity_type="Property", entity_id=property_id)
    return row


def must_get_tenant(db: Session, *, tenant_id: int) -> Tenant:
    row = db.scalar(select(Tenant).where(Tenant.id == tenant_id))
    if not row:
        raise NotFoundError("tenant not found", entity_type="Tenant", entity_id=tenant_id)
    return row


def must_get_lease(db: Session, *, lease_id: int) -> Lease:
    row = db.scalar(select(Lease).where(Lease.id == lease_id))
    if not row:
        raise NotFoundError("lease not found", entity_type="Lease", entity_id=lease_id)
    return row


def must_get_maintenance(db: Session, *, maintenance_id: int) -> MaintenanceRequest:
    row = db.scalar(select(MaintenanceRequest).where(MaintenanceRequest.id == maintenance_id))
    if not row:
        raise NotFoundError("maintenance request not found", entity_type="MaintenanceRequest", entity_id=maintenance_id)
    return row


def must_get_clearance(db: Session, *, clearance_id: int) -> Clearance:
    row = db.scalar(select(Clearance).where(Clearance.id == clearance_id))
    if not row:
        raise NotFoundError("clearance request not found", entity_type="Clearance", entity_id=clearance_id)
    return row
