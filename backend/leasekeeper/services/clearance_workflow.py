# backend/leasekeeper/services/clearance_workflow.py
from __future__ import annotations

import logging
from datetime import date, datetime, time, timezone
from typing import Any, List, Mapping, Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db import committing
from ..domain import inspection_policy
from ..domain.statuses import ClearanceStatus, InspectionStatus, PropertyStatus, TenantStatus
from ..errors import NotFoundError, ValidationError
from ..models import Clearance, Property, Tenant, utcnow
from . import status_trackers as trackers
from .ownership import as_id, must_get_clearance

log = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Clearance (move-out) workflow
# -----------------------------------------------------------------------------
# create  -> tenant pending (best effort)
# approve -> property open, tenant inactive
# reject  -> no cascade; the tenant stays pending until something else moves it
# inspect -> records the inspection only
# -----------------------------------------------------------------------------

REQUIRED_FIELDS = ("tenant_id", "property_id", "move_out_date")


def _as_datetime(v: Any) -> datetime:
    if isinstance(v, datetime):
        return v if v.tzinfo is None else v.astimezone(timezone.utc).replace(tzinfo=None)
    if isinstance(v, date):
        return datetime.combine(v, time.min)
    try:
        return _as_datetime(datetime.fromisoformat(str(v)))
    except ValueError:
        raise ValidationError("move_out_date must be an ISO date or datetime") from None


def create_clearance(db: Session, data: Mapping[str, Any]) -> Clearance:
    missing = [k for k in REQUIRED_FIELDS if data.get(k) in (None, "")]
    if missing:
        raise ValidationError(f"missing required clearance fields: {', '.join(missing)}")

    row = Clearance(
        tenant_id=as_id(data["tenant_id"], "tenant_id"),
        property_id=as_id(data["property_id"], "property_id"),
        move_out_date=_as_datetime(data["move_out_date"]),
        reason=data.get("reason"),
        notes=data.get("notes"),
    )
    with committing(db, "create clearance"):
        db.add(row)

    try:
        trackers.set_tenant_status(db, row.tenant_id, TenantStatus.PENDING, reason=f"clearance.{row.id}.created")
    except NotFoundError:
        log.warning("clearance for unknown tenant", extra={"clearance_id": row.id, "tenant_id": row.tenant_id})

    log.info("clearance requested", extra={"clearance_id": row.id, "tenant_id": row.tenant_id})
    return row


def approve_clearance(db: Session, clearance_id: int, approver_id: Optional[int]) -> Clearance:
    row = must_get_clearance(db, clearance_id=clearance_id)

    with committing(db, f"approve clearance {clearance_id}"):
        row.status = ClearanceStatus.APPROVED.value
        row.approved_by = approver_id
        db.add(row)

    # cascade only when both ends resolve, so it never stops half way
    prop = db.get(Property, row.property_id) if row.property_id is not None else None
    tenant = db.get(Tenant, row.tenant_id)
    if prop is not None and tenant is not None:
        trackers.set_property_status(db, prop.id, PropertyStatus.OPEN, reason=f"clearance.{clearance_id}.approved")
        trackers.set_tenant_status(db, tenant.id, TenantStatus.INACTIVE, reason=f"clearance.{clearance_id}.approved")
    else:
        log.warning(
            "clearance approved without status cascade: %s not found",
            "property" if prop is None else "tenant",
            extra={"clearance_id": clearance_id, "property_id": row.property_id, "tenant_id": row.tenant_id},
        )

    log.info(
        "clearance approved",
        extra={"clearance_id": clearance_id, "property_id": row.property_id, "tenant_id": row.tenant_id, "user_id": approver_id},
    )
    return row


def reject_clearance(db: Session, clearance_id: int, approver_id: Optional[int]) -> Clearance:
    row = must_get_clearance(db, clearance_id=clearance_id)

    with committing(db, f"reject clearance {clearance_id}"):
        row.status = ClearanceStatus.REJECTED.value
        row.approved_by = approver_id
        db.add(row)

    # tenant keeps the pending status set at creation
    log.info("clearance rejected", extra={"clearance_id": clearance_id, "tenant_id": row.tenant_id, "user_id": approver_id})
    return row


def inspect_clearance(
    db: Session,
    clearance_id: int,
    inspector_id: Optional[int],
    feedback: Optional[str] = None,
    *,
    now: Optional[datetime] = None,
) -> Clearance:
    row = must_get_clearance(db, clearance_id=clearance_id)
    outcome = inspection_policy.clearance_inspection_status(feedback)

    with committing(db, f"inspect clearance {clearance_id}"):
        row.inspection_status = outcome.value
        row.inspection_by = inspector_id
        row.inspection_date = now or utcnow()
        row.feedback = feedback
        db.add(row)

    log.info("clearance inspected: %s", outcome.value, extra={"clearance_id": clearance_id, "user_id": inspector_id})
    return row


def assign_inspector(db: Session, clearance_id: int, inspector_id: int) -> Clearance:
    if inspector_id is None:
        raise ValidationError("inspector_id is required")
    inspector_id = as_id(inspector_id, "inspector_id")

    row = must_get_clearance(db, clearance_id=clearance_id)
    with committing(db, f"assign inspector to clearance {clearance_id}"):
        row.inspection_by = inspector_id
        row.inspection_status = InspectionStatus.SCHEDULED.value
        db.add(row)

    log.info("clearance inspector assigned", extra={"clearance_id": clearance_id, "user_id": inspector_id})
    return row


def list_uninspected_clearances(db: Session) -> List[Clearance]:
    q = (
        select(Clearance)
        .where(Clearance.inspection_status.in_([InspectionStatus.PENDING.value, InspectionStatus.SCHEDULED.value]))
        .order_by(Clearance.move_out_date.asc(), Clearance.id.asc())
    )
    return list(db.scalars(q).all())


def list_clearances_by_inspector(db: Session, inspector_id: int) -> List[Clearance]:
    q = select(Clearance).where(Clearance.inspection_by == as_id(inspector_id, "inspector_id")).order_by(Clearance.id.desc())
    return list(db.scalars(q).all())
