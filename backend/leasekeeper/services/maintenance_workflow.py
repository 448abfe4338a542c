# backend/leasekeeper/services/maintenance_workflow.py
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, List, Mapping, Optional, Sequence

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db import committing
from ..domain import inspection_policy
from ..domain.expenses import compute_expense
from ..domain.saga import SagaStep, run_saga
from ..domain.statuses import ApprovalStatus, MaintenanceStatus, PropertyStatus, coerce
from ..errors import ValidationError
from ..models import MaintenanceRequest, utcnow
from . import status_trackers as trackers
from .documents import DocumentStore, UploadedFile, get_document_store
from .ownership import as_id, must_get_maintenance, must_get_property

log = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Maintenance workflow
# -----------------------------------------------------------------------------
# Assignment temporarily overrides the property status with under_maintenance
# and snapshots what it was into original_property_status. Inspection puts the
# snapshot back (never a hardcoded "open"). Completion (expense submission) does
# not touch the property.
# -----------------------------------------------------------------------------

REQUEST_TYPES = ("Plumbing", "Electrical", "HVAC", "Appliance Repair", "Other")
URGENCY_LEVELS = ("Urgent", "Routine", "Non-Urgent")
PRIORITY_LEVELS = ("Low", "Medium", "High")


def _as_datetime(v: Any, field: str) -> datetime:
    if isinstance(v, datetime):
        return v if v.tzinfo is None else v.astimezone(timezone.utc).replace(tzinfo=None)
    try:
        return _as_datetime(datetime.fromisoformat(str(v)), field)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO datetime") from None


def create_maintenance_request(
    db: Session,
    data: Mapping[str, Any],
    files: Optional[Sequence[UploadedFile]] = None,
    *,
    tenant_id: Optional[int] = None,
    store: Optional[DocumentStore] = None,
) -> MaintenanceRequest:
    missing = [k for k in ("property_id", "type_of_request", "description", "urgency_level") if not data.get(k)]
    if missing:
        raise ValidationError(f"missing required maintenance fields: {', '.join(missing)}")
    if data["type_of_request"] not in REQUEST_TYPES:
        raise ValidationError(f"type_of_request must be one of {', '.join(REQUEST_TYPES)}")
    if data["urgency_level"] not in URGENCY_LEVELS:
        raise ValidationError(f"urgency_level must be one of {', '.join(URGENCY_LEVELS)}")
    if data.get("priority_level") and data["priority_level"] not in PRIORITY_LEVELS:
        raise ValidationError(f"priority_level must be one of {', '.join(PRIORITY_LEVELS)}")

    prop = must_get_property(db, property_id=as_id(data["property_id"], "property_id"))

    requested_files: List[str] = []
    if files:
        requested_files = (store or get_document_store()).save(files, folder="maintenance/requests")

    row = MaintenanceRequest(
        tenant_id=tenant_id if tenant_id is not None else data.get("tenant_id"),
        property_id=prop.id,
        type_of_request=data["type_of_request"],
        description=data["description"],
        urgency_level=data["urgency_level"],
        priority_level=data.get("priority_level"),
        preferred_access_times=data.get("preferred_access_times"),
        notes=data.get("notes"),
        requested_files=requested_files,
    )
    with committing(db, "create maintenance request"):
        db.add(row)

    log.info("maintenance requested", extra={"maintenance_id": row.id, "property_id": prop.id})
    return row


def approve_maintenance_request(db: Session, maintenance_id: int) -> MaintenanceRequest:
    row = must_get_maintenance(db, maintenance_id=maintenance_id)
    with committing(db, f"approve maintenance {maintenance_id}"):
        row.status = MaintenanceStatus.APPROVED.value
        row.approval_status = ApprovalStatus.APPROVED.value
        db.add(row)
    return row


def _other_open_requests(db: Session, row: MaintenanceRequest) -> List[MaintenanceRequest]:
    q = select(MaintenanceRequest).where(
        MaintenanceRequest.property_id == row.property_id,
        MaintenanceRequest.status == MaintenanceStatus.IN_PROGRESS.value,
        MaintenanceRequest.id != row.id,
    )
    return list(db.scalars(q.order_by(MaintenanceRequest.id)).all())


def _restorable(status: Optional[PropertyStatus]) -> bool:
    return status is not None and status != PropertyStatus.UNDER_MAINTENANCE


def _snapshot_for(db: Session, row: MaintenanceRequest, current: Optional[PropertyStatus]) -> PropertyStatus:
    """
    Which status the property returns to after inspection. Never under_maintenance.

    A re-assignment keeps the snapshot taken by the first assignment. Otherwise
    the property's current status is captured; when another open request
    already holds the property, its snapshot is shared. Falls back to open.
    """
    existing = coerce(PropertyStatus, row.original_property_status)
    if _restorable(existing) and coerce(MaintenanceStatus, row.status) == MaintenanceStatus.IN_PROGRESS:
        return existing
    if _restorable(current):
        return current
    for other in _other_open_requests(db, row):
        inherited = coerce(PropertyStatus, other.original_property_status)
        if _restorable(inherited):
            return inherited
    return PropertyStatus.OPEN


def assign_maintainer(
    db: Session,
    maintenance_id: int,
    maintainer_ids: Sequence[int],
    scheduled_date: Any = None,
    estimated_completion_time: Optional[float] = None,
    *,
    now: Optional[datetime] = None,
) -> MaintenanceRequest:
    if not maintainer_ids:
        raise ValidationError("at least one maintainer is required")
    ids = [as_id(x, "maintainer_ids") for x in maintainer_ids]

    now = now or utcnow()
    when = None
    if scheduled_date is not None:
        when = _as_datetime(scheduled_date, "scheduled_date")
        if when <= now:
            raise ValidationError("scheduled_date must be in the future")

    if estimated_completion_time is not None:
        try:
            hours = float(estimated_completion_time)
        except (TypeError, ValueError):
            raise ValidationError("estimated_completion_time must be a number") from None
        if hours <= 0:
            raise ValidationError("estimated_completion_time must be greater than 0")

    row = must_get_maintenance(db, maintenance_id=maintenance_id)
    prop = must_get_property(db, property_id=row.property_id)
    property_id = prop.id

    current = coerce(PropertyStatus, prop.status)
    snapshot = _snapshot_for(db, row, current)
    prior = current or snapshot

    def override_property() -> None:
        trackers.set_property_status(
            db,
            property_id,
            PropertyStatus.UNDER_MAINTENANCE,
            expected=current,
            reason=f"maintenance.{maintenance_id}.assigned",
        )

    def revert_property() -> None:
        trackers.set_property_status(db, property_id, prior, reason=f"maintenance.{maintenance_id}.assign.compensation")

    def record_assignment() -> None:
        with committing(db, f"assign maintenance {maintenance_id}"):
            row.assigned_maintainers = ids
            row.status = MaintenanceStatus.IN_PROGRESS.value
            row.scheduled_date = when
            row.estimated_completion_time = estimated_completion_time
            row.original_property_status = snapshot.value
            db.add(row)

    run_saga(
        [
            SagaStep("override_property", override_property, compensation=revert_property),
            SagaStep("record_assignment", record_assignment),
        ],
        saga="assign_maintainer",
        on_failure=db.rollback,
    )

    log.info(
        "maintainers assigned, property was %s",
        snapshot.value,
        extra={"maintenance_id": maintenance_id, "property_id": property_id},
    )
    return row


def inspect_maintenance(
    db: Session,
    maintenance_id: int,
    *,
    inspected_by: int,
    files: Optional[Sequence[UploadedFile]] = None,
    feedback: Optional[str] = None,
    store: Optional[DocumentStore] = None,
    now: Optional[datetime] = None,
) -> MaintenanceRequest:
    """
    Hand the property back and mark the request Inspected.

    The property is restored before the request is updated. If that update
    fails the property is forced to open. While another request on the same
    property is still in progress the property stays under maintenance; the
    last inspection restores it. Inspection files are stored as a separate
    last write; a failure there leaves the inspection recorded.
    """
    if inspected_by is None:
        raise ValidationError("inspected_by is required")
    inspected_by = as_id(inspected_by, "inspected_by")

    row = must_get_maintenance(db, maintenance_id=maintenance_id)
    prop = must_get_property(db, property_id=row.property_id)
    property_id = prop.id
    snapshot = coerce(PropertyStatus, row.original_property_status)
    if not _restorable(snapshot):
        snapshot = PropertyStatus.OPEN
    still_held = bool(_other_open_requests(db, row))
    now = now or utcnow()

    def restore_property() -> None:
        trackers.set_property_status(db, property_id, snapshot, reason=f"maintenance.{maintenance_id}.inspected")

    def force_open() -> None:
        trackers.set_property_status(
            db, property_id, PropertyStatus.OPEN, reason=f"maintenance.{maintenance_id}.inspect.compensation"
        )

    def record_inspection() -> None:
        with committing(db, f"inspect maintenance {maintenance_id}"):
            row.status = MaintenanceStatus.INSPECTED.value
            row.inspected_by = inspected_by
            row.inspection_date = now
            row.feedback = feedback
            db.add(row)

    restores = inspection_policy.maintenance_inspection_restores_property(feedback) and not still_held
    steps: List[SagaStep] = []
    if restores:
        steps.append(SagaStep("restore_property", restore_property, compensation=force_open))
    steps.append(SagaStep("record_inspection", record_inspection))
    run_saga(steps, saga="inspect_maintenance", on_failure=db.rollback)

    if files:
        paths = (store or get_document_store()).save(files, folder=f"maintenance/{maintenance_id}/inspection")
        with committing(db, f"attach inspection files to maintenance {maintenance_id}"):
            row.inspected_files = paths
            db.add(row)

    log.info(
        "maintenance inspected, property %s",
        f"restored to {snapshot.value}" if restores else "left as is",
        extra={"maintenance_id": maintenance_id, "property_id": property_id, "user_id": inspected_by},
    )
    return row


def submit_maintenance_expense(db: Session, maintenance_id: int, expense: Mapping[str, Any]) -> MaintenanceRequest:
    row = must_get_maintenance(db, maintenance_id=maintenance_id)
    summary = compute_expense(expense.get("labor_cost"), expense.get("equipment_cost"))

    with committing(db, f"submit expense for maintenance {maintenance_id}"):
        row.expense = summary.as_document(expense.get("description"))
        row.total_expenses = summary.total_expenses
        row.status = MaintenanceStatus.COMPLETED.value
        db.add(row)

    log.info("maintenance completed, total %.2f", summary.total_expenses, extra={"maintenance_id": maintenance_id})
    return row


def list_maintenances_by_maintainer(db: Session, maintainer_id: int) -> List[MaintenanceRequest]:
    # assigned_maintainers is a JSON list; filter in Python to stay backend-agnostic
    rows = db.scalars(select(MaintenanceRequest).order_by(MaintenanceRequest.id.desc())).all()
    return [r for r in rows if int(maintainer_id) in (r.assigned_maintainers or [])]


def list_completed_maintenances(db: Session, maintainer_id: Optional[int] = None) -> List[MaintenanceRequest]:
    q = select(MaintenanceRequest).where(MaintenanceRequest.status == MaintenanceStatus.COMPLETED.value)
    rows = list(db.scalars(q.order_by(MaintenanceRequest.id.desc())).all())
    if maintainer_id is not None:
        rows = [r for r in rows if int(maintainer_id) in (r.assigned_maintainers or [])]
    return rows
