# backend/leasekeeper/services/lease_lifecycle.py
from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime, time, timezone
from typing import Any, Dict, Mapping, Optional, Sequence

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..db import committing
from ..domain.saga import SagaStep, run_saga
from ..domain.statuses import LeaseStatus, PropertyStatus, TenantStatus, coerce
from ..errors import ConflictError, ValidationError
from ..models import Lease, Tenant, utcnow
from . import status_trackers as trackers
from .documents import DocumentStore, UploadedFile, get_document_store
from .ownership import as_id, must_get_lease, must_get_property, must_get_tenant

log = logging.getLogger(__name__)

# -----------------------------------------------------------------------------
# Lease lifecycle
# -----------------------------------------------------------------------------
# create_lease runs as a saga:
#   persist lease -> attach documents -> reserve property -> activate tenant
# A failure after the property was reserved puts it back to "open". The lease
# row itself is never rolled back once persisted.
#
# Expiry rule (creation, update and the nightly sweep): lease_end <= now.
# -----------------------------------------------------------------------------

REQUIRED_FIELDS = ("property_id", "tenant_id", "lease_start", "lease_end")

PATCHABLE_FIELDS = (
    "lease_start",
    "lease_end",
    "rent_amount",
    "security_deposit",
    "payment_due_date",
    "payment_method",
    "rules_and_conditions",
    "additional_occupants",
    "utilities_and_services",
)

# owned by the lifecycle, never by a generic update
WORKFLOW_FIELDS = ("status", "documents", "tenant_id", "property_id")


def _as_datetime(v: Any, field: str) -> datetime:
    if isinstance(v, datetime):
        # stored as naive UTC
        return v if v.tzinfo is None else v.astimezone(timezone.utc).replace(tzinfo=None)
    if isinstance(v, date):
        return datetime.combine(v, time.min)
    try:
        return _as_datetime(datetime.fromisoformat(str(v)), field)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date or datetime") from None


def _is_lapsed(lease_end: datetime, now: datetime) -> bool:
    return lease_end <= now


def _check_dates(start: datetime, end: datetime) -> None:
    if end <= start:
        raise ValidationError("lease_end must be after lease_start")


@dataclass(frozen=True)
class SweepResult:
    leases_expired: int
    tenants_deactivated: int


def get_lease(db: Session, lease_id: int) -> Lease:
    return must_get_lease(db, lease_id=lease_id)


def create_lease(
    db: Session,
    lease_data: Mapping[str, Any],
    documents: Optional[Sequence[UploadedFile]] = None,
    *,
    acting_user_id: Optional[int] = None,
    store: Optional[DocumentStore] = None,
    now: Optional[datetime] = None,
) -> Lease:
    missing = [k for k in REQUIRED_FIELDS if lease_data.get(k) in (None, "")]
    if missing:
        raise ValidationError(f"missing required lease fields: {', '.join(missing)}")

    start = _as_datetime(lease_data["lease_start"], "lease_start")
    end = _as_datetime(lease_data["lease_end"], "lease_end")
    _check_dates(start, end)

    tenant_id = as_id(lease_data["tenant_id"], "tenant_id")
    property_id = as_id(lease_data["property_id"], "property_id")
    must_get_tenant(db, tenant_id=tenant_id)
    prop = must_get_property(db, property_id=property_id)

    # fail before writing anything; the guarded reservation below closes the race
    if coerce(PropertyStatus, prop.status) != PropertyStatus.OPEN:
        raise ConflictError(
            f"property {property_id} is {prop.status!r}, not open",
            entity_type="Property",
            entity_id=property_id,
        )

    now = now or utcnow()
    store = store or get_document_store()
    store.check(documents)

    extra = {k: lease_data[k] for k in PATCHABLE_FIELDS if k in lease_data and k not in ("lease_start", "lease_end")}
    lease = Lease(
        tenant_id=tenant_id,
        property_id=property_id,
        created_by=acting_user_id,
        lease_start=start,
        lease_end=end,
        status=(LeaseStatus.EXPIRED if _is_lapsed(end, now) else LeaseStatus.ACTIVE).value,
        **extra,
    )

    def persist_lease() -> None:
        with committing(db, "persist lease"):
            db.add(lease)

    def attach_documents() -> None:
        if not documents:
            return
        paths = store.save(documents, folder=f"leases/{lease.id}")
        with committing(db, f"attach documents to lease {lease.id}"):
            lease.documents = paths
            db.add(lease)

    def reserve_property() -> None:
        trackers.set_property_status(
            db, property_id, PropertyStatus.RESERVED, expected=PropertyStatus.OPEN, reason="lease.created"
        )

    def release_property() -> None:
        trackers.set_property_status(db, property_id, PropertyStatus.OPEN, reason="lease.create.compensation")

    def activate_tenant() -> None:
        trackers.set_tenant_status(
            db, tenant_id, TenantStatus.ACTIVE, reason="lease.created", also={"lease_id": lease.id}
        )

    run_saga(
        [
            SagaStep("persist_lease", persist_lease),
            SagaStep("attach_documents", attach_documents),
            SagaStep("reserve_property", reserve_property, compensation=release_property),
            SagaStep("activate_tenant", activate_tenant),
        ],
        saga="create_lease",
        on_failure=db.rollback,
    )

    db.refresh(lease)
    log.info(
        "lease created (%s)",
        lease.status,
        extra={"lease_id": lease.id, "tenant_id": tenant_id, "property_id": property_id, "user_id": acting_user_id},
    )
    return lease


def update_lease(
    db: Session,
    lease_id: int,
    patch: Mapping[str, Any],
    documents: Optional[Sequence[UploadedFile]] = None,
    *,
    store: Optional[DocumentStore] = None,
    now: Optional[datetime] = None,
) -> Lease:
    lease = must_get_lease(db, lease_id=lease_id)

    blocked = [k for k in patch if k in WORKFLOW_FIELDS]
    if blocked:
        raise ValidationError(f"lease fields are workflow-controlled: {', '.join(blocked)}")
    unknown = [k for k in patch if k not in PATCHABLE_FIELDS]
    if unknown:
        raise ValidationError(f"unknown lease fields: {', '.join(unknown)}")

    values: Dict[str, Any] = dict(patch)
    for k in ("lease_start", "lease_end"):
        if values.get(k) is not None:
            values[k] = _as_datetime(values[k], k)
        elif k in values:
            raise ValidationError(f"{k} cannot be cleared")
    _check_dates(values.get("lease_start", lease.lease_start), values.get("lease_end", lease.lease_end))

    paths = None
    if documents:
        store = store or get_document_store()
        paths = store.save(documents, folder=f"leases/{lease.id}")

    with committing(db, f"update lease {lease.id}"):
        for k, v in values.items():
            setattr(lease, k, v)
        if paths is not None:
            # uploads replace the previous list outright
            lease.documents = paths
        db.add(lease)

    # runs on every update, not only when lease_end moved
    now = now or utcnow()
    if _is_lapsed(lease.lease_end, now):
        trackers.set_lease_status(db, lease.id, LeaseStatus.EXPIRED, reason="lease.updated")
        if db.get(Tenant, lease.tenant_id) is not None:
            trackers.set_tenant_status(db, lease.tenant_id, TenantStatus.INACTIVE, reason="lease.updated")
        log.info("lease lapsed on update", extra={"lease_id": lease.id, "tenant_id": lease.tenant_id})

    db.refresh(lease)
    return lease


def delete_lease(db: Session, lease_id: int, *, store: Optional[DocumentStore] = None) -> Optional[Lease]:
    """
    Remove the lease and its stored documents.

    Documents go first: if one cannot be unlinked the lease row stays. The
    property and tenant statuses are left as they are.
    """
    lease = db.get(Lease, lease_id)
    if lease is None:
        return None

    if lease.documents:
        (store or get_document_store()).remove(lease.documents)

    with committing(db, f"delete lease {lease_id}"):
        db.delete(lease)

    log.info("lease deleted", extra={"lease_id": lease_id, "tenant_id": lease.tenant_id, "property_id": lease.property_id})
    return lease


def update_lease_and_tenant_statuses(db: Session, *, now: Optional[datetime] = None) -> SweepResult:
    """
    Nightly reconciliation: expire every lease with lease_end <= now that is
    not expired yet, and deactivate its tenant.

    Each expiry is a compare-and-set on status=active, so overlapping sweeps
    (or an update_lease racing the sweep) never apply the same expiry twice.
    Properties are left alone; reopening goes through clearance approval.
    """
    now = now or utcnow()
    rows = db.execute(
        select(Lease.id, Lease.tenant_id)
        .where(Lease.lease_end <= now, Lease.status != LeaseStatus.EXPIRED.value)
        .order_by(Lease.id)
    ).all()

    leases_expired = 0
    tenants_deactivated = 0

    for lease_id, tenant_id in rows:
        try:
            trackers.set_lease_status(
                db, lease_id, LeaseStatus.EXPIRED, expected=LeaseStatus.ACTIVE, reason="sweep"
            )
        except ConflictError:
            log.debug("lease already expired by a concurrent writer", extra={"lease_id": lease_id})
            continue
        leases_expired += 1

        tenant = db.get(Tenant, tenant_id) if tenant_id is not None else None
        if tenant is None:
            continue
        if coerce(TenantStatus, tenant.status) != TenantStatus.INACTIVE:
            trackers.set_tenant_status(db, tenant_id, TenantStatus.INACTIVE, reason="sweep")
            tenants_deactivated += 1

    log.info("lease sweep: %s leases expired, %s tenants deactivated", leases_expired, tenants_deactivated)
    return SweepResult(leases_expired=leases_expired, tenants_deactivated=tenants_deactivated)


def lease_status_counts(db: Session, *, created_by: Optional[int] = None) -> Dict[str, int]:
    q = select(Lease.status, func.count(Lease.id)).group_by(Lease.status)
    if created_by is not None:
        q = q.where(Lease.created_by == int(created_by))

    out = {s.value: 0 for s in LeaseStatus}
    for status, n in db.execute(q).all():
        out[str(status)] = int(n)
    return out
