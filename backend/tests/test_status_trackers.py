from __future__ import annotations

import pytest
from sqlalchemy import func, select

from leasekeeper.config import settings
from leasekeeper.domain.statuses import (
    PERMISSIVE_TRANSITIONS,
    STRICT_TRANSITIONS,
    LeaseStatus,
    PropertyStatus,
    TenantStatus,
    is_allowed,
    transition_table,
)
from leasekeeper.errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from leasekeeper.models import StatusChange
from leasekeeper.services import status_trackers as trackers


def _journal(db) -> int:
    return db.scalar(select(func.count(StatusChange.id)))


def test_permissive_table_allows_every_known_status():
    table = transition_table("Property", strict=False)
    for current in PropertyStatus:
        for requested in PropertyStatus:
            assert is_allowed(table, current, requested)


def test_strict_table_only_lists_workflow_moves():
    lease = STRICT_TRANSITIONS["Lease"]
    assert is_allowed(lease, LeaseStatus.ACTIVE, LeaseStatus.EXPIRED)
    assert not is_allowed(lease, LeaseStatus.EXPIRED, LeaseStatus.ACTIVE)
    assert is_allowed(lease, LeaseStatus.EXPIRED, LeaseStatus.EXPIRED)

    prop = STRICT_TRANSITIONS["Property"]
    assert not is_allowed(prop, PropertyStatus.SOLD, PropertyStatus.OPEN)
    assert is_allowed(prop, PropertyStatus.UNDER_MAINTENANCE, PropertyStatus.CLOSED)

    assert set(PERMISSIVE_TRANSITIONS) == set(STRICT_TRANSITIONS)
    with pytest.raises(ValueError):
        transition_table("Clearance", strict=True)


def test_write_is_journaled(db, make_property):
    prop = make_property()

    row = trackers.set_property_status(db, prop.id, "reserved", reason="lease.created")

    assert row.status == "reserved"
    change = db.scalar(select(StatusChange))
    assert (change.entity_type, change.entity_id) == ("Property", prop.id)
    assert (change.from_status, change.to_status, change.reason) == ("open", "reserved", "lease.created")


def test_rewriting_the_same_status_is_a_noop(db, make_tenant):
    tenant = make_tenant(status="inactive")

    trackers.set_tenant_status(db, tenant.id, TenantStatus.INACTIVE)

    assert _journal(db) == 0


def test_guarded_write_conflicts_when_status_moved(db, make_property):
    prop = make_property(status="closed")

    with pytest.raises(ConflictError):
        trackers.set_property_status(db, prop.id, "reserved", expected="open")

    assert _journal(db) == 0
    assert trackers.set_property_status(db, prop.id, "open", expected="closed").status == "open"


def test_unknown_status_and_missing_row(db):
    with pytest.raises(NotFoundError):
        trackers.set_lease_status(db, 9999, "expired")
    with pytest.raises(ValidationError):
        trackers.set_tenant_status(db, 1, "evicted")


def test_strict_mode_rejects_illegal_moves(db, make_property, monkeypatch):
    monkeypatch.setattr(settings, "strict_status_transitions", True)
    prop = make_property(status="sold")

    with pytest.raises(InvalidTransitionError) as exc:
        trackers.set_property_status(db, prop.id, "open")

    assert exc.value.current == "sold"
    assert exc.value.requested == "open"
    assert exc.value.status_code == 409
    assert trackers.set_property_status(db, prop.id, "under_maintenance").status == "under_maintenance"


def test_companion_fields_are_written_with_the_status(db, make_tenant):
    tenant = make_tenant(status="active")

    row = trackers.set_tenant_status(db, tenant.id, "active", also={"lease_id": 42})

    assert row.lease_id == 42
    assert _journal(db) == 1
