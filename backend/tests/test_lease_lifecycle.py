from __future__ import annotations

from datetime import datetime, timedelta

import pytest
from sqlalchemy import func, select

from leasekeeper.errors import ConflictError, FileSystemError, NotFoundError, StoreError, ValidationError
from leasekeeper.models import Lease, Property, Tenant
from leasekeeper.services import lease_lifecycle, status_trackers
from leasekeeper.services.documents import UploadedFile

from conftest import NOW


def _lease_data(prop, tenant, **kw):
    data = {
        "property_id": prop.id,
        "tenant_id": tenant.id,
        "lease_start": NOW - timedelta(days=30),
        "lease_end": NOW + timedelta(days=335),
        "rent_amount": 1450.0,
        "security_deposit": 1450.0,
        "payment_method": "bank_transfer",
    }
    data.update(kw)
    return data


def test_create_lease_reserves_property_and_activates_tenant(db, store, make_property, make_tenant):
    prop = make_property()
    tenant = make_tenant()

    lease = lease_lifecycle.create_lease(db, _lease_data(prop, tenant), acting_user_id=7, store=store, now=NOW)

    assert lease.status == "active"
    assert lease.created_by == 7
    assert db.get(Property, prop.id).status == "reserved"
    t = db.get(Tenant, tenant.id)
    assert t.status == "active"
    assert t.lease_id == lease.id


def test_lease_ending_exactly_now_is_created_expired(db, store, make_property, make_tenant):
    prop = make_property()
    tenant = make_tenant()

    lease = lease_lifecycle.create_lease(db, _lease_data(prop, tenant, lease_end=NOW), store=store, now=NOW)

    assert lease.status == "expired"


def test_create_lease_on_non_open_property_is_a_conflict(db, store, make_property, make_tenant):
    prop = make_property(status="reserved")
    tenant = make_tenant()

    with pytest.raises(ConflictError):
        lease_lifecycle.create_lease(db, _lease_data(prop, tenant), store=store, now=NOW)

    assert db.scalar(select(func.count(Lease.id))) == 0
    assert db.get(Tenant, tenant.id).status == "pending"


def test_tenant_step_failure_puts_property_back_to_open(db, store, make_property, make_tenant, monkeypatch):
    prop = make_property()
    tenant = make_tenant()

    def boom(*args, **kwargs):
        raise StoreError("tenant write failed")

    monkeypatch.setattr(status_trackers, "set_tenant_status", boom)

    with pytest.raises(StoreError):
        lease_lifecycle.create_lease(db, _lease_data(prop, tenant), store=store, now=NOW)

    assert db.get(Property, prop.id).status == "open"
    # the lease row itself is not compensated
    assert db.scalar(select(func.count(Lease.id))) == 1
    assert db.get(Tenant, tenant.id).status == "pending"


def test_create_lease_validates_input(db, store, make_property, make_tenant):
    prop = make_property()
    tenant = make_tenant()

    with pytest.raises(ValidationError):
        lease_lifecycle.create_lease(db, {"property_id": prop.id}, store=store, now=NOW)

    with pytest.raises(ValidationError):
        lease_lifecycle.create_lease(
            db, _lease_data(prop, tenant, lease_end=NOW - timedelta(days=60)), store=store, now=NOW
        )

    with pytest.raises(NotFoundError):
        lease_lifecycle.create_lease(db, _lease_data(prop, tenant, tenant_id=9999), store=store, now=NOW)

    too_many = [UploadedFile(f"doc{i}.pdf", b"x") for i in range(5)]
    with pytest.raises(ValidationError):
        lease_lifecycle.create_lease(db, _lease_data(prop, tenant), too_many, store=store, now=NOW)

    assert db.get(Property, prop.id).status == "open"


def test_documents_are_stored_and_replaced_on_update(db, store, make_property, make_tenant):
    prop = make_property()
    tenant = make_tenant()

    lease = lease_lifecycle.create_lease(
        db, _lease_data(prop, tenant), [UploadedFile("signed lease.pdf", b"v1")], store=store, now=NOW
    )
    assert len(lease.documents) == 1
    first = lease.documents[0]
    assert first.startswith(f"leases/{lease.id}/")
    assert (store.root / first).read_bytes() == b"v1"

    lease = lease_lifecycle.update_lease(
        db,
        lease.id,
        {"rent_amount": 1500.0},
        [UploadedFile("addendum.pdf", b"v2"), UploadedFile("pets.pdf", b"v3")],
        store=store,
        now=NOW,
    )

    assert lease.rent_amount == 1500.0
    assert len(lease.documents) == 2
    assert first not in lease.documents


def test_update_lease_rejects_workflow_fields(db, store, make_property, make_tenant):
    prop = make_property()
    tenant = make_tenant()
    lease = lease_lifecycle.create_lease(db, _lease_data(prop, tenant), store=store, now=NOW)

    with pytest.raises(ValidationError):
        lease_lifecycle.update_lease(db, lease.id, {"status": "expired"}, store=store, now=NOW)

    with pytest.raises(ValidationError):
        lease_lifecycle.update_lease(db, lease.id, {"colour": "blue"}, store=store, now=NOW)

    with pytest.raises(NotFoundError):
        lease_lifecycle.update_lease(db, 9999, {"rent_amount": 1.0}, store=store, now=NOW)

    assert db.get(Lease, lease.id).status == "active"


def test_update_that_lapses_the_lease_expires_it_and_deactivates_tenant(db, store, make_property, make_tenant):
    prop = make_property()
    tenant = make_tenant()
    lease = lease_lifecycle.create_lease(db, _lease_data(prop, tenant), store=store, now=NOW)

    lease = lease_lifecycle.update_lease(
        db, lease.id, {"lease_end": NOW - timedelta(days=1)}, store=store, now=NOW
    )

    assert lease.status == "expired"
    assert db.get(Tenant, tenant.id).status == "inactive"
    # the property is left for the clearance workflow
    assert db.get(Property, prop.id).status == "reserved"


def test_delete_lease_removes_documents(db, store, make_property, make_tenant):
    prop = make_property()
    tenant = make_tenant()
    lease = lease_lifecycle.create_lease(
        db, _lease_data(prop, tenant), [UploadedFile("a.pdf", b"a")], store=store, now=NOW
    )
    path = store.root / lease.documents[0]

    deleted = lease_lifecycle.delete_lease(db, lease.id, store=store)

    assert deleted is not None
    assert not path.exists()
    assert db.get(Lease, lease.id) is None
    # no cascade
    assert db.get(Property, prop.id).status == "reserved"
    assert db.get(Tenant, tenant.id).status == "active"

    assert lease_lifecycle.delete_lease(db, lease.id, store=store) is None


def test_delete_lease_aborts_when_a_document_cannot_be_removed(db, store, make_property, make_tenant):
    prop = make_property()
    tenant = make_tenant()
    lease = lease_lifecycle.create_lease(
        db, _lease_data(prop, tenant), [UploadedFile("a.pdf", b"a")], store=store, now=NOW
    )
    (store.root / lease.documents[0]).unlink()

    with pytest.raises(FileSystemError):
        lease_lifecycle.delete_lease(db, lease.id, store=store)

    assert db.get(Lease, lease.id) is not None


def test_lease_status_counts(db, store, make_property, make_tenant):
    for created_by, end in ((1, NOW + timedelta(days=10)), (1, NOW), (2, NOW + timedelta(days=10))):
        prop = make_property()
        tenant = make_tenant()
        lease_lifecycle.create_lease(
            db, _lease_data(prop, tenant, lease_end=end), acting_user_id=created_by, store=store, now=NOW
        )

    assert lease_lifecycle.lease_status_counts(db) == {"active": 2, "expired": 1}
    assert lease_lifecycle.lease_status_counts(db, created_by=1) == {"active": 1, "expired": 1}
    assert lease_lifecycle.lease_status_counts(db, created_by=3) == {"active": 0, "expired": 0}


def test_iso_strings_are_accepted_for_dates(db, store, make_property, make_tenant):
    prop = make_property()
    tenant = make_tenant()

    lease = lease_lifecycle.create_lease(
        db,
        _lease_data(prop, tenant, lease_start="2026-01-01", lease_end="2027-01-01T00:00:00+00:00"),
        store=store,
        now=NOW,
    )

    assert lease.lease_start == datetime(2026, 1, 1)
    assert lease.lease_end == datetime(2027, 1, 1)


def test_non_numeric_ids_are_rejected(db, store, make_property, make_tenant):
    prop = make_property()
    tenant = make_tenant()

    with pytest.raises(ValidationError):
        lease_lifecycle.create_lease(db, _lease_data(prop, tenant, tenant_id="t-1"), store=store, now=NOW)
    with pytest.raises(ValidationError):
        lease_lifecycle.create_lease(db, _lease_data(prop, tenant, property_id=[prop.id]), store=store, now=NOW)

    assert db.scalar(select(func.count(Lease.id))) == 0
