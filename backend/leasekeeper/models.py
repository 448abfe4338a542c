# backend/leasekeeper/models.py
from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, List, Optional

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .db import Base
from .domain.statuses import (
    ApprovalStatus,
    ClearanceStatus,
    InspectionStatus,
    LeaseStatus,
    MaintenanceStatus,
    PropertyStatus,
    TenantStatus,
)


def utcnow() -> datetime:
    # naive UTC everywhere; sqlite drops tzinfo anyway
    return datetime.now(timezone.utc).replace(tzinfo=None)


class _Dumpable:
    def model_dump(self) -> dict[str, Any]:
        return {c.name: getattr(self, c.name) for c in self.__table__.columns}  # type: ignore[attr-defined]


# -----------------------------
# Core domain: Properties / Tenants / Leases
# -----------------------------
class Property(_Dumpable, Base):
    __tablename__ = "properties"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    address: Mapped[str] = mapped_column(String(255), nullable=False)
    rent_price: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # open|reserved|closed|under_maintenance|leased|sold; written only by status_trackers
    status: Mapped[str] = mapped_column(String(30), nullable=False, default=PropertyStatus.OPEN.value, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    leases: Mapped[List["Lease"]] = relationship(back_populates="property")


class Tenant(_Dumpable, Base):
    __tablename__ = "tenants"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[Optional[str]] = mapped_column(String(200), nullable=True, unique=True)
    phone: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    # embedded unit/property reference from registration
    property_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("properties.id"), nullable=True)
    unit: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)

    # current lease; plain column (no FK) so leases and tenants can be created in either order
    lease_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # active|inactive|pending
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=TenantStatus.PENDING.value, index=True)
    move_in_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class Lease(_Dumpable, Base):
    __tablename__ = "leases"
    __table_args__ = (Index("ix_leases_status_end", "status", "lease_end"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    property_id: Mapped[int] = mapped_column(Integer, ForeignKey("properties.id"), nullable=False, index=True)
    created_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)

    lease_start: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    lease_end: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    rent_amount: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    security_deposit: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    payment_due_date: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    payment_method: Mapped[Optional[str]] = mapped_column(String(40), nullable=True)
    rules_and_conditions: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    additional_occupants: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    utilities_and_services: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    documents: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    # active|expired
    status: Mapped[str] = mapped_column(String(20), nullable=False, default=LeaseStatus.ACTIVE.value)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    property: Mapped["Property"] = relationship(back_populates="leases")
    tenant: Mapped["Tenant"] = relationship()


# -----------------------------
# Workflows: Maintenance / Clearance
# -----------------------------
class MaintenanceRequest(_Dumpable, Base):
    __tablename__ = "maintenance_requests"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=True, index=True)
    property_id: Mapped[int] = mapped_column(Integer, ForeignKey("properties.id"), nullable=False, index=True)

    type_of_request: Mapped[str] = mapped_column(String(40), nullable=False)  # Plumbing|Electrical|HVAC|...
    description: Mapped[str] = mapped_column(Text, nullable=False)
    urgency_level: Mapped[str] = mapped_column(String(20), nullable=False)  # Urgent|Routine|Non-Urgent
    priority_level: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    preferred_access_times: Mapped[Optional[str]] = mapped_column(String(200), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=MaintenanceStatus.PENDING.value, index=True)
    approval_status: Mapped[str] = mapped_column(String(20), nullable=False, default=ApprovalStatus.PENDING.value)

    assigned_maintainers: Mapped[List[int]] = mapped_column(JSON, nullable=False, default=list)
    scheduled_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    estimated_completion_time: Mapped[Optional[float]] = mapped_column(Float, nullable=True)  # hours

    # property status captured at assignment, restored at inspection
    original_property_status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)

    expense: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    total_expenses: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    inspected_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    inspection_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    requested_files: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)
    inspected_files: Mapped[List[str]] = mapped_column(JSON, nullable=False, default=list)

    request_date: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    property: Mapped["Property"] = relationship()


class Clearance(_Dumpable, Base):
    __tablename__ = "clearances"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    tenant_id: Mapped[int] = mapped_column(Integer, ForeignKey("tenants.id"), nullable=False, index=True)
    property_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("properties.id"), nullable=True, index=True)

    move_out_date: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(String(20), nullable=False, default=ClearanceStatus.PENDING.value, index=True)
    inspection_status: Mapped[str] = mapped_column(String(20), nullable=False, default=InspectionStatus.PENDING.value)

    approved_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    inspection_by: Mapped[Optional[int]] = mapped_column(Integer, nullable=True, index=True)
    inspection_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    feedback: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


# -----------------------------
# Status journal
# -----------------------------
class StatusChange(Base):
    __tablename__ = "status_changes"
    __table_args__ = (Index("ix_status_changes_entity", "entity_type", "entity_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    entity_type: Mapped[str] = mapped_column(String(40), nullable=False)  # Property|Tenant|Lease
    entity_id: Mapped[int] = mapped_column(Integer, nullable=False)

    from_status: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    to_status: Mapped[str] = mapped_column(String(30), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(String(120), nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, nullable=False, default=utcnow)
