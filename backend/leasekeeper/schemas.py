# backend/leasekeeper/schemas.py
from __future__ import annotations

import json
from datetime import datetime
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# -------------------- Properties / Tenants --------------------

class PropertyOut(BaseModel):
    id: int
    title: str
    address: str
    rent_price: Optional[float] = None
    status: str

    model_config = ConfigDict(from_attributes=True)


class TenantOut(BaseModel):
    id: int
    tenant_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    property_id: Optional[int] = None
    unit: Optional[str] = None
    lease_id: Optional[int] = None
    status: str

    model_config = ConfigDict(from_attributes=True)


# -------------------- Leases --------------------

class LeaseCreate(BaseModel):
    property_id: int
    tenant_id: int
    lease_start: datetime
    lease_end: datetime

    rent_amount: float = 0.0
    security_deposit: float = 0.0
    payment_due_date: Optional[str] = None
    payment_method: Optional[str] = None
    rules_and_conditions: Optional[str] = None
    additional_occupants: List[str] = Field(default_factory=list)
    utilities_and_services: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_json_string(cls, data: Any) -> Any:
        # multipart requests carry the lease as one JSON form field
        if isinstance(data, (str, bytes)):
            return json.loads(data)
        return data


class LeasePatch(BaseModel):
    """
    Partial update. Unknown or workflow-controlled keys are kept so the service
    can reject them with a proper validation error.
    """

    lease_start: Optional[datetime] = None
    lease_end: Optional[datetime] = None
    rent_amount: Optional[float] = None
    security_deposit: Optional[float] = None
    payment_due_date: Optional[str] = None
    payment_method: Optional[str] = None
    rules_and_conditions: Optional[str] = None
    additional_occupants: Optional[List[str]] = None
    utilities_and_services: Optional[str] = None

    model_config = ConfigDict(extra="allow")

    @model_validator(mode="before")
    @classmethod
    def _accept_json_string(cls, data: Any) -> Any:
        if isinstance(data, (str, bytes)):
            return json.loads(data)
        return data


class LeaseOut(BaseModel):
    id: int
    tenant_id: int
    property_id: int
    created_by: Optional[int] = None
    lease_start: datetime
    lease_end: datetime
    rent_amount: float
    security_deposit: float
    payment_due_date: Optional[str] = None
    payment_method: Optional[str] = None
    rules_and_conditions: Optional[str] = None
    additional_occupants: List[str] = Field(default_factory=list)
    utilities_and_services: Optional[str] = None
    documents: List[str] = Field(default_factory=list)
    status: str

    tenant: Optional[TenantOut] = None
    property: Optional[PropertyOut] = None

    model_config = ConfigDict(from_attributes=True)


class LeaseStatusCountsOut(BaseModel):
    active: int = 0
    expired: int = 0


# -------------------- Maintenance --------------------

class MaintenanceCreate(BaseModel):
    property_id: int
    tenant_id: Optional[int] = None
    type_of_request: str
    description: str
    urgency_level: str
    priority_level: Optional[str] = None
    preferred_access_times: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _accept_json_string(cls, data: Any) -> Any:
        if isinstance(data, (str, bytes)):
            return json.loads(data)
        return data


class MaintenanceAssign(BaseModel):
    maintainer_ids: List[int]
    scheduled_date: Optional[datetime] = None
    estimated_completion_time: Optional[float] = None  # hours


class EquipmentLine(BaseModel):
    quantity: float = 0
    price_per_unit: float = 0
    description: Optional[str] = None


class MaintenanceExpenseIn(BaseModel):
    labor_cost: float = 0.0
    equipment_cost: List[EquipmentLine] = Field(default_factory=list)
    description: Optional[str] = None


class MaintenanceOut(BaseModel):
    id: int
    tenant_id: Optional[int] = None
    property_id: int
    type_of_request: str
    description: str
    urgency_level: str
    priority_level: Optional[str] = None
    preferred_access_times: Optional[str] = None
    notes: Optional[str] = None

    status: str
    approval_status: str
    assigned_maintainers: List[int] = Field(default_factory=list)
    scheduled_date: Optional[datetime] = None
    estimated_completion_time: Optional[float] = None
    original_property_status: Optional[str] = None

    expense: Optional[dict] = None
    total_expenses: Optional[float] = None

    inspected_by: Optional[int] = None
    inspection_date: Optional[datetime] = None
    feedback: Optional[str] = None
    requested_files: List[str] = Field(default_factory=list)
    inspected_files: List[str] = Field(default_factory=list)

    request_date: datetime

    model_config = ConfigDict(from_attributes=True)


# -------------------- Clearances --------------------

class ClearanceCreate(BaseModel):
    tenant_id: int
    property_id: int
    move_out_date: datetime
    reason: Optional[str] = None
    notes: Optional[str] = None


class ClearanceInspect(BaseModel):
    feedback: Optional[str] = None


class InspectorAssign(BaseModel):
    inspector_id: int


class ClearanceOut(BaseModel):
    id: int
    tenant_id: int
    property_id: Optional[int] = None
    move_out_date: datetime
    reason: Optional[str] = None
    notes: Optional[str] = None
    status: str
    inspection_status: str
    approved_by: Optional[int] = None
    inspection_by: Optional[int] = None
    inspection_date: Optional[datetime] = None
    feedback: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
