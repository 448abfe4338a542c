# backend/leasekeeper/routers/maintenance.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal, require_user
from ..db import get_db
from ..schemas import MaintenanceAssign, MaintenanceCreate, MaintenanceExpenseIn, MaintenanceOut
from ..services import maintenance_workflow as mw
from ..services.documents import get_document_store
from .leases import read_uploads

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("", response_model=MaintenanceOut)
def create_request(
    request: str = Form(..., description="maintenance request fields as a JSON object"),
    files: Optional[List[UploadFile]] = File(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    payload = MaintenanceCreate.model_validate(request)
    tenant_id = payload.tenant_id if payload.tenant_id is not None else p.user_id
    return mw.create_maintenance_request(
        db, payload.model_dump(), read_uploads(files), tenant_id=tenant_id, store=get_document_store()
    )


@router.get("/completed", response_model=list[MaintenanceOut])
def completed(maintainer_id: Optional[int] = Query(default=None), db: Session = Depends(get_db)):
    return mw.list_completed_maintenances(db, maintainer_id=maintainer_id)


@router.get("/maintainer/{maintainer_id}", response_model=list[MaintenanceOut])
def by_maintainer(maintainer_id: int, db: Session = Depends(get_db)):
    return mw.list_maintenances_by_maintainer(db, maintainer_id)


@router.post("/{maintenance_id}/approve", response_model=MaintenanceOut)
def approve(maintenance_id: int, db: Session = Depends(get_db)):
    return mw.approve_maintenance_request(db, maintenance_id)


@router.post("/{maintenance_id}/assign", response_model=MaintenanceOut)
def assign(maintenance_id: int, payload: MaintenanceAssign, db: Session = Depends(get_db)):
    return mw.assign_maintainer(
        db,
        maintenance_id,
        payload.maintainer_ids,
        scheduled_date=payload.scheduled_date,
        estimated_completion_time=payload.estimated_completion_time,
    )


@router.post("/{maintenance_id}/inspect", response_model=MaintenanceOut)
def inspect(
    maintenance_id: int,
    feedback: Optional[str] = Form(default=None),
    files: Optional[List[UploadFile]] = File(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(require_user),
):
    return mw.inspect_maintenance(
        db,
        maintenance_id,
        inspected_by=p.user_id,
        files=read_uploads(files),
        feedback=feedback,
        store=get_document_store(),
    )


@router.post("/{maintenance_id}/expense", response_model=MaintenanceOut)
def submit_expense(maintenance_id: int, payload: MaintenanceExpenseIn, db: Session = Depends(get_db)):
    return mw.submit_maintenance_expense(db, maintenance_id, payload.model_dump())
