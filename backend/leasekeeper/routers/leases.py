# backend/leasekeeper/routers/leases.py
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from sqlalchemy.orm import Session

from ..auth import Principal, get_principal
from ..db import get_db
from ..schemas import LeaseCreate, LeaseOut, LeasePatch, LeaseStatusCountsOut
from ..services import lease_lifecycle
from ..services.documents import UploadedFile, get_document_store

router = APIRouter(prefix="/leases", tags=["leases"])


def read_uploads(files: Optional[List[UploadFile]]) -> List[UploadedFile]:
    return [UploadedFile(filename=f.filename or "upload", content=f.file.read()) for f in files or []]


@router.post("", response_model=LeaseOut)
def create_lease(
    lease: str = Form(..., description="lease fields as a JSON object"),
    documents: Optional[List[UploadFile]] = File(default=None),
    db: Session = Depends(get_db),
    p: Principal = Depends(get_principal),
):
    payload = LeaseCreate.model_validate(lease)
    return lease_lifecycle.create_lease(
        db,
        payload.model_dump(),
        read_uploads(documents),
        acting_user_id=p.user_id,
        store=get_document_store(),
    )


@router.get("/status-counts", response_model=LeaseStatusCountsOut)
def status_counts(
    created_by: Optional[int] = Query(default=None),
    db: Session = Depends(get_db),
):
    return lease_lifecycle.lease_status_counts(db, created_by=created_by)


@router.get("/{lease_id}", response_model=LeaseOut)
def get_lease(lease_id: int, db: Session = Depends(get_db)):
    return lease_lifecycle.get_lease(db, lease_id)


@router.patch("/{lease_id}", response_model=LeaseOut)
def update_lease(
    lease_id: int,
    patch: str = Form(default="{}", description="changed lease fields as a JSON object"),
    documents: Optional[List[UploadFile]] = File(default=None),
    db: Session = Depends(get_db),
):
    model = LeasePatch.model_validate(patch)
    values = {**model.model_dump(exclude_unset=True), **(model.model_extra or {})}
    return lease_lifecycle.update_lease(db, lease_id, values, read_uploads(documents), store=get_document_store())


@router.delete("/{lease_id}", response_model=dict)
def delete_lease(lease_id: int, db: Session = Depends(get_db)):
    row = lease_lifecycle.delete_lease(db, lease_id, store=get_document_store())
    if row is None:
        raise HTTPException(status_code=404, detail="lease not found")
    return {"ok": True, "lease_id": lease_id, "documents_removed": len(row.documents or [])}
